"""
Benchmark query intents and their translation into both engines' native
query forms.

Each intent owns one SQL predicate (used to build a prepared statement
over the `data` JSONB column, `$1` being the parameter) and one query-DSL
builder. The two forms are "best equivalent", not identical: the DSL
runs against the explicit index mapping, the SQL against raw JSONB.
"""

import json
import logging
import numbers
from dataclasses import dataclass
from enum import Enum

from .errors import TranslationError
from .generate_data import OPTIONAL_KEY_BUCKETS

logger = logging.getLogger(__name__)

ABSENT_TAG = "nonexistent"


class QueryIntent(Enum):
    TAG_CONTAINS = "tag_contains"
    ATTRIBUTE_EXISTS = "attribute_exists"
    NESTED_EQUALS = "nested_equals"
    NUMERIC_GREATER = "numeric_greater"
    OPTIONAL_EXISTS = "optional_exists"
    ABSENT_TAG = "absent_tag"

    @property
    def sql_predicate(self):
        return SQL_PREDICATES[self]

    @property
    def statement_name(self):
        return f"docbench_{self.value}"


SQL_PREDICATES = {
    QueryIntent.TAG_CONTAINS: "data -> 'tags' @> $1::jsonb",
    QueryIntent.ATTRIBUTE_EXISTS: "data -> 'attributes' ? $1",
    QueryIntent.NESTED_EQUALS: "data -> 'attributes' -> 'att2' ->> 'nested_key' = $1",
    QueryIntent.NUMERIC_GREATER: "(data -> 'attributes' ->> 'att0')::numeric > $1::numeric",
    QueryIntent.OPTIONAL_EXISTS: "data -> 'attributes' ? $1",
    QueryIntent.ABSENT_TAG: "data -> 'tags' @> $1::jsonb",
}


@dataclass(frozen=True)
class BenchmarkQuery:
    description: str
    intent: QueryIntent
    pg_param: object
    es_query: dict


def _require_word(intent, value):
    if not isinstance(value, str) or not value.strip():
        raise TranslationError(f"{intent.value}: expected a non-empty string, got {value!r}")
    return value.strip()


def _translate_tag(intent, value):
    tag = _require_word(intent, value)
    return f"tags @> '{tag}'", json.dumps([tag]), {"term": {"tags": tag}}


def _translate_attribute_exists(intent, value):
    key = _require_word(intent, value)
    return f"attr ? '{key}'", key, {"exists": {"field": f"attributes.{key}"}}


def _translate_nested_equals(intent, value):
    nested = _require_word(intent, value)
    return (
        f"attr nested = '{nested}'",
        nested,
        {"term": {"attributes.att2.nested_key": nested}},
    )


def _translate_numeric_greater(intent, value):
    if isinstance(value, bool):
        raise TranslationError(f"{intent.value}: expected a number, got {value!r}")
    if isinstance(value, numbers.Real):
        threshold = value
    else:
        try:
            threshold = int(value)
        except (TypeError, ValueError):
            try:
                threshold = float(value)
            except (TypeError, ValueError):
                raise TranslationError(f"{intent.value}: expected a number, got {value!r}") from None
    if threshold != threshold or threshold in (float("inf"), float("-inf")):
        raise TranslationError(f"{intent.value}: threshold must be finite, got {value!r}")

    return (
        f"attr att0 > {threshold}",
        threshold,
        {"range": {"attributes.att0": {"gt": threshold}}},
    )


def _translate_optional_exists(intent, value):
    if isinstance(value, str) and value.startswith("att_opt_"):
        value = value[len("att_opt_"):]
    try:
        bucket = int(value)
    except (TypeError, ValueError):
        raise TranslationError(f"{intent.value}: expected an optional key bucket, got {value!r}") from None
    if not 0 <= bucket < OPTIONAL_KEY_BUCKETS:
        raise TranslationError(
            f"{intent.value}: bucket must be in [0, {OPTIONAL_KEY_BUCKETS}), got {bucket}"
        )

    key = f"att_opt_{bucket}"
    return f"attr ? '{key}'", key, {"exists": {"field": f"attributes.{key}"}}


TRANSLATORS = {
    QueryIntent.TAG_CONTAINS: _translate_tag,
    QueryIntent.ATTRIBUTE_EXISTS: _translate_attribute_exists,
    QueryIntent.NESTED_EQUALS: _translate_nested_equals,
    QueryIntent.NUMERIC_GREATER: _translate_numeric_greater,
    QueryIntent.OPTIONAL_EXISTS: _translate_optional_exists,
    QueryIntent.ABSENT_TAG: _translate_tag,
}


def translate(intent, value):
    """Translate one intent and its value into a BenchmarkQuery.

    Raises TranslationError when the value does not fit the intent.
    """
    description, pg_param, es_query = TRANSLATORS[intent](intent, value)
    return BenchmarkQuery(description, intent, pg_param, es_query)


DEFAULT_VALUES = (
    (QueryIntent.TAG_CONTAINS, "rust"),
    (QueryIntent.ATTRIBUTE_EXISTS, "att1"),
    (QueryIntent.NESTED_EQUALS, "com"),
    (QueryIntent.NUMERIC_GREATER, 500),
    (QueryIntent.OPTIONAL_EXISTS, 1),
    (QueryIntent.ABSENT_TAG, ABSENT_TAG),
)


def build_queries(values=DEFAULT_VALUES):
    """Translate (intent, value) pairs, dropping the ones that fail to translate."""
    queries = []
    for intent, value in values:
        try:
            queries.append(translate(intent, value))
        except TranslationError as e:
            logger.error("Skipping query intent %s: %s", intent.value, e)
    return queries


def default_queries():
    return build_queries(DEFAULT_VALUES)


def queries_from_config(config):
    return build_queries((
        (QueryIntent.TAG_CONTAINS, config.tag),
        (QueryIntent.ATTRIBUTE_EXISTS, config.attribute_key),
        (QueryIntent.NESTED_EQUALS, config.nested_value),
        (QueryIntent.NUMERIC_GREATER, config.threshold),
        (QueryIntent.OPTIONAL_EXISTS, config.optional_bucket),
        (QueryIntent.ABSENT_TAG, ABSENT_TAG),
    ))
