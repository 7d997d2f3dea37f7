from collections import defaultdict
from datetime import timedelta

import pytest

from docbench.generate_data import (
    MAX_AGE_DAYS,
    OPTIONAL_KEY_BUCKETS,
    TAG_WORDS,
    Document,
    generate_documents,
)

from .conftest import FIXED_NOW

MANDATORY_KEYS = {"att0", "att1", "att2", "att3"}


@pytest.fixture(scope="module")
def corpus():
    return generate_documents(5000, seed=42, progress=False, now=FIXED_NOW)


class TestDocumentShape:
    def test_tags_have_between_one_and_five_lowercase_words(self, corpus):
        for doc in corpus:
            assert 1 <= len(doc.tags) <= 5
            for tag in doc.tags:
                assert tag == tag.lower()
                assert " " not in tag

    def test_mandatory_attributes_always_present(self, corpus):
        for doc in corpus:
            assert MANDATORY_KEYS <= set(doc.attributes)
            assert 0 <= doc.attributes["att0"] < 1000
            assert isinstance(doc.attributes["att1"], str)
            assert set(doc.attributes["att2"]) == {"nested_key", "nested_bool"}
            assert isinstance(doc.attributes["att2"]["nested_bool"], bool)
            assert 2 <= len(doc.attributes["att3"]) <= 4

    def test_optional_key_follows_index_bucket(self, corpus):
        for index, doc in enumerate(corpus):
            optional = [k for k in doc.attributes if k.startswith("att_opt_")]
            assert len(optional) <= 1
            if optional:
                assert optional[0] == f"att_opt_{index % OPTIONAL_KEY_BUCKETS}"

    def test_optional_key_is_absent_not_null(self, corpus):
        for doc in corpus:
            assert None not in doc.attributes.values()
            assert None not in doc.to_dict()["attributes"].values()

    def test_optional_key_present_about_seventy_percent_per_bucket(self, corpus):
        totals = defaultdict(int)
        present = defaultdict(int)
        for index, doc in enumerate(corpus):
            bucket = index % OPTIONAL_KEY_BUCKETS
            totals[bucket] += 1
            if f"att_opt_{bucket}" in doc.attributes:
                present[bucket] += 1

        for bucket in range(OPTIONAL_KEY_BUCKETS):
            assert 0.6 < present[bucket] / totals[bucket] < 0.8

    def test_created_at_within_last_year(self, corpus):
        oldest = FIXED_NOW - timedelta(days=MAX_AGE_DAYS)
        for doc in corpus:
            assert oldest <= doc.created_at <= FIXED_NOW

    def test_tag_vocabulary_covers_benchmark_tags(self, corpus):
        all_tags = {tag for doc in corpus for tag in doc.tags}
        assert "rust" in all_tags
        assert "nonexistent" not in all_tags
        assert all_tags <= set(TAG_WORDS)


class TestGeneration:
    def test_same_seed_same_corpus(self):
        first = generate_documents(50, seed=1, progress=False, now=FIXED_NOW)
        second = generate_documents(50, seed=1, progress=False, now=FIXED_NOW)
        assert first == second

    def test_zero_documents(self):
        assert generate_documents(0, progress=False) == []

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            generate_documents(-1, progress=False)

    def test_dict_round_trip(self, corpus):
        for doc in corpus[:50]:
            assert Document.from_dict(doc.to_dict()) == doc
