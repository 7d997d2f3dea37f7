"""
Run configuration.

Settings come from command-line flags, falling back to environment
variables (a `.env` file in the working directory is loaded first). They
are read once at startup and never change during a run.
"""

import argparse
import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .elasticsearch_store import DEFAULT_INDEX
from .errors import ConfigError
from .postgres_store import DEFAULT_TABLE
from .runner import RESULT_LIMITS

IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class BenchmarkConfig:
    database_url: str
    elasticsearch_url: str
    count: int = 100_000
    batch_size: int = 1000
    mode: str = "benchmark"
    seed: Optional[int] = None
    table: str = DEFAULT_TABLE
    index: str = DEFAULT_INDEX
    truncate: bool = False
    recreate_index: bool = False
    tag: str = "rust"
    attribute_key: str = "att1"
    nested_value: str = "com"
    threshold: str = "500"
    optional_bucket: str = "1"
    log_level: str = "INFO"
    quiet: bool = False

    @property
    def result_limit(self):
        return RESULT_LIMITS[self.mode]


def _int_env(name, default):
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def build_parser():
    parser = argparse.ArgumentParser(
        prog="docbench",
        description="PostgreSQL JSONB vs Elasticsearch ingestion and query benchmark",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Disable progress bars")
    parser.add_argument("--database-url", default=os.environ.get("DATABASE_URL"),
                        help="PostgreSQL connection string (DATABASE_URL)")
    parser.add_argument("--elasticsearch-url",
                        default=os.environ.get("ELASTICSEARCH_URL", "http://localhost:9200"),
                        help="Elasticsearch node URL (ELASTICSEARCH_URL)")
    parser.add_argument("--count", type=int, default=_int_env("DOC_COUNT", 100_000),
                        help="Number of documents to generate (DOC_COUNT)")
    parser.add_argument("--batch-size", type=int, default=_int_env("BATCH_SIZE", 1000),
                        help="Documents per Elasticsearch bulk request (BATCH_SIZE)")
    parser.add_argument("--mode", choices=sorted(RESULT_LIMITS), default=os.environ.get("MODE", "benchmark"),
                        help="benchmark caps results at 10, api at 100")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the corpus")
    parser.add_argument("--table", default=os.environ.get("PG_TABLE", DEFAULT_TABLE), help="PostgreSQL table")
    parser.add_argument("--index", default=os.environ.get("ES_INDEX", DEFAULT_INDEX), help="Elasticsearch index")
    parser.add_argument("--truncate", action="store_true", help="Empty the PostgreSQL table before loading")
    parser.add_argument("--recreate-index", action="store_true",
                        help="Delete and recreate the Elasticsearch index before loading")
    parser.add_argument("--tag", default=os.environ.get("QUERY_TAG", "rust"), help="Tag for the containment query")
    parser.add_argument("--attribute-key", default="att1", help="Key for the attribute existence query")
    parser.add_argument("--nested-value", default="com", help="Value for the nested equality query")
    parser.add_argument("--threshold", default=os.environ.get("QUERY_THRESHOLD", "500"),
                        help="Threshold for the att0 range query")
    parser.add_argument("--optional-bucket", default="1", help="Bucket (0-4) for the optional key query")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO").upper(),
                        help="Logging level")
    return parser


def validate(config):
    if not config.database_url:
        raise ConfigError("DATABASE_URL is not set")

    parsed = urlparse(config.elasticsearch_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"ELASTICSEARCH_URL must be an http(s) URL, got {config.elasticsearch_url!r}")

    if config.count <= 0:
        raise ConfigError(f"count must be positive, got {config.count}")
    if config.batch_size <= 0:
        raise ConfigError(f"batch size must be positive, got {config.batch_size}")
    if config.mode not in RESULT_LIMITS:
        raise ConfigError(f"unknown mode {config.mode!r}")

    for name in (config.table, config.index):
        if not IDENTIFIER_RE.match(name):
            raise ConfigError(f"{name!r} is not a valid table/index name")

    if config.log_level not in LOG_LEVELS:
        raise ConfigError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {config.log_level!r}")
    return config


def load_config(argv=None):
    """Parse flags and environment into a validated BenchmarkConfig."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = BenchmarkConfig(
        database_url=args.database_url,
        elasticsearch_url=args.elasticsearch_url,
        count=args.count,
        batch_size=args.batch_size,
        mode=args.mode,
        seed=args.seed,
        table=args.table,
        index=args.index,
        truncate=args.truncate,
        recreate_index=args.recreate_index,
        tag=args.tag,
        attribute_key=args.attribute_key,
        nested_value=args.nested_value,
        threshold=args.threshold,
        optional_bucket=args.optional_bucket,
        log_level=args.log_level.upper(),
        quiet=args.quiet,
    )
    return validate(config)
