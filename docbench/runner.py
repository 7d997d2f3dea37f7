"""
Runs the query battery against each engine and aggregates latencies.

Elapsed time covers issuing the query through materializing its results.
PostgreSQL statements are prepared before any timing starts.
A query that fails is logged, skipped and kept out of the aggregates.
"""

import logging
import time

from . import elasticsearch_store
from .errors import QueryError
from .postgres_store import PreparedStatements
from .results import LatencyResult

logger = logging.getLogger(__name__)

RESULT_LIMITS = {"benchmark": 10, "api": 100}


def result_limit(mode):
    return RESULT_LIMITS[mode]


def benchmark_postgres(conn, queries, table, limit=10):
    result = LatencyResult("PostgreSQL")
    statements = PreparedStatements(conn, table, limit)
    try:
        # Parse and plan before the clock starts.
        failures = statements.prepare_all(query.intent for query in queries)
        for query in queries:
            if query.intent in failures:
                logger.warning("PostgreSQL query failed for '%s': %s", query.description, failures[query.intent])
                result.skip(query.description, failures[query.intent])
                continue
            start_time = time.perf_counter()
            try:
                rows = statements.execute(query.intent, query.pg_param)
            except QueryError as e:
                logger.warning("PostgreSQL query failed for '%s': %s", query.description, e)
                result.skip(query.description, e)
                continue
            result.record(query.description, len(rows), time.perf_counter() - start_time)
    finally:
        statements.close()
    return result


def benchmark_elasticsearch(session, es_url, queries, index, limit=10):
    result = LatencyResult("Elasticsearch")
    for query in queries:
        start_time = time.perf_counter()
        try:
            titles = elasticsearch_store.search(session, es_url, index, query.es_query, limit)
        except QueryError as e:
            logger.warning("Elasticsearch query failed for '%s': %s", query.description, e)
            result.skip(query.description, e)
            continue
        result.record(query.description, len(titles), time.perf_counter() - start_time)
    return result
