"""
Benchmark entry point.

Phases run strictly one after another: generate, provision, load
PostgreSQL, load Elasticsearch, query PostgreSQL, query Elasticsearch,
report.
"""

import logging
import sys
import time

from . import elasticsearch_store, postgres_store, report, runner
from .config import load_config
from .errors import BenchmarkError, ConfigError, QueryError
from .generate_data import Document, generate_documents
from .queries import queries_from_config

logger = logging.getLogger("docbench")

ROUND_TRIP_SAMPLE = 100


def setup_logging(level="INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def verify_load(conn, session, config, docs):
    """Log stored counts and check that a sample of rows reads back unchanged."""
    try:
        pg_count = postgres_store.count_documents(conn, config.table)
        es_count = elasticsearch_store.count_documents(session, config.elasticsearch_url, config.index)
        logger.info("Total documents: PostgreSQL %d, Elasticsearch %d", pg_count, es_count)

        sample = []
        if config.truncate and pg_count == len(docs):
            sample = postgres_store.fetch_documents(conn, config.table, limit=ROUND_TRIP_SAMPLE)
    except QueryError as e:
        logger.warning("Post-load verification failed: %s", e)
        return

    if sample:
        mismatches = sum(
            1 for stored, doc in zip(sample, docs)
            if Document.from_dict(stored) != doc
        )
        if mismatches:
            logger.warning("%d of %d sampled rows differ from the generated corpus", mismatches, len(sample))
        else:
            logger.info("Round-trip check passed for %d sampled rows", len(sample))


def run(config):
    progress = not config.quiet
    queries = queries_from_config(config)

    conn = postgres_store.connect(config.database_url)
    monitor = postgres_store.ConnectionMonitor(conn)
    monitor.start()
    session = elasticsearch_store.create_session()
    try:
        elasticsearch_store.check_cluster(session, config.elasticsearch_url)

        logger.info("Generating %d documents...", config.count)
        start_gen = time.perf_counter()
        docs = generate_documents(config.count, seed=config.seed, progress=progress)
        logger.info("Data generation took: %.3fs", time.perf_counter() - start_gen)

        postgres_store.provision_schema(conn, config.table, truncate=config.truncate)
        elasticsearch_store.provision_index(
            session, config.elasticsearch_url, config.index, recreate=config.recreate_index
        )

        load_results = [
            postgres_store.load_documents(conn, docs, config.table, progress=progress),
            elasticsearch_store.load_documents(
                session, config.elasticsearch_url, docs, config.index, config.batch_size, progress=progress
            ),
        ]

        verify_load(conn, session, config, docs)

        logger.info("Running PostgreSQL JSONB benchmarks...")
        pg_result = runner.benchmark_postgres(conn, queries, config.table, config.result_limit)
        logger.info("Running Elasticsearch benchmarks...")
        es_result = runner.benchmark_elasticsearch(
            session, config.elasticsearch_url, queries, config.index, config.result_limit
        )

        print()
        report.print_load_summary(load_results)
        for result in (pg_result, es_result):
            print()
            report.print_latency_report(result)

        if not monitor.healthy:
            logger.warning("PostgreSQL connection reported problems during the run: %s", monitor.last_error)
        return load_results, pg_result, es_result
    finally:
        session.close()
        monitor.stop()
        conn.close()


def main(argv=None):
    setup_logging()
    try:
        config = load_config(argv)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1
    logging.getLogger().setLevel(config.log_level)

    logger.info("Starting benchmark with JSONB focus...")
    try:
        run(config)
    except BenchmarkError as e:
        logger.error("Benchmark aborted: %s", e)
        return 1

    logger.info("Benchmark finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
