"""End-to-end checks against live engines.

Run with DOCBENCH_TEST_DATABASE_URL and DOCBENCH_TEST_ELASTICSEARCH_URL set;
skipped otherwise.
"""

import os

import pytest

from docbench import elasticsearch_store, postgres_store, runner
from docbench.generate_data import Document, generate_documents
from docbench.queries import QueryIntent, default_queries, translate

DATABASE_URL = os.environ.get("DOCBENCH_TEST_DATABASE_URL")
ELASTICSEARCH_URL = os.environ.get("DOCBENCH_TEST_ELASTICSEARCH_URL")

TABLE = "docbench_test_documents"
INDEX = "docbench_test_documents"

pytestmark = pytest.mark.skipif(
    not (DATABASE_URL and ELASTICSEARCH_URL),
    reason="live PostgreSQL and Elasticsearch not configured",
)


@pytest.fixture(scope="module")
def corpus():
    return generate_documents(500, seed=11, progress=False)


@pytest.fixture(scope="module")
def conn():
    conn = postgres_store.connect(DATABASE_URL)
    with conn.cursor() as cursor:
        cursor.execute(f"DROP TABLE IF EXISTS {TABLE}")
    yield conn
    with conn.cursor() as cursor:
        cursor.execute(f"DROP TABLE IF EXISTS {TABLE}")
    conn.close()


@pytest.fixture(scope="module")
def session():
    session = elasticsearch_store.create_session()
    session.delete(f"{ELASTICSEARCH_URL}/{INDEX}", timeout=30)
    yield session
    session.delete(f"{ELASTICSEARCH_URL}/{INDEX}", timeout=30)
    session.close()


@pytest.fixture(scope="module")
def loaded(conn, session, corpus):
    postgres_store.provision_schema(conn, TABLE)
    elasticsearch_store.provision_index(session, ELASTICSEARCH_URL, INDEX)
    postgres_store.load_documents(conn, corpus, TABLE, progress=False)
    elasticsearch_store.load_documents(session, ELASTICSEARCH_URL, corpus, INDEX, batch_size=100, progress=False)
    return corpus


def index_names(conn):
    with conn.cursor() as cursor:
        cursor.execute("SELECT indexname FROM pg_indexes WHERE tablename = %s", (TABLE,))
        return sorted(row[0] for row in cursor.fetchall())


def test_provisioning_twice_is_harmless(conn, session, loaded):
    before = index_names(conn)
    postgres_store.provision_schema(conn, TABLE)
    assert index_names(conn) == before

    assert elasticsearch_store.provision_index(session, ELASTICSEARCH_URL, INDEX) is False


def test_binary_copy_round_trip(conn, loaded):
    stored = postgres_store.fetch_documents(conn, TABLE)
    assert [Document.from_dict(d) for d in stored] == loaded


def test_both_engines_hold_the_corpus(conn, session, loaded):
    assert postgres_store.count_documents(conn, TABLE) == len(loaded)
    assert elasticsearch_store.count_documents(session, ELASTICSEARCH_URL, INDEX) == len(loaded)


def test_query_battery(conn, session, loaded):
    queries = default_queries()
    pg = runner.benchmark_postgres(conn, queries, TABLE, limit=100)
    es = runner.benchmark_elasticsearch(session, ELASTICSEARCH_URL, queries, INDEX, limit=100)

    assert pg.skipped == [] and es.skipped == []
    pg_rows = {m.description: m.row_count for m in pg.measurements}
    es_rows = {m.description: m.row_count for m in es.measurements}

    assert pg_rows["tags @> 'rust'"] >= 1
    assert es_rows["tags @> 'rust'"] >= 1
    assert pg_rows["tags @> 'nonexistent'"] == 0
    assert es_rows["tags @> 'nonexistent'"] == 0


def test_numeric_range_only_returns_larger_values(conn, loaded):
    query = translate(QueryIntent.NUMERIC_GREATER, 500)
    statements = postgres_store.PreparedStatements(conn, TABLE, limit=len(loaded))
    try:
        titles = [row[0] for row in statements.execute(query.intent, query.pg_param)]
    finally:
        statements.close()

    expected = {doc.title for doc in loaded if doc.attributes["att0"] >= 501}
    assert titles
    assert set(titles) <= expected
    assert len(titles) == sum(1 for doc in loaded if doc.attributes["att0"] > 500)


def test_numeric_range_search_only_returns_larger_values(session, loaded):
    query = translate(QueryIntent.NUMERIC_GREATER, 500)
    titles = elasticsearch_store.search(session, ELASTICSEARCH_URL, INDEX, query.es_query, 100)

    expected = {doc.title for doc in loaded if doc.attributes["att0"] >= 501}
    assert titles
    assert set(titles) <= expected


def test_rust_titles_match(conn, session, loaded):
    expected = {doc.title for doc in loaded if "rust" in doc.tags}
    titles = elasticsearch_store.search(session, ELASTICSEARCH_URL, INDEX, {"term": {"tags": "rust"}}, 100)
    assert titles
    assert set(titles) <= expected
