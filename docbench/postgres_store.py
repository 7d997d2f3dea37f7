"""
PostgreSQL side of the benchmark: connection, schema, binary COPY load and
prepared JSONB queries.

Documents live in a single JSONB column. Loading goes through one binary
COPY stream; queries go through server-side prepared statements, one per
query intent.
"""

import io
import logging
import threading
import time

import psycopg2
import psycopg2.extensions
from tqdm import tqdm

from .errors import AbortedStreamError, ConnectivityError, LoadError, QueryError, SchemaError
from .pgcopy import BinaryCopyWriter, decode_rows
from .results import LoadResult

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "documents_jsonb"


def connect(database_url, connect_timeout=10):
    try:
        conn = psycopg2.connect(database_url, connect_timeout=connect_timeout)
    except psycopg2.OperationalError as e:
        raise ConnectivityError(f"Failed to connect to PostgreSQL: {e}".strip()) from e
    conn.autocommit = True
    logger.info("Connected to PostgreSQL (server version %s)", conn.server_version)
    return conn


class ConnectionMonitor(threading.Thread):
    """Background supervisor for the long-lived PostgreSQL connection.

    Drains server notices into the log and tracks whether the connection is
    still usable. It never raises: problems are logged and reflected in
    `healthy` / `last_error`.
    """

    def __init__(self, conn, interval=1.0):
        super().__init__(name="pg-connection-monitor", daemon=True)
        self.conn = conn
        self.interval = interval
        self.healthy = True
        self.last_error = None
        self._stop_event = threading.Event()

    def run(self):
        while not self._stop_event.is_set():
            self.check()
            self._stop_event.wait(self.interval)
        self.check()

    def check(self):
        try:
            self._drain_notices()
            if self.conn.closed:
                self._mark_unhealthy("connection closed")
            elif self.conn.get_transaction_status() == psycopg2.extensions.TRANSACTION_STATUS_UNKNOWN:
                self._mark_unhealthy("connection is in an unknown state")
            else:
                self.healthy = True
        except Exception as e:
            self._mark_unhealthy(e)
        return self.healthy

    def _drain_notices(self):
        notices = self.conn.notices
        while notices:
            logger.debug("PostgreSQL: %s", notices.pop(0).strip())

    def _mark_unhealthy(self, error):
        if self.healthy:
            logger.error("PostgreSQL connection error: %s", error)
        self.healthy = False
        self.last_error = str(error)

    def stop(self):
        self._stop_event.set()
        if self.is_alive():
            self.join()


def schema_statements(table):
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id SERIAL PRIMARY KEY,
            data JSONB NOT NULL
        )
        """,
        f"CREATE INDEX IF NOT EXISTS {table}_data_gin_idx ON {table} USING GIN (data)",
        f"CREATE INDEX IF NOT EXISTS {table}_data_path_ops_idx ON {table} USING GIN (data jsonb_path_ops)",
        f"CREATE INDEX IF NOT EXISTS {table}_data_jsonb_ops_idx ON {table} USING GIN (data jsonb_ops)",
        f"CREATE INDEX IF NOT EXISTS {table}_tags_gin_idx ON {table} USING GIN ((data -> 'tags'))",
        f"CREATE INDEX IF NOT EXISTS {table}_attributes_gin_idx ON {table} USING GIN ((data -> 'attributes'))",
    ]


def provision_schema(conn, table=DEFAULT_TABLE, truncate=False):
    """Create the table and its indexes if they are missing. Safe to rerun."""
    logger.info("Provisioning PostgreSQL table '%s'...", table)
    try:
        with conn.cursor() as cursor:
            for statement in schema_statements(table):
                cursor.execute(statement)
            if truncate:
                cursor.execute(f"TRUNCATE TABLE {table} RESTART IDENTITY")
                logger.info("Truncated '%s'", table)
    except psycopg2.Error as e:
        raise SchemaError(f"Failed to provision PostgreSQL table '{table}': {e}".strip()) from e
    logger.info("PostgreSQL table '%s' with JSONB column and GIN indexes checked/created.", table)


def load_documents(conn, docs, table=DEFAULT_TABLE, progress=True):
    """Stream every document into `table` through one binary COPY."""
    copy_sql = f"COPY {table} (data) FROM STDIN (FORMAT BINARY)"
    logger.info("Starting PostgreSQL COPY operation for %d documents...", len(docs))

    start_time = time.perf_counter()
    with conn.cursor() as cursor:
        writer = BinaryCopyWriter(cursor, copy_sql, ("jsonb",))
        try:
            with tqdm(total=len(docs), desc="PostgreSQL COPY", unit="doc", disable=not progress) as pb:
                for doc in docs:
                    writer.write_row(doc.to_dict())
                    pb.update(1)
        except Exception as e:
            writer.abort()
            raise AbortedStreamError(
                f"COPY into '{table}' aborted after {writer.rows} of {len(docs)} rows: {e}"
            ) from e

        try:
            rows = writer.finish()
        except psycopg2.Error as e:
            raise LoadError(f"COPY into '{table}' failed: {e}".strip()) from e

    elapsed = time.perf_counter() - start_time
    logger.info("PostgreSQL JSONB insertion of %d rows took %.3fs", rows, elapsed)
    return LoadResult("PostgreSQL", rows, elapsed)


def count_documents(conn, table=DEFAULT_TABLE):
    try:
        with conn.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {table}")
            return cursor.fetchone()[0]
    except psycopg2.Error as e:
        raise QueryError(f"Failed to count documents: {e}".strip()) from e


def fetch_documents(conn, table=DEFAULT_TABLE, limit=None):
    """Read stored documents back, in insertion order, over a binary COPY."""
    query = f"SELECT data FROM {table} ORDER BY id"
    if limit is not None:
        query += f" LIMIT {int(limit)}"

    buffer = io.BytesIO()
    try:
        with conn.cursor() as cursor:
            cursor.copy_expert(f"COPY ({query}) TO STDOUT (FORMAT BINARY)", buffer)
    except psycopg2.Error as e:
        raise QueryError(f"Failed to read back documents: {e}".strip()) from e
    return [row[0] for row in decode_rows(buffer.getvalue(), ("jsonb",))]


class PreparedStatements:
    """Server-side prepared statements, one per query intent.

    `prepare_all` readies the statements ahead of the timed runs. An intent
    that was not prepared up front is prepared on its first execution.
    """

    def __init__(self, conn, table=DEFAULT_TABLE, limit=10):
        self.conn = conn
        self.table = table
        self.limit = limit
        self.prepared = set()

    def _prepare(self, cursor, intent):
        cursor.execute(
            f"PREPARE {intent.statement_name} AS "
            f"SELECT data ->> 'title' FROM {self.table} "
            f"WHERE {intent.sql_predicate} LIMIT {int(self.limit)}"
        )
        self.prepared.add(intent)

    def prepare_all(self, intents):
        """Prepare every intent not yet prepared.

        Returns a dict mapping each intent that failed to prepare to its
        QueryError.
        """
        failures = {}
        for intent in intents:
            if intent in self.prepared or intent in failures:
                continue
            try:
                with self.conn.cursor() as cursor:
                    self._prepare(cursor, intent)
            except psycopg2.Error as e:
                failures[intent] = QueryError(f"Failed to prepare {intent.statement_name}: {e}".strip())
        return failures

    def execute(self, intent, param):
        """Run the statement for `intent` and return the fetched rows."""
        try:
            with self.conn.cursor() as cursor:
                if intent not in self.prepared:
                    self._prepare(cursor, intent)
                cursor.execute(f"EXECUTE {intent.statement_name} (%s)", (param,))
                return cursor.fetchall()
        except psycopg2.Error as e:
            raise QueryError(f"PostgreSQL query {intent.value} failed: {e}".strip()) from e

    def close(self):
        if self.conn.closed:
            self.prepared.clear()
            return
        with self.conn.cursor() as cursor:
            for intent in list(self.prepared):
                try:
                    cursor.execute(f"DEALLOCATE {intent.statement_name}")
                except psycopg2.Error as e:
                    logger.warning("Failed to deallocate %s: %s", intent.statement_name, e)
                self.prepared.discard(intent)
