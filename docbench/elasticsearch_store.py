"""
Elasticsearch side of the benchmark: index provisioning, bulk loading and
search, all over plain HTTP.
"""

import json
import logging
import time

import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from urllib3.util.retry import Retry

from .errors import (
    BulkRequestError,
    ConnectivityError,
    LoadError,
    PartialBatchError,
    ProtocolError,
    QueryError,
    SchemaError,
)
from .results import LoadResult

logger = logging.getLogger(__name__)

DEFAULT_INDEX = "documents_jsonb"

INDEX_MAPPING = {
    "mappings": {
        "properties": {
            "title": {"type": "text"},
            "content": {"type": "text"},
            "created_at": {"type": "date"},
            "tags": {"type": "keyword"},
            # att_opt_* keys are left to dynamic mapping
            "attributes": {
                "type": "object",
                "properties": {
                    "att0": {"type": "integer"},
                    "att1": {
                        "type": "text",
                        "fields": {"keyword": {"type": "keyword", "ignore_above": 256}},
                    },
                    "att2": {"type": "object", "enabled": True},
                    "att3": {"type": "keyword"},
                },
            },
        }
    }
}


def create_session(pool_size=10):
    """Create a requests session with connection pooling and no retries"""
    session = requests.Session()

    # Every failure is either fatal or skipped, never retried.
    retry_strategy = Retry(total=0, redirect=0, raise_on_status=False)

    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        pool_block=False
    )

    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


def _url(es_url, *parts):
    return "/".join([es_url.rstrip("/"), *parts])


def check_cluster(session, es_url, timeout=10):
    """Single health probe. Raises ConnectivityError if the node is unreachable."""
    try:
        response = session.get(_url(es_url, "_cluster", "health"), timeout=timeout)
    except requests.RequestException as e:
        raise ConnectivityError(f"Failed to reach Elasticsearch at {es_url}: {e}") from e
    if not response.ok:
        raise ConnectivityError(
            f"Elasticsearch health check failed with status {response.status_code}: {response.text}"
        )
    try:
        status = response.json().get("status")
    except ValueError as e:
        raise ProtocolError(f"Elasticsearch health response is not JSON: {response.text[:200]}") from e
    logger.info("Elasticsearch cluster status: %s", status)
    return status


def index_exists(session, es_url, index):
    try:
        response = session.head(_url(es_url, index), timeout=10)
    except requests.RequestException as e:
        raise ConnectivityError(f"Failed to reach Elasticsearch at {es_url}: {e}") from e
    if response.status_code == 404:
        return False
    if not response.ok:
        raise SchemaError(f"Index existence check for '{index}' failed with status {response.status_code}")
    return True


def provision_index(session, es_url, index=DEFAULT_INDEX, recreate=False):
    """Create the index with its explicit mapping unless it already exists.

    Returns True when the index was created, False when it was already there.
    """
    exists = index_exists(session, es_url, index)

    if exists and recreate:
        logger.info("Deleting existing Elasticsearch index '%s'...", index)
        try:
            response = session.delete(_url(es_url, index), timeout=30)
        except requests.RequestException as e:
            raise ConnectivityError(f"Failed to reach Elasticsearch at {es_url}: {e}") from e
        if not response.ok:
            raise SchemaError(f"Failed to delete index '{index}': {response.text}")
        exists = False

    if exists:
        logger.info("Elasticsearch index '%s' already exists.", index)
        return False

    logger.info("Creating Elasticsearch index '%s' with explicit mapping...", index)
    try:
        response = session.put(_url(es_url, index), json=INDEX_MAPPING, timeout=30)
    except requests.RequestException as e:
        raise ConnectivityError(f"Failed to reach Elasticsearch at {es_url}: {e}") from e
    if not response.ok:
        raise SchemaError(f"Failed to create index '{index}': {response.text}")

    logger.info("Elasticsearch index '%s' created.", index)
    return True


def iter_batches(docs, batch_size):
    """Yield consecutive non-empty slices of at most `batch_size` documents"""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    for start in range(0, len(docs), batch_size):
        yield docs[start:start + batch_size]


def build_bulk_body(batch):
    """NDJSON body with one index action line per document line"""
    lines = []
    for doc in batch:
        lines.append(json.dumps({"index": {}}))
        lines.append(json.dumps(doc.to_dict(), ensure_ascii=False))
    return "\n".join(lines) + "\n"


def _first_item_error(body):
    for item in body.get("items", []):
        for result in item.values():
            error = result.get("error")
            if error:
                if isinstance(error, dict):
                    return f"{error.get('type')}: {error.get('reason')}"
                return str(error)
    return None


def _failed_items(body):
    return sum(
        1
        for item in body.get("items", [])
        for result in item.values()
        if result.get("error")
    )


def send_batch(session, es_url, index, batch, batch_number):
    """Send one bulk request.

    Returns None when every item was indexed, or a PartialBatchError
    describing the failed items when the request succeeded with
    `"errors": true`. HTTP-level failures raise BulkRequestError.
    """
    if not batch:
        return None

    body = build_bulk_body(batch)
    try:
        response = session.post(
            _url(es_url, index, "_bulk"),
            data=body.encode("utf-8"),
            headers={"Content-Type": "application/x-ndjson"},
            timeout=60,
        )
    except requests.RequestException as e:
        raise ConnectivityError(f"Bulk request to {es_url} failed: {e}") from e

    if not response.ok:
        raise BulkRequestError(response.status_code, response.text)

    try:
        result = response.json()
    except ValueError as e:
        raise ProtocolError(f"Bulk response for batch {batch_number} is not JSON: {response.text[:200]}") from e

    if result.get("errors") is True:
        return PartialBatchError(batch_number, _failed_items(result), _first_item_error(result))
    return None


def refresh_index(session, es_url, index):
    try:
        response = session.post(_url(es_url, index, "_refresh"), timeout=60)
    except requests.RequestException as e:
        raise ConnectivityError(f"Refresh of '{index}' failed: {e}") from e
    if not response.ok:
        raise LoadError(f"Refresh of '{index}' failed with status {response.status_code}: {response.text}")


def load_documents(session, es_url, docs, index=DEFAULT_INDEX, batch_size=1000, progress=True):
    """Bulk-index the corpus batch by batch, then refresh the index"""
    logger.info("Inserting %d documents into Elasticsearch in batches of %d...", len(docs), batch_size)

    start_time = time.perf_counter()
    batches = 0
    partial_batches = 0

    with tqdm(total=len(docs), desc="Elasticsearch bulk", unit="doc", disable=not progress) as pb:
        for batch in iter_batches(docs, batch_size):
            batches += 1
            partial = send_batch(session, es_url, index, batch, batches)
            if partial is not None:
                partial_batches += 1
                logger.warning("Elasticsearch bulk operation reported errors for some items. %s", partial)
            pb.update(len(batch))

    # Documents are only searchable after a refresh.
    logger.info("Refreshing Elasticsearch index...")
    refresh_start = time.perf_counter()
    refresh_index(session, es_url, index)
    refresh_elapsed = time.perf_counter() - refresh_start
    logger.info("Elasticsearch refresh took: %.3fs", refresh_elapsed)

    elapsed = time.perf_counter() - start_time
    logger.info("Elasticsearch insertion of %d documents took %.3fs", len(docs), elapsed)
    return LoadResult("Elasticsearch", len(docs), elapsed, batches, partial_batches, refresh_elapsed)


def count_documents(session, es_url, index=DEFAULT_INDEX):
    """Count documents in index"""
    try:
        response = session.get(_url(es_url, index, "_count"), timeout=10)
    except requests.RequestException as e:
        raise QueryError(f"Failed to count documents: {e}") from e
    if not response.ok:
        raise QueryError(f"Failed to count documents: status {response.status_code}: {response.text}")
    try:
        return response.json().get("count", 0)
    except ValueError as e:
        raise QueryError(f"Count response is not JSON: {response.text[:200]}") from e


def search(session, es_url, index, query, size):
    """Run one search restricted to titles and return the decoded titles"""
    body = {"_source": ["title"], "query": query, "size": size}
    try:
        response = session.post(
            _url(es_url, index, "_search"),
            json=body,
            timeout=10
        )
    except requests.RequestException as e:
        raise QueryError(f"Search request failed: {e}") from e

    if not response.ok:
        raise QueryError(f"Search failed with status {response.status_code}: {response.text}")

    try:
        data = response.json()
    except ValueError as e:
        raise QueryError(f"Search response is not JSON: {e}") from e

    # Touch each hit so the client does comparable work to a DB client fetching rows.
    hits = data.get("hits", {}).get("hits", [])
    return [(hit.get("_source") or {}).get("title") for hit in hits]
