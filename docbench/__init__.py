"""PostgreSQL JSONB vs Elasticsearch ingestion and query benchmark."""

__version__ = "0.1.0"
