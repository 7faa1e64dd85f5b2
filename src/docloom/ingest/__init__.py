"""Source ingestion."""

from docloom.ingest.ingester import DEFAULT_EXTENSIONS, IngestError, Ingester

__all__ = ["DEFAULT_EXTENSIONS", "IngestError", "Ingester"]
