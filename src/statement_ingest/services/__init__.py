"""
Services for statement ingest workflows.
"""

from .ingest import StatementIngestService, UploadOutcome

__all__ = ["StatementIngestService", "UploadOutcome"]
