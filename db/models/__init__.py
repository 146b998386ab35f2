"""
Database models package.

    from db.models import CatalogEntry, StreamCandidate, ...
"""

from db.models.audit import IngestAuditRecord
from db.models.base import TimestampMixin
from db.models.catalog import CatalogEntry
from db.models.settings import PipelineSetting
from db.models.streams import StreamCandidate

__all__ = [
    "TimestampMixin",
    "CatalogEntry",
    "StreamCandidate",
    "PipelineSetting",
    "IngestAuditRecord",
]
