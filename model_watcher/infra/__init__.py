"""Infra layer utilities (document storage, secret redaction)."""

from .redaction import REDACTED, redact_event, sanitize, sanitize_object
from .storage import JsonDocumentStore, StorageError

__all__ = [
    "JsonDocumentStore",
    "REDACTED",
    "StorageError",
    "redact_event",
    "sanitize",
    "sanitize_object",
]
