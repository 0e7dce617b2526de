import logging

from .database import Database
from .errors import DocStoreError, MalformedLogError, QueryShapeError, ValidationError
from .query import AndQuery, Clause, FieldQuery, OrQuery, Query, TextQuery, evaluate, parse_query
from .storage import DEAD_MARKER, LIVE_MARKER, FileStorage, Row

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Database",
    "DocStoreError",
    "MalformedLogError",
    "QueryShapeError",
    "ValidationError",
    "Query",
    "TextQuery",
    "AndQuery",
    "OrQuery",
    "FieldQuery",
    "Clause",
    "parse_query",
    "evaluate",
    "FileStorage",
    "Row",
    "LIVE_MARKER",
    "DEAD_MARKER",
]
