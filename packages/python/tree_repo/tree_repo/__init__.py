"""Storage-backed services for page documents and term collections."""

from .config import RepoSettings, settings
from .documents import BulkDocumentChange, DocumentChange, DocumentService, PageStructure
from .memory import InMemoryDocumentStore, InMemoryTermStore
from .mongo import MongoDocumentStore, MongoTermStore, get_db, get_mongo_client, ping
from .protocols import DocumentId, DocumentStore, StoredDocument, TermStore
from .requests import ErrorInfo, OperationResult, TreeRequest, TreeRequestHandler, parse_request
from .taxonomy import TaxonomyService, TermsView

__all__ = [
    "RepoSettings",
    "settings",
    "DocumentId",
    "StoredDocument",
    "DocumentStore",
    "TermStore",
    "InMemoryDocumentStore",
    "InMemoryTermStore",
    "MongoDocumentStore",
    "MongoTermStore",
    "get_mongo_client",
    "get_db",
    "ping",
    "DocumentService",
    "PageStructure",
    "DocumentChange",
    "BulkDocumentChange",
    "TaxonomyService",
    "TermsView",
    "TreeRequest",
    "TreeRequestHandler",
    "OperationResult",
    "ErrorInfo",
    "parse_request",
]
