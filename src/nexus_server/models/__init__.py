"""Catalog and envelope models."""

from .catalog import Catalog, OperationEntry, ParamEntry, SearchResult, persist_catalog
from .schemas import DispatchResponse, ErrorResponse, GenericRequest, ResultResponse

__all__ = [
    "Catalog",
    "OperationEntry",
    "ParamEntry",
    "SearchResult",
    "persist_catalog",
    "GenericRequest",
    "ResultResponse",
    "ErrorResponse",
    "DispatchResponse",
]
