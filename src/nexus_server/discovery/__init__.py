"""Discovery module: descriptor-guided crawling and dynamic dispatch."""

from .crawler import CatalogCrawler, CrawlResult
from .descriptor import DomainDescriptor, read_descriptor
from .dispatcher import DispatchGenerator, OperationHandler, RequestState
from .extractor import ExtractedOperation, OperationSignature, SignatureExtractor
from .meta_tools import MetaTools
from .registry import OperationRegistry, RegistryConfig
from .resolver import coerce, resolve

__all__ = [
    "CatalogCrawler",
    "CrawlResult",
    "DomainDescriptor",
    "read_descriptor",
    "SignatureExtractor",
    "ExtractedOperation",
    "OperationSignature",
    "DispatchGenerator",
    "OperationHandler",
    "RequestState",
    "OperationRegistry",
    "RegistryConfig",
    "MetaTools",
    "resolve",
    "coerce",
]
