"""Nexus: catalog crawler and dynamic dispatch for federated operation libraries."""

__version__ = "0.3.0"
