"""
Catalog accessors: where file records and the instance namespace live.

Usage:
    >>> from filestore_migrator.catalog import MongoCatalog
    >>> catalog = MongoCatalog("mongodb://localhost:27017", "rocketchat")
"""

from .interface import NAMESPACE_SETTING_ID, SETTINGS_COLLECTION, CandidateQuery, CatalogAccessor
from .memory import InMemoryCatalog


def __getattr__(name: str):
    # MongoCatalog pulls in pymongo; only import it on first use
    if name == "MongoCatalog":
        from .mongo import MongoCatalog

        return MongoCatalog
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "NAMESPACE_SETTING_ID",
    "SETTINGS_COLLECTION",
    "CandidateQuery",
    "CatalogAccessor",
    "InMemoryCatalog",
    "MongoCatalog",
]
