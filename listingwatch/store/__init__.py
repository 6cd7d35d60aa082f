"""Store implementations behind the ListingStore interface."""

from listingwatch.store.base import ListingStore
from listingwatch.store.memory import MemoryStore
from listingwatch.store.sql import SqlStore

__all__ = [
    "ListingStore",
    "MemoryStore",
    "SqlStore",
]
