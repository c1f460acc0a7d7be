"""
Content module for the lab site.

Provides:
- Record model and year normalization
- Per-category field schemas
- The year-partitioned content store
- The category tab controller used by the admin panel
"""

from labsite.content.record import UNCATEGORIZED, Record, normalize_year
from labsite.content.schemas import CATEGORY_SCHEMAS, CategorySchema
from labsite.content.store import PartitionedContentStore, StoreEvent
from labsite.content.tabs import Focused, Listing, TabController

__all__ = [
    "Record",
    "UNCATEGORIZED",
    "normalize_year",
    "CATEGORY_SCHEMAS",
    "CategorySchema",
    "PartitionedContentStore",
    "StoreEvent",
    "TabController",
    "Listing",
    "Focused",
]
