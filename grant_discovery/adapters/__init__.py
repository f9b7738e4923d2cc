"""Grant registry adapters."""

from .base import ADAPTER_TIMEOUT, BaseAdapter, SearchPage
from .pagination import next_page
from .simpler_grants import SimplerGrantsAdapter, with_page_offset

__all__ = [
    "ADAPTER_TIMEOUT",
    "BaseAdapter",
    "SearchPage",
    "SimplerGrantsAdapter",
    "next_page",
    "with_page_offset",
]
