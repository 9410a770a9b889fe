"""Database models for Blogroll Sync."""

from blogroll_sync.models.setting import Setting
from blogroll_sync.models.link_category import LinkCategory, LINK_CATEGORY

__all__ = [
    "Setting",
    "LinkCategory",
    "LINK_CATEGORY",
]
