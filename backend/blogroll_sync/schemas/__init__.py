"""Pydantic schemas for API validation."""

from blogroll_sync.schemas.category import CategoryRef, CategoryCreate
from blogroll_sync.schemas.setting import (
    SUBMISSION_FIELDS,
    SettingsRecord,
    SettingsSubmission,
    SettingsFormView,
)

__all__ = [
    "CategoryRef",
    "CategoryCreate",
    "SUBMISSION_FIELDS",
    "SettingsRecord",
    "SettingsSubmission",
    "SettingsFormView",
]
