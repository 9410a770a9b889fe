"""Pydantic schemas for the settings record, submissions and the form view."""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from blogroll_sync.schemas.category import CategoryRef

# Fields a submission may carry, in form order
SUBMISSION_FIELDS = (
    "url",
    "username",
    "password",
    "denylist",
    "categories_enabled",
    "default_category",
)


class SettingsRecord(BaseModel):
    """Canonical, validated settings record.

    Instances are immutable; the sanitizer always returns a new record.
    """

    url: str = ""
    username: str = ""
    password: str = ""
    denylist: str = ""
    categories_enabled: bool = False
    default_category: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class SettingsSubmission(BaseModel):
    """Raw settings submission.

    ``None`` means the field was not submitted at all; ``""`` means it was
    submitted empty. The two are handled differently per field.
    """

    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    denylist: Optional[str] = None
    categories_enabled: Optional[str] = None
    default_category: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SettingsSubmission":
        """Build a submission from a loosely typed mapping (form or JSON data).

        Unknown keys are dropped. Scalars are converted the way a form post
        would send them (``True`` -> ``"1"``, ``False`` -> ``""``, ``5`` ->
        ``"5"``); lists, dicts and ``None`` count as not submitted.
        """
        fields = {}
        for name in SUBMISSION_FIELDS:
            if not data or name not in data:
                continue
            value = data[name]
            if isinstance(value, bool):
                fields[name] = "1" if value else ""
            elif isinstance(value, (str, int, float)):
                fields[name] = str(value)
        return cls(**fields)


class SettingsFormView(BaseModel):
    """What a settings form needs to render: display values plus choices."""

    url: str
    username: str
    password: str
    password_locked: bool
    denylist: str
    categories_enabled: bool
    default_category: Optional[int] = None
    categories: list[CategoryRef] = []
