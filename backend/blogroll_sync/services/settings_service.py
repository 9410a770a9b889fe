"""Settings service: loads, sanitizes and stores the settings record."""

import json
import os
import logging
from typing import Any, Dict, Optional, Union, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogroll_sync.models import Setting, LINK_CATEGORY
from blogroll_sync.schemas.setting import SettingsRecord, SettingsSubmission, SettingsFormView
from blogroll_sync.services.category_service import CategoryService
from blogroll_sync.services.sanitizer import sanitize, password_display, denylist_display
from blogroll_sync.utils.encryption import get_encryption_service, is_encryption_configured
from blogroll_sync.utils.security import mask_sensitive, sanitize_log_message

logger = logging.getLogger(__name__)

# Name of the stored option holding the whole record
OPTION_NAME = "blogroll_sync_settings"

# Deprecated name of the denylist; read for display only, never written
LEGACY_DENYLIST_KEY = "blacklist"

# When this variable is defined the password is configured by the deployment,
# not through the settings form
PASSWORD_OVERRIDE_ENV = "BLOGROLL_SYNC_PASS"

_PASSWORD_ENCRYPTED_FLAG = "password_encrypted"


def is_password_overridden() -> bool:
    """True if the deployment defines the feed reader password itself."""
    return PASSWORD_OVERRIDE_ENV in os.environ


def _as_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on")
    return bool(value)


def _as_category(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class SettingsService:
    """Persist the settings record as one JSON document per option name."""

    DEFAULTS = SettingsRecord()

    @staticmethod
    async def _get_row(db: AsyncSession, key: str) -> Optional[Setting]:
        result = await db.execute(select(Setting).where(Setting.key == key))
        return result.scalar_one_or_none()

    @classmethod
    async def load_raw(cls, db: AsyncSession, key: str = OPTION_NAME) -> Dict[str, Any]:
        """Stored option as a plain dict; empty if missing or unreadable."""
        setting = await cls._get_row(db, key)
        if setting is None or not setting.value:
            return {}

        try:
            data = json.loads(setting.value)
        except json.JSONDecodeError as e:
            logger.error(f"Stored option '{sanitize_log_message(key)}' is not valid JSON: {e}. Using defaults.")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Stored option '{sanitize_log_message(key)}' is not an object. Using defaults.")
            return {}
        return data

    @classmethod
    async def load(
        cls,
        db: AsyncSession,
        key: str = OPTION_NAME,
        defaults: Optional[SettingsRecord] = None,
    ) -> SettingsRecord:
        """Load the settings record, filling missing keys from ``defaults``.

        Values stored with the wrong type are coerced. An encrypted password
        that cannot be decrypted is returned as an empty string.

        Args:
            db: Database session
            key: Option name
            defaults: Record supplying missing values (default: all empty)

        Returns:
            The stored SettingsRecord
        """
        raw = await cls.load_raw(db, key)
        values = (defaults or cls.DEFAULTS).model_dump()

        for name in ("url", "username", "denylist"):
            if name in raw:
                values[name] = _as_str(raw[name])
        if "categories_enabled" in raw:
            values["categories_enabled"] = _as_bool(raw["categories_enabled"])
        if "default_category" in raw:
            values["default_category"] = _as_category(raw["default_category"])
        if "password" in raw:
            values["password"] = cls._read_password(key, raw)

        return SettingsRecord(**values)

    @staticmethod
    def _read_password(key: str, raw: Dict[str, Any]) -> str:
        password = _as_str(raw.get("password"))
        if not raw.get(_PASSWORD_ENCRYPTED_FLAG) or not password:
            return password

        if not is_encryption_configured():
            logger.warning(
                f"Password in '{sanitize_log_message(key)}' is encrypted but no encryption key is configured. "
                "Treating it as empty."
            )
            return ""

        try:
            return get_encryption_service().decrypt(password)
        except ValueError as e:
            logger.error(f"Failed to decrypt password in '{sanitize_log_message(key)}': {sanitize_log_message(str(e))}")
            return ""

    @classmethod
    async def load_legacy_blacklist(cls, db: AsyncSession, key: str = OPTION_NAME) -> str:
        """Legacy ``blacklist`` value from previously stored data, or ``""``."""
        raw = await cls.load_raw(db, key)
        return _as_str(raw.get(LEGACY_DENYLIST_KEY))

    @classmethod
    async def save(cls, db: AsyncSession, record: SettingsRecord, key: str = OPTION_NAME) -> SettingsRecord:
        """Store the record, replacing whatever was stored before.

        Only canonical fields are written, so a legacy ``blacklist`` key is
        dropped on the first save. The password is encrypted when an
        encryption key is configured.

        Raises:
            ValueError: If the password should be encrypted but encryption fails
        """
        data: Dict[str, Any] = record.model_dump()

        if record.password and is_encryption_configured():
            try:
                data["password"] = get_encryption_service().encrypt(record.password)
            except Exception as e:
                logger.error(f"Failed to encrypt password for '{sanitize_log_message(key)}': {type(e).__name__}")
                # Never fall back to storing the plain text
                raise ValueError(f"Failed to encrypt password for '{key}': {e}")
            data[_PASSWORD_ENCRYPTED_FLAG] = True
        elif record.password:
            logger.warning(
                "Password will be stored in plain text. "
                "Set BLOGROLL_SYNC_ENCRYPTION_KEY to encrypt it."
            )

        value = json.dumps(data)
        setting = await cls._get_row(db, key)
        if setting:
            setting.value = value
        else:
            setting = Setting(key=key, value=value)
            db.add(setting)

        await db.commit()
        logger.info(f"Saved option '{sanitize_log_message(key)}'")
        return record

    @classmethod
    async def init_defaults(cls, db: AsyncSession, key: str = OPTION_NAME) -> None:
        """Create the option with default values if it was never stored."""
        if await cls._get_row(db, key) is None:
            db.add(Setting(key=key, value=json.dumps(cls.DEFAULTS.model_dump())))
            await db.commit()
            logger.info(f"Initialized default option '{key}'")

    @classmethod
    async def apply_submission(
        cls,
        db: AsyncSession,
        submission: Union[SettingsSubmission, Mapping[str, Any]],
        key: str = OPTION_NAME,
        password_override: Optional[bool] = None,
    ) -> SettingsRecord:
        """Sanitize a submission against the stored record and store the result.

        Args:
            db: Database session
            submission: Raw submission (typed or plain mapping)
            key: Option name
            password_override: Override signal (default: read from environment)

        Returns:
            The record that was stored
        """
        if password_override is None:
            password_override = is_password_overridden()

        previous = await cls.load(db, key)
        categories = await CategoryService.snapshot(db, LINK_CATEGORY)
        record = sanitize(
            previous,
            submission,
            categories=categories,
            password_override=password_override,
        )

        if record.url != previous.url:
            logger.info(f"OPML URL changed to {sanitize_log_message(record.url)!r}")
        if record.username != previous.username:
            logger.info(f"Feed reader username changed to {mask_sensitive(sanitize_log_message(record.username))}")
        if previous.password and not record.password:
            logger.info("Stored feed reader password cleared")
        return await cls.save(db, record, key)

    @classmethod
    async def form_view(
        cls,
        db: AsyncSession,
        key: str = OPTION_NAME,
        password_override: Optional[bool] = None,
    ) -> SettingsFormView:
        """Everything a settings form renderer needs, with display rules applied."""
        if password_override is None:
            password_override = is_password_overridden()

        record = await cls.load(db, key)
        legacy = await cls.load_legacy_blacklist(db, key)
        categories = await CategoryService.list_all(db, LINK_CATEGORY)

        return SettingsFormView(
            url=record.url,
            username=record.username,
            password=password_display(record, password_override),
            password_locked=password_override,
            denylist=denylist_display(record.denylist, legacy),
            categories_enabled=record.categories_enabled,
            default_category=record.default_category,
            categories=categories,
        )
