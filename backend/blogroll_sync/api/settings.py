"""Settings API endpoints."""

import json
import logging
import re
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogroll_sync.db import get_db
from blogroll_sync.schemas import SettingsFormView, SettingsSubmission
from blogroll_sync.services.settings_service import OPTION_NAME, SettingsService
from blogroll_sync.utils.error_handling import safe_error_response

logger = logging.getLogger(__name__)
router = APIRouter()

# Browser form posts, parsed by Starlette (python-multipart)
_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# HTML forms post fields as blogroll_sync_settings[url] etc.
_FORM_FIELD_RE = re.compile(rf"^{OPTION_NAME}\[(\w+)\]$")


async def _read_submission(request: Request) -> SettingsSubmission:
    """Parse a JSON, urlencoded or multipart request body into a submission."""
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()

    if content_type in _FORM_CONTENT_TYPES:
        form = await request.form()
        data: Dict[str, Any] = {}
        for name, value in form.multi_items():
            # Uploaded files are not settings
            if not isinstance(value, str):
                continue
            match = _FORM_FIELD_RE.match(name)
            data[match.group(1) if match else name] = value
        return SettingsSubmission.from_mapping(data)

    body = await request.body()

    if not body.strip():
        return SettingsSubmission()

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=422, detail="Request body must be a JSON object or form data")

    if not isinstance(data, dict):
        raise HTTPException(status_code=422, detail="Request body must be a JSON object or form data")
    return SettingsSubmission.from_mapping(data)


@router.get("", response_model=SettingsFormView)
async def get_settings(db: AsyncSession = Depends(get_db)) -> SettingsFormView:
    """Get the settings form view (display values and category choices)."""
    try:
        return await SettingsService.form_view(db)
    except SQLAlchemyError as e:
        safe_error_response(logger, e, "Failed to load settings")


@router.post("", response_model=SettingsFormView)
async def save_settings(request: Request, db: AsyncSession = Depends(get_db)) -> SettingsFormView:
    """Sanitize a settings submission and store it.

    Invalid values never cause an error: a bad URL keeps the stored URL and
    an unknown category is cleared. Compare the response with the
    submission to see what was rejected.
    """
    submission = await _read_submission(request)

    try:
        await SettingsService.apply_submission(db, submission)
        return await SettingsService.form_view(db)
    except (SQLAlchemyError, ValueError) as e:
        await db.rollback()
        safe_error_response(logger, e, "Failed to save settings")
