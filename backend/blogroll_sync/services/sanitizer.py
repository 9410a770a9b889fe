"""Settings sanitizer: turns a raw form submission into a canonical record.

Every rule degrades instead of failing. A bad URL keeps the previous URL, an
unknown category becomes ``None`` and anything other than ``"1"`` disables
categories. ``sanitize`` never raises because of what was submitted; only a
failing collaborator (the category lookup) can make it raise.
"""

import logging
import math
import re
from typing import Any, Callable, Mapping, Optional, Protocol, Union

from blogroll_sync.schemas.category import CategoryRef, LINK_CATEGORY
from blogroll_sync.schemas.setting import SettingsRecord, SettingsSubmission
from blogroll_sync.utils.security import sanitize_log_message
from blogroll_sync.utils.url_validation import is_valid_absolute_url, normalize_url

logger = logging.getLogger(__name__)

CATEGORIES_ENABLED_MARKER = "1"

# CRLF first so it is replaced as one line break, not two
_LINE_BREAK_RE = re.compile("\r\n|[\n\x0b\x0c\r\x85\u2028\u2029]")
# Leading numeric prefix: integer, decimal or exponent form ("12abc", "4.7", "1e3")
_LEADING_NUMBER_RE = re.compile(
    r"[ \t\n\r\x0b\x0c]*([+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
)
# Characters trimmed from both ends of the denylist (no other Unicode whitespace)
_DENYLIST_TRIM_CHARS = " \t\n\r\0\x0b"
# Larger values cannot be a stored identifier (and would overflow the column)
_MAX_ID_DIGITS = 18


class CategoryLookup(Protocol):
    """Anything that can tell whether a category identifier exists."""

    def exists(self, identifier: int, namespace: str = LINK_CATEGORY) -> Optional[CategoryRef]:
        ...


def normalize_denylist(value: str) -> str:
    """Convert every line break to CRLF and trim the whole block.

    >>> normalize_denylist("foo\\nbar\\r\\nbaz\\n")
    'foo\\r\\nbar\\r\\nbaz'
    """
    return _LINE_BREAK_RE.sub("\r\n", value).strip(_DENYLIST_TRIM_CHARS)


def parse_category_id(value: str) -> int:
    """Lenient integer parse of the leading number; anything else is 0.

    Decimal and exponent forms are truncated toward zero, so ``"1e3"`` is
    1000 and ``"4.7"`` is 4. Values too large to be an identifier are 0.

    >>> parse_category_id(" 12abc"), parse_category_id("1e3"), parse_category_id("abc")
    (12, 1000, 0)
    """
    match = _LEADING_NUMBER_RE.match(value)
    if not match:
        return 0

    number = match.group(1)
    unsigned = number.lstrip("+-")
    if unsigned.isdigit():
        digits = unsigned.lstrip("0") or "0"
        if len(digits) > _MAX_ID_DIGITS:
            return 0
        return -int(digits) if number.startswith("-") else int(digits)

    parsed = float(number)
    if not math.isfinite(parsed) or abs(parsed) >= 10 ** _MAX_ID_DIGITS:
        return 0
    return int(parsed)


def sanitize(
    previous: SettingsRecord,
    submitted: Union[SettingsSubmission, Mapping[str, Any]],
    *,
    categories: CategoryLookup,
    password_override: bool = False,
    url_validator: Callable[[str], bool] = is_valid_absolute_url,
    url_normalizer: Callable[[str], str] = normalize_url,
) -> SettingsRecord:
    """Apply a submission to the previous record and return the new record.

    Args:
        previous: The currently stored record (not modified)
        submitted: The raw submission; plain mappings are converted with
            :meth:`SettingsSubmission.from_mapping`
        categories: Lookup used to check the submitted default category
        password_override: True when the password is configured outside the
            stored settings; the stored password is then always blanked
        url_validator: Decides whether a non-empty URL may be stored
        url_normalizer: Canonicalizes an accepted URL

    Returns:
        A new SettingsRecord
    """
    if not isinstance(submitted, SettingsSubmission):
        submitted = SettingsSubmission.from_mapping(submitted)

    url = previous.url
    if submitted.url is not None:
        if submitted.url == "":
            url = ""
        elif url_validator(submitted.url):
            try:
                url = url_normalizer(submitted.url)
            except ValueError:
                logger.debug(
                    f"Could not normalize OPML URL {sanitize_log_message(submitted.url)!r}, keeping previous value"
                )
        else:
            logger.debug(
                f"Ignoring invalid OPML URL {sanitize_log_message(submitted.url)!r}, keeping previous value"
            )

    username = previous.username
    if submitted.username is not None:
        username = submitted.username

    # Unlike the other fields, a missing password clears the stored one
    if password_override:
        password = ""
    else:
        password = submitted.password if submitted.password is not None else ""

    denylist = previous.denylist
    if submitted.denylist is not None:
        denylist = normalize_denylist(submitted.denylist)

    categories_enabled = submitted.categories_enabled == CATEGORIES_ENABLED_MARKER

    default_category = previous.default_category
    if submitted.default_category is not None:
        default_category = _resolve_category(submitted.default_category, categories)

    return SettingsRecord(
        url=url,
        username=username,
        password=password,
        denylist=denylist,
        categories_enabled=categories_enabled,
        default_category=default_category,
    )


def _resolve_category(value: str, categories: CategoryLookup) -> Optional[int]:
    identifier = parse_category_id(value)
    if identifier <= 0:
        if value.strip():
            logger.debug(f"Default category {sanitize_log_message(value)!r} is not a valid identifier")
        return None

    term = categories.exists(identifier, LINK_CATEGORY)
    if term is None:
        logger.debug(f"Default category {identifier} does not exist in '{LINK_CATEGORY}'")
        return None
    return term.id


def password_display(record: SettingsRecord, password_override: bool) -> str:
    """Password to show in the settings form.

    Empty when the password is configured outside the stored settings.
    """
    if password_override:
        return ""
    return record.password


def denylist_display(denylist: str, legacy_blacklist: Optional[str] = None) -> str:
    """Denylist to show in the settings form, falling back to the legacy value."""
    if denylist:
        return denylist
    if legacy_blacklist:
        return legacy_blacklist
    return ""
