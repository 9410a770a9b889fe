"""Helpers for keeping user input and secrets out of logs and responses."""

import re
from typing import Union

_CONTROL_CHARS = re.compile(r'[\n\r\t\x00-\x1f\x7f-\x9f\u2028\u2029]')


def sanitize_log_message(msg: Union[str, bytes, int, float, None]) -> str:
    """Strip newlines and control characters from a value before logging it.

    Submitted settings (URLs, usernames, denylist lines) end up in log lines,
    so anything a user typed is passed through here first to stop forged log
    entries.

    Examples:
        >>> sanitize_log_message("https://example.com\\nFAKE ENTRY")
        'https://example.comFAKE ENTRY'
        >>> sanitize_log_message(None)
        ''
    """
    if msg is None:
        return ""

    return _CONTROL_CHARS.sub('', str(msg))


def mask_sensitive(value: Union[str, None], visible_chars: int = 4, mask_char: str = "*") -> str:
    """Mask a secret, showing only its last ``visible_chars`` characters.

    Values no longer than ``visible_chars`` (and empty values) are masked
    completely so short passwords never leak.

    Examples:
        >>> mask_sensitive("hunter2-long-password")
        '***word'
        >>> mask_sensitive("abc")
        '***'
    """
    if not value:
        return mask_char * 3

    if len(value) <= visible_chars:
        return mask_char * 3

    return f"{mask_char * 3}{value[-visible_chars:]}"
