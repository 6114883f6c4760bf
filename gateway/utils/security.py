"""Security utilities for keeping remote credentials out of logs and tool output.

Session credentials are bearer tokens for the remote messaging service; they are
held server-side only and must never reach the calling agent or a log line.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any, cast

REDACTED = "***REDACTED***"

# Pattern to identify potential secrets in strings
SECRET_PATTERNS = [
    # Tokens, secrets, passwords with key=value or "key": "value" format
    re.compile(
        r'(?i)((?:(?:access[_\-]?)?token|secret|password|jwt|auth)["\']?\s*[:=]\s*["\']?)([a-zA-Z0-9._\-/+=]{8,})'
    ),
    # Bearer tokens
    re.compile(r"(?i)(bearer\s+)([a-zA-Z0-9._\-/+=]{20,})"),
    # JWT tokens
    re.compile(r"(eyJ[a-zA-Z0-9._\-/+=]+)"),
]

DEFAULT_SENSITIVE_KEYS = frozenset(
    {
        "accesstoken",
        "access_token",
        "token",
        "jwt",
        "secret",
        "password",
        "authorization",
        "captchatoken",
        "credential",
    }
)


def sanitize_for_logging(data: Any) -> Any:
    """Sanitize data to remove potential secrets before logging.

    Args:
        data: Data to sanitize (string, dict, list, etc.)

    Returns:
        Sanitized data with secrets masked
    """
    if isinstance(data, str):
        return _sanitize_string(data)
    if isinstance(data, dict):
        typed_data: dict[str, Any] = cast("dict[str, Any]", data)
        masked_dict = mask_sensitive_keys(typed_data)
        return {
            k: sanitize_for_logging(v) if v != REDACTED else v
            for k, v in masked_dict.items()
        }
    if isinstance(data, (list, tuple)):
        typed_seq: Sequence[Any] = cast("Sequence[Any]", data)
        return [sanitize_for_logging(item) for item in typed_seq]
    return data


def _sanitize_string(text: str) -> str:
    """Sanitize a string to mask potential secrets."""
    result = text
    for i, pattern in enumerate(SECRET_PATTERNS):
        if i in {0, 1}:  # patterns with a key group
            result = pattern.sub(rf"\1{REDACTED}", result)
        else:
            result = pattern.sub(REDACTED, result)
    return result


def mask_sensitive_keys(
    data: Mapping[str, Any], sensitive_keys: frozenset[str] | set[str] | None = None
) -> dict[str, Any]:
    """Mask keys that are known to hold credentials.

    Keys match when their lowercase form is in ``sensitive_keys``. Exact matching
    keeps pagination fields such as ``continuationToken`` intact.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Lowercase key names to mask

    Returns:
        Dictionary with sensitive values masked
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in sensitive_keys:
            result[key] = REDACTED
        elif isinstance(value, Mapping):
            nested: Mapping[str, Any] = cast("Mapping[str, Any]", value)
            result[key] = mask_sensitive_keys(nested, sensitive_keys)
        else:
            result[key] = value

    return result
