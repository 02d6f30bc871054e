from __future__ import annotations

import re

from wanderplan.utils.api_errors import ValidationFailure

# textual UUID v1-v5 with the RFC 4122 variant
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: str) -> bool:
    return UUID_PATTERN.fullmatch(value) is not None


def require_uuid(value: str | None, *, name: str, code: str, label: str) -> str:
    """Validate an identifier taken from the request path.

    Returns the lower-cased identifier; raises ``ValidationFailure`` with
    ``VALIDATION_ERROR`` when it is empty and ``code`` when it is malformed.
    """

    # whitespace only counts as missing; padded ids are malformed
    text = value or ""
    if not text.strip():
        raise ValidationFailure(f"Missing required parameter: {name}")
    if not is_valid_uuid(text):
        raise ValidationFailure(
            f"Invalid {label} ID format. Must be a valid UUID.",
            code,
        )
    return text.lower()
