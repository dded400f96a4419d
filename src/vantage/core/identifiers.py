"""Identifier validation shared by the engines and the API.

Identifiers come from the external identity store. They are opaque strings
(usually UUIDs) and are validated only for shape, never for existence.
"""

import re

from vantage.core.exceptions import IdentifierValidationError

MAX_IDENTIFIER_LENGTH = 128

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9._:-]*")


def validate_identifier(kind: str, value: object) -> str:
    """Validate an identifier and return it unchanged.

    Args:
        kind: What the identifier names, used in the error message.
        value: Candidate identifier.

    Returns:
        The identifier string.

    Raises:
        IdentifierValidationError: If the value is not a non-empty string of
            letters, digits and ``._:-`` no longer than 128 characters.
    """
    if not isinstance(value, str):
        raise IdentifierValidationError(kind, value)
    if not value or len(value) > MAX_IDENTIFIER_LENGTH:
        raise IdentifierValidationError(kind, value)
    if _IDENTIFIER_PATTERN.fullmatch(value) is None:
        raise IdentifierValidationError(kind, value)
    return value
