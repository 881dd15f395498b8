"""Version numbering for documents.

Versions are "MM.mm": two-digit major, two-digit minor. Both counters stay
within 00..99; running out is a caller error, never a silent wrap.
"""

import re
from typing import Tuple

from .errors import VersionOverflowError
from .models import ChangeType

INITIAL_VERSION = "01.00"
MAX_COUNTER = 99

VERSION_PATTERN = re.compile(r"^(\d{2})\.(\d{2})$")


def parse_version(version: str) -> Tuple[int, int]:
    """Split a version string into (major, minor).

    Raises:
        ValueError: If version is not in MM.mm format
    """
    match = VERSION_PATTERN.match(version or "")
    if not match:
        raise ValueError(f"Invalid version format: {version!r} (expected MM.mm, e.g. 01.00)")
    return int(match.group(1)), int(match.group(2))


def format_version(major: int, minor: int) -> str:
    return f"{major:02d}.{minor:02d}"


def is_valid_version(version: str) -> bool:
    return bool(VERSION_PATTERN.match(version or ""))


def next_version(current: str, change_type: ChangeType) -> str:
    """Compute the version following current.

    Args:
        current: Current version ("MM.mm")
        change_type: MINOR bumps mm, MAJOR bumps MM and resets mm to 00

    Returns:
        Next version string

    Raises:
        VersionOverflowError: If the counter to bump is already 99
        ValueError: If current is malformed

    Example:
        >>> next_version("01.09", ChangeType.MINOR)
        '01.10'
        >>> next_version("01.99", ChangeType.MAJOR)
        '02.00'
    """
    major, minor = parse_version(current)
    change_type = ChangeType(change_type)

    if change_type == ChangeType.MAJOR:
        if major >= MAX_COUNTER:
            raise VersionOverflowError(current, change_type.value)
        return format_version(major + 1, 0)

    if minor >= MAX_COUNTER:
        raise VersionOverflowError(current, change_type.value)
    return format_version(major, minor + 1)


def version_key(version: str) -> Tuple[int, int]:
    """Sort key ordering versions by (major, minor)."""
    return parse_version(version)
