"""Version comparator.

Diffs two VersionRecords for display: a metadata field diff plus, when both
versions have text content, a line-level content diff. Versions whose files
are not text-extractable yield ``content_diff=None``; that is a normal
"not comparable" outcome, not an error.
"""

import difflib
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence

from .models import VersionRecord

NOT_AVAILABLE = "N/A"

# File extensions and MIME types whose content can be diffed line by line
TEXT_EXTENSIONS = frozenset({".txt", ".md", ".csv", ".json", ".xml", ".html", ".htm", ".yaml", ".yml", ".log"})
TEXT_MIME_PREFIXES = ("text/",)
TEXT_MIME_TYPES = frozenset({"application/json", "application/xml", "application/x-yaml"})


def format_file_size(size: Any) -> str:
    """Human readable byte size, e.g. 1536 → "1.5 KB"."""
    if size is None or isinstance(size, bool) or not isinstance(size, (int, float)):
        return NOT_AVAILABLE
    if size < 0:
        return NOT_AVAILABLE
    if size < 1:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    scaled = round(size / math.pow(1024, index), 2)
    return f"{scaled:g} {units[index]}"


def format_timestamp(value: Any) -> str:
    if not isinstance(value, datetime):
        return NOT_AVAILABLE
    return value.strftime("%Y-%m-%d %H:%M")


def _format_text(value: Any) -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    return str(value)


@dataclass(frozen=True)
class ComparableField:
    name: str
    getter: Callable[[VersionRecord], Any]
    formatter: Callable[[Any], str] = _format_text


def _file_attr(attr: str) -> Callable[[VersionRecord], Any]:
    def getter(record: VersionRecord) -> Any:
        return getattr(record.file_ref, attr) if record.file_ref else None
    return getter


# Fixed comparison order
COMPARABLE_FIELDS: List[ComparableField] = [
    ComparableField("title", lambda v: v.title),
    ComparableField("description", lambda v: v.description),
    ComparableField("change_reason", lambda v: v.change_reason),
    ComparableField("change_summary", lambda v: v.change_summary),
    ComparableField("file_name", _file_attr("file_name")),
    ComparableField("file_size", _file_attr("file_size"), format_file_size),
    ComparableField("created_by", lambda v: v.created_by),
    ComparableField("created_at", lambda v: v.created_at, format_timestamp),
]


@dataclass(frozen=True)
class FieldDiff:
    field: str
    value1: str
    value2: str
    changed: bool


@dataclass(frozen=True)
class ContentDiff:
    """Line-level diff of two text bodies."""
    lines: List[str]
    added_lines: int
    removed_lines: int

    @property
    def total_changes(self) -> int:
        return self.added_lines + self.removed_lines


@dataclass(frozen=True)
class VersionComparison:
    version1: str
    version2: str
    additions: int
    deletions: int
    modifications: int
    field_diffs: List[FieldDiff] = field(default_factory=list)
    content_diff: Optional[ContentDiff] = None

    @property
    def content_comparable(self) -> bool:
        return self.content_diff is not None


def is_text_extractable(record: VersionRecord) -> bool:
    """Whether the record's file can be diffed as text."""
    if record.file_ref is None:
        return False
    mime_type = (record.file_ref.mime_type or "").lower()
    if mime_type.startswith(TEXT_MIME_PREFIXES) or mime_type in TEXT_MIME_TYPES:
        return True
    name = record.file_ref.file_name.lower()
    return any(name.endswith(ext) for ext in TEXT_EXTENSIONS)


def diff_fields(v1: VersionRecord, v2: VersionRecord) -> List[FieldDiff]:
    """Field diff after formatting, so e.g. 1024 and 1024.0 bytes compare equal."""
    diffs = []
    for comparable in COMPARABLE_FIELDS:
        value1 = comparable.formatter(comparable.getter(v1))
        value2 = comparable.formatter(comparable.getter(v2))
        diffs.append(FieldDiff(field=comparable.name, value1=value1, value2=value2, changed=value1 != value2))
    return diffs


def diff_content(old_content: str, new_content: str) -> ContentDiff:
    """Unified diff with added/removed line counts."""
    old_lines = old_content.splitlines()
    new_lines = new_content.splitlines()

    lines = list(difflib.unified_diff(old_lines, new_lines, lineterm=""))

    added = sum(1 for line in lines if line.startswith("+") and not line.startswith("+++"))
    removed = sum(1 for line in lines if line.startswith("-") and not line.startswith("---"))

    return ContentDiff(lines=lines, added_lines=added, removed_lines=removed)


def compare(
    v1: VersionRecord,
    v2: VersionRecord,
    content1: Optional[str] = None,
    content2: Optional[str] = None,
) -> VersionComparison:
    """Compare two version records.

    Args:
        v1: Older (left-hand) version
        v2: Newer (right-hand) version
        content1: Extracted text of v1's file, if the caller could load it
        content2: Extracted text of v2's file, if the caller could load it

    Returns:
        VersionComparison; content_diff is None unless both versions are
        text-extractable and both contents were supplied
    """
    field_diffs = diff_fields(v1, v2)
    modifications = sum(1 for diff in field_diffs if diff.changed)

    content_diff = None
    if (
        content1 is not None
        and content2 is not None
        and is_text_extractable(v1)
        and is_text_extractable(v2)
    ):
        content_diff = diff_content(content1, content2)

    additions = content_diff.added_lines if content_diff else 0
    deletions = content_diff.removed_lines if content_diff else 0

    return VersionComparison(
        version1=v1.version,
        version2=v2.version,
        additions=additions,
        deletions=deletions,
        modifications=modifications,
        field_diffs=field_diffs,
        content_diff=content_diff,
    )


def find_version(records: Sequence[VersionRecord], version: str) -> Optional[VersionRecord]:
    for record in records:
        if record.version == version:
            return record
    return None
