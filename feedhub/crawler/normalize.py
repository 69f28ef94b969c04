"""Text normalization shared by every connector.

The same rules apply to all platforms: collapse whitespace, pull hashtags
written in Hebrew or Latin script, and guess the language with a single
Hebrew-codepoint check.
"""

import re
from datetime import datetime, timezone

_WHITESPACE_RE = re.compile(r"\s+")
_HASHTAG_RE = re.compile(r"#([\u0590-\u05FFa-zA-Z0-9_]+)")
_HEBREW_RE = re.compile(r"[\u0590-\u05FF]")
_COUNT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([KMBkmb])?\b")
_COMPACT_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")

_COUNT_SUFFIXES = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}

TITLE_LENGTH = 100


def normalize_text(text: str | None) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_tags(text: str | None) -> list[str]:
    """Return hashtags (without '#') in order of appearance."""
    if not text:
        return []
    return _HASHTAG_RE.findall(text)


def detect_language(text: str | None) -> str:
    """'he' if any Hebrew codepoint is present, else 'en'."""
    if text and _HEBREW_RE.search(text):
        return "he"
    return "en"


def truncate_title(text: str, length: int = TITLE_LENGTH) -> str:
    """Cut text to `length` chars, marking the cut with an ellipsis."""
    if len(text) <= length:
        return text
    return text[:length] + "..."


def merge_tags(*groups: list[str] | None) -> list[str]:
    """Concatenate tag lists, dropping duplicates but keeping first-seen order."""
    seen: dict[str, None] = {}
    for group in groups:
        for tag in group or []:
            if tag:
                seen.setdefault(tag, None)
    return list(seen)


def parse_count(text: str | None) -> int:
    """Parse display counts like '1,234', '12.5K' or '3M' into integers."""
    if not text:
        return 0
    match = _COUNT_RE.search(text.replace(",", ""))
    if not match:
        return 0
    value = float(match.group(1))
    suffix = match.group(2)
    if suffix:
        value *= _COUNT_SUFFIXES[suffix.upper()]
    return int(value)


def parse_timestamp(value: str | int | float | None) -> datetime | None:
    """Parse ISO-8601 strings or unix seconds into aware UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    # Graph API offsets come without a colon ("+0000")
    value = _COMPACT_OFFSET_RE.sub(r"\1:\2", value.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
