"""
Shared validation functions for Pydantic schemas.

Used by bookmark, tag and data import schemas as well as the services that
accept raw tag names.
"""
from datetime import UTC, datetime
from typing import Any

from core.config import get_settings


def normalize_timestamp(value: Any) -> datetime | None:  # noqa: PLR0911
    """
    Convert any supported timestamp representation to an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), exported document-store
    timestamps ({"_seconds": n, "_nanoseconds": m} or {"seconds": n}), epoch
    seconds, and ISO 8601 strings. None stays None.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        if seconds is None:
            raise ValueError(f"Unrecognized timestamp object: {value!r}")
        nanoseconds = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
        return datetime.fromtimestamp(seconds + nanoseconds / 1e9, tz=UTC)
    if isinstance(value, bool):
        raise ValueError(f"Unrecognized timestamp: {value!r}")
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, tz=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return normalize_timestamp(parsed)
    raise ValueError(f"Unrecognized timestamp: {value!r}")


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Tags keep their case; only surrounding whitespace is removed.

    Raises:
        ValueError: If the tag is empty or too long.
    """
    normalized = tag.strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    max_length = get_settings().max_tag_length
    if len(normalized) > max_length:
        raise ValueError(
            f"Tag '{normalized[:20]}...' exceeds maximum length of {max_length} characters",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Returns:
        Trimmed tags with empty strings filtered out and duplicates removed
        (preserving first occurrence order).

    Raises:
        ValueError: If any tag is too long.
    """
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        trimmed = tag.strip()
        if not trimmed:
            continue  # Skip empty tags silently
        validated = validate_and_normalize_tag(trimmed)
        if validated not in seen:
            seen.add(validated)
            normalized.append(validated)
    return normalized


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_notes_length(notes: str | None) -> str | None:
    """Validate that notes don't exceed maximum length."""
    settings = get_settings()
    if notes is not None and len(notes) > settings.max_notes_length:
        raise ValueError(
            f"Notes exceed maximum length of {settings.max_notes_length:,} characters "
            f"(got {len(notes):,} characters).",
        )
    return notes


def validate_text_content_length(text_content: str | None) -> str | None:
    """Validate that text content doesn't exceed maximum length."""
    settings = get_settings()
    if text_content is not None and len(text_content) > settings.max_text_content_length:
        max_len = settings.max_text_content_length
        raise ValueError(
            f"Text content exceeds maximum length of {max_len:,} characters "
            f"(got {len(text_content):,} characters).",
        )
    return text_content
