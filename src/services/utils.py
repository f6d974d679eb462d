"""Shared utility functions for service layer."""
from services.exceptions import NotAuthenticatedError


def require_user(user_id: str | None) -> str:
    """
    Return user_id, or raise if there is no authenticated user.

    Every mutation calls this before touching the database.
    """
    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def unique_ids(ids: list[str]) -> list[str]:
    """Drop blank and repeated ids, preserving first occurrence order."""
    seen: set[str] = set()
    result = []
    for item in ids:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def clean_text(value: str | None) -> str | None:
    """Trim a free-text field; blank becomes None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
