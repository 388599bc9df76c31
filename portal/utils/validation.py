from __future__ import annotations
"""Request payload validation helpers with consistent 400 semantics."""
from datetime import datetime
from typing import Any, Iterable, Optional
from flask import abort


def validate_choice(value: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Return value when inside allowed, else abort 400."""
    if value not in allowed:
        abort(400, description=f"{field_name} must be one of {', '.join(allowed)}")
    return value


def require_fields(data: dict, *names: str) -> None:
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")


def require_strings(data: dict, *names: str) -> None:
    """400 when a present field is not a JSON string."""
    wrong = [n for n in names if data.get(n) is not None and not isinstance(data[n], str)]
    if wrong:
        abort(400, description=f"{', '.join(wrong)} must be a string")


def parse_text(value: Any, field_name: str) -> Optional[str]:
    """Stripped string, or None for missing/blank input."""
    if value is None:
        return None
    if not isinstance(value, str):
        abort(400, description=f'{field_name} must be a string')
    return value.strip() or None


def parse_number(value: Any, field_name: str, *, integer: bool = False):
    try:
        return int(value) if integer else float(value)
    except (TypeError, ValueError):
        abort(400, description=f"{field_name} must be {'int' if integer else 'numeric'}")


def parse_datetime(value: Optional[str], field_name: str) -> Optional[datetime]:
    if value in (None, ''):
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        abort(400, description=f'{field_name} must be ISO 8601 date/time')


__all__ = ['validate_choice', 'require_fields', 'require_strings', 'parse_text', 'parse_number', 'parse_datetime']
