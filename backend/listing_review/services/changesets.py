"""Field-level change detection between a live snapshot and a draft payload."""

# purpose: pure, deterministic changeset computation plus reviewer-facing value rendering
# status: active

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping
from uuid import UUID

EMPTY_MARKER = "(empty)"


@dataclass(frozen=True, slots=True)
class ChangeEntry:
    field: str
    old_value: Any
    new_value: Any


def _normalise(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _normalise(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(item) for item in value]
    return value


def canonical_form(value: Any) -> str:
    """Serialise a field value so equal values compare equal as strings."""

    return json.dumps(_normalise(value), sort_keys=True, separators=(",", ":"), default=str)


def compute_changeset(
    live_snapshot: Mapping[str, Any],
    draft_payload: Mapping[str, Any],
) -> list[ChangeEntry]:
    """Return the payload fields whose value differs from the live snapshot.

    Only keys present in the payload are visited, in payload order. Nested
    values are compared whole, never recursed into.
    """

    changes: list[ChangeEntry] = []
    for field, new_value in draft_payload.items():
        old_value = live_snapshot.get(field)
        if canonical_form(old_value) != canonical_form(new_value):
            changes.append(ChangeEntry(field=field, old_value=old_value, new_value=new_value))
    return changes


def format_value(value: Any) -> str:
    """Render a value for reviewers; not part of change detection."""

    if value is None or value == "":
        return EMPTY_MARKER
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(_normalise(value), indent=2, sort_keys=True, default=str)
    return str(value)
