"""
Change detection for incremental model events

Merges the partial entity carried by an update event into the tracked entity,
field by field, and reports what changed.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict

from force_graph.models import LOCATION_FIELDS, TRANSIENT_FIELDS, WireModel

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class ChangeSummary:
    """Result of a merge"""
    num_changes: int = 0
    location_changed: bool = False

    def __iadd__(self, other: 'ChangeSummary') -> 'ChangeSummary':
        self.num_changes += other.num_changes
        self.location_changed = self.location_changed or other.location_changed
        return self


def _same(current: Any, new: Any) -> bool:
    # bool never equals a number; int and float compare by value
    numbers = (int, float)
    if (isinstance(current, numbers) and isinstance(new, numbers)
            and not isinstance(current, bool) and not isinstance(new, bool)):
        return current == new
    return type(current) is type(new) and current == new


def _merge_field(existing: WireModel, key: str, value: Any, changed: ChangeSummary):
    slot = existing.wire_fields().get(key)
    if slot is None:
        logger.debug(f"Ignoring unknown field {key} for {type(existing).__name__}")
        return
    if slot.metadata.get('transient'):
        return
    current = getattr(existing, slot.name)

    if isinstance(value, dict):
        if current is None:
            # Nothing to compare against, take the whole value
            setattr(existing, slot.name, existing.decode_field(slot, value))
            changed.num_changes += 1
            changed.location_changed = True
            return
        if isinstance(current, (WireModel, dict)):
            changed += merge(current, value)
            return

    new_value = existing.decode_field(slot, value)
    if not _same(current, new_value):
        if key in LOCATION_FIELDS:
            changed.location_changed = True
        changed.num_changes += 1
        setattr(existing, slot.name, new_value)


def _merge_key(existing: Dict, key: str, value: Any, changed: ChangeSummary):
    current = existing.get(key, _MISSING)

    if isinstance(value, dict):
        if current is _MISSING or current is None:
            existing[key] = dict(value)
            changed.num_changes += 1
            changed.location_changed = True
            return
        if isinstance(current, dict):
            changed += merge(current, value)
            return

    if current is _MISSING or not _same(current, value):
        if key in LOCATION_FIELDS:
            changed.location_changed = True
        changed.num_changes += 1
        existing[key] = value


def merge(existing: Any, incoming: Dict) -> ChangeSummary:
    """
    Merge ``incoming`` into ``existing`` and count the changed fields

    Only the keys present in ``incoming`` are visited; simulation-owned fields
    and ``id`` are never touched. Nested entities (location, metaUi) and the
    free-form ``props`` mapping are merged recursively.

    Args:
        existing: Tracked entity (a wire model) or a plain mapping
        incoming: Partial entity as received from the controller

    Returns:
        ChangeSummary: Number of changed fields and whether any of them
        affects where the node is pinned
    """
    if existing is None:
        raise ValueError("Cannot merge into a missing entity")
    changed = ChangeSummary()
    for key, value in incoming.items():
        if isinstance(existing, WireModel):
            # Entities mark their simulation-owned fields themselves
            _merge_field(existing, key, value, changed)
        elif key not in TRANSIENT_FIELDS:
            _merge_key(existing, key, value, changed)
    return changed
