# File: /docview/engine/edit_session.py | Version: 1.0 | Title: Per-cell edit state machine
r"""
One cell, one edit at a time.

    VIEWING --begin--> EDITING --commit--> COMMITTING --> VIEWING
                          \--cancel---------------------> VIEWING

CHECKBOX, SELECT, MULTI_SELECT and DATE commit as soon as a value is picked.
Text-like and number cells commit on blur or Enter and revert on Escape.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from docview.core.errors import (
    DocumentViewError,
    NotFoundError,
    TransportError,
    UnsupportedOperation,
    ValidationError,
)
from docview.engine.frozen import FrozenPropertyGuard, guard as default_guard
from docview.engine.property_types import (
    CommitMode,
    PropertyTypeRegistry,
    registry as default_registry,
)
from docview.engine.types import GuardedOperation, PropertyType, Record, Schema

log = logging.getLogger(__name__)

# (record_id, property_id, serialized value) -> anything
CommitFn = Callable[[str, str, Any], Any]

_MISSING = object()


class EditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    COMMITTING = "committing"


class CommitStatus(str, Enum):
    COMMITTED = "committed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class CommitResult:
    status: CommitStatus
    value: Any = None
    error: Optional[DocumentViewError] = None


class RecordEditSession:
    def __init__(
        self,
        schema: Schema,
        record: Record,
        property_id: str,
        commit: CommitFn,
        *,
        guard: Optional[FrozenPropertyGuard] = None,
        registry: Optional[PropertyTypeRegistry] = None,
        on_error: Optional[Callable[[DocumentViewError], None]] = None,
    ) -> None:
        prop = schema.get_property(property_id)
        if prop is None:
            raise NotFoundError("property", property_id)
        self.schema = schema
        self.record = record
        self.prop = prop
        self.state = EditState.VIEWING
        self.draft: Any = None
        self._captured: Any = _MISSING
        self._commit = commit
        self._guard = guard or default_guard
        self._registry = registry or default_registry
        self._on_error = on_error

    # ---- Introspection ----

    @property
    def value(self) -> Any:
        return self.record.properties.get(self.prop.id)

    @property
    def commit_mode(self) -> CommitMode:
        return self._registry.commit_mode(self.prop.type)

    @property
    def editable(self) -> bool:
        return self._registry.is_writable(self.prop.type) and self._guard.is_permitted(
            GuardedOperation.edit, self.prop, self.schema
        )

    def display(self) -> str:
        shown = self.draft if self.state == EditState.EDITING else self.value
        return self._registry.display_value(self.prop.type, shown, self.prop)

    # ---- Transitions ----

    def activate(self) -> Optional[CommitResult]:
        """User clicked the cell. A checkbox flips and commits right away."""
        self.begin()
        if self.prop.type == PropertyType.CHECKBOX:
            current = self._registry.coerce(self.prop.type, self.draft)
            return self.select(not (current.ok and current.value))
        return None

    def begin(self) -> None:
        if self.state == EditState.EDITING:
            return
        if self.state == EditState.COMMITTING:
            raise UnsupportedOperation("A commit is already in flight for this cell")
        self._registry.check_writable(self.prop)
        self._guard.authorize(GuardedOperation.edit, self.prop, self.schema)
        if self.prop.id in self.record.properties:
            self._captured = copy.deepcopy(self.record.properties[self.prop.id])
        else:
            self._captured = _MISSING
        self.draft = copy.deepcopy(self.value)
        self.state = EditState.EDITING

    def set_draft(self, value: Any) -> None:
        self._require_editing()
        self.draft = value

    def select(self, value: Any) -> CommitResult:
        if self.commit_mode != CommitMode.IMMEDIATE:
            raise UnsupportedOperation(f"{self.prop.type.value} cells commit on blur or Enter")
        self.begin()
        self.draft = value
        return self.commit()

    def toggle_option(self, option_id: str) -> CommitResult:
        if self.prop.type != PropertyType.MULTI_SELECT:
            raise UnsupportedOperation("Only MULTI_SELECT cells toggle options")
        self.begin()
        current = self._registry.coerce(self.prop.type, self.draft)
        ids = list(current.value) if current.ok else []
        if option_id in ids:
            ids.remove(option_id)
        else:
            ids.append(option_id)
        return self.select(ids)

    def handle_key(self, key: str) -> Optional[CommitResult]:
        if self.state != EditState.EDITING:
            return None
        if key == "Escape":
            self.cancel()
            return CommitResult(CommitStatus.SKIPPED, self.value)
        if key == "Enter" and self.commit_mode == CommitMode.ON_CONFIRM:
            return self.commit()
        return None

    def blur(self) -> Optional[CommitResult]:
        if self.state != EditState.EDITING:
            return None
        if self.commit_mode == CommitMode.ON_CONFIRM:
            return self.commit()
        # Pickers that closed without a choice
        self.cancel()
        return CommitResult(CommitStatus.SKIPPED, self.value)

    def cancel(self) -> None:
        if self.state != EditState.EDITING:
            return
        self.draft = None
        self._captured = _MISSING
        self.state = EditState.VIEWING

    def commit(self) -> CommitResult:
        self._require_editing()
        reg, prop = self._registry, self.prop

        c = reg.coerce_for_property(prop, self.draft)
        if not c.ok:
            raise ValidationError(c.error or "Invalid value", errors={prop.id: [c.error or "Invalid value"]})
        if prop.required and reg.is_blank(prop.type, c.value):
            raise ValidationError(f"'{prop.name}' is required", errors={prop.id: ["This field is required"]})
        new = reg.serialize(prop.type, c.value)

        if new == self._normalized_capture():
            log.debug("No change on %s.%s; commit skipped", self.record.id, prop.id)
            self.cancel()
            return CommitResult(CommitStatus.SKIPPED, new)

        self.state = EditState.COMMITTING
        self.record.properties[prop.id] = new
        try:
            self._commit(self.record.id, prop.id, new)
        except TransportError as e:
            self._rollback()
            log.warning("Commit of %s.%s failed, rolled back: %s", self.record.id, prop.id, e.message)
            if self._on_error is not None:
                self._on_error(e)
            return CommitResult(CommitStatus.FAILED, self.value, e)
        except DocumentViewError:
            self._rollback()
            raise
        except Exception:
            # The cell must leave COMMITTING whatever the commit callable raised
            self._rollback()
            log.exception("Commit of %s.%s raised; rolled back", self.record.id, prop.id)
            raise
        self._captured = _MISSING
        self.draft = None
        self.state = EditState.VIEWING
        return CommitResult(CommitStatus.COMMITTED, new)

    # ---- Internals ----

    def _require_editing(self) -> None:
        if self.state != EditState.EDITING:
            raise UnsupportedOperation(f"Cell is {self.state.value}, not editing")

    def _normalized_capture(self) -> Any:
        captured = None if self._captured is _MISSING else self._captured
        c = self._registry.coerce(self.prop.type, captured)
        return self._registry.serialize(self.prop.type, c.value) if c.ok else captured

    def _rollback(self) -> None:
        if self._captured is _MISSING:
            self.record.properties.pop(self.prop.id, None)
        else:
            self.record.properties[self.prop.id] = self._captured
        self._captured = _MISSING
        self.draft = None
        self.state = EditState.VIEWING
