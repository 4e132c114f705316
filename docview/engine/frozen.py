# File: /docview/engine/frozen.py | Version: 1.0 | Title: Frozen property guard
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from pydantic import Field

from docview.core.errors import PermissionDeniedError
from docview.engine.types import EngineModel, GuardedOperation, Property, Schema

log = logging.getLogger(__name__)

DATABASE_FROZEN_REASON = "Database is frozen and cannot be edited"

_FLAGS = {
    GuardedOperation.edit: "allow_edit",
    GuardedOperation.hide: "allow_hide",
    GuardedOperation.delete: "allow_delete",
}
_VERBS = {
    GuardedOperation.edit: "edited",
    GuardedOperation.hide: "hidden",
    GuardedOperation.delete: "deleted",
}


class FrozenPropertyConfig(EngineModel):
    property_id: str
    reason: Optional[str] = None
    allow_edit: Optional[bool] = None
    allow_hide: Optional[bool] = None
    allow_delete: Optional[bool] = None


class FrozenConfig(EngineModel):
    module_type: Optional[str] = None
    description: Optional[str] = None
    frozen_properties: List[FrozenPropertyConfig] = Field(default_factory=list)


class FrozenPropertyGuard:
    """
    Authorizes edit/hide/delete against a property's protection flags.

    A frozen property is flagged; each ``allow*`` flag left unset means the
    operation is still permitted. A frozen schema denies everything.
    The guard reads only; it never changes the property or schema.
    """

    def check(
        self,
        operation: GuardedOperation | str,
        prop: Property,
        schema: Optional[Schema] = None,
    ) -> Optional[PermissionDeniedError]:
        op = GuardedOperation(operation)
        if schema is not None and schema.frozen:
            return PermissionDeniedError(
                schema.frozen_reason or DATABASE_FROZEN_REASON,
                operation=op.value,
                property_id=prop.id,
                reason=schema.frozen_reason or DATABASE_FROZEN_REASON,
            )
        if not prop.frozen or getattr(prop, _FLAGS[op]) is not False:
            return None
        message = prop.frozen_reason or f"'{prop.name}' is frozen and cannot be {_VERBS[op]}"
        return PermissionDeniedError(
            message,
            operation=op.value,
            property_id=prop.id,
            reason=prop.frozen_reason,
        )

    def authorize(
        self,
        operation: GuardedOperation | str,
        prop: Property,
        schema: Optional[Schema] = None,
    ) -> None:
        err = self.check(operation, prop, schema)
        if err is not None:
            log.info("Denied %s on property %s: %s", err.operation, prop.id, err.message)
            raise err

    def is_permitted(
        self,
        operation: GuardedOperation | str,
        prop: Property,
        schema: Optional[Schema] = None,
    ) -> bool:
        return self.check(operation, prop, schema) is None

    def permissions(self, prop: Property, schema: Optional[Schema] = None) -> Dict[str, object]:
        """Per-operation flags plus the reason to surface, for menus and headers."""
        out: Dict[str, object] = {
            op.value: self.is_permitted(op, prop, schema) for op in GuardedOperation
        }
        if schema is not None and schema.frozen:
            out["reason"] = schema.frozen_reason or DATABASE_FROZEN_REASON
        else:
            out["reason"] = prop.frozen_reason if prop.frozen else None
        return out

    def authorize_database(self, schema: Schema) -> None:
        if schema.frozen:
            reason = schema.frozen_reason or DATABASE_FROZEN_REASON
            log.info("Denied write on frozen schema %s", schema.id)
            raise PermissionDeniedError(reason, operation=GuardedOperation.edit.value, reason=reason)


guard = FrozenPropertyGuard()


def apply_frozen_config(schema: Schema, frozen_config: Optional[FrozenConfig | dict]) -> Schema:
    """Return a copy of ``schema`` with the module's frozen flags merged in."""
    if not frozen_config:
        return schema
    if isinstance(frozen_config, dict):
        frozen_config = FrozenConfig.model_validate(frozen_config)
    by_id = {fp.property_id: fp for fp in frozen_config.frozen_properties}
    props = []
    for p in schema.properties:
        fp = by_id.get(p.id)
        if fp is None:
            props.append(p)
            continue
        props.append(
            p.model_copy(
                update={
                    "frozen": True,
                    "allow_edit": fp.allow_edit if fp.allow_edit is not None else p.allow_edit,
                    "allow_hide": fp.allow_hide if fp.allow_hide is not None else p.allow_hide,
                    "allow_delete": fp.allow_delete if fp.allow_delete is not None else p.allow_delete,
                    "frozen_reason": fp.reason or p.frozen_reason,
                }
            )
        )
    return schema.model_copy(update={"properties": props})
