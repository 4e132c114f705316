# File: /docview/engine/events.py | Version: 1.0 | Title: Schema-wide invalidation bus
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, List

log = logging.getLogger(__name__)

Listener = Callable[[str, str], None]


class InvalidationBus:
    """
    Coarse pub/sub: any mutation on a schema notifies every projection of
    that schema. Subscribers receive ``(schema_id, reason)``.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, schema_id: str, listener: Listener) -> Callable[[], None]:
        self._listeners[schema_id].append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners[schema_id].remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, schema_id: str, reason: str = "mutation") -> int:
        listeners = list(self._listeners.get(schema_id, ()))
        log.debug("Invalidating %d projection(s) of %s (%s)", len(listeners), schema_id, reason)
        for listener in listeners:
            try:
                listener(schema_id, reason)
            except Exception:
                log.exception("Invalidation listener failed for %s", schema_id)
        return len(listeners)

    def subscriber_count(self, schema_id: str) -> int:
        return len(self._listeners.get(schema_id, ()))
