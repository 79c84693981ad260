"""Change notifications for read views that cache ledger data."""

from __future__ import annotations

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class ChangeNotifier:
    """Calls subscribed listeners with the kind of record that changed.

    Listeners are invoked after a mutation has been saved, in subscription
    order. A failing listener is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, kind: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(kind)
            except Exception:
                logger.exception("Change listener %r failed for %s", listener, kind)
