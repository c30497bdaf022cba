"""
pieceout.events  ──  Store lifecycle hooks (create / update / delete)

Handlers are called with the active ``Transaction`` and the record snapshot,
inside the write scope that produced the event.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Type, TYPE_CHECKING
from collections import defaultdict

if TYPE_CHECKING:
    from .core.records import Record
    from .persistence.store import Transaction

Handler = Callable[["Transaction", "Record"], None]

EVENT_TYPES = ("create", "update", "delete")


class EventRegistry:
    """Per-store registry of event handlers"""

    def __init__(self):
        # Maps event type -> record class name -> handlers in registration order
        self._handlers: Dict[str, Dict[str, List[Handler]]] = {
            event_type: defaultdict(list) for event_type in EVENT_TYPES
        }

    def register(
        self,
        event_type: str,
        record_classes: tuple[Type[Record], ...],
        handler: Handler,
    ) -> None:
        """Register a handler for specific record classes"""
        if event_type not in self._handlers:
            raise ValueError(f"unknown event type {event_type!r}")
        for cls in record_classes:
            handlers = self._handlers[event_type][cls.__name__]
            if handler not in handlers:
                handlers.append(handler)

    def emit(self, event_type: str, tx: Transaction, instance: Record) -> None:
        """Emit event to all matching handlers"""
        handlers: List[Handler] = []

        # Also check parent classes
        for cls in instance.__class__.__mro__:
            for handler in self._handlers[event_type].get(cls.__name__, ()):
                if handler not in handlers:
                    handlers.append(handler)

        for handler in handlers:
            handler(tx, instance)

    # decorator interface
    def create(self, *record_classes: Type[Record]) -> Callable:
        """Decorator for handling record creation events"""

        def decorator(func: Handler) -> Handler:
            self.register("create", record_classes, func)
            return func

        return decorator

    def update(self, *record_classes: Type[Record]) -> Callable:
        """Decorator for handling record update events"""

        def decorator(func: Handler) -> Handler:
            self.register("update", record_classes, func)
            return func

        return decorator

    def delete(self, *record_classes: Type[Record]) -> Callable:
        """Decorator for handling record deletion events"""

        def decorator(func: Handler) -> Handler:
            self.register("delete", record_classes, func)
            return func

        return decorator
