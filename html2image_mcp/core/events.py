"""
Progress Events
===============

In-process publish/subscribe channel for tool call lifecycle events.
Every subscriber receives every event published while it is subscribed, in
publish order. Nothing is buffered for late subscribers.
"""

from typing import Any, Callable, Dict, Iterator
from contextlib import contextmanager
import itertools

from html2image_mcp.config.logging import get_logger
from html2image_mcp.models.schemas import ProgressEvent

logger = get_logger(__name__)

ProgressHandler = Callable[[ProgressEvent], None]


class ProgressNotifier:
    """Fan-out of progress events to subscribed handlers."""

    def __init__(self) -> None:
        self._handlers: Dict[int, ProgressHandler] = {}
        self._tokens = itertools.count(1)
        self.logger: Any = logger.bind(component="progress_notifier")

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: ProgressHandler) -> int:
        """Register a handler and return its unsubscribe token."""
        token = next(self._tokens)
        self._handlers[token] = handler
        self.logger.debug("Subscriber added", token=token, subscribers=len(self._handlers))
        return token

    def unsubscribe(self, token: int) -> None:
        """Remove a handler; unknown tokens are ignored."""
        if self._handlers.pop(token, None) is not None:
            self.logger.debug("Subscriber removed", token=token, subscribers=len(self._handlers))

    @contextmanager
    def subscription(self, handler: ProgressHandler) -> Iterator[int]:
        """Subscribe for the duration of a `with` block."""
        token = self.subscribe(handler)
        try:
            yield token
        finally:
            self.unsubscribe(token)

    def publish(self, event: ProgressEvent) -> None:
        """
        Deliver an event to every current subscriber.

        Handlers run synchronously and must not block. A failing handler is
        logged and skipped so the publisher and other subscribers are unaffected.
        """
        # Snapshot so handlers may unsubscribe during delivery
        for token, handler in list(self._handlers.items()):
            try:
                handler(event)
            except Exception as e:
                self.logger.warning(
                    "Progress subscriber failed",
                    token=token,
                    step=event.step.value,
                    error=str(e),
                )
