from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, TypeAlias

EventPayload: TypeAlias = Dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], Any]


class EventBus:
    """Per-table PubSub hub.

    Delivery is synchronous and follows subscription order. A handler that
    raises is logged and skipped; later handlers still receive the event.
    Coroutine handlers are scheduled on the running loop and tracked so that
    tests and teardown can wait for them.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._logger = logging.getLogger(__name__)
        # Track pending tasks for deterministic waiting
        self._pending_tasks: set[asyncio.Task] = set()

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        """Register a handler for a topic."""
        if handler not in self._subscribers[topic]:
            self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        """Remove a handler from a topic."""
        if handler in self._subscribers.get(topic, []):
            self._subscribers[topic].remove(handler)

    def publish(self, topic: str, payload: EventPayload) -> None:
        """Publish an event to all subscribers, in subscription order."""
        handlers = list(self._subscribers.get(topic, []))

        if not handlers:
            self._logger.debug(f"No subscribers for topic '{topic}'")
            return

        self._logger.debug(f"Publishing to topic '{topic}' with {len(handlers)} handler(s)")
        for handler in handlers:
            self._safe_dispatch(topic, handler, payload)

    def handler_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Wait for scheduled coroutine handlers to complete.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if all tasks completed, False if timeout reached
        """
        if not self._pending_tasks:
            return True

        try:
            await asyncio.wait_for(
                asyncio.gather(*list(self._pending_tasks), return_exceptions=True),
                timeout,
            )
        except asyncio.TimeoutError:
            self._logger.warning(f"EventBus: Timeout reached while waiting for {len(self._pending_tasks)} tasks")
            return False
        return True

    def _safe_dispatch(
        self,
        topic: str,
        handler: EventHandler,
        payload: EventPayload,
    ) -> None:
        """Dispatch wrapper to keep one handler failure from stopping the bus."""
        handler_name = getattr(handler, "__name__", str(handler))
        try:
            result = handler(payload)
        except Exception as exc:
            self._logger.exception(
                f"EventBus handler error in '{handler_name}' for topic '{topic}'",
                exc_info=exc,
            )
            return

        if inspect.isawaitable(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self._logger.warning(
                    f"Coroutine handler '{handler_name}' for topic '{topic}' skipped: no running event loop"
                )
                if inspect.iscoroutine(result):
                    result.close()
                return
            task = loop.create_task(self._await_handler(topic, handler_name, result))
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)

    async def _await_handler(self, topic: str, handler_name: str, awaitable: Any) -> None:
        try:
            await awaitable
        except Exception as exc:
            self._logger.exception(
                f"EventBus handler error in '{handler_name}' for topic '{topic}'",
                exc_info=exc,
            )

    def clear(self) -> None:
        """Remove all subscriptions and cancel scheduled handler tasks."""
        self._subscribers.clear()
        for task in list(self._pending_tasks):
            task.cancel()
        self._pending_tasks.clear()
