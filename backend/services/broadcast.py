"""
Tool Output Broadcaster - fan-out of tool results to live observers.

Observers are async callables taking one event dict:

    {"sessionId", "toolName", "toolCallId", "args", "output", "timestamp"}

Delivery is best effort. Observers are called one after another; one that
raises is logged and skipped, and never affects the other observers or the
turn that produced the output.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Observer = Callable[[Dict[str, Any]], Awaitable[None]]


class ToolOutputBroadcaster:
    """Publishes tool output events to every subscribed observer."""

    def __init__(self):
        self._observers: List[Observer] = []

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)
            logger.info(f"Tool output observer subscribed ({len(self._observers)} total)")

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
            logger.info(f"Tool output observer unsubscribed ({len(self._observers)} total)")

    async def broadcast(self, event: Dict[str, Any]) -> int:
        """Deliver an event to all observers. Returns how many accepted it."""
        delivered = 0
        # Copy: observers may unsubscribe themselves while being called
        for observer in list(self._observers):
            try:
                await observer(event)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Tool output observer failed for {event.get('toolName')} "
                    f"({event.get('toolCallId')}): {e}"
                )
        logger.debug(f"Broadcast {event.get('toolName')} output to {delivered}/{len(self._observers)} observers")
        return delivered


# Singleton instance
_broadcaster: Optional[ToolOutputBroadcaster] = None


def get_broadcaster() -> ToolOutputBroadcaster:
    """Get the process-wide broadcaster."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = ToolOutputBroadcaster()
    return _broadcaster
