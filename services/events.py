"""Typed in-process notifications between the wheel and its admin bookkeeping."""

from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, DefaultDict, Dict, List, Optional, Type, TypeVar, Union

from core import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WinnerRemovedEvent:
    """A winner left the active entry set."""

    wheel_id: str
    display_name: str
    ticket_number: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wheelId": self.wheel_id,
            "displayName": self.display_name,
            "ticketNumber": self.ticket_number,
        }


E = TypeVar("E")
Handler = Callable[[Any], Union[None, Awaitable[None]]]


class EventBus:
    """Register callbacks per event type and deliver events to them in order.

    Handlers may be plain functions or coroutine functions. A failing handler
    is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], Any]) -> Callable[[], None]:
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    async def publish(self, event: Any) -> int:
        """Deliver ``event``; returns how many handlers ran without error."""
        delivered = 0
        for handler in list(self._handlers[type(event)]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Handler for {type(event).__name__} failed: {e}", exc_info=True)
        return delivered
