"""Account status change notifications."""

from __future__ import annotations
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Union

from ..models import AccountStatusEvent

logger = logging.getLogger(__name__)

StatusListener = Callable[[AccountStatusEvent], Union[None, Awaitable[None]]]


class AccountEvents:
    """
    Fan-out of AccountStatusEvent to subscribed listeners.

    Listeners may be plain callables or coroutine functions. A failing
    listener is logged and does not prevent delivery to the others or undo
    the state change that triggered it.
    """

    def __init__(self):
        self._listeners: List[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def emit(self, event: AccountStatusEvent) -> None:
        for listener in list(self._listeners):
            try:
                result: Any = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Account status listener failed for account {event.account_id}")

    def __len__(self) -> int:
        return len(self._listeners)


__all__ = ["AccountEvents", "StatusListener"]
