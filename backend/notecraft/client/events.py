"""
Client-wide notification channel.

The callback reconciler announces its outcome here so any UI part can react:
    "oauth-success"  detail {"user": Principal}
    "oauth-error"    detail {"error": reason}
"""

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

OAUTH_SUCCESS = "oauth-success"
OAUTH_ERROR = "oauth-error"

Handler = Callable[[Dict[str, Any]], None]


class NotificationBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event``; returns an unsubscribe callable."""
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    def emit(self, event: str, detail: Dict[str, Any]) -> int:
        """
        Deliver ``detail`` to every handler of ``event``.

        A failing handler is logged and does not stop delivery to the rest.
        Returns the number of handlers called.
        """
        handlers = list(self._handlers.get(event, ()))
        logger.debug("Emitting %s to %d handler(s)", event, len(handlers))
        for handler in handlers:
            try:
                handler(detail)
            except Exception:
                logger.exception("Handler for %s failed", event)
        return len(handlers)
