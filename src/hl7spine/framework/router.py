"""Message router: ``(message type, trigger event)`` → handler.

Manifesto:
    The routing table is built once at startup, sealed, and then only read.
    Keys are typed ``MessageKey`` values validated at registration time, so
    a misspelled ``"ORUR01"`` fails the process start instead of silently
    sending every message to the error store.

Dispatch contract:
    - no handler for the key       → ``NoRouteError``
    - handler raises ``Hl7Error``  → ``Hl7Error`` wrapping it (classifiable)
    - handler raises anything else → ``HandlerError`` wrapping it (fatal)

Tags:
    hl7spine, framework, router, dispatch, registry
"""

from __future__ import annotations

from collections.abc import Mapping

from hl7spine.core.errors import (
    ConfigError,
    ErrorContext,
    HandlerError,
    Hl7Error,
    NoRouteError,
)
from hl7spine.core.logging import get_logger
from hl7spine.core.models import HandlerResult
from hl7spine.core.protocols import MessageHandler
from hl7spine.framework.message import MessageKey, ParsedMessage

logger = get_logger(__name__)


class MessageRouter:
    """Routing table from ``MessageKey`` to handler."""

    def __init__(self) -> None:
        self._handlers: dict[MessageKey, MessageHandler] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register_handler(self, message_type: str, trigger_event: str, handler: MessageHandler) -> None:
        """Register ``handler`` for one message type / trigger event."""
        self._register(MessageKey(message_type, trigger_event), handler)

    def register_handlers(self, handlers: Mapping[str, MessageHandler]) -> None:
        """Register a ``{"ORU_R01": handler}`` mapping.

        Every key is validated before any handler is added, so a bad mapping
        leaves the table unchanged.
        """
        parsed = [(MessageKey.parse(key), handler) for key, handler in handlers.items()]
        for key, handler in parsed:
            self._register(key, handler)

    def seal(self) -> MessageRouter:
        """Freeze the table. Further registration raises ``ConfigError``."""
        self._sealed = True
        logger.info("router.sealed", routes=[k.name for k in self.routes()])
        return self

    def routes(self) -> list[MessageKey]:
        return sorted(self._handlers, key=lambda k: k.name)

    def handler_for(self, key: MessageKey) -> MessageHandler | None:
        return self._handlers.get(key)

    def can_route(self, message: ParsedMessage) -> bool:
        return message.key in self._handlers

    def dispatch(self, message: ParsedMessage) -> HandlerResult:
        """Invoke the handler registered for ``message``."""
        handler = self._handlers.get(message.key)
        if handler is None:
            raise NoRouteError(message.name)

        try:
            return handler.process_message(message)
        except Hl7Error as e:
            raise Hl7Error(
                f"Error while processing HL7 message: {message.name}",
                context=ErrorContext(message_name=message.name),
                cause=e,
            ) from e
        except Exception as e:
            raise HandlerError(
                f"Handler {type(handler).__name__} failed for HL7 message: {message.name}",
                context=ErrorContext(message_name=message.name),
                cause=e,
            ) from e

    def _register(self, key: MessageKey, handler: MessageHandler) -> None:
        if self._sealed:
            raise ConfigError(f"Cannot register a handler for {key.name}: the router is sealed")
        if key in self._handlers:
            raise ConfigError(f"A handler is already registered for {key.name}")
        self._handlers[key] = handler
        logger.debug("router.handler_registered", route=key.name, handler=type(handler).__name__)


__all__ = ["MessageRouter"]
