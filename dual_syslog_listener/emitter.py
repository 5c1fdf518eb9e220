# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Subscriber registration and notification for server events

# Standard library imports
import logging

from typing import Any, Callable, Dict, List

Handler = Callable[..., Any]


class EventEmitter:
    """
    Minimal publish/subscribe channel.

    Handlers are called synchronously, in registration order, from the thread
    that emits. An exception raised by one handler is logged and does not
    prevent delivery to the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._emitter_logger = logging.getLogger("dual_syslog_listener.emitter")

    def on(self, event: str, handler: Handler) -> Handler:
        """Subscribe handler to event and return it."""
        self._handlers.setdefault(event, []).append(handler)
        return handler

    def once(self, event: str, handler: Handler) -> Handler:
        """Subscribe handler for a single delivery of event."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return handler(*args)

        wrapper.__wrapped__ = handler  # type: ignore[attr-defined]
        self.on(event, wrapper)
        return handler

    def off(self, event: str, handler: Handler) -> None:
        """Unsubscribe handler from event. Unknown handlers are ignored."""
        handlers = self._handlers.get(event)
        if not handlers:
            return
        for registered in handlers:
            if registered == handler or getattr(registered, "__wrapped__", None) == handler:
                handlers.remove(registered)
                break
        if not handlers:
            del self._handlers[event]

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Deliver event to all current subscribers.

        Args:
            event: Event name ("start", "stop", "message", "error", "warn")
            *args: Positional arguments passed to each handler

        Returns:
            True if at least one handler was called, False otherwise
        """
        handlers = list(self._handlers.get(event, ()))
        if not handlers:
            if event == "error":
                # Nobody is listening for errors, make sure they still surface
                self._emitter_logger.error(
                    "Unhandled error event", extra={"error": args[0] if args else None}
                )
            return False

        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                self._emitter_logger.exception(
                    f"Subscriber for '{event}' raised an exception"
                )
        return True
