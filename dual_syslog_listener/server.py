# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Server implementation for the syslog server

# Standard library imports
import asyncio
import logging

from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Union

# Local/package imports
from dual_syslog_listener.config import Config, resolve_config
from dual_syslog_listener.emitter import EventEmitter
from dual_syslog_listener.errors import (
    AlreadyRunningError,
    NoTransportEnabledError,
    NotRunningError,
    StartError,
    StopError,
)
from dual_syslog_listener.protocol.tcp import TCPListener
from dual_syslog_listener.protocol.udp import UDPListener

Callback = Callable[[Optional[Exception], "SyslogServer"], Any]
Listener = Union[UDPListener, TCPListener]


class ServerState(Enum):
    """Lifecycle state of a SyslogServer."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class SyslogServer(EventEmitter):
    """
    AsyncIO server that listens for syslog lines over UDP and TCP at once.

    Both listeners are started and stopped together. Subscribers register
    with ``on()`` for the "start", "stop", "message", "error" and "warn"
    events.

    start() and stop() must not overlap on the same instance; callers are
    responsible for serializing them.
    """

    def __init__(self) -> None:
        """
        Initialize the syslog server.
        """
        super().__init__()
        self.logger = logging.getLogger("dual_syslog_listener.server")
        self.state = ServerState.STOPPED
        self.config: Optional[Config] = None
        self.udp_listener: Optional[UDPListener] = None
        self.tcp_listener: Optional[TCPListener] = None

    def is_running(self) -> bool:
        """True if any listener is currently bound."""
        return any(listener.is_listening for listener in self._listeners())

    def _listeners(self) -> List[Listener]:
        return [
            listener
            for listener in (self.udp_listener, self.tcp_listener)
            if listener is not None
        ]

    async def start(
        self,
        config: Union[Config, Mapping[str, Any], None] = None,
        callback: Optional[Callback] = None,
    ) -> "SyslogServer":
        """
        Start the enabled listeners.

        Args:
            config: A Config, a mapping of overrides merged over the defaults, or None
            callback: Optional ``callback(error, server)`` called on completion

        Returns:
            The server itself

        Raises:
            AlreadyRunningError: If the server is not stopped
            ConfigurationError: If the configuration is invalid
            NoTransportEnabledError: If neither UDP nor TCP is enabled
            StartError: If a listener fails to bind
        """
        try:
            await self._start(config)
        except Exception as e:
            if callback:
                callback(e, self)
            raise
        if callback:
            callback(None, self)
        return self

    async def _start(self, options: Union[Config, Mapping[str, Any], None]) -> None:
        if self.state is not ServerState.STOPPED or self.is_running():
            raise AlreadyRunningError()

        config = resolve_config(options)
        if not config.any_transport_enabled:
            raise NoTransportEnabledError()

        self.config = config
        self.state = ServerState.STARTING
        loop = asyncio.get_event_loop()

        self.logger.info(
            "Starting syslog server",
            extra={
                "udp_enabled": config.udp.enabled,
                "tcp_enabled": config.tcp.enabled,
            },
        )

        try:
            self._create_listeners(config)
            results = await asyncio.gather(
                *(listener.start(loop) for listener in self._listeners()),
                return_exceptions=True,
            )
        except Exception as e:
            results = [e]
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            cause = failures[0]
            self.logger.error(f"Failed to start syslog server: {cause}")
            try:
                await self._shutdown()
            except StopError as e:
                self.logger.warning(
                    "Errors while rolling back partial start", extra={"error": e}
                )
            raise StartError("Syslog server failed to start!", cause) from cause

        self.state = ServerState.RUNNING
        self.emit("start", self)

    def _create_listeners(self, config: Config) -> None:
        if config.udp.enabled:
            self.udp_listener = UDPListener(
                self,
                address=config.address,
                port=config.port,
                exclusive=config.exclusive,
                recv_buffer_size=config.udp_recv_buffer_size,
            )
        if config.tcp.enabled:
            self.tcp_listener = TCPListener(
                self,
                address=config.tcp.address,
                port=config.tcp.port,
                exclusive=config.exclusive,
                allow_half_open=config.tcp.allow_half_open,
                keep_alive=config.tcp.keep_alive,
                keep_alive_delay=config.tcp.keep_alive_delay,
                recv_buffer_size=config.tcp_recv_buffer_size,
            )

    async def stop(self, callback: Optional[Callback] = None) -> "SyslogServer":
        """
        Stop all listeners and drop every open TCP connection.

        Args:
            callback: Optional ``callback(error, server)`` called on completion

        Returns:
            The server itself

        Raises:
            NotRunningError: If the server owns no listeners
            StopError: If a listener failed to close; the server is stopped anyway
        """
        try:
            if (
                self.state not in (ServerState.RUNNING, ServerState.STARTING)
                or not self.is_running()
            ):
                raise NotRunningError()
            self.logger.info("Stopping syslog server")
            await self._shutdown()
        except Exception as e:
            if callback:
                callback(e, self)
            raise

        self.emit("stop")
        if callback:
            callback(None, self)
        return self

    async def _shutdown(self) -> None:
        """
        Close every owned listener concurrently and release them.

        The server always ends up STOPPED. Close failures are collected and
        raised as a single StopError.
        """
        self.state = ServerState.STOPPING
        listeners = self._listeners()
        try:
            results = await asyncio.gather(
                *(listener.stop() for listener in listeners),
                return_exceptions=True,
            )
        finally:
            self.udp_listener = None
            self.tcp_listener = None
            self.state = ServerState.STOPPED

        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            for failure in failures:
                self.logger.error(f"Failed to close listener: {failure}")
                self.emit("error", failure)
            raise StopError("Failed to stop syslog server!", failures[0]) from failures[0]

    async def run_forever(
        self, config: Union[Config, Mapping[str, Any], None] = None
    ) -> None:
        """
        Run the server until cancelled.
        """
        await self.start(config)
        try:
            while True:
                await asyncio.sleep(3600)  # Just to keep the task alive
        except asyncio.CancelledError:
            self.logger.info("Server task cancelled")
        finally:
            if self.is_running():
                await self.stop()

    def __del__(self) -> None:
        """
        Warn when the server is garbage collected with sockets still open.
        """
        if getattr(self, "udp_listener", None) or getattr(self, "tcp_listener", None):
            self.logger.warning("Server resources not properly cleaned up.")
