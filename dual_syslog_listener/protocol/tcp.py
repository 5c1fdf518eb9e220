# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# TCP Protocol implementation for syslog server with newline framing
# Standard library imports
import asyncio
import logging
import socket

from typing import Any, Dict, Optional, Tuple

# Local/package imports
from dual_syslog_listener.emitter import EventEmitter
from dual_syslog_listener.models import protocol_tag
from dual_syslog_listener.protocol.framing import LineFramer
from dual_syslog_listener.protocol.record_dispatch_mixin import RecordDispatchMixin
from dual_syslog_listener.protocol.registry import ConnectionRegistry
from dual_syslog_listener.protocol.udp import reuse_port_option

DEFAULT_READ_BUFFER_SIZE = 65536


class SyslogTCPProtocol(RecordDispatchMixin, asyncio.BufferedProtocol):
    """
    Handles one accepted TCP connection.

    Received bytes go through a LineFramer owned by this connection; each
    complete line is emitted as one event record, in arrival order.
    """

    def __init__(
        self,
        emitter: EventEmitter,
        registry: ConnectionRegistry,
        keep_alive: bool = True,
        keep_alive_delay: float = 60.0,
        recv_buffer_size: Optional[int] = None,
    ):
        self.logger = logging.getLogger("dual_syslog_listener.protocol.tcp")
        self.emitter = emitter
        self.registry = registry
        self.keep_alive = keep_alive
        self.keep_alive_delay = keep_alive_delay
        self.recv_buffer_size = recv_buffer_size
        self.framer = LineFramer(logger=self.logger)
        self.transport: Optional[asyncio.Transport] = None
        self.peername: Optional[Tuple[Any, ...]] = None
        self._read_buffer = bytearray(DEFAULT_READ_BUFFER_SIZE)
        self._ended = False

    def get_peer_info(self) -> Dict[str, Any]:
        if self.peername:
            return {"host": self.peername[0], "port": self.peername[1]}
        return {"host": "unknown", "port": None}

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        """
        Register the connection and apply socket options.
        """
        self.transport = transport  # type: ignore[assignment]
        self.peername = transport.get_extra_info("peername")
        self.registry.add(transport)

        peer_info = self.get_peer_info()
        self.logger.info(
            "TCP connection established",
            extra={
                "net.transport": "ip_tcp",
                "net.peer.ip": peer_info["host"],
                "net.peer.port": peer_info["port"],
            },
        )

        sock = transport.get_extra_info("socket")
        if sock is None:
            return

        if self.keep_alive:
            self._configure_keep_alive(sock)

        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except (OSError, AttributeError) as e:
            self.logger.debug("Failed to disable Nagle algorithm", extra={"error": str(e)})

        if self.recv_buffer_size:
            self.apply_recv_buffer_size(sock, self.recv_buffer_size, "TCP")

    def _configure_keep_alive(self, sock: Any) -> None:
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            if hasattr(socket, "TCP_KEEPIDLE"):
                sock.setsockopt(
                    socket.IPPROTO_TCP,
                    socket.TCP_KEEPIDLE,
                    max(1, int(self.keep_alive_delay)),
                )
        except (OSError, AttributeError) as e:
            self.logger.warning(
                "Failed to enable TCP keep-alive", extra={"error": str(e)}
            )

    def get_buffer(self, sizehint: int) -> bytearray:
        """
        Get a buffer for received data.

        Called by asyncio when some data is received.
        """
        if sizehint > len(self._read_buffer):
            self._read_buffer = bytearray(sizehint)
        return self._read_buffer

    def buffer_updated(self, nbytes: int) -> None:
        """
        Feed the received bytes to the framer and emit complete lines.

        Called by asyncio when the buffer is updated with nbytes.
        """
        if not nbytes or self._ended:
            return

        peer_info = self.get_peer_info()
        self.logger.debug(
            "Received data", extra={"peer": peer_info, "bytes_received": nbytes}
        )

        try:
            lines = self.framer.feed(bytes(self._read_buffer[:nbytes]))
            self._dispatch(lines)
        except Exception as exc:
            self.logger.error(
                f"Error processing data from {peer_info}: {exc}",
                exc_info=True,
                extra={"peer": peer_info},
            )
            self.emitter.emit("error", exc)
            self._abort()

    def eof_received(self) -> bool:
        """
        Flush the trailing partial line, then drop the connection.

        The peer is not expected to send anything after EOF, so the
        connection is aborted rather than half closed.
        """
        peer_info = self.get_peer_info()
        self.logger.debug("EOF received", extra={"peer": peer_info})

        self._ended = True
        try:
            trailing = self.framer.flush()
            if trailing is not None:
                self._dispatch([trailing])
        except Exception as exc:
            self.logger.error(
                f"Error processing final data from {peer_info}: {exc}",
                exc_info=True,
                extra={"peer": peer_info},
            )
            self.emitter.emit("error", exc)
        finally:
            self._abort()

        return False  # Don't keep the transport open

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """
        Handle connection lost event.

        A partial line still buffered here was cut off by a forced close
        and is discarded.
        """
        peer_info = self.get_peer_info()
        if self.transport is not None:
            self.registry.remove(self.transport)

        if exc is not None:
            self.logger.error(
                f"Connection lost with error from {peer_info}: {exc}",
                extra={"peer": peer_info},
            )
            self.emitter.emit("error", exc)
        else:
            self.logger.info(
                f"Connection closed from {peer_info}", extra={"peer": peer_info}
            )

        self._ended = True
        self.framer.reset()

    def _dispatch(self, lines: Any) -> None:
        peer_info = self.get_peer_info()
        self.dispatch_records(
            lines,
            host=peer_info["host"],
            port=peer_info["port"],
            protocol=protocol_tag("tcp", self.peername),
            span_name="syslog.tcp.message",
            net_transport="ip_tcp",
        )

    def _abort(self) -> None:
        self._ended = True
        if self.transport is not None:
            self.registry.remove(self.transport)
            self.transport.abort()


class TCPListener:
    """
    Owns one listening TCP socket and the registry of its connections.
    """

    def __init__(
        self,
        emitter: EventEmitter,
        address: str,
        port: int,
        exclusive: bool = True,
        allow_half_open: bool = False,
        keep_alive: bool = True,
        keep_alive_delay: float = 60.0,
        recv_buffer_size: Optional[int] = None,
    ):
        self.logger = logging.getLogger("dual_syslog_listener.protocol.tcp")
        self.emitter = emitter
        self.address = address
        self.port = port
        self.exclusive = exclusive
        self.allow_half_open = allow_half_open
        self.keep_alive = keep_alive
        self.keep_alive_delay = keep_alive_delay
        self.recv_buffer_size = recv_buffer_size
        self.registry = ConnectionRegistry()
        self.server: Optional[asyncio.AbstractServer] = None

    @property
    def is_listening(self) -> bool:
        return self.server is not None

    @property
    def sockname(self) -> Optional[Tuple[Any, ...]]:
        """The address of the first listening socket, or None when not listening."""
        if self.server is None or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()

    async def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Start listening for connections.

        Raises:
            OSError: If the socket cannot be bound or put into listening state
        """
        loop = loop or asyncio.get_event_loop()

        def protocol_factory() -> SyslogTCPProtocol:
            return SyslogTCPProtocol(
                self.emitter,
                self.registry,
                keep_alive=self.keep_alive,
                keep_alive_delay=self.keep_alive_delay,
                recv_buffer_size=self.recv_buffer_size,
            )

        try:
            self.server = await loop.create_server(
                protocol_factory,
                self.address,
                self.port,
                reuse_port=reuse_port_option(self.exclusive),
            )
        except Exception as e:
            self.logger.error(f"Failed to start TCP server: {e}")
            raise

        self.logger.info(f"TCP server listening on {self.address}:{self.port}")
        if self.allow_half_open:
            self.logger.info(
                "allow_half_open is set, connections are still closed after EOF"
            )

    async def stop(self) -> None:
        """Abort every open connection, then close the listening socket."""
        server = self.server
        self.server = None
        if server is None:
            return

        aborted = self.registry.close_all()
        self.logger.debug("Closing TCP server", extra={"connections_aborted": aborted})
        # close() is synchronous, wait_closed() is the completion notification
        server.close()
        await server.wait_closed()
