# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# UDP Protocol implementation for syslog server


# Standard library imports
import asyncio
import logging
import socket

from typing import Any, Optional, Tuple

# Local/package imports
from dual_syslog_listener.emitter import EventEmitter
from dual_syslog_listener.models import protocol_tag
from dual_syslog_listener.protocol.record_dispatch_mixin import RecordDispatchMixin


def reuse_port_option(exclusive: bool) -> Optional[bool]:
    """
    Map the exclusive-bind flag onto asyncio's reuse_port argument.

    A non-exclusive bind shares the port through SO_REUSEPORT where the
    platform supports it. None leaves the socket default in place.
    """
    if exclusive or not hasattr(socket, "SO_REUSEPORT"):
        return None
    return True


class SyslogUDPProtocol(RecordDispatchMixin, asyncio.DatagramProtocol):
    """
    UDP Protocol implementation for handling syslog messages.

    Every datagram becomes exactly one event record; datagrams are never
    split or joined.
    """

    def __init__(self, emitter: EventEmitter, buffer_size: Optional[int] = None):
        """
        Initialize the UDP protocol.

        Args:
            emitter: Receives "message", "error" and "warn" events
            buffer_size: Requested SO_RCVBUF size, None to keep the OS default
        """
        self.logger = logging.getLogger("dual_syslog_listener.protocol.udp")
        self.emitter = emitter
        self.buffer_size = buffer_size
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.closed = asyncio.Event()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        """
        Called when the socket is bound.

        Args:
            transport: The transport for the socket
        """
        self.transport = transport  # type: ignore[assignment]
        sock = transport.get_extra_info("socket")
        if sock is None:
            self.logger.info("UDP server started", extra={"net.transport": "ip_udp"})
            return

        if self.buffer_size:
            self.apply_recv_buffer_size(sock, self.buffer_size, "UDP")

        sockname = sock.getsockname()
        host, port = sockname[0], sockname[1]
        self.logger.info(
            "UDP server started on address",
            extra={
                "net.transport": "ip_udp",
                "net.host.ip": host,
                "net.host.port": port,
            },
        )

    def datagram_received(self, data: bytes, addr: Tuple[Any, ...]) -> None:
        """
        Called when a UDP datagram is received.

        Args:
            data: The datagram data
            addr: The address of the sender, (host, port) or (host, port, flowinfo, scopeid)
        """
        host, port = addr[0], addr[1]
        self.logger.debug("Received UDP datagram", extra={"host": host, "port": port})

        self.dispatch_records(
            [data.decode("utf-8", errors="replace")],
            host=host,
            port=port,
            protocol=protocol_tag("udp", addr),
            span_name="syslog.udp.message",
            net_transport="ip_udp",
        )

    def error_received(self, exc: Exception) -> None:
        """
        Called when a previous send or receive operation raises an OSError.

        The socket stays bound; the error is only reported.

        Args:
            exc: The exception that was raised
        """
        self.logger.error("Error in UDP server", extra={"error": exc})
        self.emitter.emit("error", exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """
        Called when the socket is closed.

        Args:
            exc: The exception that caused the close, or None
        """
        if exc:
            self.logger.debug(
                "UDP server connection closed with error",
                extra={"net.transport": "ip_udp", "error": exc},
            )
            self.emitter.emit("error", exc)
        else:
            self.logger.debug(
                "UDP server connection closed",
                extra={"net.transport": "ip_udp"},
            )
        self.closed.set()


class UDPListener:
    """
    Owns one bound datagram socket for the lifetime of a server run.
    """

    def __init__(
        self,
        emitter: EventEmitter,
        address: str,
        port: int,
        exclusive: bool = True,
        recv_buffer_size: Optional[int] = None,
    ):
        self.logger = logging.getLogger("dual_syslog_listener.protocol.udp")
        self.emitter = emitter
        self.address = address
        self.port = port
        self.exclusive = exclusive
        self.recv_buffer_size = recv_buffer_size
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.protocol: Optional[SyslogUDPProtocol] = None

    @property
    def is_listening(self) -> bool:
        return self.transport is not None

    @property
    def sockname(self) -> Optional[Tuple[Any, ...]]:
        """The bound address, or None when not listening."""
        if self.transport is None:
            return None
        return self.transport.get_extra_info("sockname")

    async def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Bind the datagram socket.

        Raises:
            OSError: If the socket cannot be bound
        """
        loop = loop or asyncio.get_event_loop()

        def protocol_factory() -> SyslogUDPProtocol:
            return SyslogUDPProtocol(self.emitter, buffer_size=self.recv_buffer_size)

        try:
            transport, protocol = await loop.create_datagram_endpoint(
                protocol_factory,
                local_addr=(self.address, self.port),
                reuse_port=reuse_port_option(self.exclusive),
            )
        except Exception as e:
            self.logger.error(f"Failed to start UDP server: {e}")
            raise

        self.transport = transport
        self.protocol = protocol
        self.logger.info(f"UDP server listening on {self.address}:{self.port}")

    async def stop(self) -> None:
        """Close the socket and wait until it is fully closed."""
        transport, protocol = self.transport, self.protocol
        self.transport = None
        self.protocol = None
        if transport is None:
            return

        self.logger.debug("Closing UDP transport")
        transport.close()
        if protocol is not None:
            await protocol.closed.wait()
