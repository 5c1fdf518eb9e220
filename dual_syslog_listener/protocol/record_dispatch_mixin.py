# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Mixin for shared event record dispatch logic
#
# This mixin turns received lines into EventRecord instances, wraps each one in
# a tracing span and hands it to the subscribers of the owning emitter.

# Standard library imports
import logging
import socket

from typing import Iterable, Optional

# Local/package imports
from dual_syslog_listener.emitter import EventEmitter
from dual_syslog_listener.errors import ReceiveBufferError
from dual_syslog_listener.models import EventRecord
from dual_syslog_listener.telemetry import get_tracer


class RecordDispatchMixin:
    """
    Mixin class providing shared logic for emitting event records.

    Classes using this mixin provide ``emitter`` (an EventEmitter) and
    ``logger`` attributes.
    """

    emitter: EventEmitter
    logger: logging.Logger

    def dispatch_records(
        self,
        messages: Iterable[str],
        host: str,
        port: Optional[int],
        protocol: str,
        span_name: str,
        net_transport: str,
    ) -> int:
        """
        Emit one "message" event per line.

        Args:
            messages: Decoded lines, already stripped of terminators
            host: Peer address
            port: Peer port
            protocol: Protocol tag for the records ("udp4", "tcp6", ...)
            span_name: Name for the tracing span
            net_transport: Value of the net.transport span attribute

        Returns:
            The number of records emitted
        """
        tracer = get_tracer()
        count = 0
        for message in messages:
            record = EventRecord(host=host, port=port, protocol=protocol, message=message)
            with tracer.start_as_current_span(
                span_name,
                attributes={
                    "net.transport": net_transport,
                    "net.peer.ip": host,
                    "net.peer.port": port if port is not None else 0,
                    "message.length": len(message),
                },
            ):
                self.logger.debug(
                    "Syslog message received",
                    extra={"host": host, "port": port, "protocol": protocol},
                )
                self.emitter.emit("message", record)
            count += 1
        return count

    def apply_recv_buffer_size(self, sock: object, size: int, transport_name: str) -> None:
        """
        Try to raise SO_RCVBUF on sock. Failure is reported as a "warn" event.
        """
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, size)  # type: ignore[attr-defined]
            actual_size = sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)  # type: ignore[attr-defined]
            self.logger.debug(
                f"{transport_name} receive buffer size configured",
                extra={"requested_size": size, "actual_size": actual_size},
            )
        except (OSError, AttributeError) as e:
            self.logger.warning(
                f"Failed to set {transport_name} receive buffer size",
                extra={"error": str(e), "requested_size": size},
            )
            self.emitter.emit(
                "warn",
                ReceiveBufferError(
                    f"Failed to set {transport_name} receive buffer size.", e
                ),
            )
