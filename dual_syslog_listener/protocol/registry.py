# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Tracking of open stream connections

# Standard library imports
import asyncio
import logging
import threading

from typing import Set


class ConnectionRegistry:
    """
    Set of live connection transports owned by one TCP listener.

    Access is serialized with a lock so handlers running on different
    threads cannot corrupt the set.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger("dual_syslog_listener.protocol.registry")
        self._transports: Set[asyncio.BaseTransport] = set()
        self._lock = threading.Lock()

    def add(self, transport: asyncio.BaseTransport) -> None:
        with self._lock:
            self._transports.add(transport)

    def remove(self, transport: asyncio.BaseTransport) -> None:
        with self._lock:
            self._transports.discard(transport)

    def close_all(self) -> int:
        """
        Abort every registered connection and empty the registry.

        Pending data is discarded, no graceful shutdown is attempted.

        Returns:
            The number of connections that were aborted
        """
        with self._lock:
            transports = list(self._transports)
            self._transports.clear()

        for transport in transports:
            transport.abort()

        if transports:
            self.logger.debug(
                "Aborted open connections", extra={"connections": len(transports)}
            )
        return len(transports)

    def __len__(self) -> int:
        with self._lock:
            return len(self._transports)

    def __contains__(self, transport: object) -> bool:
        with self._lock:
            return transport in self._transports
