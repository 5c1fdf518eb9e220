# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Event record model delivered to subscribers

# Standard library imports
from datetime import datetime, timezone
from typing import Any, Optional

# Third-party imports
from pydantic import BaseModel, ConfigDict, Field

PROTOCOL_UDP4 = "udp4"
PROTOCOL_UDP6 = "udp6"
PROTOCOL_TCP4 = "tcp4"
PROTOCOL_TCP6 = "tcp6"


def protocol_tag(transport: str, peername: Any) -> str:
    """
    Build the protocol tag for a peer address.

    asyncio reports IPv4 peers as (host, port) and IPv6 peers as
    (host, port, flowinfo, scopeid).

    Args:
        transport: "udp" or "tcp"
        peername: The peer address as reported by the transport

    Returns:
        The tag, e.g. "udp4" or "tcp6"
    """
    if isinstance(peername, tuple) and len(peername) == 4:
        return f"{transport}6"
    return f"{transport}4"


class EventRecord(BaseModel):
    """
    One received log line or datagram.

    Attributes:
        timestamp (datetime): Time of receipt, not of origination.
        host (str): Address of the peer that sent the data.
        protocol (str): Transport and IP family tag ("udp4", "udp6", "tcp4", "tcp6").
        message (str): UTF-8 decoded payload without line terminator.
        port (Optional[int]): Peer port, when known.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    host: str
    protocol: str
    message: str
    port: Optional[int] = None
