# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Newline framing for stream connections

# Standard library imports
import logging

from typing import List, Optional

# Constants
LINE_FEED = b"\n"
CARRIAGE_RETURN = b"\r"


class LineFramer:
    """
    Splits a byte stream into text lines.

    One instance belongs to one connection. Bytes are buffered until a line
    feed arrives; a carriage return directly before the line feed is part of
    the terminator, even when the two bytes arrive in different chunks.
    Empty lines are dropped. Lines are decoded as UTF-8 only once complete,
    so multi-byte characters split across chunks decode correctly.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> List[str]:
        """
        Add a chunk and return every line it completes.

        Args:
            chunk: Raw bytes as received from the connection

        Returns:
            The complete, non-empty lines in arrival order
        """
        if not chunk:
            return []

        # Only the new bytes can contain terminators we have not seen yet
        search_from = len(self._buffer)
        self._buffer.extend(chunk)
        if self._buffer.find(LINE_FEED, search_from) < 0:
            return []

        *complete, remainder = bytes(self._buffer).split(LINE_FEED)
        self._buffer = bytearray(remainder)

        lines = []
        for raw in complete:
            if raw.endswith(CARRIAGE_RETURN):
                raw = raw[:-1]
            if not raw:
                continue
            lines.append(self._decode(raw))
        return lines

    def flush(self) -> Optional[str]:
        """
        Return the buffered partial line, if any, and clear the buffer.

        Called when the peer ends the stream gracefully.
        """
        if not self._buffer:
            return None
        line = self._decode(bytes(self._buffer))
        self._buffer.clear()
        return line

    def reset(self) -> None:
        """Discard buffered bytes without producing a line."""
        if self._buffer:
            self.logger.debug(
                "Discarding partial line", extra={"bytes_discarded": len(self._buffer)}
            )
        self._buffer.clear()

    @property
    def buffer_size(self) -> int:
        """Get the current size of the buffer."""
        return len(self._buffer)

    @staticmethod
    def _decode(raw: bytes) -> str:
        return raw.decode("utf-8", errors="replace")
