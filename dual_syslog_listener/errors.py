# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Exception types raised and emitted by the syslog listener

# Standard library imports
from datetime import datetime, timezone
from typing import Optional


class SyslogServerError(Exception):
    """
    Base exception for the syslog listener.

    Attributes:
        message (str): Human readable description.
        error (Optional[BaseException]): The underlying cause, if any.
        date (datetime): When the error was created (UTC).
    """

    def __init__(self, message: str, error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.error = error
        self.date = datetime.now(timezone.utc)

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.message} ({self.error})"
        return self.message


class ConfigurationError(SyslogServerError):
    """Raised when the supplied configuration cannot be resolved."""


class NoTransportEnabledError(ConfigurationError):
    """Raised when neither UDP nor TCP is enabled."""

    def __init__(self, message: str = "At least one transport (UDP/TCP) must be enabled."):
        super().__init__(message)


class AlreadyRunningError(SyslogServerError):
    """Raised when start is called on a server that is not stopped."""

    def __init__(self, message: str = "Syslog server is already running!"):
        super().__init__(message)


class NotRunningError(SyslogServerError):
    """Raised when stop is called on a server that owns no listeners."""

    def __init__(self, message: str = "Syslog server is not running!"):
        super().__init__(message)


class StartError(SyslogServerError):
    """Raised when a listener fails to bind during start."""


class StopError(SyslogServerError):
    """Raised when a listener fails to close during stop."""


class ReceiveBufferError(SyslogServerError):
    """Emitted as a warning when SO_RCVBUF cannot be applied."""
