# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# dual_syslog_listener package
#
# A syslog listener that receives newline framed log lines over UDP and TCP at
# the same time and delivers each line to subscribers as an EventRecord.

# Local/package imports
from dual_syslog_listener.config import Config, TCPConfig, UDPConfig
from dual_syslog_listener.errors import (
    AlreadyRunningError,
    ConfigurationError,
    NoTransportEnabledError,
    NotRunningError,
    StartError,
    StopError,
    SyslogServerError,
)
from dual_syslog_listener.models import EventRecord
from dual_syslog_listener.server import ServerState, SyslogServer

__all__ = [
    "AlreadyRunningError",
    "Config",
    "ConfigurationError",
    "EventRecord",
    "NoTransportEnabledError",
    "NotRunningError",
    "ServerState",
    "StartError",
    "StopError",
    "SyslogServer",
    "SyslogServerError",
    "TCPConfig",
    "UDPConfig",
]
