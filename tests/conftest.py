# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Pytest configuration file

# Standard library imports
import logging

# Third-party imports
import pytest

# Local/package imports
from dual_syslog_listener.emitter import EventEmitter


# Define test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark a test as an integration test"
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)  # Default level


class RecordingEmitter(EventEmitter):
    """EventEmitter that remembers every emitted event."""

    def __init__(self):
        super().__init__()
        self.events = []

    def emit(self, event, *args):
        self.events.append((event, args))
        return super().emit(event, *args)

    def payloads(self, event):
        return [args[0] if args else None for name, args in self.events if name == event]


@pytest.fixture
def emitter():
    """Create an emitter that records emitted events."""
    return RecordingEmitter()
