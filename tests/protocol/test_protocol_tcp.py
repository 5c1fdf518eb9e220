# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Tests for the TCP protocol implementation

# Standard library imports
import logging
import socket

from unittest.mock import AsyncMock, MagicMock

# Third-party imports
import pytest

# Local/package imports
from dual_syslog_listener.errors import ReceiveBufferError
from dual_syslog_listener.protocol.registry import ConnectionRegistry
from dual_syslog_listener.protocol.tcp import SyslogTCPProtocol, TCPListener


def make_transport(peername=("127.0.0.1", 54321), sock=None):
    transport = MagicMock()
    extra = {"peername": peername, "socket": sock}
    transport.get_extra_info.side_effect = lambda name, default=None: extra.get(
        name, default
    )
    return transport


def receive(protocol, data):
    """Push data through the BufferedProtocol interface like asyncio does."""
    buf = protocol.get_buffer(-1)
    assert len(buf) >= len(data)
    buf[: len(data)] = data
    protocol.buffer_updated(len(data))


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def tcp_protocol(emitter, registry):
    """Create a connected SyslogTCPProtocol instance."""
    protocol = SyslogTCPProtocol(emitter, registry)
    protocol.connection_made(make_transport())
    return protocol


class TestSyslogTCPProtocol:
    """Tests for the SyslogTCPProtocol class."""

    @pytest.mark.unit
    def test_init(self, emitter, registry):
        protocol = SyslogTCPProtocol(emitter, registry)
        assert protocol.logger.name == "dual_syslog_listener.protocol.tcp"
        assert protocol.transport is None
        assert protocol.peername is None
        assert protocol.framer.buffer_size == 0
        assert protocol.get_peer_info() == {"host": "unknown", "port": None}

    @pytest.mark.unit
    def test_connection_made_registers(self, tcp_protocol, registry):
        assert tcp_protocol.transport in registry
        assert tcp_protocol.get_peer_info() == {"host": "127.0.0.1", "port": 54321}

    @pytest.mark.unit
    def test_connection_made_socket_options(self, emitter, registry):
        sock = MagicMock()
        protocol = SyslogTCPProtocol(
            emitter, registry, keep_alive=True, keep_alive_delay=30, recv_buffer_size=8192
        )

        protocol.connection_made(make_transport(sock=sock))

        calls = [c.args for c in sock.setsockopt.call_args_list]
        assert (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1) in calls
        assert (socket.IPPROTO_TCP, socket.TCP_NODELAY, 1) in calls
        assert (socket.SOL_SOCKET, socket.SO_RCVBUF, 8192) in calls
        if hasattr(socket, "TCP_KEEPIDLE"):
            assert (socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 30) in calls

    @pytest.mark.unit
    def test_keep_alive_disabled(self, emitter, registry):
        sock = MagicMock()
        protocol = SyslogTCPProtocol(emitter, registry, keep_alive=False)

        protocol.connection_made(make_transport(sock=sock))

        calls = [c.args for c in sock.setsockopt.call_args_list]
        assert (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1) not in calls

    @pytest.mark.unit
    def test_recv_buffer_failure_is_a_warning(self, emitter, registry):
        sock = MagicMock()

        def setsockopt(level, option, value):
            if option == socket.SO_RCVBUF:
                raise OSError("not permitted")

        sock.setsockopt.side_effect = setsockopt
        protocol = SyslogTCPProtocol(emitter, registry, recv_buffer_size=8192)

        transport = make_transport(sock=sock)
        protocol.connection_made(transport)

        warnings = emitter.payloads("warn")
        assert len(warnings) == 1
        assert isinstance(warnings[0], ReceiveBufferError)
        assert transport in registry
        transport.abort.assert_not_called()

    @pytest.mark.unit
    def test_single_line(self, tcp_protocol, emitter):
        receive(tcp_protocol, b"tcp-message\n")

        records = emitter.payloads("message")
        assert len(records) == 1
        assert records[0].message == "tcp-message"
        assert records[0].host == "127.0.0.1"
        assert records[0].port == 54321
        assert records[0].protocol == "tcp4"

    @pytest.mark.unit
    def test_ipv6_peer(self, emitter, registry):
        protocol = SyslogTCPProtocol(emitter, registry)
        protocol.connection_made(make_transport(peername=("::1", 40000, 0, 0)))

        receive(protocol, b"v6\n")

        assert emitter.payloads("message")[0].protocol == "tcp6"

    @pytest.mark.unit
    def test_lines_across_chunks_in_order(self, tcp_protocol, emitter):
        receive(tcp_protocol, b"a\r")
        receive(tcp_protocol, b"\nb\nc")
        assert [r.message for r in emitter.payloads("message")] == ["a", "b"]

        assert tcp_protocol.eof_received() is False
        assert [r.message for r in emitter.payloads("message")] == ["a", "b", "c"]

    @pytest.mark.unit
    def test_blank_lines_produce_nothing(self, tcp_protocol, emitter):
        receive(tcp_protocol, b"\n\n")
        tcp_protocol.eof_received()
        assert emitter.payloads("message") == []

    @pytest.mark.unit
    def test_eof_aborts_and_deregisters(self, tcp_protocol, registry):
        transport = tcp_protocol.transport
        tcp_protocol.eof_received()

        transport.abort.assert_called_once()
        assert transport not in registry

    @pytest.mark.unit
    def test_data_after_eof_is_ignored(self, tcp_protocol, emitter):
        tcp_protocol.eof_received()
        receive(tcp_protocol, b"late\n")
        assert emitter.payloads("message") == []

    @pytest.mark.unit
    def test_connection_lost_discards_partial_line(self, tcp_protocol, emitter, registry):
        transport = tcp_protocol.transport
        receive(tcp_protocol, b"partial")

        tcp_protocol.connection_lost(None)

        assert emitter.payloads("message") == []
        assert emitter.payloads("error") == []
        assert tcp_protocol.framer.buffer_size == 0
        assert transport not in registry

    @pytest.mark.unit
    def test_connection_lost_with_error(self, tcp_protocol, emitter, registry):
        transport = tcp_protocol.transport
        exc = ConnectionResetError("reset by peer")

        tcp_protocol.connection_lost(exc)

        assert emitter.payloads("error") == [exc]
        assert transport not in registry

    @pytest.mark.unit
    def test_processing_error_aborts_connection(self, tcp_protocol, emitter, registry, mocker):
        transport = tcp_protocol.transport
        failure = RuntimeError("boom")
        mocker.patch.object(tcp_protocol.framer, "feed", side_effect=failure)

        receive(tcp_protocol, b"x\n")

        assert emitter.payloads("error") == [failure]
        transport.abort.assert_called_once()
        assert transport not in registry

    @pytest.mark.unit
    def test_get_buffer_grows_for_large_hint(self, tcp_protocol):
        buf = tcp_protocol.get_buffer(1 << 20)
        assert len(buf) >= 1 << 20


class TestTCPListener:
    """Tests for the TCPListener class."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_tcp_server(self, emitter):
        listener = TCPListener(emitter, "127.0.0.1", 1514, keep_alive_delay=5)

        mock_loop = MagicMock()
        mock_server = MagicMock()
        mock_loop.create_server = AsyncMock(return_value=mock_server)

        await listener.start(mock_loop)

        assert listener.is_listening
        call_args = mock_loop.create_server.call_args
        assert call_args[0][1] == "127.0.0.1"  # host
        assert call_args[0][2] == 1514  # port
        assert call_args[1]["reuse_port"] is None

        protocol = call_args[0][0]()
        assert isinstance(protocol, SyslogTCPProtocol)
        assert protocol.registry is listener.registry
        assert protocol.keep_alive_delay == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_logs_allow_half_open(self, emitter, caplog):
        caplog.set_level(logging.INFO)
        listener = TCPListener(emitter, "127.0.0.1", 1514, allow_half_open=True)
        mock_loop = MagicMock()
        mock_loop.create_server = AsyncMock(return_value=MagicMock())

        await listener.start(mock_loop)

        assert "allow_half_open is set" in caplog.text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_without_allow_half_open_does_not_log_it(self, emitter, caplog):
        caplog.set_level(logging.INFO)
        listener = TCPListener(emitter, "127.0.0.1", 1514)
        mock_loop = MagicMock()
        mock_loop.create_server = AsyncMock(return_value=MagicMock())

        await listener.start(mock_loop)

        assert "allow_half_open" not in caplog.text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stop_aborts_connections_then_closes(self, emitter):
        listener = TCPListener(emitter, "127.0.0.1", 1514)
        mock_server = MagicMock()
        mock_server.wait_closed = AsyncMock()
        listener.server = mock_server

        transports = [MagicMock(), MagicMock()]
        for transport in transports:
            listener.registry.add(transport)

        await listener.stop()

        for transport in transports:
            transport.abort.assert_called_once()
        mock_server.close.assert_called_once()
        mock_server.wait_closed.assert_awaited_once()
        assert len(listener.registry) == 0
        assert not listener.is_listening

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_propagates_bind_error(self, emitter):
        listener = TCPListener(emitter, "127.0.0.1", 1514)
        mock_loop = MagicMock()
        mock_loop.create_server = AsyncMock(side_effect=OSError("in use"))

        with pytest.raises(OSError):
            await listener.start(mock_loop)
        assert not listener.is_listening
