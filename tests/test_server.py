"""Tests for the TCP session server."""

import socket
import threading
import time

import pytest

from netplayer.engine import ChannelState
from netplayer.server import SessionServer


POLL_INTERVAL = 0.02


def wait_for(predicate, timeout=2.0):
    """Poll ``predicate`` until it is true or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def request(conn, command):
    conn.sendall(command if isinstance(command, bytes) else command.encode())
    return conn.recv(1024).decode()


@pytest.fixture
def make_server(player):
    """Start servers on an ephemeral port; all are shut down after the test."""
    running = []

    def factory(**kwargs):
        kwargs.setdefault('poll_interval', POLL_INTERVAL)
        server = SessionServer(player, host='127.0.0.1', port=0, **kwargs)
        server.start()
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        running.append((server, thread))
        return server

    yield factory

    for server, thread in running:
        server.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def server(make_server):
    return make_server()


@pytest.fixture
def connect(server):
    clients = []

    def factory(timeout=2.0):
        conn = socket.create_connection(server.address, timeout=timeout)
        clients.append(conn)
        return conn

    yield factory

    for conn in clients:
        conn.close()


class TestCommandChannel:

    def test_autoplay_on_start(self, server, player, engine):
        assert wait_for(player.is_playing)
        assert engine.load_requests[0] == '/music/a.mp3'

    def test_request_response(self, connect):
        conn = connect()
        assert request(conn, 'get_pl_length') == '3'
        assert request(conn, 'get_current_song') == 'a.mp3'
        assert request(conn, 'get_player_state') == 'playing'

    def test_padding_and_whitespace_stripped(self, connect):
        conn = connect()
        assert request(conn, b'get_pl_index\x00\x00\r\n  ') == '1'

    def test_unknown_command(self, connect):
        conn = connect()
        assert request(conn, 'frobnicate') == 'null'
        assert request(conn, b'\xff\xfe') == 'null'

    def test_commands_change_player_state(self, connect, player):
        conn = connect()
        assert request(conn, 'next') == 'null'
        assert request(conn, 'get_current_song') == 'b.mp3'
        assert request(conn, 'pause') == 'null'
        assert request(conn, 'get_player_state') == 'paused'
        assert player.is_paused() is True


class TestSingleClientSlot:

    def test_second_client_waits_for_first(self, server, connect):
        first = connect()
        assert request(first, 'get_pl_index') == '1'

        second = connect(timeout=0.3)
        second.sendall(b'get_pl_length')
        with pytest.raises(socket.timeout):
            second.recv(1024)

        first.close()
        second.settimeout(2.0)
        assert second.recv(1024).decode() == '3'

    def test_disconnect_releases_slot(self, server, connect):
        first = connect()
        assert request(first, 'get_pl_index') == '1'
        assert server.client_connected is True

        first.close()
        assert wait_for(lambda: not server.client_connected)

        second = connect()
        assert request(second, 'get_pl_length') == '3'

    def test_read_timeout_drops_idle_client(self, make_server, player):
        server = make_server(read_timeout=0.2)
        conn = socket.create_connection(server.address, timeout=2.0)
        try:
            assert request(conn, 'get_pl_index') == '1'
            assert wait_for(lambda: not server.client_connected)
            try:
                assert conn.recv(1024) == b''
            except ConnectionResetError:
                pass
        finally:
            conn.close()


    def test_handler_error_drops_only_that_client(self, server, connect, engine):
        first = connect()
        assert request(first, 'get_pl_index') == '1'

        engine.faults['get_volume'] = RuntimeError("pipeline gone")
        first.sendall(b'get_volume')
        try:
            assert first.recv(1024) == b''
        except ConnectionResetError:
            pass
        assert wait_for(lambda: not server.client_connected)

        second = connect()
        assert request(second, 'get_volume') == '1.0'


class TestIdlePoll:

    def test_advances_when_track_ends(self, server, player, engine):
        assert wait_for(player.is_playing)
        engine.current.state = ChannelState.STOPPED

        assert wait_for(lambda: player.playlist_index == 2)
        assert engine.current.path == '/music/b.mp3'
        assert player.is_playing() is True

    def test_does_not_advance_while_paused(self, server, player):
        assert wait_for(player.is_playing)
        player.pause()
        time.sleep(POLL_INTERVAL * 10)
        assert player.playlist_index == 1

    def test_stays_on_last_track(self, server, player, engine):
        assert wait_for(player.is_playing)
        finished = []
        player.set_playlist_finished_listener(lambda: finished.append(True))
        player.playlist.index = 2
        player.play()
        engine.current.state = ChannelState.STOPPED

        assert wait_for(lambda: len(finished) > 0)
        assert player.playlist_index == 3

    def test_loading_suppresses_advance(self, player, engine):
        server = SessionServer(player, poll_interval=POLL_INTERVAL)
        observed = []

        def poll_during_start(handle):
            observed.append(player.loading)
            server._idle_poll_step()

        engine.start_hook = poll_during_start
        player.play()

        assert observed == [True]
        assert player.playlist_index == 1

        engine.start_hook = None
        player.stop()
        server._idle_poll_step()
        assert player.playlist_index == 2

    def test_poll_contains_load_errors(self, player, engine):
        server = SessionServer(player, poll_interval=POLL_INTERVAL)
        engine.failing_loads.update({'/music/b.mp3', '/music/c.mp3'})

        server._idle_poll_step()

        assert player.playlist_index == 3

    def test_engine_error_keeps_loop_running(self, server, player, engine):
        assert wait_for(player.is_playing)
        engine.faults['is_active'] = RuntimeError("pipeline gone")
        assert wait_for(lambda: 'is_active' not in engine.faults)

        engine.current.state = ChannelState.STOPPED

        assert wait_for(lambda: player.playlist_index == 2)
        assert player.is_playing() is True


class TestShutdown:

    def test_shutdown_closes_everything(self, player, engine):
        server = SessionServer(player, host='127.0.0.1', port=0, poll_interval=POLL_INTERVAL)
        server.start()
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()

        conn = socket.create_connection(server.address, timeout=2.0)
        try:
            assert request(conn, 'get_pl_index') == '1'
            server.shutdown()
            thread.join(timeout=5)

            assert not thread.is_alive()
            assert engine.is_shut_down is True
            assert engine.live_streams == []
            try:
                assert conn.recv(1024) == b''
            except ConnectionResetError:
                pass
        finally:
            conn.close()

    def test_shutdown_does_not_wait_for_slot_lock(self, server):
        done = threading.Event()
        with server._slot_lock:
            thread = threading.Thread(target=lambda: (server.shutdown(), done.set()), daemon=True)
            thread.start()
            assert done.wait(timeout=2.0)

    def test_start_twice(self, player):
        server = SessionServer(player, host='127.0.0.1', port=0)
        server.start()
        try:
            with pytest.raises(RuntimeError):
                server.start()
        finally:
            server.shutdown()
            server._close()

    def test_address_requires_start(self, player):
        with pytest.raises(RuntimeError):
            SessionServer(player).address
