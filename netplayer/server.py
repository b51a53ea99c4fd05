"""TCP control server for the player.

One client is served at a time. The main loop alternates between
accepting a pending connection (only while the slot is free) and the
idle-poll step that advances the playlist once the current track has
ended. The accepted client is served on its own thread so a slow peer
never stalls playback.
"""

import select
import socket
import threading
from typing import Optional, Tuple

from netplayer.commands import CommandDispatcher
from netplayer.exceptions import ConnectionLostError, NetPlayerError
from netplayer.logging import get_logger
from netplayer.player import Player

logger = get_logger(__name__)


class SessionServer:
    """
    Single-client command server driving a Player.

    Track completion is inferred by polling: when the player is neither
    playing, paused nor loading, ``Player.next`` is called. The next track
    therefore starts at most one poll interval after the previous one ends.
    """

    def __init__(
        self,
        player: Player,
        host: str = "127.0.0.1",
        port: int = 2806,
        poll_interval: float = 0.5,
        max_frame_size: int = 1024,
        read_timeout: Optional[float] = None,
        autoplay: bool = True,
    ):
        """
        Initialize SessionServer.

        Args:
            player: Player shared by the client thread and the idle poll
            host: Bind address
            port: Bind port (0 picks a free port)
            poll_interval: Seconds between idle-poll steps
            max_frame_size: Maximum bytes read per command
            read_timeout: Seconds a client read may block (None waits forever)
            autoplay: Start the current track when serving begins
        """
        self._player = player
        self._dispatcher = CommandDispatcher(player)
        self.host = host
        self.port = port
        self.poll_interval = poll_interval
        self.max_frame_size = max_frame_size
        self.read_timeout = read_timeout
        self.autoplay = autoplay

        self._listener: Optional[socket.socket] = None
        self._client: Optional[socket.socket] = None
        self._client_thread: Optional[threading.Thread] = None
        self._slot_lock = threading.Lock()

        self._shutdown = threading.Event()
        self._closed = False

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port) of the listener."""
        if self._listener is None:
            raise RuntimeError("SessionServer is not started")
        return self._listener.getsockname()[:2]

    @property
    def client_connected(self) -> bool:
        return self._client is not None

    def start(self) -> None:
        """Bind and listen. Called by ``serve_forever`` if not done before."""
        if self._listener is not None:
            raise RuntimeError("SessionServer already started")

        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            listener.bind((self.host, self.port))
            listener.listen()
        except OSError as e:
            logger.error("Failed to bind %s:%d: %s", self.host, self.port, e)
            listener.close()
            raise
        self._listener = listener
        logger.info("TCP server running on %s:%d", *self.address)

    def serve_forever(self) -> None:
        """Run the accept/idle-poll loop until ``shutdown`` is called."""
        if self._listener is None:
            self.start()

        try:
            if self.autoplay:
                try:
                    self._player.play()
                    logger.info("Player started")
                except Exception as e:
                    logger.error("Autoplay failed: %s", e, exc_info=True)
            logger.info("Waiting for clients...")

            while not self._shutdown.is_set():
                if self._client is None and self._connection_pending():
                    self._accept_client()
                    continue
                try:
                    self._idle_poll_step()
                except Exception as e:
                    logger.error("Idle poll failed: %s", e, exc_info=True)
                self._shutdown.wait(self.poll_interval)
        finally:
            self._close()

    def shutdown(self) -> None:
        """Stop the loop and disconnect the active client. Safe from any thread."""
        if self._shutdown.is_set():
            return
        logger.info("Shutting down...")
        self._shutdown.set()
        # No slot lock here: a signal handler may run while the main
        # thread holds it in _accept_client
        client = self._client
        if client is not None:
            try:
                # Unblocks the client thread's recv
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

    # ------------------------------------------------------------------
    # Accept and client loop
    # ------------------------------------------------------------------
    def _connection_pending(self) -> bool:
        try:
            readable, _, _ = select.select([self._listener], [], [], 0)
        except (OSError, ValueError):
            return False
        return bool(readable)

    def _accept_client(self) -> None:
        try:
            conn, addr = self._listener.accept()
        except OSError as e:
            logger.warning("Accept failed: %s", e)
            return

        conn.settimeout(self.read_timeout)
        with self._slot_lock:
            self._client = conn
        self._client_thread = threading.Thread(
            target=self._handle_client,
            args=(conn, addr),
            daemon=True,
            name="SessionServer-Client",
        )
        self._client_thread.start()

    def _handle_client(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        """Client thread: receive, dispatch, respond until the connection fails."""
        logger.info("Client connected. Address: %s:%d", addr[0], addr[1])
        try:
            while not self._shutdown.is_set():
                command = self._receive_command(conn)
                logger.debug("Data received: %s -- Handling...", command)
                response = self._dispatcher.dispatch(command)
                conn.sendall(response.encode("utf-8"))
        except socket.timeout:
            logger.warning("Client idle for %ss, dropping connection", self.read_timeout)
        except (OSError, ConnectionLostError) as e:
            logger.debug("Connection lost: %s", e)
        except Exception as e:
            logger.error("Error handling client %s:%d: %s", addr[0], addr[1], e, exc_info=True)
        finally:
            with self._slot_lock:
                if self._client is conn:
                    self._client = None
            try:
                conn.close()
            except OSError:
                pass
            logger.info("Client disconnected")

    def _receive_command(self, conn: socket.socket) -> str:
        data = conn.recv(self.max_frame_size)
        if not data:
            raise ConnectionLostError("Peer closed the connection")
        return data.decode("utf-8", errors="replace").replace("\0", "").strip()

    # ------------------------------------------------------------------
    # Idle poll
    # ------------------------------------------------------------------
    def _idle_poll_step(self) -> None:
        """Advance the playlist if nothing is playing, paused or loading."""
        with self._player.lock:
            if self._player.is_playing() or self._player.is_paused() or self._player.loading:
                return
            try:
                self._player.next()
            except NetPlayerError as e:
                logger.warning("Auto-advance failed: %s", e)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------
    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._shutdown.set()

        if self._listener is not None:
            try:
                self._listener.close()
            except OSError:
                pass

        with self._slot_lock:
            client = self._client
        if client is not None:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        if self._client_thread is not None:
            self._client_thread.join(timeout=2.0)

        self._player.close()
        logger.info("Server stopped")
