import logging
import socket
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.errors import SendError, StreamConnectionError
from ..core.types import BodyFrame, ConnectionState
from .frame_codec import encode_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamConfig:
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8888
    connect_timeout_s: Optional[float] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "StreamConfig":
        known = {k: v for k, v in d.items() if k in StreamConfig.__dataclass_fields__}
        return StreamConfig(**known)


class FrameStreamer:
    """
    Pushes every frame as one newline-terminated JSON record over TCP.

    The socket belongs to this instance alone: it is opened by initialize()
    and released by close(). Failures are returned, never raised. After a
    send failure the streamer stays disconnected until initialize() is
    called again.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8888, connect_timeout_s: Optional[float] = None):
        self.host = host
        self.port = int(port)
        self.connect_timeout_s = connect_timeout_s
        self._sock: Optional[socket.socket] = None
        self._state = ConnectionState.DISCONNECTED

    @classmethod
    def from_config(cls, cfg: StreamConfig) -> "FrameStreamer":
        return cls(host=cfg.host, port=int(cfg.port), connect_timeout_s=cfg.connect_timeout_s)

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def initialize(self) -> Optional[StreamConnectionError]:
        if self._state is ConnectionState.CONNECTED:
            return None

        self._state = ConnectionState.CONNECTING
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout_s)
        except OSError as e:
            self._state = ConnectionState.DISCONNECTED
            err = StreamConnectionError("initialize", f"could not connect to {self.host}:{self.port}", e)
            logger.warning("%s (%s). Make sure the server is running.", err, e)
            return err

        # Sends block; callers wanting a timeout impose it on the transport.
        sock.settimeout(None)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._sock = sock
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to server at %s:%d", self.host, self.port)
        return None

    def send(self, frame: BodyFrame) -> Optional[SendError]:
        if self._state is not ConnectionState.CONNECTED or self._sock is None:
            return SendError("send", "not connected")

        record = encode_record(frame)
        try:
            self._sock.sendall(record)
        except OSError as e:
            logger.warning("Send failed with error: %s", e)
            self._release_socket()
            self._state = ConnectionState.DISCONNECTED
            return SendError("send", f"write to {self.host}:{self.port} failed", e)
        return None

    def close(self):
        self._release_socket()
        self._state = ConnectionState.DISCONNECTED

    def _release_socket(self):
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError as e:
            logger.debug("Error closing socket: %s", e)
        self._sock = None

    def __enter__(self) -> "FrameStreamer":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        sock = getattr(self, "_sock", None)
        if sock is not None:
            sock.close()
