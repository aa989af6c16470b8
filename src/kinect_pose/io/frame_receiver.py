import logging
import socket
from typing import BinaryIO, Iterator, Optional, Tuple

from ..core.types import BodyFrame
from .frame_codec import decode_record

logger = logging.getLogger(__name__)


def iter_records(stream: BinaryIO, skip_invalid: bool = True) -> Iterator[BodyFrame]:
    """Decodes newline-delimited records until EOF.

    Only full skeletons (every joint, in id order) are yielded; anything
    else counts as malformed.
    """
    for line in stream:
        if not line.strip():
            continue
        try:
            frame = decode_record(line)
            frame = BodyFrame.from_joints(frame.body_id, frame.joints, frame.timestamp_usec)
        except ValueError as e:
            if not skip_invalid:
                raise
            logger.warning("Dropping malformed record: %s", e)
            continue
        yield frame


class FrameReceiver:
    """Accepts a single producer connection and yields its frames."""

    def __init__(self, host: str = "127.0.0.1", port: int = 8888):
        self.host = host
        self.port = int(port)
        self._server: Optional[socket.socket] = None

    def listen(self) -> Tuple[str, int]:
        if self._server is None:
            self._server = socket.create_server((self.host, self.port))
            logger.info("Listening on %s:%d", *self._server.getsockname()[:2])
        return self._server.getsockname()[:2]

    def frames(self, timeout_s: Optional[float] = None) -> Iterator[BodyFrame]:
        self.listen()
        self._server.settimeout(timeout_s)
        conn, addr = self._server.accept()
        logger.info("Producer connected from %s:%d", addr[0], addr[1])
        with conn, conn.makefile("rb") as stream:
            yield from iter_records(stream)
        logger.info("Producer %s:%d disconnected", addr[0], addr[1])

    def close(self):
        if self._server is not None:
            self._server.close()
            self._server = None

    def __enter__(self) -> "FrameReceiver":
        self.listen()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
