import os
from typing import IO, Iterator, Optional

from ..core.interfaces import IBodySource
from ..core.types import BodyFrame
from .frame_receiver import iter_records


class RecordFileSource(IBodySource):
    """Replays a .jsonl file of stream records, one frame per line."""

    def __init__(self, path: str):
        self.path = path
        self.finished = False
        self._file: Optional[IO[bytes]] = None
        self._records: Optional[Iterator[BodyFrame]] = None

    def open(self) -> bool:
        if not os.path.isfile(self.path):
            raise FileNotFoundError(self.path)
        self._file = open(self.path, "rb")
        self._records = iter_records(self._file)
        self.finished = False
        return True

    def read_frame(self) -> Optional[BodyFrame]:
        if self._records is None:
            return None
        frame = next(self._records, None)
        if frame is None:
            self.finished = True
        return frame

    def close(self):
        if self._file is not None:
            self._file.close()
        self._file = None
        self._records = None
