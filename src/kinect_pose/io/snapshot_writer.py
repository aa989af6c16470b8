import os
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..core.errors import PersistenceError
from ..core.types import BodyFrame, Snapshot
from .frame_codec import frame_to_dict

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "pose_snapshot_"


@dataclass
class SnapshotResult:
    path: Optional[str] = None
    snapshot: Optional[Snapshot] = None
    error: Optional[PersistenceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def snapshot_label(now: datetime) -> str:
    return now.strftime(f"{SNAPSHOT_PREFIX}%Y%m%d_%H%M%S")


class SnapshotWriter:
    """Writes one indented JSON file per captured frame.

    Captures within the same wall-clock second share a label, so the later
    one overwrites the earlier file.
    """

    def __init__(self, output_dir: str = ".", clock: Callable[[], datetime] = datetime.now):
        self.output_dir = output_dir
        self._clock = clock

    def write(self, frame: BodyFrame) -> SnapshotResult:
        label = snapshot_label(self._clock())
        path = os.path.join(self.output_dir, f"{label}.json")
        snapshot = Snapshot(body_id=int(frame.body_id), label=label, joints=tuple(frame.joints))
        data = frame_to_dict(frame, timestamp=label)
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
        except OSError as e:
            err = PersistenceError("write", f"could not create snapshot file {path}", e)
            logger.error("%s", err)
            return SnapshotResult(path=None, snapshot=snapshot, error=err)
        logger.info("Pose snapshot saved to: %s", path)
        return SnapshotResult(path=path, snapshot=snapshot)
