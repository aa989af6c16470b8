from dataclasses import dataclass, field
from enum import Enum
import numpy as np
from typing import Optional, List, Sequence, TYPE_CHECKING

from .joints import JOINT_COUNT, ConfidenceLevel, joint_name

if TYPE_CHECKING:
    from ..io.snapshot_writer import SnapshotResult


@dataclass(eq=False)
class Joint:
    joint_id: int
    position: np.ndarray       # [x, y, z] in millimeters, camera space (y points down)
    orientation: np.ndarray    # Quaternion [w, x, y, z]
    confidence: ConfidenceLevel = ConfidenceLevel.NONE

    def __post_init__(self):
        self.joint_id = int(self.joint_id)
        if not 0 <= self.joint_id < JOINT_COUNT:
            raise ValueError(f"joint id {self.joint_id} outside [0, {JOINT_COUNT})")
        self.position = np.asarray(self.position, dtype=np.float32).reshape(3)
        self.orientation = np.asarray(self.orientation, dtype=np.float32).reshape(4)
        self.confidence = ConfidenceLevel(int(self.confidence))

    @property
    def name(self) -> str:
        return joint_name(self.joint_id)


@dataclass(eq=False)
class BodyFrame:
    """One tracked body at one sensor timestamp."""
    body_id: int
    joints: List[Joint]
    timestamp_usec: int        # device timestamp, expected non-decreasing per track

    @classmethod
    def from_joints(cls, body_id: int, joints: Sequence[Joint], timestamp_usec: int) -> "BodyFrame":
        joints = list(joints)
        if len(joints) != JOINT_COUNT:
            raise ValueError(f"expected {JOINT_COUNT} joints, got {len(joints)}")
        for idx, j in enumerate(joints):
            if j.joint_id != idx:
                raise ValueError(f"joint at index {idx} has id {j.joint_id}")
        return cls(body_id=int(body_id), joints=joints, timestamp_usec=int(timestamp_usec))

    @classmethod
    def empty(cls, body_id: int, timestamp_usec: int) -> "BodyFrame":
        joints = [
            Joint(i, np.zeros(3, dtype=np.float32), np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float32))
            for i in range(JOINT_COUNT)
        ]
        return cls(body_id=int(body_id), joints=joints, timestamp_usec=int(timestamp_usec))

    def joint(self, joint_id: int) -> Joint:
        return self.joints[int(joint_id)]


class CaptureState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    CAPTURED = "captured"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True, eq=False)
class Snapshot:
    """Persisted capture of one triggering frame"""
    body_id: int
    label: str                 # e.g. pose_snapshot_20240101_120000
    joints: tuple


@dataclass
class TriggerResult:
    triggered: bool = False
    frame: Optional[BodyFrame] = None
    manual: bool = False
    write: Optional["SnapshotResult"] = field(default=None, repr=False)

    @classmethod
    def no_trigger(cls) -> "TriggerResult":
        return cls()

    def __bool__(self) -> bool:
        return self.triggered


@dataclass(eq=False)
class CameraFrame:
    """Raw sensor data frame"""
    timestamp_usec: int
    frame_id: int
    color: Optional[np.ndarray]   # HxWx3 BGR
    depth: np.ndarray             # HxW uint16 (mm), aligned to color
    intrinsics: np.ndarray        # [fx, fy, cx, cy] of the color camera
