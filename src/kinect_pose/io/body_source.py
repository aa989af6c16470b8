from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np

from ..core.interfaces import ICamera, IBodySource
from ..core.joints import JOINT_COUNT, ConfidenceLevel, JointId
from ..core.types import BodyFrame, CameraFrame, Joint

logger = logging.getLogger(__name__)

IDENTITY_QUAT = np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float32)

# MediaPipe Pose landmark indices
_MP = {
    "nose": 0, "left_eye": 2, "right_eye": 5, "left_ear": 7, "right_ear": 8,
    "left_shoulder": 11, "right_shoulder": 12, "left_elbow": 13, "right_elbow": 14,
    "left_wrist": 15, "right_wrist": 16, "left_pinky": 17, "right_pinky": 18,
    "left_index": 19, "right_index": 20, "left_thumb": 21, "right_thumb": 22,
    "left_hip": 23, "right_hip": 24, "left_knee": 25, "right_knee": 26,
    "left_ankle": 27, "right_ankle": 28, "left_foot_index": 31, "right_foot_index": 32,
}

_DIRECT = {
    JointId.NOSE: "nose",
    JointId.EYE_LEFT: "left_eye",
    JointId.EYE_RIGHT: "right_eye",
    JointId.EAR_LEFT: "left_ear",
    JointId.EAR_RIGHT: "right_ear",
    JointId.SHOULDER_LEFT: "left_shoulder",
    JointId.SHOULDER_RIGHT: "right_shoulder",
    JointId.ELBOW_LEFT: "left_elbow",
    JointId.ELBOW_RIGHT: "right_elbow",
    JointId.WRIST_LEFT: "left_wrist",
    JointId.WRIST_RIGHT: "right_wrist",
    JointId.HANDTIP_LEFT: "left_index",
    JointId.HANDTIP_RIGHT: "right_index",
    JointId.THUMB_LEFT: "left_thumb",
    JointId.THUMB_RIGHT: "right_thumb",
    JointId.HIP_LEFT: "left_hip",
    JointId.HIP_RIGHT: "right_hip",
    JointId.KNEE_LEFT: "left_knee",
    JointId.KNEE_RIGHT: "right_knee",
    JointId.ANKLE_LEFT: "left_ankle",
    JointId.ANKLE_RIGHT: "right_ankle",
    JointId.FOOT_LEFT: "left_foot_index",
    JointId.FOOT_RIGHT: "right_foot_index",
}


@dataclass(frozen=True)
class MediaPipeBodyConfig:
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    depth_window: int = 5
    min_depth_m: float = 0.15
    max_depth_m: float = 6.0
    body_id: int = 1

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MediaPipeBodyConfig":
        known = {k: v for k, v in d.items() if k in MediaPipeBodyConfig.__dataclass_fields__}
        return MediaPipeBodyConfig(**known)


def _median_depth_m(depth_mm: np.ndarray, u: int, v: int, win: int, min_m: float, max_m: float) -> float:
    h, w = depth_mm.shape[:2]
    r = win // 2
    x0 = max(0, u - r)
    x1 = min(w, u + r + 1)
    y0 = max(0, v - r)
    y1 = min(h, v + r + 1)
    patch = depth_mm[y0:y1, x0:x1].astype(np.float32) / 1000.0
    valid = patch[(patch > min_m) & (patch < max_m)]
    if valid.size == 0:
        return float("nan")
    return float(np.median(valid))


def _backproject_mm(u: float, v: float, z_m: float, intrinsics: np.ndarray) -> np.ndarray:
    fx, fy, cx, cy = [float(x) for x in intrinsics.tolist()]
    x = (u - cx) * z_m / fx
    y = (v - cy) * z_m / fy
    return np.array([x, y, z_m], dtype=np.float32) * 1000.0


def visibility_to_confidence(visibility: float, min_visibility: float) -> ConfidenceLevel:
    if visibility < min_visibility:
        return ConfidenceLevel.NONE
    if visibility < 0.8:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.MEDIUM


def _mid(a: Tuple[float, float, float], b: Tuple[float, float, float], t: float = 0.5) -> Tuple[float, float, float]:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t, min(a[2], b[2]))


def map_to_k4abt(points: Dict[str, Tuple[float, float, float]]) -> Dict[int, Tuple[float, float, float]]:
    """MediaPipe (u, v, visibility) landmarks -> K4ABT joint ids.

    Joints MediaPipe has no landmark for are interpolated from neighbours.
    """
    out: Dict[int, Tuple[float, float, float]] = {}
    for jid, name in _DIRECT.items():
        if name in points:
            out[int(jid)] = points[name]

    p = points.get
    if p("left_hip") and p("right_hip"):
        out[JointId.PELVIS] = _mid(points["left_hip"], points["right_hip"])
    if p("left_shoulder") and p("right_shoulder"):
        out[JointId.NECK] = _mid(points["left_shoulder"], points["right_shoulder"])
        out[JointId.CLAVICLE_LEFT] = _mid(out[JointId.NECK], points["left_shoulder"])
        out[JointId.CLAVICLE_RIGHT] = _mid(out[JointId.NECK], points["right_shoulder"])
    if JointId.PELVIS in out and JointId.NECK in out:
        out[JointId.SPINE_NAVEL] = _mid(out[JointId.PELVIS], out[JointId.NECK], 0.4)
        out[JointId.SPINE_CHEST] = _mid(out[JointId.PELVIS], out[JointId.NECK], 0.75)
    if p("left_ear") and p("right_ear"):
        out[JointId.HEAD] = _mid(points["left_ear"], points["right_ear"])
    for side, hand in (("left", JointId.HAND_LEFT), ("right", JointId.HAND_RIGHT)):
        wrist, pinky, index = p(f"{side}_wrist"), p(f"{side}_pinky"), p(f"{side}_index")
        if wrist and pinky and index:
            knuckles = _mid(pinky, index)
            out[hand] = _mid(wrist, knuckles)
    return {int(k): v for k, v in out.items()}


class MediaPipeBodyTracker:
    def __init__(self, config: MediaPipeBodyConfig, pose=None):
        self._cfg = config
        if pose is None:
            pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=int(config.model_complexity),
                smooth_landmarks=True,
                min_detection_confidence=float(config.min_detection_confidence),
                min_tracking_confidence=float(config.min_tracking_confidence),
            )
        self._pose = pose

    def track_rgb(self, color_bgr: np.ndarray) -> Optional[Dict[str, Tuple[float, float, float]]]:
        h, w = color_bgr.shape[:2]
        rgb = cv2.cvtColor(color_bgr, cv2.COLOR_BGR2RGB)
        result = self._pose.process(rgb)
        if result.pose_landmarks is None:
            return None

        landmarks = result.pose_landmarks.landmark
        out: Dict[str, Tuple[float, float, float]] = {}
        for name, idx in _MP.items():
            if idx >= len(landmarks):
                continue
            lm = landmarks[idx]
            conf = float(getattr(lm, "visibility", 0.0) or 0.0)
            out[name] = (float(lm.x) * float(w), float(lm.y) * float(h), conf)
        return out

    def track(self, frame: CameraFrame) -> Optional[BodyFrame]:
        if frame.color is None:
            return None
        points = self.track_rgb(frame.color)
        if points is None:
            return None

        mapped = map_to_k4abt(points)
        joints: List[Joint] = []
        for jid in range(JOINT_COUNT):
            pos = np.zeros(3, dtype=np.float32)
            conf = ConfidenceLevel.NONE
            if jid in mapped:
                u, v, vis = mapped[jid]
                ui = int(round(u))
                vi = int(round(v))
                if 0 <= ui < frame.depth.shape[1] and 0 <= vi < frame.depth.shape[0]:
                    z = _median_depth_m(
                        frame.depth,
                        ui,
                        vi,
                        int(self._cfg.depth_window),
                        float(self._cfg.min_depth_m),
                        float(self._cfg.max_depth_m),
                    )
                    if np.isfinite(z):
                        pos = _backproject_mm(u, v, z, frame.intrinsics)
                        conf = visibility_to_confidence(vis, float(self._cfg.min_tracking_confidence))
            joints.append(Joint(jid, pos, IDENTITY_QUAT.copy(), conf))

        return BodyFrame.from_joints(self._cfg.body_id, joints, frame.timestamp_usec)


class MediaPipeBodySource(IBodySource):
    """Body frames from a camera, tracked with MediaPipe Pose and lifted with depth."""

    def __init__(self, camera: ICamera, tracker: MediaPipeBodyTracker):
        self.camera = camera
        self.tracker = tracker
        self.finished = False
        self.last_camera_frame: Optional[CameraFrame] = None

    def open(self) -> bool:
        return self.camera.open()

    def read_frame(self) -> Optional[BodyFrame]:
        cam_frame = self.camera.read_frame()
        self.last_camera_frame = cam_frame
        if cam_frame is None:
            return None
        return self.tracker.track(cam_frame)

    def close(self):
        self.camera.close()
