from typing import Dict, Iterable, Optional, Tuple

import cv2
import numpy as np

from ..core.joints import ConfidenceLevel, JointId
from ..core.types import BodyFrame

_BONES = [
    (JointId.PELVIS, JointId.SPINE_NAVEL),
    (JointId.SPINE_NAVEL, JointId.SPINE_CHEST),
    (JointId.SPINE_CHEST, JointId.NECK),
    (JointId.NECK, JointId.HEAD),
    (JointId.NECK, JointId.CLAVICLE_LEFT),
    (JointId.CLAVICLE_LEFT, JointId.SHOULDER_LEFT),
    (JointId.SHOULDER_LEFT, JointId.ELBOW_LEFT),
    (JointId.ELBOW_LEFT, JointId.WRIST_LEFT),
    (JointId.WRIST_LEFT, JointId.HAND_LEFT),
    (JointId.NECK, JointId.CLAVICLE_RIGHT),
    (JointId.CLAVICLE_RIGHT, JointId.SHOULDER_RIGHT),
    (JointId.SHOULDER_RIGHT, JointId.ELBOW_RIGHT),
    (JointId.ELBOW_RIGHT, JointId.WRIST_RIGHT),
    (JointId.WRIST_RIGHT, JointId.HAND_RIGHT),
    (JointId.PELVIS, JointId.HIP_LEFT),
    (JointId.HIP_LEFT, JointId.KNEE_LEFT),
    (JointId.KNEE_LEFT, JointId.ANKLE_LEFT),
    (JointId.PELVIS, JointId.HIP_RIGHT),
    (JointId.HIP_RIGHT, JointId.KNEE_RIGHT),
    (JointId.KNEE_RIGHT, JointId.ANKLE_RIGHT),
]


def project_mm(xyz_mm, intrinsics) -> Optional[Tuple[int, int]]:
    x, y, z = float(xyz_mm[0]), float(xyz_mm[1]), float(xyz_mm[2])
    if not (z > 0.0):
        return None
    fx, fy, cx, cy = [float(v) for v in intrinsics.tolist()]
    u = x * fx / z + cx
    v = y * fy / z + cy
    return int(round(u)), int(round(v))


def draw_skeleton(img_bgr: np.ndarray, frame: Optional[BodyFrame], intrinsics: np.ndarray) -> np.ndarray:
    out = img_bgr.copy()
    if frame is None:
        return out
    pts: Dict[int, Tuple[int, int]] = {}
    for j in frame.joints:
        if j.confidence == ConfidenceLevel.NONE:
            continue
        uv = project_mm(j.position, intrinsics)
        if uv is not None:
            pts[j.joint_id] = uv

    for a, b in _BONES:
        if a in pts and b in pts:
            cv2.line(out, pts[a], pts[b], (0, 255, 255), 2)
    for uv in pts.values():
        cv2.circle(out, uv, 4, (0, 255, 0), -1)
    return out


def draw_text_overlay(img, lines: Iterable[str], pos=(20, 30), color=(0, 255, 0), thickness=2):
    """Draws multi-line text overlay."""
    x, y = pos
    for line in lines:
        if not line:
            continue
        cv2.putText(img, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 0), thickness + 2)
        cv2.putText(img, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, thickness)
        y += 25
    return img


def draw_status(img_bgr: np.ndarray, countdown_text: str, hands_raised: bool, streaming: bool,
                captures: int) -> np.ndarray:
    out = img_bgr
    lines = [
        "STREAMING" if streaming else "STREAM OFF",
        f"Hands raised: {'yes' if hands_raised else 'no'}",
        f"Captures: {captures}",
    ]
    draw_text_overlay(out, lines)
    if countdown_text:
        h, w = out.shape[:2]
        cv2.putText(out, countdown_text, (w // 2 - 150, h // 2), cv2.FONT_HERSHEY_SIMPLEX, 1.2, (0, 0, 255), 3)
    return out
