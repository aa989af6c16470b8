"""
Line-delimited JSON records for body frames.

One record per frame, compact JSON with no embedded line breaks, followed
by a single b"\\n":

    {"body_id":7,"timestamp":123456,"joints":[{"joint_id":26,"joint_name":"HEAD",
     "position":{"x":0.0,"y":0.0,"z":1.0},"orientation":{"w":1.0,"x":0.0,"y":0.0,"z":0.0},
     "confidence_level":2}, ...]}

Snapshots use the same layout, with "timestamp" holding the capture label.
Non-finite coordinates (untracked joints from some trackers) are written as
null, so every record stays strict JSON; they decode back to NaN.
"""
import json
import math
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..core.types import BodyFrame, Joint

RECORD_TERMINATOR = b"\n"


def _finite_or_none(v) -> Optional[float]:
    v = float(v)
    return v if math.isfinite(v) else None


def _float_or_nan(v) -> float:
    return float("nan") if v is None else float(v)


def joint_to_dict(joint: Joint) -> Dict[str, Any]:
    x, y, z = (_finite_or_none(v) for v in joint.position)
    qw, qx, qy, qz = (_finite_or_none(v) for v in joint.orientation)
    return {
        "joint_id": int(joint.joint_id),
        "joint_name": joint.name,
        "position": {"x": x, "y": y, "z": z},
        "orientation": {"w": qw, "x": qx, "y": qy, "z": qz},
        "confidence_level": int(joint.confidence),
    }


def frame_to_dict(frame: BodyFrame, timestamp: Optional[Union[int, str]] = None) -> Dict[str, Any]:
    return {
        "body_id": int(frame.body_id),
        "timestamp": int(frame.timestamp_usec) if timestamp is None else timestamp,
        "joints": [joint_to_dict(j) for j in frame.joints],
    }


def encode_record(frame: BodyFrame) -> bytes:
    payload = json.dumps(frame_to_dict(frame), separators=(",", ":"), allow_nan=False)
    return payload.encode("utf-8") + RECORD_TERMINATOR


def joint_from_dict(d: Dict[str, Any]) -> Joint:
    pos = d["position"]
    ori = d["orientation"]
    return Joint(
        joint_id=int(d["joint_id"]),
        position=np.array([_float_or_nan(pos[k]) for k in "xyz"], dtype=np.float32),
        orientation=np.array([_float_or_nan(ori[k]) for k in "wxyz"], dtype=np.float32),
        confidence=int(d["confidence_level"]),
    )


def frame_from_dict(d: Dict[str, Any]) -> BodyFrame:
    joints: List[Joint] = [joint_from_dict(j) for j in d["joints"]]
    return BodyFrame(body_id=int(d["body_id"]), joints=joints, timestamp_usec=int(d["timestamp"]))


def decode_record(line: Union[bytes, str]) -> BodyFrame:
    if isinstance(line, bytes):
        line = line.decode("utf-8")
    line = line.rstrip("\r\n")
    if not line:
        raise ValueError("empty record")
    try:
        d = json.loads(line)
        return frame_from_dict(d)
    except (KeyError, TypeError, json.JSONDecodeError) as e:
        raise ValueError(f"malformed record: {e}") from e
