import json

import numpy as np
import pytest

from kinect_pose.core.joints import JOINT_COUNT, ConfidenceLevel, JointId
from kinect_pose.core.types import BodyFrame, Joint
from kinect_pose.io.frame_codec import decode_record, encode_record, frame_to_dict


def test_single_joint_record_layout():
    head = Joint(JointId.HEAD, [0.0, 0.0, 1.0], [1.0, 0.0, 0.0, 0.0], ConfidenceLevel.MEDIUM)
    frame = BodyFrame(body_id=7, joints=[head], timestamp_usec=123456)

    record = encode_record(frame)
    assert record.endswith(b"\n")
    assert record.count(b"\n") == 1
    assert b" " not in record

    assert json.loads(record) == {
        "body_id": 7,
        "timestamp": 123456,
        "joints": [{
            "joint_id": 26,
            "joint_name": "HEAD",
            "position": {"x": 0, "y": 0, "z": 1},
            "orientation": {"w": 1, "x": 0, "y": 0, "z": 0},
            "confidence_level": 2,
        }],
    }


def test_full_frame_round_trip_is_bit_exact():
    rng = np.random.default_rng(7)
    joints = [
        Joint(i, rng.normal(0, 1000, 3), rng.normal(0, 1, 4), ConfidenceLevel(i % 4))
        for i in range(JOINT_COUNT)
    ]
    frame = BodyFrame.from_joints(3, joints, 9_876_543_210)

    decoded = decode_record(encode_record(frame))

    assert decoded.body_id == 3
    assert decoded.timestamp_usec == 9_876_543_210
    assert len(decoded.joints) == JOINT_COUNT
    for src, dst in zip(frame.joints, decoded.joints):
        assert dst.joint_id == src.joint_id
        assert dst.name == src.name
        assert dst.confidence == src.confidence
        assert dst.position.tobytes() == src.position.tobytes()
        assert dst.orientation.tobytes() == src.orientation.tobytes()


def test_joint_names_follow_joint_ids(make_frame):
    d = frame_to_dict(make_frame())
    assert [j["joint_id"] for j in d["joints"]] == list(range(JOINT_COUNT))
    assert d["joints"][0]["joint_name"] == "PELVIS"
    assert d["joints"][JointId.WRIST_LEFT]["joint_name"] == "WRIST_LEFT"
    assert d["joints"][-1]["joint_name"] == "EAR_RIGHT"


def test_snapshot_layout_uses_label(make_frame):
    d = frame_to_dict(make_frame(body_id=5, timestamp_usec=99), timestamp="pose_snapshot_20240101_120000")
    assert d["timestamp"] == "pose_snapshot_20240101_120000"
    assert d["body_id"] == 5


@pytest.mark.parametrize("line", [b"", b"not json\n", b'{"body_id": 1}\n', b'{"body_id":1,"timestamp":0,"joints":[{"joint_id":99}]}'])
def test_decode_rejects_malformed_records(line):
    with pytest.raises(ValueError):
        decode_record(line)


def test_non_finite_values_are_written_as_null():
    head = Joint(JointId.HEAD, [np.nan, np.inf, 1.0], [1.0, 0.0, 0.0, 0.0], ConfidenceLevel.NONE)
    record = encode_record(BodyFrame(body_id=1, joints=[head], timestamp_usec=0))

    assert b"NaN" not in record and b"Infinity" not in record
    assert json.loads(record)["joints"][0]["position"] == {"x": None, "y": None, "z": 1}

    decoded = decode_record(record).joints[0]
    assert np.isnan(decoded.position[0]) and np.isnan(decoded.position[1])
    assert decoded.position[2] == 1.0
