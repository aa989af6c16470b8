import json
import os
from datetime import datetime

from kinect_pose.core.errors import PersistenceError
from kinect_pose.core.joints import JOINT_COUNT
from kinect_pose.io.snapshot_writer import SnapshotWriter, snapshot_label


def _clock():
    return datetime(2024, 3, 5, 14, 7, 9)


def test_label_format():
    assert snapshot_label(_clock()) == "pose_snapshot_20240305_140709"


def test_writes_indented_snapshot(tmp_path, make_frame):
    writer = SnapshotWriter(str(tmp_path / "snaps"), clock=_clock)
    frame = make_frame(body_id=11, timestamp_usec=42, hands_up=True)

    result = writer.write(frame)

    assert result.ok
    assert result.path == os.path.join(str(tmp_path / "snaps"), "pose_snapshot_20240305_140709.json")
    assert result.snapshot.label == "pose_snapshot_20240305_140709"
    assert result.snapshot.body_id == 11

    with open(result.path, "r", encoding="utf-8") as f:
        text = f.read()
    assert text.startswith("{\n  ")
    data = json.loads(text)
    assert data["body_id"] == 11
    assert data["timestamp"] == "pose_snapshot_20240305_140709"
    assert len(data["joints"]) == JOINT_COUNT
    head = data["joints"][26]
    assert head["joint_name"] == "HEAD"
    assert head["position"] == {"x": 0.0, "y": -600.0, "z": 2000.0}
    assert head["orientation"] == {"w": 1.0, "x": 0.0, "y": 0.0, "z": 0.0}
    assert head["confidence_level"] == 2


def test_unwritable_destination_returns_error(tmp_path, make_frame):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    writer = SnapshotWriter(str(blocker), clock=_clock)

    result = writer.write(make_frame())

    assert not result.ok
    assert result.path is None
    assert isinstance(result.error, PersistenceError)
    assert result.error.operation == "write"
