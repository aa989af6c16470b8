from datetime import datetime

import pytest

from kinect_pose.core.errors import SendError
from kinect_pose.core.joints import ConfidenceLevel, JointId
from kinect_pose.core.types import BodyFrame, CaptureState, Joint
from kinect_pose.io.frame_codec import encode_record
from kinect_pose.io.record_source import RecordFileSource
from kinect_pose.io.snapshot_writer import SnapshotWriter
from kinect_pose.logic.app_controller import PoseRelayApp
from kinect_pose.logic.capture_controller import GestureCaptureController, ManualTriggerPolicy


class FakeStreamer:
    def __init__(self, fail_after=None):
        self.sent = []
        self.connected = False
        self.fail_after = fail_after
        self.closed = False

    def initialize(self):
        self.connected = True
        return None

    def is_connected(self):
        return self.connected

    def send(self, frame):
        if not self.connected:
            return SendError("send", "not connected")
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            # One broken pipe, then the peer accepts again after reconnect
            self.fail_after = None
            self.connected = False
            return SendError("send", "broken pipe")
        self.sent.append(frame.timestamp_usec)
        return None

    def close(self):
        self.closed = True
        self.connected = False


@pytest.fixture
def replay_file(tmp_path, make_frame):
    path = tmp_path / "session.jsonl"
    with open(path, "wb") as f:
        for i in range(10):
            # hands go up at frame 2, down again at frame 4
            f.write(encode_record(make_frame(body_id=1, timestamp_usec=i * 500_000, hands_up=2 <= i < 4)))
    return str(path)


def test_replay_captures_and_streams(tmp_path, replay_file):
    writer = SnapshotWriter(str(tmp_path / "out"), clock=lambda: datetime(2024, 1, 2, 3, 4, 5))
    controller = GestureCaptureController(capture_delay_ms=3000, writer=writer)
    streamer = FakeStreamer()
    app = PoseRelayApp(RecordFileSource(replay_file), controller, streamer)

    app.run()

    assert app.frames_processed == 10
    assert streamer.sent == [i * 500_000 for i in range(10)]
    # armed at 1.0s, fires at 4.0s
    assert app.captures == 1
    assert app.last_trigger.frame.timestamp_usec == 4_000_000
    assert (tmp_path / "out" / "pose_snapshot_20240102_030405.json").exists()
    assert streamer.closed


def test_send_failure_stops_streaming_until_reconnect(replay_file):
    streamer = FakeStreamer(fail_after=3)
    app = PoseRelayApp(RecordFileSource(replay_file), GestureCaptureController(), streamer)
    app.initialize()
    for _ in range(5):
        app.step()
    assert streamer.sent == [0, 500_000, 1_000_000]
    assert not streamer.is_connected()

    assert app.reconnect()
    app.step()
    assert streamer.sent[-1] == 2_500_000
    app.cleanup()


def test_manual_capture_request(replay_file):
    controller = GestureCaptureController()
    app = PoseRelayApp(RecordFileSource(replay_file), controller, None)
    app.initialize()
    app.step()
    app.request_manual_capture()
    app.step()
    assert app.captures == 1
    assert app.last_trigger.manual
    assert app.last_trigger.frame.timestamp_usec == 500_000
    app.cleanup()


def test_run_stops_at_max_frames(replay_file):
    app = PoseRelayApp(RecordFileSource(replay_file), GestureCaptureController(), None)
    app.run(max_frames=4)
    assert app.frames_processed == 4


def test_record_source_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        RecordFileSource(str(tmp_path / "missing.jsonl")).open()


def test_manual_capture_keeps_feeding_countdown(replay_file):
    controller = GestureCaptureController(manual_policy=ManualTriggerPolicy.KEEP_COUNTDOWN)
    app = PoseRelayApp(RecordFileSource(replay_file), controller, None)
    app.initialize()
    app.step()
    app.step()
    app.request_manual_capture()
    # hands go up on this frame
    app.step()
    assert app.captures == 1
    assert app.last_trigger.manual
    assert controller.hands_raised
    assert controller.state is CaptureState.ARMED
    app.cleanup()


def test_partial_records_are_skipped_on_replay(tmp_path, make_frame):
    head = Joint(JointId.HEAD, [0.0, 0.0, 1.0], [1.0, 0.0, 0.0, 0.0], ConfidenceLevel.MEDIUM)
    path = tmp_path / "partial.jsonl"
    with open(path, "wb") as f:
        f.write(encode_record(BodyFrame(body_id=7, joints=[head], timestamp_usec=1)))
        f.write(encode_record(make_frame(body_id=7, timestamp_usec=2)))

    app = PoseRelayApp(RecordFileSource(str(path)), GestureCaptureController(), None)
    app.run()
    assert app.frames_processed == 1
    assert app.last_frame.timestamp_usec == 2
