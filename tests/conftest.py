import numpy as np
import pytest

from kinect_pose.core.joints import ConfidenceLevel, JointId
from kinect_pose.core.types import BodyFrame


def _frame(body_id=1, timestamp_usec=0, hands_up=False, confidence=ConfidenceLevel.MEDIUM):
    frame = BodyFrame.empty(body_id, timestamp_usec)
    for j in frame.joints:
        j.confidence = ConfidenceLevel(confidence)
        j.position = np.array([0.0, 200.0, 2000.0], dtype=np.float32)
    # y points to the ground: smaller y is higher
    frame.joint(JointId.HEAD).position = np.array([0.0, -600.0, 2000.0], dtype=np.float32)
    wrist_y = -800.0 if hands_up else 0.0
    frame.joint(JointId.WRIST_LEFT).position = np.array([-200.0, wrist_y, 2000.0], dtype=np.float32)
    frame.joint(JointId.WRIST_RIGHT).position = np.array([200.0, wrist_y, 2000.0], dtype=np.float32)
    return frame


@pytest.fixture
def make_frame():
    return _frame
