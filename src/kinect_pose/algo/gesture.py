from ..core.joints import JOINT_COUNT, ConfidenceLevel, JointId
from ..core.types import BodyFrame


def both_hands_raised(frame: BodyFrame, min_confidence: int = ConfidenceLevel.LOW) -> bool:
    """True when both wrists are above the head.

    Camera y points towards the ground, so a smaller y is higher up.
    Partial skeletons never count as raised.
    """
    if len(frame.joints) != JOINT_COUNT:
        return False
    left = frame.joint(JointId.WRIST_LEFT)
    right = frame.joint(JointId.WRIST_RIGHT)
    head = frame.joint(JointId.HEAD)
    if min(left.confidence, right.confidence, head.confidence) < int(min_confidence):
        return False
    head_y = float(head.position[1])
    return float(left.position[1]) < head_y and float(right.position[1]) < head_y
