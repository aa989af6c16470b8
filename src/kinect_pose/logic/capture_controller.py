import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..algo.gesture import both_hands_raised
from ..core.joints import ConfidenceLevel
from ..core.types import BodyFrame, CaptureState, TriggerResult
from ..io.snapshot_writer import SnapshotWriter

logger = logging.getLogger(__name__)


class ManualTriggerPolicy(Enum):
    # Manual capture clears a running countdown, like an automatic capture does.
    RESET_COUNTDOWN = "reset_countdown"
    # Manual capture leaves Idle/Armed bookkeeping untouched.
    KEEP_COUNTDOWN = "keep_countdown"


@dataclass(frozen=True)
class CaptureConfig:
    delay_ms: int = 3000
    min_confidence: int = int(ConfidenceLevel.LOW)
    manual_policy: str = ManualTriggerPolicy.RESET_COUNTDOWN.value

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CaptureConfig":
        known = {k: v for k, v in d.items() if k in CaptureConfig.__dataclass_fields__}
        return CaptureConfig(**known)


class GestureCaptureController:
    """
    Countdown state machine for the "both hands raised" capture gesture.

    Idle -> Armed when both hands are raised. While Armed the countdown keeps
    running whatever the hands do; once the accumulated time reaches the
    capture delay the frame is captured and the controller drops back to Idle
    within the same update. Timestamps are device microseconds.
    """

    def __init__(self, capture_delay_ms: int = 3000,
                 writer: Optional[SnapshotWriter] = None,
                 manual_policy: ManualTriggerPolicy = ManualTriggerPolicy.RESET_COUNTDOWN,
                 min_confidence: int = ConfidenceLevel.LOW):
        if capture_delay_ms < 0:
            raise ValueError("capture delay must be >= 0")
        self.capture_delay_usec = int(capture_delay_ms) * 1000
        self.writer = writer
        self.manual_policy = ManualTriggerPolicy(manual_policy)
        self.min_confidence = int(min_confidence)

        self._state = CaptureState.IDLE
        self._elapsed_usec = 0
        self._previous_ts: Optional[int] = None
        self._hands_raised = False

    @classmethod
    def from_config(cls, cfg: CaptureConfig, writer: Optional[SnapshotWriter] = None) -> "GestureCaptureController":
        return cls(
            capture_delay_ms=int(cfg.delay_ms),
            writer=writer,
            manual_policy=ManualTriggerPolicy(cfg.manual_policy),
            min_confidence=int(cfg.min_confidence),
        )

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def elapsed_usec(self) -> int:
        return self._elapsed_usec

    @property
    def hands_raised(self) -> bool:
        return self._hands_raised

    @property
    def is_countdown_started(self) -> bool:
        return self._state is CaptureState.ARMED

    def process(self, frame: BodyFrame) -> TriggerResult:
        raised = both_hands_raised(frame, self.min_confidence)
        return self.update(raised, frame.timestamp_usec, frame)

    def update(self, hands_raised: bool, timestamp_usec: int, frame: Optional[BodyFrame] = None) -> TriggerResult:
        ts = int(timestamp_usec)
        self._hands_raised = bool(hands_raised)

        if self._state is CaptureState.IDLE:
            if hands_raised:
                self._state = CaptureState.ARMED
                self._elapsed_usec = 0
                logger.debug("Countdown armed at t=%d", ts)
            self._previous_ts = ts
            return TriggerResult.no_trigger()

        delta = ts - self._previous_ts
        if delta < 0:
            logger.debug("Timestamp went backwards by %d us, ignoring", -delta)
            delta = 0
        self._elapsed_usec += delta
        self._previous_ts = ts

        if self._elapsed_usec < self.capture_delay_usec:
            return TriggerResult.no_trigger()

        self._state = CaptureState.CAPTURED
        logger.info("Countdown complete after %.3fs, capturing", self._elapsed_usec / 1e6)
        result = self._emit(frame, manual=False)
        self.reset()
        return result

    def trigger_manually(self, frame: BodyFrame) -> TriggerResult:
        logger.info("Manual capture requested")
        result = self._emit(frame, manual=True)
        if self.manual_policy is ManualTriggerPolicy.RESET_COUNTDOWN:
            self.reset()
        return result

    def reset(self):
        self._state = CaptureState.IDLE
        self._elapsed_usec = 0
        self._previous_ts = None

    def remaining_seconds(self) -> float:
        if self._state is not CaptureState.ARMED:
            return 0.0
        return max(0, self.capture_delay_usec - self._elapsed_usec) / 1e6

    def countdown_text(self) -> str:
        remaining = self.remaining_seconds()
        if remaining > 0.0:
            return f"Snapshot in: {remaining:.1f}"
        return ""

    def _emit(self, frame: Optional[BodyFrame], manual: bool) -> TriggerResult:
        result = TriggerResult(triggered=True, frame=frame, manual=manual)
        if self.writer is None or frame is None:
            return result
        result.write = self.writer.write(frame)
        if result.write.error is not None:
            # The gesture still counts as captured.
            logger.debug("Capture for body %d not persisted", frame.body_id)
        return result
