import logging
import time
from typing import Optional

from ..core.interfaces import IBodySource
from ..core.types import BodyFrame, TriggerResult
from ..io.frame_streamer import FrameStreamer
from .capture_controller import GestureCaptureController, ManualTriggerPolicy

logger = logging.getLogger(__name__)


class PoseRelayApp:
    """
    Drives one body source through the capture controller and the streamer.

    Each frame goes to the controller first and then to the streamer, on the
    calling thread. A failed send leaves streaming off until reconnect() is
    called.
    """

    def __init__(self, source: IBodySource, controller: GestureCaptureController,
                 streamer: Optional[FrameStreamer] = None):
        self.source = source
        self.controller = controller
        self.streamer = streamer

        self.running = False
        self.last_frame: Optional[BodyFrame] = None
        self.last_trigger: Optional[TriggerResult] = None
        self.frames_processed = 0
        self.frames_sent = 0
        self.captures = 0
        self._manual_requested = False
        self._fps_cnt = 0
        self._fps_last_ts = time.time()

    def initialize(self) -> bool:
        self.source.open()
        if self.streamer is not None:
            # Streaming is best effort; capture still works without it.
            self.streamer.initialize()
        self.running = True
        return True

    def reconnect(self) -> bool:
        if self.streamer is None:
            return False
        return self.streamer.initialize() is None

    def request_manual_capture(self):
        self._manual_requested = True

    def cancel_countdown(self):
        self.controller.reset()
        logger.info("Countdown cancelled")

    def step(self) -> Optional[BodyFrame]:
        frame = self.source.read_frame()
        if frame is None:
            if self.source.finished:
                self.running = False
            return None

        self.last_frame = frame
        self.frames_processed += 1

        if not self._manual_requested:
            result = self.controller.process(frame)
        else:
            self._manual_requested = False
            result = TriggerResult.no_trigger()
            if self.controller.manual_policy is ManualTriggerPolicy.KEEP_COUNTDOWN:
                # The countdown keeps running, so this frame still feeds it
                result = self.controller.process(frame)
            if not result.triggered:
                result = self.controller.trigger_manually(frame)
        if result.triggered:
            self.captures += 1
            self.last_trigger = result

        if self.streamer is not None and self.streamer.is_connected():
            err = self.streamer.send(frame)
            if err is None:
                self.frames_sent += 1
            elif not self.streamer.is_connected():
                logger.warning("Streaming stopped: %s", err)

        self._log_fps()
        return frame

    def run(self, max_frames: Optional[int] = None):
        if not self.running:
            self.initialize()
        try:
            while self.running:
                self.step()
                if max_frames is not None and self.frames_processed >= max_frames:
                    break
        finally:
            self.cleanup()

    def stop(self):
        self.running = False

    def cleanup(self):
        self.running = False
        if self.streamer is not None:
            self.streamer.close()
        self.source.close()

    def _log_fps(self):
        self._fps_cnt += 1
        now = time.time()
        if now - self._fps_last_ts >= 1.0:
            fps = self._fps_cnt / (now - self._fps_last_ts)
            logger.debug("Input FPS: %.2f", fps)
            self._fps_cnt = 0
            self._fps_last_ts = now
