import logging
import numpy as np
from typing import Any, Dict, Optional
import pyk4a
from pyk4a import PyK4A, Config, ColorResolution, ImageFormat, FPS, DepthMode

from ..core.interfaces import ICamera
from ..core.types import CameraFrame

logger = logging.getLogger(__name__)


class KinectCamera(ICamera):
    """Azure Kinect color + depth, with depth resampled into the color camera."""

    def __init__(self,
                 color_resolution=ColorResolution.RES_720P,
                 camera_fps=FPS.FPS_30,
                 depth_mode=DepthMode.NFOV_UNBINNED):
        self._cam: Optional[PyK4A] = None
        self._intrinsics: Optional[np.ndarray] = None
        self._frame_id = 0

        self._color_resolution = color_resolution
        self._camera_fps = camera_fps
        self._depth_mode = depth_mode

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "KinectCamera":
        fps = int(d.get("fps", 30))
        return cls(
            color_resolution=getattr(ColorResolution, str(d.get("color_resolution", "RES_720P"))),
            camera_fps=getattr(FPS, f"FPS_{fps}"),
            depth_mode=getattr(DepthMode, str(d.get("depth_mode", "NFOV_UNBINNED"))),
        )

    def open(self) -> bool:
        cfg = Config(
            color_resolution=self._color_resolution,
            # transformed_depth requires BGRA32 color
            color_format=ImageFormat.COLOR_BGRA32,
            camera_fps=self._camera_fps,
            depth_mode=self._depth_mode,
            synchronized_images_only=True,
        )
        self._cam = PyK4A(cfg)
        self._cam.start()

        calib = self._cam.calibration
        mat = calib.get_camera_matrix(pyk4a.CalibrationType.COLOR)
        # mat is 3x3 [[fx, 0, cx], [0, fy, cy], [0, 0, 1]]
        self._intrinsics = np.array([mat[0, 0], mat[1, 1], mat[0, 2], mat[1, 2]], dtype=np.float32)
        logger.info("Kinect started, color intrinsics %s", self._intrinsics.tolist())
        self._frame_id = 0
        return True

    def read_frame(self) -> Optional[CameraFrame]:
        if self._cam is None:
            return None
        cap = self._cam.get_capture()

        depth = cap.transformed_depth
        if depth is None:
            raise RuntimeError("failed to capture depth image")

        raw_color_bgra = cap.color
        bgr = None if raw_color_bgra is None else np.ascontiguousarray(raw_color_bgra[:, :, :3])

        if self._intrinsics is None:
            raise RuntimeError("intrinsics not loaded")

        frame = CameraFrame(
            timestamp_usec=int(cap.depth_timestamp_usec),
            frame_id=self._frame_id,
            color=bgr,
            depth=depth,
            intrinsics=self._intrinsics,
        )
        self._frame_id += 1
        return frame

    def close(self):
        if self._cam:
            self._cam.stop()
            self._cam = None
