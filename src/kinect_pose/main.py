import argparse
import logging
import sys
from typing import List, Optional

import cv2
import numpy as np

from kinect_pose.core.config_loader import load_config
from kinect_pose.core.interfaces import IBodySource
from kinect_pose.io.frame_streamer import FrameStreamer, StreamConfig
from kinect_pose.io.record_source import RecordFileSource
from kinect_pose.io.snapshot_writer import SnapshotWriter
from kinect_pose.logic.app_controller import PoseRelayApp
from kinect_pose.logic.capture_controller import CaptureConfig, GestureCaptureController
from kinect_pose.vis.overlay import draw_skeleton, draw_status

logger = logging.getLogger("kinect_pose")

WINDOW_NAME = "Kinect Pose"


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Hands-raised pose snapshots and TCP skeleton streaming.")
    ap.add_argument("--config", default="config.json", help="JSON config file")
    ap.add_argument("--source", choices=["kinect", "replay"], default=None, help="body source (default from config)")
    ap.add_argument("--replay", default=None, help=".jsonl file of stream records to replay")
    ap.add_argument("--host", default=None, help="stream receiver host")
    ap.add_argument("--port", type=int, default=None, help="stream receiver port")
    ap.add_argument("--delay-ms", type=int, default=None, help="capture countdown in milliseconds")
    ap.add_argument("--snapshot-dir", default=None, help="directory for pose_snapshot_*.json files")
    ap.add_argument("--no-stream", action="store_true", help="disable skeleton streaming")
    ap.add_argument("--show", action="store_true", help="show a preview window (r: capture, c: cancel, q: quit)")
    ap.add_argument("--max-frames", type=int, default=None)
    ap.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return ap


def apply_overrides(config, args):
    capture = config["capture"]
    stream = config["stream"]
    if args.delay_ms is not None:
        capture["delay_ms"] = args.delay_ms
    if args.snapshot_dir is not None:
        capture["snapshot_dir"] = args.snapshot_dir
    if args.host is not None:
        stream["host"] = args.host
    if args.port is not None:
        stream["port"] = args.port
    if args.no_stream:
        stream["enabled"] = False
    if args.source is not None:
        config["camera"]["type"] = args.source
    if args.replay is not None:
        config["camera"]["type"] = "replay"
    return config


def build_source(config, replay_path: Optional[str]) -> IBodySource:
    source_type = str(config.get("camera", {}).get("type", "kinect")).lower()
    if source_type == "replay":
        if not replay_path:
            raise ValueError("--replay is required for the replay source")
        return RecordFileSource(replay_path)

    from kinect_pose.io.kinect_camera import KinectCamera
    from kinect_pose.io.body_source import MediaPipeBodyConfig, MediaPipeBodySource, MediaPipeBodyTracker

    cam = KinectCamera.from_dict(config.get("camera", {}).get("kinect", {}))
    tracker = MediaPipeBodyTracker(MediaPipeBodyConfig.from_dict(config.get("body", {})))
    return MediaPipeBodySource(cam, tracker)


def build_app(config, source: IBodySource) -> PoseRelayApp:
    capture_cfg = CaptureConfig.from_dict(config.get("capture", {}))
    writer = SnapshotWriter(str(config["capture"].get("snapshot_dir", ".")))
    controller = GestureCaptureController.from_config(capture_cfg, writer)

    stream_cfg = StreamConfig.from_dict(config.get("stream", {}))
    streamer = FrameStreamer.from_config(stream_cfg) if stream_cfg.enabled else None
    return PoseRelayApp(source, controller, streamer)


def _render(app: PoseRelayApp) -> np.ndarray:
    cam_frame = getattr(app.source, "last_camera_frame", None)
    if cam_frame is not None and cam_frame.color is not None:
        img = cam_frame.color
        intrinsics = cam_frame.intrinsics
    else:
        img = np.zeros((720, 1280, 3), dtype=np.uint8)
        intrinsics = np.array([1280.0, 1280.0, 640.0, 360.0], dtype=np.float32)
    vis = draw_skeleton(img, app.last_frame, intrinsics)
    streaming = app.streamer is not None and app.streamer.is_connected()
    return draw_status(vis, app.controller.countdown_text(), app.controller.hands_raised, streaming, app.captures)


def run_with_preview(app: PoseRelayApp, max_frames: Optional[int]):
    app.initialize()
    try:
        while app.running:
            app.step()
            cv2.imshow(WINDOW_NAME, _render(app))
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            elif key == ord('r'):
                app.request_manual_capture()
            elif key == ord('c'):
                app.cancel_countdown()
            if max_frames is not None and app.frames_processed >= max_frames:
                break
    finally:
        app.cleanup()
        cv2.destroyAllWindows()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s:%(name)s:%(message)s')
    else:
        logging.basicConfig(level=logging.INFO, format='%(levelname)s:%(name)s:%(message)s')

    config = apply_overrides(load_config(args.config), args)
    logger.debug("Loaded config: %s", config)

    try:
        source = build_source(config, args.replay)
        app = build_app(config, source)
        if args.show:
            run_with_preview(app, args.max_frames)
        else:
            app.run(args.max_frames)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("Fatal error: %s", e)
        return 1

    logger.info("Done: %d frames, %d sent, %d captures",
                app.frames_processed, app.frames_sent, app.captures)
    return 0


if __name__ == "__main__":
    sys.exit(main())
