import argparse
import logging
import os
from typing import Optional

from kinect_pose.algo.gesture import both_hands_raised
from kinect_pose.io.frame_codec import encode_record
from kinect_pose.io.frame_receiver import FrameReceiver

logger = logging.getLogger("kinect_pose.receiver")


def main(argv: Optional[list] = None) -> int:
    ap = argparse.ArgumentParser(description="Receive streamed skeleton records.")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8888)
    ap.add_argument("--out", default=None, help="optional .jsonl file to record frames into")
    ap.add_argument("--max-frames", type=int, default=None)
    ap.add_argument("--debug", action="store_true", help="Enable debug logging.")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format='%(levelname)s:%(name)s:%(message)s')

    out_file = None
    if args.out:
        os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
        out_file = open(args.out, "wb")

    count = 0
    try:
        with FrameReceiver(args.host, args.port) as receiver:
            for frame in receiver.frames():
                count += 1
                if out_file is not None:
                    out_file.write(encode_record(frame))
                if count % 30 == 1:
                    logger.info("frame %d: body=%d t=%d hands_raised=%s",
                                count, frame.body_id, frame.timestamp_usec, both_hands_raised(frame))
                if args.max_frames is not None and count >= args.max_frames:
                    break
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    finally:
        if out_file is not None:
            out_file.close()
    logger.info("Received %d frames", count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
