#!/usr/bin/env python3
"""
Frame Stream Watcher
====================

Standalone script to watch the rendered frame stream of a running
DitherCam service.

This script:
    1. Connects to /ws/frames
    2. Runs for a configurable duration
    3. Logs frame rate and payload stats every N seconds
    4. Optionally saves the last received frame as PNG

Prerequisites:
    - DitherCam must be running at the configured URL
    - Install dependencies: pip install -e .

Usage:
    python scripts/watch_frames.py --duration 30
    python scripts/watch_frames.py --url ws://localhost:8002/ws/frames --save last.png
"""

import argparse
import asyncio
import base64
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from dither_cam.models.api import FramePayload


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def watch(
    url: str,
    duration: int,
    report_interval: int,
    save_path: Optional[Path],
) -> dict:
    """
    Watch the frame stream.

    Args:
        url: WebSocket URL of /ws/frames
        duration: Watch duration in seconds
        report_interval: Seconds between progress reports
        save_path: Where to write the last frame, or None

    Returns:
        Final stats dict
    """
    logger.info(f"Frame stream URL: {url}")
    logger.info(f"Duration: {duration} seconds")

    frames_received = 0
    invalid_payloads = 0
    bytes_received = 0
    last_payload: Optional[FramePayload] = None

    start_time = time.time()
    last_report_time = start_time
    last_frame_count = 0

    try:
        async with websockets.connect(url, ping_interval=20, ping_timeout=10) as ws:
            logger.info("Connected")
            while time.time() - start_time < duration:
                try:
                    raw = await asyncio.wait_for(ws.recv(), timeout=1.0)
                except asyncio.TimeoutError:
                    raw = None

                if raw is not None:
                    bytes_received += len(raw)
                    try:
                        last_payload = FramePayload.model_validate_json(raw)
                        frames_received += 1
                    except ValidationError as e:
                        invalid_payloads += 1
                        logger.warning(f"Invalid frame payload: {e}")

                time_since_report = time.time() - last_report_time
                if time_since_report >= report_interval:
                    fps = (frames_received - last_frame_count) / time_since_report
                    logger.info(
                        f"frames={frames_received} fps={fps:.1f} "
                        f"last_id={last_payload.frame_id if last_payload else -1} "
                        f"kb={bytes_received / 1024:.0f}"
                    )
                    last_report_time = time.time()
                    last_frame_count = frames_received

    except ConnectionClosed as e:
        logger.warning(f"Connection closed: {e}")
    except OSError as e:
        logger.error(f"Cannot connect to {url}: {e}")

    total_time = time.time() - start_time
    avg_fps = frames_received / total_time if total_time > 0 else 0

    if save_path is not None and last_payload is not None:
        save_path.write_bytes(base64.b64decode(last_payload.image))
        logger.info(
            f"Saved frame {last_payload.frame_id} "
            f"({last_payload.width}x{last_payload.height}) to {save_path}"
        )

    logger.info(
        f"Summary: runtime={total_time:.1f}s frames={frames_received} "
        f"avg_fps={avg_fps:.1f} invalid={invalid_payloads}"
    )

    return {
        "duration": total_time,
        "frames_received": frames_received,
        "avg_fps": avg_fps,
        "invalid_payloads": invalid_payloads,
    }


def main():
    parser = argparse.ArgumentParser(description="Watch the DitherCam frame stream")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("DITHERCAM_FRAMES_URL", "ws://localhost:8002/ws/frames"),
        help="WebSocket URL of /ws/frames",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=30,
        help="Watch duration in seconds (default: 30)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=5,
        help="Seconds between progress reports (default: 5)",
    )
    parser.add_argument(
        "--save",
        type=Path,
        default=None,
        help="Write the last received frame to this PNG path",
    )

    args = parser.parse_args()

    result = asyncio.run(watch(
        url=args.url,
        duration=args.duration,
        report_interval=args.report_interval,
        save_path=args.save,
    ))

    sys.exit(0 if result["frames_received"] > 0 else 1)


if __name__ == "__main__":
    main()
