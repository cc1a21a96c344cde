"""
Gesture Arcade Tracking - Demo Application
===========================================

Runs a tracking session on the selected camera and shows the mirrored
preview with the smoothed cursor, the same signal every game consumes.
"""

import argparse
import logging
import signal
import sys
import time
from typing import Optional

import cv2

from .capture.devices import DEFAULT_CAMERA_ID, detect_camera_options
from .core.controller import TrackingController
from .core.session import SessionConfig
from .core.types import TrackingSnapshot
from .utils.config import create_session_config, load_config
from .utils.logger import setup_logging
from .utils.visualization import Visualizer, VisualizerConfig

logger = logging.getLogger(__name__)

WINDOW_NAME = "Gesture Arcade Tracking"


class TrackingDemo:
    """
    Demo loop around a TrackingController.

    Keyboard Controls:
        q/ESC  - Quit
        p      - Print performance report
        0-9    - Switch to camera index
        d      - Switch to default camera
    """

    def __init__(self, config: SessionConfig, visualizer: Visualizer, show_window: bool = True):
        self.controller = TrackingController(config)
        self.visualizer = visualizer
        self.show_window = show_window
        self._running = False
        self._last_logged: Optional[TrackingSnapshot] = None

    def run(self, device_id: str) -> int:
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        snapshot = self.controller.select_device(device_id)
        if snapshot.error:
            logger.error("Could not start tracking: %s", snapshot.error)
            self.controller.close()
            return 1

        self._running = True
        try:
            self._main_loop()
        finally:
            if self.controller.session is not None:
                print(self._report())
            self.controller.close()
            if self.show_window:
                cv2.destroyAllWindows()
        return 0

    def _main_loop(self) -> None:
        while self._running:
            session = self.controller.session
            snapshot = self.controller.snapshot

            if snapshot.error:
                logger.error("Tracking stopped: %s", snapshot.error)
                self._running = False
                break

            if self.show_window:
                image = self.visualizer.render(snapshot, session.stats if session else None)
                cv2.imshow(WINDOW_NAME, image)
                self._handle_key(cv2.waitKey(15) & 0xFF)
            else:
                self._log_changes(snapshot)
                time.sleep(0.05)

    def _handle_key(self, key: int) -> None:
        if key in (ord("q"), 27):
            self._running = False
        elif key == ord("p"):
            print(self._report())
        elif key == ord("d"):
            self.controller.select_device(DEFAULT_CAMERA_ID)
        elif ord("0") <= key <= ord("9"):
            self.controller.select_device(chr(key))

    def _log_changes(self, snapshot: TrackingSnapshot) -> None:
        previous = self._last_logged
        if previous is None or previous.has_point != snapshot.has_point:
            if snapshot.has_point:
                logger.info("Hand: %s at (%.3f, %.3f)", snapshot.gesture, snapshot.x, snapshot.y)
            else:
                logger.info("No hand")
        self._last_logged = snapshot

    def _report(self) -> str:
        session = self.controller.session
        if session is None:
            return "No active session"
        return session.performance_report()

    def _signal_handler(self, signum, frame) -> None:
        logger.info("Received signal %d, shutting down...", signum)
        self._running = False


def list_cameras() -> int:
    for option in detect_camera_options():
        print("{:>10}  {}".format(option.id, option.label))
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Webcam gesture tracking for arcade games",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Keyboard Controls:
  q/ESC     - Quit
  p         - Print performance report
  0-9       - Switch camera index
  d         - Switch to the default camera

Examples:
  gesture-arcade --list-cameras
  gesture-arcade --camera 1 --profile pong
  gesture-arcade --config custom_config.yaml --no-window
        """
    )
    parser.add_argument("--camera", "-c", default=DEFAULT_CAMERA_ID,
                        help="Camera id: 'default', an index, or a device path/URL")
    parser.add_argument("--config", default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--profile", default=None,
                        help="Filter profile name from the config file")
    parser.add_argument("--list-cameras", action="store_true",
                        help="List detected cameras and exit")
    parser.add_argument("--no-window", action="store_true",
                        help="Log tracking changes instead of showing a window")
    parser.add_argument("--debug", "-d", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--log-file", default=None,
                        help="Also write logs to this file")
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.debug else "INFO", log_file=args.log_file)

    if args.list_cameras:
        return list_cameras()

    config_dict = load_config(args.config)
    session_config = create_session_config(config_dict, profile=args.profile)
    visualizer = Visualizer(VisualizerConfig.from_dict(config_dict.get("visualization", {})))

    demo = TrackingDemo(session_config, visualizer, show_window=not args.no_window)
    return demo.run(args.camera)


if __name__ == "__main__":
    sys.exit(main())
