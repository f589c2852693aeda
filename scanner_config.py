import argparse
import logging
import os
import sys

# Homebrew installs libzbar outside the default macOS loader path
if sys.platform == 'darwin':
    os.environ.setdefault('DYLD_LIBRARY_PATH', '/opt/homebrew/lib')

WINDOW_TITLE = "QR Scan & Print"
WINDOW_WIDTH = 800
WINDOW_HEIGHT = 600
VIDEO_WIDTH = 740
VIDEO_HEIGHT = 400
VIDEO_BORDER = 1

MAX_CAMERA_PROBE = 5  # OpenCV indices tried when enumerating cameras
PRINT_DELAY = 1.8  # seconds to let the browser load before Ctrl+P
UI_POLL_INTERVAL_MS = 10
INVOKE_TIMEOUT = 2.0
CLOSE_TIMEOUT = 1.0  # seconds to let the camera thread release the device on exit

URL_PREFIXES = ('http://', 'https://')

# Status colours
COLOR_IDLE = "dark blue"
COLOR_OK = "green"
COLOR_ERROR = "red"
COLOR_WARNING = "orange"
COLOR_RECOGNIZED = "purple"
COLOR_BUSY = "blue"
COLOR_HINT = "gray"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Scan a QR code from the webcam, then open and print its link")
    parser.add_argument("--max-probe", type=int, default=MAX_CAMERA_PROBE,
                        help=f"Number of camera indices to probe (default: {MAX_CAMERA_PROBE})")
    parser.add_argument("--print-delay", type=float, default=PRINT_DELAY,
                        help=f"Seconds to wait after opening a link before printing (default: {PRINT_DELAY})")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console log level (default: INFO)")
    args = parser.parse_args(argv)
    if args.max_probe < 1:
        parser.error("--max-probe must be at least 1")
    if args.print_delay < 0:
        parser.error("--print-delay cannot be negative")
    return args


def configure_logging(level="INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
