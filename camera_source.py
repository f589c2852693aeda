import logging
import sys
import time
from pathlib import Path
from threading import Thread, Event, Lock

import cv2

from scanner_config import MAX_CAMERA_PROBE

logger = logging.getLogger(__name__)


class CameraError(Exception):
    pass


class VideoDevice:
    def __init__(self, index, name):
        self.index = index
        self.name = name

    def __repr__(self):
        return f"VideoDevice(index={self.index}, name={self.name!r})"


def _device_name(index):
    # V4L2 exposes the product name in sysfs; other platforms only give us an index
    sysfs_name = Path(f"/sys/class/video4linux/video{index}/name")
    if sys.platform.startswith('linux') and sysfs_name.exists():
        try:
            name = sysfs_name.read_text().strip()
            if name:
                return name
        except OSError:
            pass
    return f"Camera {index}"


def list_video_devices(max_probe=MAX_CAMERA_PROBE):
    """Probe OpenCV camera indices and return the ones that open."""
    devices = []
    for index in range(max_probe):
        cap = cv2.VideoCapture(index)
        try:
            if cap.isOpened():
                devices.append(VideoDevice(index, _device_name(index)))
        finally:
            cap.release()
    logger.debug("Found %d video device(s): %s", len(devices), devices)
    return devices


class VideoCaptureDevice:
    """
    Reads frames from one camera on a background thread and hands each
    frame to the subscribed callbacks. The frame passed to a callback is
    the capture buffer itself and is only valid for the duration of the call.
    """

    def __init__(self, device):
        self.device = device
        self._callbacks = []
        self._lock = Lock()
        self._stop_event = Event()
        self._thread = None
        self._cap = None

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, callback):
        with self._lock:
            self._callbacks.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def start(self):
        if self.is_running:
            return
        cap = cv2.VideoCapture(self.device.index)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"Cannot open camera {self.device.name}")
        self._cap = cap
        self._stop_event.clear()
        self._thread = Thread(target=self._capture_loop, name=f"camera-{self.device.index}", daemon=True)
        self._thread.start()
        logger.info("Camera started: %s", self.device.name)

    def signal_to_stop(self):
        # Does not join: a callback already running may still finish
        self._stop_event.set()

    def wait_for_stop(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)

    def _capture_loop(self):
        cap = self._cap
        try:
            while not self._stop_event.is_set():
                ret, frame = cap.read()
                if not ret:
                    logger.warning("Failed to grab frame from %s", self.device.name)
                    time.sleep(0.05)
                    continue
                with self._lock:
                    callbacks = list(self._callbacks)
                for callback in callbacks:
                    if self._stop_event.is_set():
                        break
                    try:
                        callback(frame)
                    except Exception as e:
                        logger.error("Error in frame callback: %s", e)
        finally:
            cap.release()
            self._cap = None
            logger.info("Camera released: %s", self.device.name)
