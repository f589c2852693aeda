import logging
from threading import Event

import url_printer
from camera_source import VideoCaptureDevice, list_video_devices
from scanner_config import (
    COLOR_BUSY,
    COLOR_ERROR,
    COLOR_IDLE,
    COLOR_OK,
    COLOR_RECOGNIZED,
    COLOR_WARNING,
    MAX_CAMERA_PROBE,
    PRINT_DELAY,
)

logger = logging.getLogger(__name__)


class ScanController:
    """
    Runs a scan session against a view.

    decoder takes a BGR frame and returns the QR text or None.
    The view must provide invoke(fn) and post(fn) for running code on the UI
    thread, plus set_status, set_buttons, show_frame, clear_frame, refresh,
    ask_yes_no and show_info. Frame callbacks arrive on the camera thread;
    everything else is called from the UI thread.
    """

    def __init__(self, view, decoder, list_devices=list_video_devices,
                 device_factory=VideoCaptureDevice, open_and_print=url_printer.open_and_print,
                 max_probe=MAX_CAMERA_PROBE, print_delay=PRINT_DELAY):
        self.view = view
        self.decoder = decoder
        self.list_devices = list_devices
        self.device_factory = device_factory
        self.open_and_print = open_and_print
        self.max_probe = max_probe
        self.print_delay = print_delay

        self.video_source = None
        self.current_frame = None
        self._decoded = Event()
        self._frame_callback = None

    def update_status(self, text, color):
        self.view.invoke(lambda: self.view.set_status(text, color))

    # Button handlers

    def start_scan(self):
        try:
            self.stop_scan()
            devices = self.list_devices(self.max_probe)
            if not devices:
                self.update_status("Error: no camera detected", COLOR_ERROR)
                return

            device = devices[0]
            source = self.device_factory(device)
            self._decoded.clear()
            self._frame_callback = self._frame_handler(source)
            source.subscribe(self._frame_callback)
            self.video_source = source
            try:
                source.start()
            except Exception:
                self.video_source = None
                source.unsubscribe(self._frame_callback)
                raise
            self.update_status(f"Status: started ({device.name})", COLOR_OK)
            self.view.set_buttons(start_enabled=False, stop_enabled=True)
        except Exception as e:
            logger.error("Failed to start scan: %s", e)
            self.update_status(f"Start failed: {e}", COLOR_ERROR)

    def stop_clicked(self):
        self.stop_scan()
        self.update_status("Status: stopped", COLOR_IDLE)
        self.view.set_buttons(start_enabled=True, stop_enabled=False)

    def on_close(self):
        self.stop_scan()

    def stop_scan(self):
        source, self.video_source = self.video_source, None
        if source is not None:
            # Deregister first so a late frame is not delivered during teardown
            source.unsubscribe(self._frame_callback)
            source.signal_to_stop()
            logger.info("Scan stopped")
        if self.current_frame is not None:
            self.view.invoke(self._release_display)

    def _release_display(self):
        self.view.clear_frame()
        self.current_frame = None

    # Camera thread

    def _frame_handler(self, source):
        def handler(frame):
            self.on_new_frame(frame, source)
        return handler

    def on_new_frame(self, frame, session):
        """Handle one camera frame for `session`, the source that produced it."""
        if self._decoded.is_set() or session is not self.video_source:
            return
        try:
            # The capture buffer is reused by the camera; work on our own copy
            new_frame = frame.copy()
            display_frame = new_frame.copy()
            self.view.invoke(lambda: self._swap_display(session, display_frame))

            # Stop may have run while we waited on the UI thread
            if session is not self.video_source:
                return
            text = self.decoder(new_frame.copy())
            if text:
                self._on_decoded(session, text)
        except Exception as e:
            logger.warning("Frame error: %s", e)
            self.update_status(f"Frame error: {e}", COLOR_WARNING)

    def _swap_display(self, session, frame):
        if session is not self.video_source:
            return
        self.current_frame = frame
        self.view.show_frame(frame)

    def _on_decoded(self, session, text):
        if self._decoded.is_set() or session is not self.video_source:
            return
        self._decoded.set()
        session.unsubscribe(self._frame_callback)
        session.signal_to_stop()
        self.view.post(lambda: self._deliver_result(session, text))

    # UI thread

    def _deliver_result(self, session, text):
        if session is not self.video_source:
            logger.info("Dropping result of a stopped scan: %s", text)
            return
        self.process_qr_code(text)

    def process_qr_code(self, content):
        self.stop_scan()
        logger.info("QR code recognized: %s", content)
        self.update_status(f"Recognized: {content}", COLOR_RECOGNIZED)

        if url_printer.is_url(content):
            if self.view.ask_yes_no("Scan result", f"Open and print this link?\n{content}"):
                self.open_and_print_url(content)
        else:
            self.view.show_info("Not a web link", f"Decoded content:\n{content}")

        self.view.set_buttons(start_enabled=True, stop_enabled=False)

    def open_and_print_url(self, url):
        try:
            self.update_status(f"Opening page: {url}", COLOR_BUSY)
            self.view.refresh()
            self.open_and_print(url, self.print_delay)
            self.update_status("Print triggered, please confirm", COLOR_OK)
        except Exception as e:
            logger.error("Failed to open %s: %s", url, e)
            self.update_status(f"Open failed: {e}", COLOR_ERROR)
