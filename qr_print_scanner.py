import logging
import threading
import tkinter as tk
from tkinter import messagebox
from queue import Queue, Empty

import cv2
from PIL import Image, ImageTk

from scanner_config import (
    CLOSE_TIMEOUT,
    COLOR_HINT,
    COLOR_IDLE,
    INVOKE_TIMEOUT,
    UI_POLL_INTERVAL_MS,
    VIDEO_BORDER,
    VIDEO_HEIGHT,
    VIDEO_WIDTH,
    WINDOW_HEIGHT,
    WINDOW_TITLE,
    WINDOW_WIDTH,
    configure_logging,
    parse_args,
)
from scan_controller import ScanController

logger = logging.getLogger(__name__)


class _Call:
    __slots__ = ('fn', 'done', 'result', 'error')

    def __init__(self, fn):
        self.fn = fn
        self.done = threading.Event()
        self.result = None
        self.error = None

    def run(self):
        try:
            self.result = self.fn()
        except Exception as e:
            self.error = e
        finally:
            self.done.set()


class TkDispatcher:
    """
    Runs callables on the Tk thread. Tk widgets may only be touched from the
    thread running mainloop, so other threads queue work here and the queue
    is drained from a root.after poll.
    """

    def __init__(self, root, poll_interval_ms=UI_POLL_INTERVAL_MS, timeout=INVOKE_TIMEOUT):
        self.root = root
        self.poll_interval_ms = poll_interval_ms
        self.timeout = timeout
        self._queue = Queue()
        self._ui_thread = threading.get_ident()
        self._closed = False
        self._after_id = self.root.after(self.poll_interval_ms, self._drain)

    def on_ui_thread(self):
        return threading.get_ident() == self._ui_thread

    def invoke(self, fn):
        """Run fn on the UI thread, wait for it, and return its result."""
        if self.on_ui_thread():
            return fn()
        if self._closed:
            raise RuntimeError("UI has been closed")
        call = _Call(fn)
        self._queue.put((call, True))
        if not call.done.wait(self.timeout):
            raise TimeoutError("UI thread did not respond")
        if call.error is not None:
            raise call.error
        return call.result

    def post(self, fn):
        if self._closed:
            return
        self._queue.put((_Call(fn), False))

    def _drain(self):
        while True:
            try:
                call, waited = self._queue.get_nowait()
            except Empty:
                break
            call.run()
            if call.error is not None and not waited:
                logger.error("Error in UI callback: %s", call.error)
        if not self._closed:
            self._after_id = self.root.after(self.poll_interval_ms, self._drain)

    def close(self):
        self._closed = True
        if self._after_id is not None:
            self.root.after_cancel(self._after_id)
            self._after_id = None
        # Release anyone still blocked in invoke()
        while True:
            try:
                call, _ = self._queue.get_nowait()
            except Empty:
                break
            call.error = RuntimeError("UI has been closed")
            call.done.set()


class QRPrintScannerApp:
    def __init__(self, master, decoder, max_probe=None, print_delay=None):
        self.master = master
        self.master.title(WINDOW_TITLE)
        self.master.geometry(f"{WINDOW_WIDTH}x{WINDOW_HEIGHT}")
        self.master.resizable(False, False)
        self.master.protocol("WM_DELETE_WINDOW", self.on_close)

        self.dispatcher = TkDispatcher(master)
        self.photo = None

        options = {}
        if max_probe is not None:
            options['max_probe'] = max_probe
        if print_delay is not None:
            options['print_delay'] = print_delay
        self.controller = ScanController(self, decoder, **options)

        self._build_ui()

    def _build_ui(self):
        self.status_label = tk.Label(self.master, text="Status: waiting to start scan",
                                     fg=COLOR_IDLE, anchor="w")
        self.status_label.place(x=20, y=20, width=VIDEO_WIDTH, height=20)

        self.start_button = tk.Button(self.master, text="Start scan", command=self.controller.start_scan)
        self.start_button.place(x=20, y=50, width=100, height=30)

        self.stop_button = tk.Button(self.master, text="Stop scan", command=self.controller.stop_clicked,
                                     state=tk.DISABLED)
        self.stop_button.place(x=130, y=50, width=100, height=30)

        self.video_label = tk.Label(self.master, bg="black", bd=VIDEO_BORDER, relief="solid")
        self.video_label.place(x=20, y=90, width=VIDEO_WIDTH, height=VIDEO_HEIGHT)

        self.info_label = tk.Label(self.master,
                                   text="Tip: point the camera at a QR code; web links are opened and printed",
                                   fg=COLOR_HINT, anchor="w")
        self.info_label.place(x=20, y=500, width=VIDEO_WIDTH, height=20)

    # View interface used by ScanController

    def invoke(self, fn):
        return self.dispatcher.invoke(fn)

    def post(self, fn):
        self.dispatcher.post(fn)

    def set_status(self, text, color):
        self.status_label.configure(text=text, fg=color)

    def set_buttons(self, start_enabled, stop_enabled):
        self.start_button.configure(state=tk.NORMAL if start_enabled else tk.DISABLED)
        self.stop_button.configure(state=tk.NORMAL if stop_enabled else tk.DISABLED)

    def show_frame(self, frame):
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        # Stretch to the area inside the border so Tk does not crop the edges
        img = Image.fromarray(rgb).resize((VIDEO_WIDTH - 2 * VIDEO_BORDER, VIDEO_HEIGHT - 2 * VIDEO_BORDER))
        photo = ImageTk.PhotoImage(image=img)
        self.video_label.configure(image=photo)
        # Tk does not hold a Python reference; dropping the old one frees it
        self.photo = photo

    def clear_frame(self):
        self.video_label.configure(image='')
        self.photo = None

    def refresh(self):
        self.master.update_idletasks()

    def ask_yes_no(self, title, message):
        return messagebox.askyesno(title, message, parent=self.master)

    def show_info(self, title, message):
        messagebox.showinfo(title, message, parent=self.master)

    def on_close(self):
        source = self.controller.video_source
        self.controller.on_close()
        # Unblock the camera thread before waiting for it to release the device
        self.dispatcher.close()
        if source is not None:
            source.wait_for_stop(CLOSE_TIMEOUT)
        self.master.destroy()


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level)

    from qr_decoder import decode_qr

    root = tk.Tk()
    QRPrintScannerApp(root, decode_qr, max_probe=args.max_probe, print_delay=args.print_delay)
    logger.info("QR Scan & Print is running. Click 'Start scan' to begin.")
    root.mainloop()


if __name__ == "__main__":
    main()
