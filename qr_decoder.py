import logging
import sys

import cv2
import numpy as np

import scanner_config  # noqa: F401  sets DYLD_LIBRARY_PATH before zbar loads

try:
    from pyzbar.pyzbar import decode, ZBarSymbol
except ImportError as e:
    print(f"Error importing pyzbar: {e}")
    print("Please ensure zbar is installed:")
    print("  brew install zbar        (macOS)")
    print("  apt install libzbar0     (Debian/Ubuntu)")
    print("Then install pyzbar:")
    print("  pip install pyzbar")
    sys.exit(1)

logger = logging.getLogger(__name__)


def _candidates(frame, try_harder):
    yield frame
    if not try_harder:
        return
    if frame.ndim == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        yield gray
    else:
        gray = frame
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    yield binary


def decode_qr(frame, try_harder=True):
    """
    Return the text of the first QR code found in a BGR or grayscale frame,
    or None. With try_harder the grayscale and Otsu-thresholded versions of
    the frame are tried when the original yields nothing.
    """
    if frame is None or frame.size == 0:
        return None
    frame = np.ascontiguousarray(frame)
    for image in _candidates(frame, try_harder):
        for obj in decode(image, symbols=[ZBarSymbol.QRCODE]):
            text = obj.data.decode('utf-8', errors='replace')
            if text:
                logger.debug("QR code decoded: %r", text)
                return text
    return None
