import logging
import sys
import time
import webbrowser

from scanner_config import PRINT_DELAY, URL_PREFIXES

logger = logging.getLogger(__name__)


def is_url(content):
    return bool(content) and content.startswith(URL_PREFIXES)


def print_hotkey():
    if sys.platform == 'darwin':
        return ('command', 'p')
    return ('ctrl', 'p')


def send_print_shortcut():
    # pyautogui connects to the display server on import
    import pyautogui

    pyautogui.hotkey(*print_hotkey())
    logger.info("Print shortcut sent: %s", "+".join(print_hotkey()))


def open_url(url):
    if not webbrowser.open(url):
        raise RuntimeError(f"No browser available to open {url}")
    logger.info("Opened URL in default browser: %s", url)


def open_and_print(url, delay=PRINT_DELAY):
    """
    Open url with the default browser, give it `delay` seconds to load,
    then press the print shortcut in the foreground window.
    """
    open_url(url)
    time.sleep(delay)
    send_print_shortcut()
