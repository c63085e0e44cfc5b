"""Process privilege checks."""

import ctypes
import os
import sys


def is_elevated() -> bool:
    """
    Return True if the current process may mutate the firewall.

    On Windows this means running as Administrator; elsewhere, as root.
    """
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False

    return os.geteuid() == 0
