"""
screen_capture.py

Captures a monitor with mss and wraps it as a Frame.
"""

import mss
import numpy as np
from mss.exception import ScreenShotError

from ambilight_ble.errors import CaptureFailure
from ambilight_ble.screen.frame import Frame


class MssFrameSource:
    def __init__(self, monitor=1):
        """
        Args:
            monitor: mss monitor index (1 is the primary monitor, 0 all monitors combined)
        """
        self.monitor = monitor
        self._sct = None

    def capture(self):
        """
        Capture the configured monitor.
        Returns:
            Frame: BGRA frame with alpha forced opaque
        Raises:
            CaptureFailure: If mss can not grab the monitor
        """
        try:
            if self._sct is None:
                self._sct = mss.mss()
            monitor = self._sct.monitors[self.monitor]
            shot = self._sct.grab(monitor)
        except (ScreenShotError, IndexError, OSError) as e:
            self.close()
            raise CaptureFailure(f"Screen capture failed: {e}") from e

        img = np.array(shot, dtype=np.uint8)
        # Desktop captures carry no transparency; some backends report alpha 0
        img[..., 3] = 255
        return Frame(shot.width, shot.height, img, "BGRA")

    def close(self):
        if self._sct is not None:
            self._sct.close()
            self._sct = None
