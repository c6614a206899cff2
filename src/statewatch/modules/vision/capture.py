from __future__ import annotations

import numpy as np


class ScreenCapture:
    """Full-screen grabs via ``mss`` (installed with the ``live`` extra)."""

    def __init__(self, monitor_index: int = 1) -> None:
        import mss  # type: ignore

        self._mss = mss.mss()
        self.monitor_index = monitor_index

    def __call__(self) -> np.ndarray:
        monitor = self._mss.monitors[self.monitor_index]
        shot = self._mss.grab(monitor)
        # BGRA -> BGR
        return np.asarray(shot)[:, :, :3].copy()

    def close(self) -> None:
        self._mss.close()


__all__ = ["ScreenCapture"]
