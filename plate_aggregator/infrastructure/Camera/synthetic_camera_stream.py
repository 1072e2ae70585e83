import time
from typing import Optional

import numpy as np

from plate_aggregator.domain.Models.frame import Frame
from plate_aggregator.domain.Interfaces.camera_stream import ICameraStream


class SyntheticCameraStream(ICameraStream):
    """
    Simula una cámara entregando frames en negro de tamaño fijo.
    Devuelve None al agotar `max_frames`.
    """

    def __init__(self, width: int, height: int, camera_id: str = "synthetic", max_frames: Optional[int] = None):
        self.width = width
        self.height = height
        self.camera_id = camera_id
        self.max_frames = max_frames

        self.frames_read = 0
        self._connected = False

    def connect(self):
        self._connected = True
        self.frames_read = 0

    def read_frame(self):
        if not self._connected:
            raise RuntimeError(f"Cámara {self.camera_id} no conectada")

        if self.max_frames is not None and self.frames_read >= self.max_frames:
            return None

        self.frames_read += 1
        return Frame(
            data=np.zeros((self.height, self.width, 3), dtype=np.uint8),
            timestamp=time.time(),
            source=self.camera_id,
        )

    def disconnect(self):
        self._connected = False
