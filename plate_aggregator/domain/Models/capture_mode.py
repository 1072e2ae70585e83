from enum import Enum


class CaptureMode(str, Enum):
    """Modo de la sesión actual. CAMERA es el modo de captura en vivo."""
    IMAGE = "image"
    VIDEO = "video"
    CAMERA = "camera"

    @property
    def is_live(self) -> bool:
        return self is CaptureMode.CAMERA
