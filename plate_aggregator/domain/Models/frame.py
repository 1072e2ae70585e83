from dataclasses import dataclass
import numpy as np


@dataclass
class Frame:
    """
    Representa un frame ya decodificado que entra al pipeline.
    """
    data: np.ndarray   # imagen en formato numpy array (alto, ancho, canales)
    timestamp: float   # momento en que se capturó
    source: str        # identificador de la cámara, vídeo o imagen

    @property
    def image(self) -> np.ndarray:
        """Alias para compatibilidad con librerías que esperan 'image'."""
        return self.data

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    def to_dict(self) -> dict:
        """
        Convierte el frame a un dict serializable (sin incluir la imagen).
        Ideal para logs.
        """
        return {
            "timestamp": self.timestamp,
            "source": self.source,
            "shape": self.data.shape if isinstance(self.data, np.ndarray) else None
        }
