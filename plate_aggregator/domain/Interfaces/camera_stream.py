from abc import ABC, abstractmethod
from plate_aggregator.domain.Models.frame import Frame

class ICameraStream(ABC):
    """
    Abstracción de una fuente de frames (cámara, vídeo o imagen).
    """
    @abstractmethod
    def connect(self) -> None:
        """Abre la fuente."""
        pass

    @abstractmethod
    def read_frame(self) -> Frame | None:
        """Lee un frame. Devuelve None si no hay más o si falla."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Cierra la fuente."""
        pass
