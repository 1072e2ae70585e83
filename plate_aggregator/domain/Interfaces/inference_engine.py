from abc import ABC, abstractmethod
import numpy as np

from plate_aggregator.domain.Models.frame import Frame


class IInferenceEngine(ABC):
    """
    Motor de inferencia externo (detector + reconocedor).

    Las implementaciones señalan un fallo lanzando InferenceError;
    "sin detecciones" se representa con un buffer vacío.
    """

    @abstractmethod
    def detect(self, frame: Frame) -> np.ndarray:
        """
        Devuelve el buffer crudo del detector, filas de ancho fijo
        [classId, x1, y1, x2, y2, _, confidence] en coordenadas del modelo.
        """
        pass

    @abstractmethod
    def recognize(self, crop: np.ndarray) -> np.ndarray:
        """Devuelve el buffer plano de probabilidades (max_slots * len(alphabet))."""
        pass
