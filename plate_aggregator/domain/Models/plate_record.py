from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from plate_aggregator.domain.Models.rectangle import Rectangle
from plate_aggregator.domain.Models.decoded_plate import DecodedPlate


@dataclass(frozen=True)
class PlateData:
    """
    Lectura ya aceptada por el evaluador de calidad, lista para el agregador.
    """
    text: str
    confidence: float                      # media de las confianzas por slot
    rectangle: Optional[Rectangle] = None
    decoded_plate: Optional[DecodedPlate] = None
    cropped_image: Optional[Any] = None


@dataclass(frozen=True)
class PlateRecord:
    """
    Registro de una lectura dentro del agregador.

    Las consultas devuelven copias (`dataclasses.replace`), nunca el objeto
    interno: `occurrences` sólo lo estampa el agregador.
    """
    id: str
    text: str
    mean_confidence: float
    timestamp: float
    rectangle: Optional[Rectangle] = None
    decoded_plate: Optional[DecodedPlate] = None
    cropped_image: Optional[Any] = field(default=None, compare=False, repr=False)
    occurrences: int = 1

    def to_dict(self) -> dict:
        """Convierte a dict serializable (sin la imagen recortada)."""
        return {
            "id": self.id,
            "text": self.text,
            "mean_confidence": self.mean_confidence,
            "timestamp": self.timestamp,
            "rectangle": self.rectangle.to_dict() if self.rectangle else None,
            "char_confidence": list(self.decoded_plate.confidence) if self.decoded_plate else None,
            "occurrences": self.occurrences,
        }


@dataclass(frozen=True)
class StopSignal:
    """
    Resultado de `submit` en modo cámara cuando un mismo texto alcanzó el
    número requerido de detecciones consecutivas.
    """
    text: str
    count: int
    window: Tuple[PlateRecord, ...] = ()
