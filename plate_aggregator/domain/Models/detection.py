from dataclasses import dataclass, replace
from typing import Any, Optional

from plate_aggregator.domain.Models.rectangle import Rectangle


@dataclass(frozen=True)
class Detection:
    """
    Una instancia candidata del detector (antes o después del NMS).
    """
    rectangle: Rectangle
    label: str
    confidence: float           # [0, 1]
    cropped_image: Optional[Any] = None   # referencia opaca (np.ndarray normalmente)

    def with_crop(self, crop: Any) -> "Detection":
        return replace(self, cropped_image=crop)

    def to_dict(self) -> dict:
        """Dict serializable (sin la imagen recortada)."""
        return {
            "label": self.label,
            "confidence": self.confidence,
            "rectangle": self.rectangle.to_dict(),
        }
