from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class DecodedPlate:
    """
    Texto decodificado por el OCR.

    `confidence` conserva un valor por slot, incluidos los slots del relleno
    final que se eliminó de `text`.
    """
    text: str
    confidence: Tuple[float, ...]

    @property
    def mean_confidence(self) -> float:
        if not self.confidence:
            return 0.0
        return sum(self.confidence) / len(self.confidence)

    @property
    def min_confidence(self) -> float:
        if not self.confidence:
            return 0.0
        return min(self.confidence)

    def to_dict(self) -> dict:
        return {"text": self.text, "confidence": list(self.confidence)}
