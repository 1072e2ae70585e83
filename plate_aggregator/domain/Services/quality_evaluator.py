# plate_aggregator/domain/Services/quality_evaluator.py
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import List, Optional

from plate_aggregator.core.config import settings
from plate_aggregator.domain.Models.decoded_plate import DecodedPlate


# 2-4 alfanuméricos, separador opcional (espacio o guion), 2-4 alfanuméricos
PLATE_FORMAT = re.compile(r"[A-Z0-9]{2,4}[\s-]?[A-Z0-9]{2,4}", re.IGNORECASE)

WEIGHT_LENGTH = 0.20
WEIGHT_MEAN_CONFIDENCE = 0.30
WEIGHT_WORST_CHARACTER = 0.25
WEIGHT_FORMAT = 0.25


@dataclass(frozen=True)
class QualityResult:
    score: float
    is_valid: bool
    reasons: List[str] = field(default_factory=list)   # sólo diagnóstico


class QualityEvaluator:
    """
    Puerta de calidad aditiva: cada criterio cumplido suma su peso y se
    acepta si el total >= accept_score. Ningún criterio es obligatorio.
    """

    def __init__(
        self,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        min_mean_confidence: Optional[float] = None,
        min_char_confidence: Optional[float] = None,
        accept_score: Optional[float] = None,
    ):
        self.min_length = min_length if min_length is not None else settings.quality_min_length
        self.max_length = max_length if max_length is not None else settings.quality_max_length
        self.min_mean_confidence = (
            min_mean_confidence if min_mean_confidence is not None
            else settings.quality_min_mean_confidence
        )
        self.min_char_confidence = (
            min_char_confidence if min_char_confidence is not None
            else settings.quality_min_char_confidence
        )
        self.accept_score = accept_score if accept_score is not None else settings.quality_accept_score

    def evaluate(self, plate: DecodedPlate, mean_confidence: Optional[float] = None) -> QualityResult:
        if mean_confidence is None:
            mean_confidence = plate.mean_confidence

        text = plate.text
        criteria = [
            (
                self.min_length <= len(text) <= self.max_length,
                WEIGHT_LENGTH,
                "Longitud inadecuada",
            ),
            (
                mean_confidence >= self.min_mean_confidence,
                WEIGHT_MEAN_CONFIDENCE,
                "Baja confianza general",
            ),
            (
                bool(plate.confidence) and min(plate.confidence) >= self.min_char_confidence,
                WEIGHT_WORST_CHARACTER,
                "Caracteres de muy baja confianza",
            ),
            (
                PLATE_FORMAT.fullmatch(text.strip()) is not None,
                WEIGHT_FORMAT,
                "Formato inconsistente",
            ),
        ]

        score = 0.0
        reasons = []
        for passed, weight, reason in criteria:
            if passed:
                score += weight
            else:
                reasons.append(reason)

        # 0.2 + 0.25 + 0.25 tiene que dar exactamente 0.7
        score = round(score, 4)

        return QualityResult(
            score=score,
            is_valid=score >= self.accept_score,
            reasons=reasons,
        )
