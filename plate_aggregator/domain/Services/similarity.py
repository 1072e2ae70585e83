# plate_aggregator/domain/Services/similarity.py
from __future__ import annotations
import re
from typing import Optional

from plate_aggregator.domain.Interfaces.text_normalizer import ITextNormalizer


class WhitespaceNormalizer(ITextNormalizer):
    """
    Normalización usada al comparar lecturas:
    - quitar todo espacio en blanco (no sólo en los extremos)
    - mayúsculas
    """
    _WS = re.compile(r"\s+")

    def normalize(self, text: str) -> str:
        if not text:
            return ""
        return self._WS.sub("", text).upper()


def levenshtein_distance(a: str, b: str) -> int:
    """Distancia de edición clásica (inserción, borrado y sustitución con coste 1)."""
    la, lb = len(a), len(b)

    # DP simple (placas cortas → coste despreciable)
    dp = [[0] * (lb + 1) for _ in range(la + 1)]
    for i in range(la + 1):
        dp[i][0] = i
    for j in range(lb + 1):
        dp[0][j] = j

    for i in range(1, la + 1):
        ca = a[i - 1]
        for j in range(1, lb + 1):
            cost = 0 if ca == b[j - 1] else 1
            dp[i][j] = min(
                dp[i - 1][j] + 1,         # borrado
                dp[i][j - 1] + 1,         # inserción
                dp[i - 1][j - 1] + cost,  # sustitución
            )

    return dp[la][lb]


class SimilarityMatcher:
    """
    Similaridad tipo "ratio de Levenshtein" entre dos textos de placa:
    1.0 = idéntico; 0.0 = completamente distinto.
    """

    def __init__(self, normalizer: Optional[ITextNormalizer] = None):
        self.normalizer = normalizer or WhitespaceNormalizer()

    def similarity(self, a: str, b: str) -> float:
        if a == b:
            return 1.0

        na = self.normalizer.normalize(a)
        nb = self.normalizer.normalize(b)

        max_len = max(len(na), len(nb))
        if max_len == 0:
            # sólo difieren en espacios
            return 1.0

        return 1.0 - (levenshtein_distance(na, nb) / max_len)

    __call__ = similarity


_default_matcher = SimilarityMatcher()


def similarity(a: str, b: str) -> float:
    return _default_matcher.similarity(a, b)
