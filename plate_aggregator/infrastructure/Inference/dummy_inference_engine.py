import itertools
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from plate_aggregator.core.config import settings
from plate_aggregator.domain.errors import InferenceError
from plate_aggregator.domain.Interfaces.inference_engine import IInferenceEngine
from plate_aggregator.domain.Models.frame import Frame


def one_hot_plate_buffer(
    text: str,
    alphabet: str,
    max_slots: int,
    pad_char: str = "_",
    confidence: float = 0.95,
) -> np.ndarray:
    """
    Buffer plano de probabilidades que el decoder leerá como `text`,
    rellenando con `pad_char` hasta max_slots. El resto de la masa se
    reparte entre los demás caracteres.
    """
    if len(text) > max_slots:
        raise ValueError(f"'{text}' no cabe en {max_slots} slots")

    n = len(alphabet)
    rest = (1.0 - confidence) / max(1, n - 1)
    probs = np.full((max_slots, n), rest, dtype=np.float32)

    padded = text + pad_char * (max_slots - len(text))
    for slot, ch in enumerate(padded):
        idx = alphabet.index(ch)
        probs[slot, idx] = confidence

    return probs.reshape(-1)


class DummyInferenceEngine(IInferenceEngine):
    """
    Implementación dummy determinista:
    - detect devuelve siempre las mismas cajas (espacio del modelo)
    - recognize devuelve, en orden, las placas del guion (cíclico)
    """

    def __init__(
        self,
        texts: Iterable[str] = ("ABC1234",),
        boxes: Optional[Sequence[Tuple[float, float, float, float, float]]] = None,
        char_confidence: float = 0.95,
        alphabet: Optional[str] = None,
        max_slots: Optional[int] = None,
        pad_char: Optional[str] = None,
        fail_on: Sequence[int] = (),
    ):
        self.alphabet = alphabet if alphabet is not None else settings.ocr_alphabet
        self.max_slots = max_slots if max_slots is not None else settings.ocr_max_plate_slots
        self.pad_char = pad_char if pad_char is not None else settings.ocr_pad_char
        self.char_confidence = char_confidence

        # (x1, y1, x2, y2, conf) en coordenadas del modelo (384x384 por defecto)
        self.boxes: List[Tuple[float, ...]] = list(boxes) if boxes is not None else [
            (100.0, 150.0, 220.0, 190.0, 0.92),
        ]
        self._texts = itertools.cycle(list(texts))
        self._fail_on = set(fail_on)
        self.calls = 0

    def detect(self, frame: Frame) -> np.ndarray:
        self.calls += 1
        if self.calls in self._fail_on:
            logger.error(f"[Dummy] Fallo simulado en la llamada {self.calls}")
            raise InferenceError(f"Fallo simulado en la llamada {self.calls}")

        rows = [
            [0.0, x1, y1, x2, y2, 0.0, conf]
            for (x1, y1, x2, y2, conf) in self.boxes
        ]
        logger.debug(f"[Dummy] {len(rows)} cajas para frame de {frame.source}")
        return np.asarray(rows, dtype=np.float32).reshape(-1, 7)

    def recognize(self, crop: np.ndarray) -> np.ndarray:
        text = next(self._texts)
        return one_hot_plate_buffer(
            text,
            alphabet=self.alphabet,
            max_slots=self.max_slots,
            pad_char=self.pad_char,
            confidence=self.char_confidence,
        )
