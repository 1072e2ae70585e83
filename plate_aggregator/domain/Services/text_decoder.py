# plate_aggregator/domain/Services/text_decoder.py
from __future__ import annotations
import re
from typing import Any, Optional

import numpy as np

from plate_aggregator.core.config import settings
from plate_aggregator.domain.errors import NonFiniteValueError, OutputSizeMismatchError
from plate_aggregator.domain.Models.decoded_plate import DecodedPlate


def clean_plate_text(plate_text: str, pad_char: str = "_") -> str:
    """
    Elimina la racha final de caracteres de relleno. Los rellenos
    intermedios se conservan. Idempotente.
    """
    if not pad_char:
        return plate_text
    return re.sub(f"(?:{re.escape(pad_char)})+\\Z", "", plate_text)


class TextDecoder:
    """
    Decodifica la salida plana del OCR (max_slots x len(alphabet)).

    Por cada slot toma el arg-max como carácter y su valor como confianza.
    No hay beam search ni corrección contextual.
    """

    def __init__(
        self,
        alphabet: Optional[str] = None,
        max_slots: Optional[int] = None,
        pad_char: Optional[str] = None,
    ):
        self.alphabet = alphabet if alphabet is not None else settings.ocr_alphabet
        self.max_slots = max_slots if max_slots is not None else settings.ocr_max_plate_slots
        self.pad_char = pad_char if pad_char is not None else settings.ocr_pad_char

        if not self.alphabet:
            raise ValueError("El alfabeto del OCR no puede estar vacío")
        if self.max_slots <= 0:
            raise ValueError(f"max_slots debe ser positivo, recibido {self.max_slots}")

    @classmethod
    def from_config(cls, config: Any) -> "TextDecoder":
        """Construye el decoder desde un objeto con max_plate_slots, alphabet y pad_char."""
        return cls(
            alphabet=config.alphabet,
            max_slots=config.max_plate_slots,
            pad_char=config.pad_char,
        )

    @property
    def expected_size(self) -> int:
        return self.max_slots * len(self.alphabet)

    def decode(self, model_output: Any) -> DecodedPlate:
        """
        Raises:
            OutputSizeMismatchError: si el tamaño no es max_slots * len(alphabet).
            NonFiniteValueError: si alguna probabilidad es NaN o infinita.
        """
        predictions = self._reshape(model_output)

        indices = np.argmax(predictions, axis=-1)
        probs = np.max(predictions, axis=-1)

        plate_text = "".join(self.alphabet[i] for i in indices)

        return DecodedPlate(
            text=clean_plate_text(plate_text, self.pad_char),
            confidence=tuple(float(p) for p in probs),
        )

    def _reshape(self, model_output: Any) -> np.ndarray:
        flat = np.asarray(model_output, dtype=np.float64).reshape(-1)

        if flat.size != self.expected_size:
            raise OutputSizeMismatchError(self.expected_size, flat.size)

        if not np.isfinite(flat).all():
            raise NonFiniteValueError("La salida del OCR contiene valores no finitos")

        return flat.reshape(self.max_slots, len(self.alphabet))
