# plate_aggregator/infrastructure/OCR/ocr_config.py
import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError, model_validator

from plate_aggregator.core.config import settings
from plate_aggregator.domain.errors import OcrConfigError


class OcrModelConfig(BaseModel):
    """
    Configuración del modelo OCR (mismo formato que el JSON que acompaña
    al modelo): número de slots, alfabeto y carácter de relleno.
    """
    max_plate_slots: int
    alphabet: str
    pad_char: str = "_"
    img_height: Optional[int] = None
    img_width: Optional[int] = None

    @model_validator(mode="after")
    def _check(self):
        if self.max_plate_slots <= 0:
            raise ValueError("max_plate_slots debe ser positivo")
        if len(self.pad_char) != 1:
            raise ValueError("pad_char debe ser un único carácter")
        if self.pad_char not in self.alphabet:
            raise ValueError(f"pad_char '{self.pad_char}' no está en el alfabeto")
        return self


def load_ocr_config(path: Optional[str] = None) -> OcrModelConfig:
    """
    Carga la configuración del OCR desde un JSON. Sin ruta (ni
    settings.ocr_config_path) se construye desde settings.
    """
    path = path or settings.ocr_config_path
    try:
        if not path:
            return OcrModelConfig(
                max_plate_slots=settings.ocr_max_plate_slots,
                alphabet=settings.ocr_alphabet,
                pad_char=settings.ocr_pad_char,
            )

        p = Path(path)
        if not p.is_file():
            raise OcrConfigError(f"No se encontró la configuración OCR en {path}")
        data = json.loads(p.read_text(encoding="utf-8"))
        return OcrModelConfig.model_validate(data)
    except ValidationError as e:
        raise OcrConfigError(f"Configuración OCR inválida: {e}") from e
    except json.JSONDecodeError as e:
        raise OcrConfigError(f"JSON inválido en {path}: {e}") from e
