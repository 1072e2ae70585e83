# plate_aggregator/domain/Services/box_postprocessor.py
from __future__ import annotations
import logging
import math
from typing import Any, List, Optional, Sequence

import numpy as np

from plate_aggregator.core.config import settings
from plate_aggregator.domain.errors import OutputSizeMismatchError
from plate_aggregator.domain.Models.detection import Detection
from plate_aggregator.domain.Models.frame import Frame
from plate_aggregator.domain.Models.rectangle import Rectangle
from plate_aggregator.domain.Services.geometry import iou

logger = logging.getLogger(__name__)

# columnas de cada fila del detector
_COL_CLASS = 0
_COL_X1, _COL_Y1, _COL_X2, _COL_Y2 = 1, 2, 3, 4
_COL_CONF = 6


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def non_max_suppression(
    detections: Sequence[Detection],
    iou_threshold: float = 0.7,
) -> List[Detection]:
    """
    NMS por etiqueta: se toma la detección de mayor confianza como
    superviviente y se descartan las restantes de su misma etiqueta con
    IoU >= iou_threshold. Cajas de etiquetas distintas nunca se suprimen
    entre sí. No se fusiona ni promedia nada.
    """
    remaining = sorted(detections, key=lambda d: d.confidence, reverse=True)
    kept: List[Detection] = []

    while remaining:
        keeper = remaining.pop(0)
        kept.append(keeper)
        remaining = [
            d for d in remaining
            if d.label != keeper.label or iou(keeper.rectangle, d.rectangle) < iou_threshold
        ]

    return kept


def crop_region(image: Any, rect: Rectangle) -> Optional[np.ndarray]:
    """
    Recorta la región de la caja sobre la imagen original (filas = y).
    Devuelve None si no hay imagen.
    """
    if image is None:
        return None

    x = _round_half_up(rect.x1)
    y = _round_half_up(rect.y1)
    w = _round_half_up(rect.x2 - rect.x1)
    h = _round_half_up(rect.y2 - rect.y1)
    return image[y:y + h, x:x + w]


class BoxPostProcessor:
    """
    Convierte la salida cruda del detector en detecciones validadas:

    1) parsea filas [classId, x1, y1, x2, y2, _, confidence] (espacio del modelo)
    2) confianza > conf_threshold
    3) reescala a la imagen (factores X/Y independientes)
    4) recorta coordenadas a [0, dim]
    5) descarta cajas degeneradas o con área <= min_area
    6) ordena por confianza descendente
    7) NMS por etiqueta
    8) adjunta el recorte de la imagen original
    """

    def __init__(
        self,
        model_size: Optional[int] = None,
        conf_threshold: Optional[float] = None,
        min_area: Optional[float] = None,
        iou_threshold: Optional[float] = None,
        class_names: Optional[Sequence[str]] = None,
        row_stride: Optional[int] = None,
    ):
        self.model_size = model_size if model_size is not None else settings.detector_input_size
        self.conf_threshold = (
            conf_threshold if conf_threshold is not None else settings.detector_conf_threshold
        )
        self.min_area = min_area if min_area is not None else settings.detector_min_box_area
        self.iou_threshold = (
            iou_threshold if iou_threshold is not None else settings.nms_iou_threshold
        )
        self.class_names = list(class_names) if class_names is not None else list(settings.detector_class_names)
        self.row_stride = row_stride if row_stride is not None else settings.detector_row_stride

        if self.row_stride <= _COL_CONF:
            raise ValueError(f"row_stride debe ser > {_COL_CONF}, recibido {self.row_stride}")

    # ---------------------------------------------------------
    #  API PRINCIPAL
    # ---------------------------------------------------------
    def process(
        self,
        raw_output: Any,
        image_width: int,
        image_height: int,
        image: Any = None,
    ) -> List[Detection]:
        rows = self._as_rows(raw_output)
        if rows.shape[0] == 0:
            return []

        parsed = self.parse_rows(rows)

        scale_x = image_width / self.model_size
        scale_y = image_height / self.model_size

        boxes: List[Detection] = []
        for det in parsed:
            if not det.confidence > self.conf_threshold:
                continue

            r = det.rectangle
            rect = Rectangle(
                x1=_clamp(r.x1 * scale_x, image_width),
                y1=_clamp(r.y1 * scale_y, image_height),
                x2=_clamp(r.x2 * scale_x, image_width),
                y2=_clamp(r.y2 * scale_y, image_height),
            )
            if not rect.is_valid(self.min_area):
                continue

            boxes.append(Detection(rectangle=rect, label=det.label, confidence=det.confidence))

        boxes.sort(key=lambda d: d.confidence, reverse=True)
        kept = non_max_suppression(boxes, self.iou_threshold)

        logger.debug(
            "rows=%d above_threshold_valid=%d after_nms=%d",
            rows.shape[0], len(boxes), len(kept),
        )

        return [d.with_crop(crop_region(image, d.rectangle)) for d in kept]

    def process_frame(self, raw_output: Any, frame: Frame) -> List[Detection]:
        return self.process(raw_output, frame.width, frame.height, image=frame.data)

    # ---------------------------------------------------------
    #  HELPERS
    # ---------------------------------------------------------
    def parse_rows(self, rows: np.ndarray) -> List[Detection]:
        """Filas -> Detection en el espacio del modelo (sin filtrar)."""
        detections = []
        for row in rows:
            class_id = _round_half_up(float(row[_COL_CLASS]))
            rect = Rectangle(
                x1=float(row[_COL_X1]),
                y1=float(row[_COL_Y1]),
                x2=float(row[_COL_X2]),
                y2=float(row[_COL_Y2]),
            )
            detections.append(Detection(
                rectangle=rect,
                label=self._label_for(class_id),
                confidence=float(row[_COL_CONF]),
            ))
        return detections

    def _label_for(self, class_id: int) -> str:
        if 0 <= class_id < len(self.class_names):
            return self.class_names[class_id]
        return f"class_{class_id}"

    def _as_rows(self, raw_output: Any) -> np.ndarray:
        data = np.asarray(raw_output, dtype=np.float64)

        if data.ndim == 2:
            if data.shape[0] > 0 and data.shape[1] < self.row_stride:
                raise OutputSizeMismatchError(
                    self.row_stride, data.shape[1], what="fila del detector"
                )
            rows = data
        else:
            flat = data.reshape(-1)
            if flat.size % self.row_stride != 0:
                expected = (flat.size // self.row_stride + 1) * self.row_stride
                raise OutputSizeMismatchError(expected, flat.size, what="salida del detector")
            rows = flat.reshape(-1, self.row_stride)

        if rows.shape[0] == 0:
            return np.empty((0, self.row_stride))

        # una fila con NaN/inf se descarta sola; el resto del frame sigue
        used = rows[:, [_COL_CLASS, _COL_X1, _COL_Y1, _COL_X2, _COL_Y2, _COL_CONF]]
        finite = np.isfinite(used).all(axis=1)
        if not finite.all():
            logger.warning(
                "Descartadas %d filas del detector con valores no finitos",
                int((~finite).sum()),
            )
            rows = rows[finite]

        return rows


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(float(upper), value))
