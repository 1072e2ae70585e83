# plate_aggregator/domain/Interfaces/aggregator.py
from typing import List, Optional, Protocol, Union

from plate_aggregator.domain.Models.capture_mode import CaptureMode
from plate_aggregator.domain.Models.plate_record import PlateData, PlateRecord, StopSignal


class IDetectionAggregator(Protocol):
    """
    Contrato del agregador de lecturas.

    submit devuelve el registro insertado, o un StopSignal cuando en modo
    cámara un mismo texto alcanzó el umbral de detecciones consecutivas
    (en ese caso el registro **no** se inserta en el historial).
    """
    def submit(self, plate: PlateData, mode: CaptureMode) -> Union[PlateRecord, StopSignal]:
        ...

    def best_detections(self, limit: Optional[int] = None) -> List[PlateRecord]:
        ...

    def clear(self) -> None:
        ...
