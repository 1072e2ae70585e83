from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from plate_aggregator.domain.Models.detection import Detection
from plate_aggregator.domain.Models.plate_record import PlateRecord


class FrameStatus(str, Enum):
    OK = "ok"              # se procesó y hubo detecciones
    EMPTY = "empty"        # se procesó, pero no quedó ninguna caja
    FAILED = "failed"      # la inferencia falló; el agregador no se tocó
    SKIPPED = "skipped"    # había otra inferencia en curso
    STOPPED = "stopped"    # la sesión ya emitió la señal de parada


@dataclass
class FrameResult:
    """
    Resultado de procesar un frame completo.
    """
    frame_id: str
    status: FrameStatus
    source: Optional[str] = None
    captured_at: Optional[float] = None
    processed_at: Optional[float] = None
    detections: List[Detection] = field(default_factory=list)
    accepted: List[PlateRecord] = field(default_factory=list)
    rejected: int = 0
    stop_triggered: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convierte a dict serializable."""
        return {
            "frame_id": self.frame_id,
            "status": self.status.value,
            "source": self.source,
            "captured_at": self.captured_at,
            "processed_at": self.processed_at,
            "detections": [d.to_dict() for d in self.detections],
            "accepted": [r.to_dict() for r in self.accepted],
            "rejected": self.rejected,
            "stop_triggered": self.stop_triggered,
            "error": self.error,
        }
