from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from plate_aggregator.domain.Models.plate_record import PlateRecord


@dataclass
class PlateCluster:
    """
    Grupo de lecturas que representan la misma placa.

    Invariante: total_occurrences == sum(variant_counts.values()) == len(members).
    `representative_text` es un campo mutable; el cluster se direcciona por
    `cluster_id`, que nunca cambia.
    """
    cluster_id: int
    representative_text: str
    total_occurrences: int = 0
    members: List[PlateRecord] = field(default_factory=list)
    variant_counts: Dict[str, int] = field(default_factory=dict)

    def add(self, record: PlateRecord) -> None:
        self.members.append(record)
        self.variant_counts[record.text] = self.variant_counts.get(record.text, 0) + 1
        self.total_occurrences += 1

    def promote_representative(self) -> bool:
        """
        Si alguna variante supera estrictamente a la representante actual,
        pasa a ser la nueva representante. En empate se queda la actual.
        Devuelve True si hubo cambio.
        """
        current = self.variant_counts.get(self.representative_text, 0)
        best_text, best_count = self.representative_text, current
        for text, count in self.variant_counts.items():
            if count > best_count:
                best_text, best_count = text, count

        if best_text != self.representative_text:
            self.representative_text = best_text
            return True
        return False

    @property
    def mean_confidence(self) -> float:
        if not self.members:
            return 0.0
        return sum(r.mean_confidence for r in self.members) / len(self.members)

    def best_member(self) -> Optional[PlateRecord]:
        """Miembro de mayor confianza individual (el primero en caso de empate)."""
        best = None
        for record in self.members:
            if best is None or record.mean_confidence > best.mean_confidence:
                best = record
        return best

    def snapshot(self) -> "ClusterSnapshot":
        return ClusterSnapshot(
            cluster_id=self.cluster_id,
            representative_text=self.representative_text,
            total_occurrences=self.total_occurrences,
            mean_confidence=self.mean_confidence,
            member_ids=tuple(r.id for r in self.members),
            variant_counts=tuple(self.variant_counts.items()),
        )


@dataclass(frozen=True)
class ClusterSnapshot:
    """Vista inmutable de un cluster para consumidores (UI, API)."""
    cluster_id: int
    representative_text: str
    total_occurrences: int
    mean_confidence: float
    member_ids: Tuple[str, ...]
    variant_counts: Tuple[Tuple[str, int], ...]

    def to_dict(self) -> dict:
        return {
            "cluster_id": self.cluster_id,
            "representative_text": self.representative_text,
            "total_occurrences": self.total_occurrences,
            "mean_confidence": self.mean_confidence,
            "member_ids": list(self.member_ids),
            "variant_counts": dict(self.variant_counts),
        }


@dataclass
class ConsecutiveState:
    """
    Contador de detecciones consecutivas de un texto (sólo modo cámara).
    """
    count: int = 0
    last_seen_at: Optional[float] = None
    window: List[PlateRecord] = field(default_factory=list)

    def reset(self) -> None:
        self.count = 0
        self.window = []
