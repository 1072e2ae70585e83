# plate_aggregator/domain/Services/detection_aggregator.py
from __future__ import annotations
import itertools
import logging
import math
import threading
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple, Union

from plate_aggregator.core.config import settings
from plate_aggregator.domain.errors import NonFiniteValueError
from plate_aggregator.domain.Interfaces.aggregator import IDetectionAggregator
from plate_aggregator.domain.Models.capture_mode import CaptureMode
from plate_aggregator.domain.Models.plate_cluster import ClusterSnapshot, ConsecutiveState, PlateCluster
from plate_aggregator.domain.Models.plate_record import PlateData, PlateRecord, StopSignal
from plate_aggregator.domain.Services.similarity import SimilarityMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatorStats:
    total_detections: int = 0
    unique_plates: int = 0

    def to_dict(self) -> dict:
        return {
            "total_detections": self.total_detections,
            "unique_plates": self.unique_plates,
        }


class DetectionAggregator(IDetectionAggregator):
    """
    Motor central de agregación de lecturas de una sesión.

    - historial completo de lecturas aceptadas
    - clusters por similitud textual (Levenshtein normalizado):
        el primer cluster cuya representante tenga similitud >= umbral
        se queda con la lectura (first-match, no best-match). Los clusters
        se recorren en orden de creación.
    - promoción de la variante más frecuente como representante
    - contador de detecciones consecutivas por texto (sólo modo cámara):
        se reinicia si pasa más de `consecutive_timeout` desde la última;
        al llegar a `consecutive_required` submit devuelve un StopSignal.

    Todas las operaciones son síncronas y van bajo un mismo lock, así que
    una consulta siempre ve los submit anteriores.
    """

    def __init__(
        self,
        matcher: Optional[SimilarityMatcher] = None,
        similarity_threshold: Optional[float] = None,
        consecutive_timeout: Optional[float] = None,
        consecutive_required: Optional[int] = None,
        default_limit: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.matcher = matcher or SimilarityMatcher()
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else float(settings.similarity_threshold)
        )
        self.consecutive_timeout = (
            consecutive_timeout
            if consecutive_timeout is not None
            else float(settings.consecutive_timeout)
        )
        self.consecutive_required = (
            consecutive_required
            if consecutive_required is not None
            else int(settings.consecutive_required)
        )
        self.default_limit = default_limit if default_limit is not None else settings.best_detections_limit
        self._clock = clock

        self._lock = threading.RLock()
        self._cluster_ids = itertools.count(1)

        # Estructuras:
        #  - cluster_id -> cluster (orden de inserción = orden de creación)
        self._clusters: Dict[int, PlateCluster] = {}
        #  - historial completo
        self._history: List[PlateRecord] = []
        #  - texto -> contador consecutivo (modo cámara)
        self._consecutive: Dict[str, ConsecutiveState] = {}
        self._stats = AggregatorStats()

    # ---------------------------------------------------------
    #  API PRINCIPAL
    # ---------------------------------------------------------
    def submit(self, plate: PlateData, mode: CaptureMode) -> Union[PlateRecord, StopSignal]:
        """
        Registra una lectura aceptada por la puerta de calidad.

        Devuelve el registro insertado, o un StopSignal en modo cámara si el
        texto alcanzó el número de detecciones consecutivas requerido; en ese
        caso la lectura no entra en el historial ni en los clusters.
        """
        if not math.isfinite(plate.confidence):
            raise NonFiniteValueError(f"Confianza no finita para '{plate.text}': {plate.confidence}")

        with self._lock:
            now = self._clock()
            record = PlateRecord(
                id=f"plate_{int(now * 1000)}_{uuid.uuid4().hex[:9]}",
                text=plate.text,
                mean_confidence=plate.confidence,
                timestamp=now,
                rectangle=plate.rectangle,
                decoded_plate=plate.decoded_plate,
                cropped_image=plate.cropped_image,
                occurrences=1,
            )

            if CaptureMode(mode).is_live:
                signal = self._track_consecutive(record, now)
                if signal is not None:
                    return signal

            self._history.append(record)
            self._cluster(record)
            self._stats = AggregatorStats(
                total_detections=len(self._history),
                unique_plates=len(self._clusters),
            )
            return record

    def best_detections(self, limit: Optional[int] = None) -> List[PlateRecord]:
        """
        Top-k sobre clusters: ordena por (ocurrencias desc, confianza media desc)
        y devuelve, por cluster, el miembro de mayor confianza estampado con el
        total de ocurrencias del cluster. Devuelve copias.
        """
        if limit is None:
            limit = self.default_limit
        if limit <= 0:
            return []

        with self._lock:
            ranked = sorted(
                self._clusters.values(),
                key=lambda c: (c.total_occurrences, c.mean_confidence),
                reverse=True,
            )

            best = []
            for cluster in ranked[:limit]:
                member = cluster.best_member()
                if member is None:
                    continue
                best.append(replace(member, occurrences=cluster.total_occurrences))
            return best

    def clear(self) -> None:
        with self._lock:
            self._clusters.clear()
            self._history.clear()
            self._consecutive.clear()
            self._stats = AggregatorStats()
            self._cluster_ids = itertools.count(1)
        logger.debug("Agregador limpiado")

    # ---------------------------------------------------------
    #  CONSULTAS
    # ---------------------------------------------------------
    def stats(self) -> AggregatorStats:
        with self._lock:
            return self._stats

    def history(self) -> Tuple[PlateRecord, ...]:
        with self._lock:
            return tuple(self._history)

    def clusters(self) -> List[ClusterSnapshot]:
        with self._lock:
            return [c.snapshot() for c in self._clusters.values()]

    def get_record(self, record_id: str) -> Optional[PlateRecord]:
        with self._lock:
            for record in self._history:
                if record.id == record_id:
                    return record
        return None

    def consecutive_count(self, text: str) -> int:
        with self._lock:
            state = self._consecutive.get(text)
            return state.count if state else 0

    # ---------------------------------------------------------
    #  HELPERS
    # ---------------------------------------------------------
    def _track_consecutive(self, record: PlateRecord, now: float) -> Optional[StopSignal]:
        state = self._consecutive.setdefault(record.text, ConsecutiveState())

        if state.last_seen_at is not None and (now - state.last_seen_at) > self.consecutive_timeout:
            state.reset()

        state.count += 1
        state.last_seen_at = now
        state.window.append(record)

        if state.count >= self.consecutive_required:
            logger.info(
                "Misma placa (%s) detectada %d veces consecutivas. Deteniendo captura.",
                record.text, state.count,
            )
            return StopSignal(text=record.text, count=state.count, window=tuple(state.window))

        return None

    def _cluster(self, record: PlateRecord) -> None:
        text = record.text

        for cluster in self._clusters.values():
            if self.matcher.similarity(text, cluster.representative_text) >= self.similarity_threshold:
                cluster.add(record)
                previous = cluster.representative_text
                if cluster.promote_representative():
                    logger.info(
                        "Cluster %d: '%s' reemplaza a '%s' como representante",
                        cluster.cluster_id, cluster.representative_text, previous,
                    )
                return

        cluster = PlateCluster(cluster_id=next(self._cluster_ids), representative_text=text)
        cluster.add(record)
        self._clusters[cluster.cluster_id] = cluster
        logger.debug("Nuevo cluster %d para '%s'", cluster.cluster_id, text)
