import logging
import threading
import time
import uuid
from typing import Callable, List, Optional

from plate_aggregator.monitoring.metrics import (
    frames_total, detections_total, quality_rejections_total,
    plates_submitted_total, decode_errors_total, stop_signals_total,
    unique_plates, pipeline_latency,
)

from plate_aggregator.domain.errors import InferenceError, PlatePipelineError
from plate_aggregator.domain.Interfaces.camera_stream import ICameraStream
from plate_aggregator.domain.Interfaces.inference_engine import IInferenceEngine
from plate_aggregator.domain.Models.capture_mode import CaptureMode
from plate_aggregator.domain.Models.detection_result import FrameResult, FrameStatus
from plate_aggregator.domain.Models.frame import Frame
from plate_aggregator.domain.Models.plate_record import PlateData, PlateRecord, StopSignal
from plate_aggregator.domain.Services.box_postprocessor import BoxPostProcessor
from plate_aggregator.domain.Services.capture_gate import CaptureGate
from plate_aggregator.domain.Services.detection_aggregator import DetectionAggregator
from plate_aggregator.domain.Services.quality_evaluator import QualityEvaluator
from plate_aggregator.domain.Services.text_decoder import TextDecoder
from plate_aggregator.core.config import settings

logger = logging.getLogger(__name__)


class PlateRecognitionService:
    """
    Orquesta una sesión (imagen, vídeo o cámara):

    frame -> detector -> post-proceso de cajas -> OCR por caja -> decoder
          -> filtro de visualización -> calidad -> agregador -> gate de parada

    Una sola inferencia en curso a la vez: un frame que llega mientras
    otro se procesa se descarta (cuenta en total_frames, no en processed).
    """

    def __init__(
        self,
        engine: IInferenceEngine,
        postprocessor: Optional[BoxPostProcessor] = None,
        decoder: Optional[TextDecoder] = None,
        evaluator: Optional[QualityEvaluator] = None,
        aggregator: Optional[DetectionAggregator] = None,
        gate: Optional[CaptureGate] = None,
        display_conf_threshold: Optional[float] = None,
        session_id: str = "default",
    ):
        self.engine = engine
        self.postprocessor = postprocessor or BoxPostProcessor()
        self.decoder = decoder or TextDecoder()
        self.evaluator = evaluator or QualityEvaluator()
        self.aggregator = aggregator or DetectionAggregator()
        self.gate = gate or CaptureGate()
        self.display_conf_threshold = (
            display_conf_threshold
            if display_conf_threshold is not None
            else settings.display_conf_threshold
        )
        self.session_id = session_id

        self.mode: Optional[CaptureMode] = None
        self.total_frames = 0
        self.processed_frames = 0

        self._busy = threading.Lock()
        self._counters = threading.Lock()
        self._stopped = threading.Event()

    # ---------------------------------------------------------
    # SESIÓN
    # ---------------------------------------------------------
    def start_session(self, mode: CaptureMode, on_stop: Optional[Callable[[], None]] = None) -> None:
        """Descarta todo el estado anterior y arranca una sesión nueva."""
        self.mode = CaptureMode(mode)
        self._reset()
        self.gate.arm(on_stop)
        logger.info(f"[{self.session_id}] Sesión iniciada en modo {self.mode.value}")

    def end_session(self) -> None:
        logger.info(f"[{self.session_id}] Sesión terminada")
        self._reset()
        self.mode = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def clear(self) -> None:
        """
        Vacía las lecturas de la sesión actual sin cambiar de modo: agregador,
        contadores, señal de parada y gate vuelven al estado inicial.
        """
        logger.info(f"[{self.session_id}] Estado de la sesión limpiado")
        self._reset()
        self.gate.arm()

    def _reset(self) -> None:
        self.aggregator.clear()
        with self._counters:
            self.total_frames = 0
            self.processed_frames = 0
        self._stopped.clear()
        unique_plates.labels(session_id=self.session_id).set(0)

    # ---------------------------------------------------------
    # PROCESAMIENTO (por frame)
    # ---------------------------------------------------------
    def process_frame(self, frame: Frame) -> FrameResult:
        if self.mode is None:
            raise RuntimeError("No hay sesión activa; llama a start_session() primero")

        with self._counters:
            self.total_frames += 1
        frame_id = str(uuid.uuid4())

        if self._stopped.is_set():
            return self._finish(frame, frame_id, FrameStatus.STOPPED)

        if not self._busy.acquire(blocking=False):
            logger.debug(f"[{self.session_id}] Inferencia en curso, frame descartado")
            return self._finish(frame, frame_id, FrameStatus.SKIPPED)

        t0 = time.perf_counter()
        try:
            with self._counters:
                self.processed_frames += 1
            return self._process(frame, frame_id)
        finally:
            self._busy.release()
            pipeline_latency.labels(session_id=self.session_id).observe(time.perf_counter() - t0)

    def _process(self, frame: Frame, frame_id: str) -> FrameResult:
        # detector + OCR: cualquier fallo del motor invalida el frame entero
        try:
            raw = self.engine.detect(frame)
            detections = self.postprocessor.process_frame(raw, frame)
            raw_ocr = [self.engine.recognize(d.cropped_image) for d in detections]
        except InferenceError as e:
            logger.warning(f"[{self.session_id}] Inferencia fallida: {e}")
            return self._finish(frame, frame_id, FrameStatus.FAILED, error=str(e))
        except PlatePipelineError as e:
            logger.warning(f"[{self.session_id}] Salida del detector inválida: {e}")
            return self._finish(frame, frame_id, FrameStatus.FAILED, error=str(e))

        detections_total.labels(session_id=self.session_id).inc(len(detections))

        if not detections:
            logger.debug(f"[{self.session_id}] Sin cajas en este frame.")
            return self._finish(frame, frame_id, FrameStatus.EMPTY)

        result = FrameResult(
            frame_id=frame_id,
            status=FrameStatus.OK,
            source=frame.source,
            captured_at=frame.timestamp,
            detections=detections,
        )

        for detection, output in zip(detections, raw_ocr):
            try:
                decoded = self.decoder.decode(output)
            except PlatePipelineError as e:
                decode_errors_total.labels(session_id=self.session_id).inc()
                logger.warning(f"[{self.session_id}] OCR descartado para una caja: {e}")
                continue

            mean_conf = decoded.mean_confidence
            if mean_conf < self.display_conf_threshold:
                result.rejected += 1
                continue

            quality = self.evaluator.evaluate(decoded, mean_conf)
            if not quality.is_valid:
                quality_rejections_total.labels(session_id=self.session_id).inc()
                logger.debug(
                    f"[{self.session_id}] '{decoded.text}' rechazada "
                    f"(score={quality.score}): {', '.join(quality.reasons)}"
                )
                result.rejected += 1
                continue

            outcome = self.aggregator.submit(
                PlateData(
                    text=decoded.text,
                    confidence=mean_conf,
                    rectangle=detection.rectangle,
                    decoded_plate=decoded,
                    cropped_image=detection.cropped_image,
                ),
                self.mode,
            )

            if isinstance(outcome, StopSignal):
                self._stopped.set()
                result.stop_triggered = True
                if self.gate.handle(outcome):
                    stop_signals_total.labels(session_id=self.session_id).inc()
                break

            plates_submitted_total.labels(session_id=self.session_id).inc()
            result.accepted.append(outcome)

        unique_plates.labels(session_id=self.session_id).set(self.aggregator.stats().unique_plates)
        return self._finish(frame, frame_id, result.status, result=result)

    def _finish(
        self,
        frame: Frame,
        frame_id: str,
        status: FrameStatus,
        result: Optional[FrameResult] = None,
        error: Optional[str] = None,
    ) -> FrameResult:
        if result is None:
            result = FrameResult(
                frame_id=frame_id,
                status=status,
                source=frame.source,
                captured_at=frame.timestamp,
                error=error,
            )
        result.processed_at = time.time()
        frames_total.labels(session_id=self.session_id, status=status.value).inc()
        return result

    # ---------------------------------------------------------
    # LOOP SOBRE UNA FUENTE
    # ---------------------------------------------------------
    def run(self, stream: ICameraStream, max_frames: Optional[int] = None) -> int:
        """
        Procesa frames de la fuente hasta que se agote, se alcance
        max_frames o la sesión reciba la señal de parada.
        Devuelve el número de frames leídos.
        """
        read = 0
        stream.connect()
        try:
            while not self._stopped.is_set():
                if max_frames is not None and read >= max_frames:
                    break
                frame = stream.read_frame()
                if frame is None:
                    break
                read += 1
                self.process_frame(frame)
        finally:
            try:
                stream.disconnect()
            except Exception:
                logger.exception("Error desconectando la fuente")
        return read

    # ---------------------------------------------------------
    # CONSULTAS
    # ---------------------------------------------------------
    def best_detections(self, limit: Optional[int] = None) -> List[PlateRecord]:
        return self.aggregator.best_detections(limit)

    def stats(self) -> dict:
        agg = self.aggregator.stats()
        return {
            "mode": self.mode.value if self.mode else None,
            "total_frames": self.total_frames,
            "processed_frames": self.processed_frames,
            "total_detections": agg.total_detections,
            "unique_plates": agg.unique_plates,
            "stopped": self.stopped,
        }
