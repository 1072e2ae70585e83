import logging

from plate_aggregator.core.config import settings
from plate_aggregator.application.plate_recognition_service import PlateRecognitionService
from plate_aggregator.domain.Models.capture_mode import CaptureMode
from plate_aggregator.domain.Services.text_decoder import TextDecoder
from plate_aggregator.infrastructure.Camera.synthetic_camera_stream import SyntheticCameraStream
from plate_aggregator.infrastructure.Inference.dummy_inference_engine import DummyInferenceEngine
from plate_aggregator.infrastructure.OCR.ocr_config import load_ocr_config
from plate_aggregator.monitoring.metrics import start_metrics_server

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def main(max_frames: int | None = None) -> PlateRecognitionService:
    """
    Demo de captura en vivo con el motor dummy: procesa frames sintéticos
    hasta la parada automática o hasta agotar el presupuesto de frames.
    """
    if settings.metrics_enabled:
        start_metrics_server(port=settings.prometheus_port)

    ocr_config = load_ocr_config()
    engine = DummyInferenceEngine(
        texts=("ABC1234", "ABC1234", "A8C1234"),
        alphabet=ocr_config.alphabet,
        max_slots=ocr_config.max_plate_slots,
        pad_char=ocr_config.pad_char,
    )
    service = PlateRecognitionService(
        engine=engine,
        decoder=TextDecoder.from_config(ocr_config),
        session_id="demo",
    )

    stream = SyntheticCameraStream(
        width=settings.demo_frame_width,
        height=settings.demo_frame_height,
        camera_id="demo",
    )

    service.start_session(
        CaptureMode.CAMERA,
        on_stop=lambda: logger.info("🛑 Captura detenida automáticamente"),
    )
    read = service.run(stream, max_frames=max_frames or settings.demo_max_frames)

    logger.info(f"Frames leídos: {read} | stats: {service.stats()}")
    for record in service.best_detections():
        logger.info(
            f"  {record.text}  conf={record.mean_confidence:.3f}  ocurrencias={record.occurrences}"
        )
    return service


if __name__ == "__main__":
    main()
