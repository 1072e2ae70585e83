"""Fixtures compartidas de la suite de tests."""
import logging

import numpy as np
import pytest

from plate_aggregator.domain.Models.decoded_plate import DecodedPlate
from plate_aggregator.domain.Models.frame import Frame
from plate_aggregator.domain.Models.plate_record import PlateData
from plate_aggregator.domain.Models.rectangle import Rectangle
from plate_aggregator.domain.Services.detection_aggregator import DetectionAggregator
from plate_aggregator.infrastructure.Inference.dummy_inference_engine import one_hot_plate_buffer


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_"
MAX_SLOTS = 10
PAD = "_"


class FakeClock:
    """Reloj controlable para las ventanas de tiempo del agregador."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def aggregator(clock):
    return DetectionAggregator(
        similarity_threshold=0.8,
        consecutive_timeout=5.0,
        consecutive_required=10,
        default_limit=10,
        clock=clock,
    )


@pytest.fixture
def make_plate():
    """Fábrica de PlateData con confianza por slot homogénea."""
    def _make(text: str, confidence: float = 0.9) -> PlateData:
        decoded = DecodedPlate(text=text, confidence=tuple([confidence] * MAX_SLOTS))
        return PlateData(
            text=text,
            confidence=confidence,
            rectangle=Rectangle(10, 10, 110, 40),
            decoded_plate=decoded,
        )
    return _make


@pytest.fixture
def ocr_buffer():
    """Construye un buffer de OCR que se decodifica como el texto dado."""
    def _buffer(text: str, confidence: float = 0.95) -> np.ndarray:
        return one_hot_plate_buffer(text, ALPHABET, MAX_SLOTS, PAD, confidence)
    return _buffer


@pytest.fixture
def sample_frame():
    return Frame(
        data=np.zeros((720, 1280, 3), dtype=np.uint8),
        timestamp=0.0,
        source="test",
    )
