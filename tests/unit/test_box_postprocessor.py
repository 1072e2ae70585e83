import numpy as np
import pytest

from plate_aggregator.domain.errors import OutputSizeMismatchError
from plate_aggregator.domain.Models.detection import Detection
from plate_aggregator.domain.Models.rectangle import Rectangle
from plate_aggregator.domain.Services.box_postprocessor import (
    BoxPostProcessor,
    crop_region,
    non_max_suppression,
)
from plate_aggregator.domain.Services.geometry import iou


def row(class_id, x1, y1, x2, y2, conf):
    return [class_id, x1, y1, x2, y2, 0.0, conf]


@pytest.fixture
def processor():
    return BoxPostProcessor(
        model_size=384,
        conf_threshold=0.6,
        min_area=25,
        iou_threshold=0.7,
        class_names=["license_plate", "vehicle"],
        row_stride=7,
    )


def det(x1, y1, x2, y2, conf, label="license_plate"):
    return Detection(rectangle=Rectangle(x1, y1, x2, y2), label=label, confidence=conf)


class TestNonMaxSuppression:

    def test_suppresses_same_label_overlap(self):
        kept = non_max_suppression([
            det(0, 0, 100, 50, 0.9),
            det(2, 1, 101, 50, 0.8),
            det(300, 300, 400, 350, 0.7),
        ])
        assert [d.confidence for d in kept] == [0.9, 0.7]

    def test_keeps_different_labels_with_full_overlap(self):
        kept = non_max_suppression([
            det(0, 0, 100, 50, 0.9, "license_plate"),
            det(0, 0, 100, 50, 0.8, "vehicle"),
        ])
        assert len(kept) == 2
        assert {d.label for d in kept} == {"license_plate", "vehicle"}

    def test_overlap_just_below_threshold_survives(self):
        # IoU = 50 / 150 = 0.33
        kept = non_max_suppression([
            det(0, 0, 10, 10, 0.9),
            det(5, 0, 15, 10, 0.8),
        ])
        assert len(kept) == 2

    def test_no_same_label_pair_above_threshold(self):
        rng = np.random.default_rng(7)
        boxes = []
        for _ in range(60):
            x, y = rng.uniform(0, 200, size=2)
            w, h = rng.uniform(20, 80, size=2)
            label = "license_plate" if rng.random() < 0.5 else "vehicle"
            boxes.append(det(x, y, x + w, y + h, float(rng.uniform(0.6, 1.0)), label))

        kept = non_max_suppression(boxes)
        for i, a in enumerate(kept):
            for b in kept[i + 1:]:
                if a.label == b.label:
                    assert iou(a.rectangle, b.rectangle) < 0.7

        # idempotente
        assert non_max_suppression(kept) == kept

    def test_empty(self):
        assert non_max_suppression([]) == []


class TestBoxPostProcessor:

    def test_rescale_and_clamp(self, processor):
        raw = np.array([row(0, 96, 96, 500, 192, 0.9)], dtype=np.float32)
        out = processor.process(raw, image_width=768, image_height=384)

        assert len(out) == 1
        r = out[0].rectangle
        assert r.x1 == pytest.approx(192)
        assert r.y1 == pytest.approx(96)
        assert r.x2 == pytest.approx(768)    # 1000 recortado al ancho
        assert r.y2 == pytest.approx(192)
        assert out[0].label == "license_plate"

    def test_confidence_threshold_is_strict(self, processor):
        raw = [row(0, 10, 10, 100, 60, 0.6), row(0, 200, 200, 300, 260, 0.61)]
        out = processor.process(np.array(raw).reshape(-1), 384, 384)
        assert [d.confidence for d in out] == [pytest.approx(0.61)]

    def test_drops_small_and_degenerate_boxes(self, processor):
        raw = np.array([
            row(0, 10, 10, 15, 15, 0.9),     # area 25 -> fuera
            row(0, 50, 50, 40, 80, 0.9),     # x2 < x1
            row(0, 500, 500, 600, 600, 0.9), # queda fuera de la imagen
            row(0, 100, 100, 106, 106, 0.9), # area 36
        ])
        out = processor.process(raw, 384, 384)
        assert len(out) == 1
        assert out[0].rectangle.area == pytest.approx(36)

    def test_sorted_by_confidence_and_nms(self, processor):
        raw = np.array([
            row(0, 10, 10, 110, 60, 0.7),
            row(0, 12, 10, 110, 60, 0.95),
            row(1, 10, 10, 110, 60, 0.8),
            row(0, 200, 200, 300, 250, 0.85),
        ])
        out = processor.process(raw, 384, 384)
        assert [d.confidence for d in out] == pytest.approx([0.95, 0.85, 0.8])
        assert [d.label for d in out] == ["license_plate", "license_plate", "vehicle"]

    def test_unknown_class_id(self, processor):
        out = processor.process(np.array([row(5, 10, 10, 110, 60, 0.9)]), 384, 384)
        assert out[0].label == "class_5"

    def test_crop_attached(self, processor):
        image = np.arange(384 * 384, dtype=np.int32).reshape(384, 384)
        out = processor.process(np.array([row(0, 10, 20, 110, 60, 0.9)]), 384, 384, image=image)
        crop = out[0].cropped_image
        assert crop.shape == (40, 100)
        assert crop[0, 0] == image[20, 10]

    def test_no_crop_without_image(self, processor):
        out = processor.process(np.array([row(0, 10, 20, 110, 60, 0.9)]), 384, 384)
        assert out[0].cropped_image is None

    def test_empty_buffer(self, processor):
        assert processor.process(np.zeros((0,), dtype=np.float32), 384, 384) == []

    def test_wrong_flat_size_raises(self, processor):
        with pytest.raises(OutputSizeMismatchError):
            processor.process(np.zeros(10), 384, 384)

    def test_non_finite_row_is_dropped_alone(self, processor):
        raw = np.array([
            row(0, 10, 10, 110, 60, 0.9),
            row(0, 200, 200, 300, 260, np.nan),
            row(0, 10, np.inf, 110, 60, 0.95),
        ])
        out = processor.process(raw, 384, 384)
        assert len(out) == 1
        assert out[0].confidence == pytest.approx(0.9)
        assert out[0].rectangle == Rectangle(10.0, 10.0, 110.0, 60.0)

    def test_all_rows_non_finite_is_empty(self, processor):
        raw = np.array([row(0, np.nan, 10, 110, 60, 0.9)])
        assert processor.process(raw, 384, 384) == []

    def test_process_frame_uses_frame_size(self, processor, sample_frame):
        raw = np.array([row(0, 0, 0, 384, 384, 0.9)])
        out = processor.process_frame(raw, sample_frame)
        assert out[0].rectangle.x2 == pytest.approx(1280)
        assert out[0].rectangle.y2 == pytest.approx(720)
        assert out[0].cropped_image.shape == (720, 1280, 3)


def test_crop_region_rounds_half_up():
    image = np.zeros((100, 100))
    crop = crop_region(image, Rectangle(10.5, 20.4, 30.5, 40.6))
    # x=11, y=20, w=20, h=20
    assert crop.shape == (20, 20)
