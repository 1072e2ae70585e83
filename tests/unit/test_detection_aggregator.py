import math

import pytest

from plate_aggregator.domain.errors import NonFiniteValueError
from plate_aggregator.domain.Models.capture_mode import CaptureMode
from plate_aggregator.domain.Models.plate_record import PlateRecord, StopSignal


def submit_many(aggregator, make_plate, text, n, mode=CaptureMode.VIDEO, confidence=0.9):
    return [aggregator.submit(make_plate(text, confidence), mode) for _ in range(n)]


class TestClustering:

    def test_ocr_slip_joins_cluster(self, aggregator, make_plate):
        submit_many(aggregator, make_plate, "AB1234", 6)
        submit_many(aggregator, make_plate, "AB1Z34", 4)

        clusters = aggregator.clusters()
        assert len(clusters) == 1
        cluster = clusters[0]
        assert cluster.representative_text == "AB1234"
        assert cluster.total_occurrences == 10
        assert dict(cluster.variant_counts) == {"AB1234": 6, "AB1Z34": 4}
        assert aggregator.stats().unique_plates == 1
        assert aggregator.stats().total_detections == 10

    def test_distinct_texts_make_distinct_clusters(self, aggregator, make_plate):
        aggregator.submit(make_plate("AB1234"), CaptureMode.IMAGE)
        aggregator.submit(make_plate("XY999"), CaptureMode.IMAGE)
        assert [c.representative_text for c in aggregator.clusters()] == ["AB1234", "XY999"]

    def test_most_frequent_variant_is_promoted(self, aggregator, make_plate):
        aggregator.submit(make_plate("AB1Z34"), CaptureMode.VIDEO)
        aggregator.submit(make_plate("AB1234"), CaptureMode.VIDEO)
        # empate 1-1: se queda la actual
        assert aggregator.clusters()[0].representative_text == "AB1Z34"

        aggregator.submit(make_plate("AB1234"), CaptureMode.VIDEO)
        cluster = aggregator.clusters()[0]
        assert cluster.representative_text == "AB1234"
        assert cluster.total_occurrences == 3

    def test_promotion_keeps_cluster_identity_and_order(self, aggregator, make_plate):
        aggregator.submit(make_plate("AB1Z34"), CaptureMode.VIDEO)
        aggregator.submit(make_plate("KLM777"), CaptureMode.VIDEO)
        submit_many(aggregator, make_plate, "AB1234", 2)

        clusters = aggregator.clusters()
        assert [c.cluster_id for c in clusters] == [1, 2]
        assert [c.representative_text for c in clusters] == ["AB1234", "KLM777"]

    def test_first_match_not_best_match(self, aggregator, make_plate):
        aggregator.submit(make_plate("ABCDEFGHIJ"), CaptureMode.VIDEO)
        aggregator.submit(make_plate("ABCDEFGXYZ"), CaptureMode.VIDEO)
        assert len(aggregator.clusters()) == 2

        # 0.8 con el primero, 0.9 con el segundo: gana el primero
        aggregator.submit(make_plate("ABCDEFGHYZ"), CaptureMode.VIDEO)
        first, second = aggregator.clusters()
        assert first.total_occurrences == 2
        assert second.total_occurrences == 1

    def test_cluster_invariant(self, aggregator, make_plate):
        texts = ["AB1234", "AB1Z34", "XY999", "XY998", "AB1234", "QQ11", "AB1234", "XY999"]
        for t in texts:
            aggregator.submit(make_plate(t), CaptureMode.VIDEO)

        clusters = aggregator.clusters()
        assert sum(c.total_occurrences for c in clusters) == len(texts)
        for c in clusters:
            counts = dict(c.variant_counts)
            assert c.total_occurrences == sum(counts.values()) == len(c.member_ids)
            assert counts[c.representative_text] == max(counts.values())

    def test_non_finite_confidence_rejected_without_mutation(self, aggregator, make_plate):
        with pytest.raises(NonFiniteValueError):
            aggregator.submit(make_plate("AB1234", confidence=math.nan), CaptureMode.VIDEO)
        assert aggregator.clusters() == []
        assert aggregator.history() == ()


class TestBestDetections:

    def test_ranking_by_occurrences_then_confidence(self, aggregator, make_plate):
        submit_many(aggregator, make_plate, "XY999", 2, confidence=0.8)
        submit_many(aggregator, make_plate, "AB1234", 3, confidence=0.75)
        aggregator.submit(make_plate("AB1234", 0.95), CaptureMode.VIDEO)
        submit_many(aggregator, make_plate, "KLM777", 2, confidence=0.9)

        best = aggregator.best_detections()

        assert [r.text for r in best] == ["AB1234", "KLM777", "XY999"]
        assert best[0].mean_confidence == pytest.approx(0.95)
        assert [r.occurrences for r in best] == [4, 2, 2]

    def test_limit_and_one_per_cluster(self, aggregator, make_plate):
        for text in ["AB1234", "AB1Z34", "XY999", "KLM777", "QWE555"]:
            aggregator.submit(make_plate(text), CaptureMode.VIDEO)

        best = aggregator.best_detections(2)
        assert len(best) == 2

        all_best = aggregator.best_detections(100)
        assert len(all_best) == len(aggregator.clusters()) == 4
        assert len({r.id for r in all_best}) == 4

    def test_zero_limit_and_empty(self, aggregator, make_plate):
        assert aggregator.best_detections() == []
        aggregator.submit(make_plate("AB1234"), CaptureMode.VIDEO)
        assert aggregator.best_detections(0) == []

    def test_returns_snapshots(self, aggregator, make_plate):
        submit_many(aggregator, make_plate, "AB1234", 3)
        best = aggregator.best_detections()[0]

        assert best.occurrences == 3
        assert all(r.occurrences == 1 for r in aggregator.history())
        with pytest.raises(AttributeError):
            best.occurrences = 99


class TestLiveCapture:

    def test_tenth_consecutive_returns_stop_signal(self, aggregator, make_plate, clock):
        results = []
        for _ in range(10):
            results.append(aggregator.submit(make_plate("AB1234"), CaptureMode.CAMERA))
            clock.advance(0.4)

        assert all(isinstance(r, PlateRecord) for r in results[:9])
        stop = results[9]
        assert isinstance(stop, StopSignal)
        assert stop.text == "AB1234"
        assert stop.count == 10
        assert len(stop.window) == 10
        # la lectura que dispara la parada no entra en el historial
        assert len(aggregator.history()) == 9
        assert aggregator.clusters()[0].total_occurrences == 9

    def test_gap_longer_than_timeout_resets_counter(self, aggregator, make_plate, clock):
        aggregator.submit(make_plate("XY999"), CaptureMode.CAMERA)
        clock.advance(6.0)
        aggregator.submit(make_plate("XY999"), CaptureMode.CAMERA)
        assert aggregator.consecutive_count("XY999") == 1

    def test_gap_equal_to_timeout_does_not_reset(self, aggregator, make_plate, clock):
        aggregator.submit(make_plate("XY999"), CaptureMode.CAMERA)
        clock.advance(5.0)
        aggregator.submit(make_plate("XY999"), CaptureMode.CAMERA)
        assert aggregator.consecutive_count("XY999") == 2

    def test_counters_are_per_text(self, aggregator, make_plate):
        for _ in range(9):
            aggregator.submit(make_plate("AB1234"), CaptureMode.CAMERA)
            aggregator.submit(make_plate("XY999"), CaptureMode.CAMERA)
        assert aggregator.consecutive_count("AB1234") == 9
        assert aggregator.consecutive_count("XY999") == 9

    def test_video_mode_never_stops(self, aggregator, make_plate):
        results = submit_many(aggregator, make_plate, "AB1234", 15, mode=CaptureMode.VIDEO)
        assert not any(isinstance(r, StopSignal) for r in results)
        assert aggregator.consecutive_count("AB1234") == 0

    def test_mode_accepts_plain_string(self, aggregator, make_plate):
        aggregator.submit(make_plate("AB1234"), "camera")
        assert aggregator.consecutive_count("AB1234") == 1


def test_clear_resets_everything(aggregator, make_plate):
    submit_many(aggregator, make_plate, "AB1234", 3, mode=CaptureMode.CAMERA)
    aggregator.clear()

    assert aggregator.history() == ()
    assert aggregator.clusters() == []
    assert aggregator.consecutive_count("AB1234") == 0
    assert aggregator.stats().total_detections == 0
    assert aggregator.stats().unique_plates == 0


def test_get_record(aggregator, make_plate):
    record = aggregator.submit(make_plate("AB1234"), CaptureMode.IMAGE)
    assert aggregator.get_record(record.id) == record
    assert aggregator.get_record("missing") is None
