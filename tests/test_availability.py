"""Free-space counting tests."""

import pytest

from parkalot.inference.availability import DEFAULT_CONFIDENCE_THRESHOLD, count_available

from conftest import detection


class TestCountAvailable:
    """count_available tests"""

    def test_mixed_detections_above_threshold(self):
        detections = [
            detection("empty", 0.9),
            detection("occupied", 0.95),
            detection("empty", 0.4),
        ]

        assert count_available(detections, confidence_threshold=0.5) == 1

    def test_empty_and_none_give_zero(self):
        assert count_available([]) == 0
        assert count_available(None) == 0

    def test_threshold_is_inclusive(self):
        assert count_available([detection("empty", 0.5)], confidence_threshold=0.5) == 1

    def test_class_match_is_case_insensitive(self):
        detections = [detection("Empty", 0.8), detection("FREE", 0.8), detection("car", 0.99)]

        assert count_available(detections) == 2

    def test_custom_free_classes(self):
        detections = [detection("vacant", 0.8), detection("empty", 0.8)]

        assert count_available(detections, free_classes=["vacant"]) == 1

    def test_default_threshold(self):
        assert DEFAULT_CONFIDENCE_THRESHOLD == 0.5
        assert count_available([detection("empty", 0.49), detection("empty", 0.51)]) == 1

    @pytest.mark.parametrize("low,high", [(0.0, 0.3), (0.3, 0.6), (0.6, 0.95), (0.2, 1.0)])
    def test_raising_threshold_never_increases_count(self, low, high):
        detections = [detection("empty", c / 20) for c in range(21)] + [detection("occupied", 0.9)]

        low_count = count_available(detections, confidence_threshold=low)
        high_count = count_available(detections, confidence_threshold=high)

        assert 0 <= high_count <= low_count
