# tests/test_busyness.py
import pytest

from backend.utils.busyness import busyness_label, resolve_busyness
from tests.factories import MONDAY_10_BALI


def test_day_keyed_histogram_with_hour_entries():
    histogram = {"Mo": [{"hour": 9, "occupancyPercent": 20}, {"hour": 10, "occupancyPercent": 45}]}
    busyness = resolve_busyness(histogram, None, MONDAY_10_BALI)
    assert busyness.percentage == 45
    assert busyness.label == "Средняя загруженность"


def test_monday_indexed_array_histogram():
    hours = [{"occupancy": 0}] * 10 + [{"occupancy": 90}]
    busyness = resolve_busyness([{"data": hours}], None, MONDAY_10_BALI)
    assert busyness.percentage == 90
    assert busyness.label == "Очень многолюдно"


def test_russian_day_names_and_live_text():
    histogram = {"Понедельник": {"data": [{"hour": 10, "occupancyPercent": 70}]}}
    busyness = resolve_busyness(histogram, "Сейчас многолюднее обычного", MONDAY_10_BALI)
    assert busyness.percentage == 70
    assert busyness.label == "Сейчас многолюднее обычного"


def test_percentage_is_clamped():
    histogram = {"Mo": [{"hour": 10, "occupancyPercent": 140}]}
    assert resolve_busyness(histogram, None, MONDAY_10_BALI).percentage == 100


def test_missing_hour_or_day_is_none():
    assert resolve_busyness({"Mo": [{"hour": 9, "occupancyPercent": 20}]}, None, MONDAY_10_BALI) is None
    assert resolve_busyness({"Tu": [{"hour": 10, "occupancyPercent": 20}]}, None, MONDAY_10_BALI) is None
    assert resolve_busyness(None, None, MONDAY_10_BALI) is None


@pytest.mark.parametrize("histogram", [
    "abc",
    [1, 2],
    {"Mo": "x"},
    {"Mo": [{"hour": 10, "occupancyPercent": "lots"}]},
    {"Mo": {"data": None}},
    42,
])
def test_malformed_histogram_degrades_to_none(histogram):
    assert resolve_busyness(histogram, None, MONDAY_10_BALI) is None


@pytest.mark.parametrize("percentage,label", [
    (0, "Обычно свободно"),
    (29, "Обычно свободно"),
    (30, "Средняя загруженность"),
    (60, "Обычно многолюдно"),
    (85, "Очень многолюдно"),
])
def test_labels(percentage, label):
    assert busyness_label(percentage) == label
