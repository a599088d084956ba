import pytest

from src.database_config.units import (
    differs,
    exceeds,
    kb_to_mb,
    mb_to_kb,
    normalize_maximum_size,
    round_up_to_nearest_mb,
)


def test_kb_to_mb_rounds_up():
    assert kb_to_mb(1600) == 2
    assert kb_to_mb(1) == 1
    assert kb_to_mb(0) == 0


def test_round_up_to_nearest_mb():
    assert round_up_to_nearest_mb(1600) == 2048.0


def test_one_megabyte_round_trips_exactly():
    assert kb_to_mb(1024) == 1
    assert mb_to_kb(1) == 1024.0


@pytest.mark.parametrize(
    "left,right,expected",
    [
        (1024.0, 1024.0 + 5e-7, False),
        (1024.0, 1024.0 + 2e-6, True),
        (10.0, 9.0, True),
    ],
)
def test_differs_uses_tolerance(left, right, expected):
    assert differs(left, right) is expected


def test_exceeds_is_one_sided():
    assert exceeds(2048.0, 1024.0)
    assert not exceeds(1024.0, 2048.0)
    assert not exceeds(1024.0 + 1e-7, 1024.0)


@pytest.mark.parametrize("raw", [None, 0, -1, -1.0])
def test_non_positive_maximum_size_means_unrestricted(raw):
    assert normalize_maximum_size(raw) is None


def test_positive_maximum_size_is_kept():
    assert normalize_maximum_size(2048) == 2048.0
