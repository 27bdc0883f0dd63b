from __future__ import annotations

from packages.shared.utils.lab_series import (
    earliest_since,
    latest,
    latest_value,
    reading_before,
    series,
    value_before,
)
from tests.fixtures.clinical import days_ago, lab


def _egfr_history():
    return [
        lab("eGFR", 55, days_ago(10)),
        lab("Hemoglobin", 11.0, days_ago(5)),
        lab("EGFR", 72, days_ago(200)),
        lab("Estimated GFR", 64, days_ago(90)),
    ]


def test_series_matches_aliases_and_orders_oldest_first():
    rows = series(_egfr_history(), "egfr")
    assert [r.value for r in rows] == [72, 64, 55]


def test_latest_and_latest_value():
    labs = _egfr_history()
    assert latest(labs, "egfr").value == 55
    assert latest_value(labs, "hgb") is None
    assert latest_value(labs, "hemoglobin") == 11.0
    assert latest([], "egfr") is None


def test_earliest_since_is_strictly_after_cutoff():
    labs = _egfr_history()
    assert earliest_since(labs, "egfr", days_ago(365)).value == 72
    assert earliest_since(labs, "egfr", days_ago(200)).value == 64
    assert earliest_since(labs, "egfr", days_ago(1)) is None


def test_reading_before_is_strictly_before_cutoff():
    labs = _egfr_history()
    assert reading_before(labs, "egfr", days_ago(30)).value == 64
    assert value_before(labs, "egfr", days_ago(90)) == 72
    assert value_before(labs, "egfr", days_ago(300)) is None
