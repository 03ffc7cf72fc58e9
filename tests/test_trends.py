from __future__ import annotations

import unittest

from gymtrack.models import MeasurementRecord
from gymtrack.trends import progress_indicator, progress_indicators


def rec(ts: int, bmi: float | None = None, **measurements: float) -> MeasurementRecord:
    return MeasurementRecord(userId="u1", date="2024-01-01", timestamp=ts, measurements=measurements, bmi=bmi)


class ProgressIndicatorTests(unittest.TestCase):
    def test_increase(self) -> None:
        ind = progress_indicator("weight", [rec(1, weight=70), rec(2, weight=72)])
        self.assertEqual(ind.status, "increase")
        self.assertEqual(ind.delta, 2.0)
        self.assertEqual(ind.unit, "Kg")
        self.assertEqual(ind.tone, "positive")

    def test_decrease_is_negative_for_weight_too(self) -> None:
        ind = progress_indicator("weight", [rec(1, weight=72.4), rec(2, weight=71.1)])
        self.assertEqual(ind.status, "decrease")
        self.assertEqual(ind.delta, -1.3)
        self.assertEqual(ind.tone, "negative")

    def test_unchanged(self) -> None:
        ind = progress_indicator("weight", [rec(1, weight=70), rec(2, weight=70)])
        self.assertEqual(ind.status, "unchanged")
        self.assertEqual(ind.delta, 0.0)

    def test_change_below_display_precision_still_counts(self) -> None:
        up = progress_indicator("waist", [rec(1, waist=80.0), rec(2, waist=80.04)])
        self.assertEqual((up.status, up.delta, up.tone), ("increase", 0.0, "positive"))
        down = progress_indicator("waist", [rec(1, waist=80.04), rec(2, waist=80.0)])
        self.assertEqual(down.status, "decrease")

    def test_single_entry_is_no_data(self) -> None:
        ind = progress_indicator("weight", [rec(1, weight=70)])
        self.assertEqual(ind.status, "no_data")
        self.assertIsNone(ind.delta)

    def test_missing_value_in_last_two_is_no_data(self) -> None:
        history = [rec(1, weight=70), rec(2, weight=71), rec(3, chest=100)]
        self.assertEqual(progress_indicator("weight", history).status, "no_data")
        self.assertEqual(progress_indicator("chest", history).status, "no_data")

    def test_only_last_two_entries_matter(self) -> None:
        history = [rec(1, weight=90), rec(2, weight=70), rec(3, weight=70.5)]
        ind = progress_indicator("weight", history)
        self.assertEqual((ind.status, ind.delta), ("increase", 0.5))

    def test_bmi_pseudo_metric(self) -> None:
        history = [rec(1, bmi=22.0, weight=70), rec(2, bmi=21.6, weight=69)]
        ind = progress_indicator("bmi", history)
        self.assertEqual((ind.status, ind.delta, ind.unit), ("decrease", -0.4, ""))
        missing = [rec(1, bmi=None, weight=70), rec(2, bmi=21.6, weight=69)]
        self.assertEqual(progress_indicator("bmi", missing).status, "no_data")

    def test_unknown_metric(self) -> None:
        with self.assertRaises(ValueError):
            progress_indicator("wingspan", [])

    def test_all_indicators_weight_and_bmi_first(self) -> None:
        out = progress_indicators([])
        self.assertEqual(list(out)[:2], ["weight", "bmi"])
        self.assertEqual(len(out), 16)
        self.assertTrue(all(i.status == "no_data" for i in out.values()))


if __name__ == "__main__":
    unittest.main()
