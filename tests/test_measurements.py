from __future__ import annotations

import unittest
from datetime import datetime, timezone

from google.api_core import exceptions as gexc

from fake_firestore import FakeClient
from gymtrack.errors import MeasurementValidationError, NothingToSaveError, StoreError
from gymtrack.measurements import (
    MEASUREMENT_TYPES,
    METRICS,
    build_record,
    save_measurement,
    unit_for,
)
from gymtrack.store import FirestoreStore

NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


class MeasurementTypesTests(unittest.TestCase):
    def test_fifteen_kinds_in_display_order(self) -> None:
        kinds = list(MEASUREMENT_TYPES)
        self.assertEqual(len(kinds), 15)
        self.assertEqual(kinds[:5], ["weight", "waist", "neck", "shoulder", "chest"])
        self.assertEqual(kinds[-1], "rightCalf")
        self.assertEqual(METRICS[-1], "bmi")

    def test_units(self) -> None:
        self.assertEqual(unit_for("weight"), "Kg")
        self.assertEqual(unit_for("leftThigh"), "cm")
        self.assertEqual(unit_for("bmi"), "")
        with self.assertRaises(ValueError):
            unit_for("wingspan")


class BuildRecordTests(unittest.TestCase):
    def test_valid_submission_with_bmi(self) -> None:
        rec = build_record({"weight": "70.5", "chest": "100"}, user_id="u1", profile_height=180, now=NOW)
        self.assertEqual(rec.measurements, {"weight": 70.5, "chest": 100.0})
        self.assertEqual(rec.bmi, 21.8)
        self.assertEqual(rec.userId, "u1")
        self.assertEqual(rec.date, "2024-03-15")
        self.assertEqual(rec.timestamp, int(NOW.timestamp() * 1000))
        self.assertIsNone(rec.id)

    def test_negative_value_names_the_field(self) -> None:
        with self.assertRaises(MeasurementValidationError) as ctx:
            build_record({"weight": "-5"}, user_id="u1", profile_height=180, now=NOW)
        self.assertEqual(ctx.exception.field, "weight")

    def test_unparseable_value_rejects_whole_submission(self) -> None:
        with self.assertRaises(MeasurementValidationError) as ctx:
            build_record({"weight": "70", "waist": "abc"}, user_id="u1", profile_height=180, now=NOW)
        self.assertEqual(ctx.exception.field, "waist")

    def test_nan_and_bool_are_rejected(self) -> None:
        for bad in ("nan", "inf", True):
            with self.assertRaises(MeasurementValidationError):
                build_record({"neck": bad}, user_id="u1", profile_height=None, now=NOW)

    def test_digit_separators_are_rejected(self) -> None:
        for bad in ("1_000", "70_5"):
            with self.assertRaises(MeasurementValidationError) as ctx:
                build_record({"weight": bad}, user_id="u1", profile_height=180, now=NOW)
            self.assertEqual(ctx.exception.field, "weight")

    def test_empty_submission(self) -> None:
        with self.assertRaises(NothingToSaveError):
            build_record({}, user_id="u1", profile_height=180, now=NOW)

    def test_blank_and_unknown_keys_are_not_recorded(self) -> None:
        with self.assertRaises(NothingToSaveError):
            build_record({"weight": "  ", "hips": None, "wingspan": "180"}, user_id="u1", profile_height=180, now=NOW)

    def test_whitespace_is_trimmed_and_zero_is_allowed(self) -> None:
        rec = build_record({"waist": " 81.2 ", "neck": "0"}, user_id="u1", profile_height=180, now=NOW)
        self.assertEqual(rec.measurements, {"waist": 81.2, "neck": 0.0})

    def test_bmi_absent_without_weight_or_height(self) -> None:
        no_weight = build_record({"chest": "100"}, user_id="u1", profile_height=180, now=NOW)
        no_height = build_record({"weight": "70"}, user_id="u1", profile_height=None, now=NOW)
        self.assertIsNone(no_weight.bmi)
        self.assertIsNone(no_height.bmi)


class SaveMeasurementTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = FakeClient()
        self.store = FirestoreStore(self.client)

    def test_appends_new_document(self) -> None:
        first = save_measurement(self.store, {"weight": "70"}, user_id="u1", profile_height=180, now=NOW)
        second = save_measurement(self.store, {"weight": "71"}, user_id="u1", profile_height=180, now=NOW)
        self.assertNotEqual(first.id, second.id)
        docs = self.client.data["measurements"]
        self.assertEqual(len(docs), 2)
        self.assertEqual(
            docs[first.id],
            {
                "userId": "u1",
                "date": "2024-03-15",
                "timestamp": int(NOW.timestamp() * 1000),
                "measurements": {"weight": 70.0},
                "bmi": 21.6,
            },
        )

    def test_invalid_submission_writes_nothing(self) -> None:
        with self.assertRaises(MeasurementValidationError):
            save_measurement(self.store, {"weight": "-5"}, user_id="u1", profile_height=180, now=NOW)
        self.assertEqual(self.client.data.get("measurements", {}), {})

    def test_store_failure_is_reported(self) -> None:
        self.client.fail_with = gexc.ServiceUnavailable("firestore down")
        with self.assertRaises(StoreError):
            save_measurement(self.store, {"weight": "70"}, user_id="u1", profile_height=180, now=NOW)


if __name__ == "__main__":
    unittest.main()
