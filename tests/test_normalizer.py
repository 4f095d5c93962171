"""
Field normalizer: tolerant dates and numbers, "Other" resolution.
Run from project root: python -m pytest tests/test_normalizer.py -v
"""
import math
import unittest
from datetime import date, datetime

from services.normalizer import (
    Choice,
    normalize_date,
    normalize_for_storage,
    normalize_number,
    parse_date,
    resolve_other_field,
    storage_date,
    storage_number,
)


class TestNormalizeDate(unittest.TestCase):
    def test_accepted_formats(self):
        self.assertEqual(normalize_date("05-03-2026"), "2026-03-05")
        self.assertEqual(normalize_date("2026-03-05"), "2026-03-05")
        self.assertEqual(normalize_date(datetime(2026, 3, 5, 10, 30)), "2026-03-05")
        self.assertEqual(normalize_date(date(2026, 3, 5)), "2026-03-05")
        self.assertEqual(normalize_date("2026-03-05T10:00:00Z"), "2026-03-05")

    def test_display_style(self):
        self.assertEqual(normalize_date("2026-03-05", "display"), "05-03-2026")
        self.assertEqual(normalize_date("5-3-2026", "display"), "05-03-2026")

    def test_unparseable_becomes_empty(self):
        for value in (None, "", "not a date", "31-02-2026", 12345, "2026/03/05"):
            self.assertEqual(normalize_date(value), "", value)

    def test_idempotent(self):
        """normalize(normalize(d)) == normalize(d) for every accepted shape and both styles."""
        for value in ("05-03-2026", "2026-03-05", datetime(2026, 3, 5), "garbage"):
            for style in ("iso", "display"):
                once = normalize_date(value, style)
                self.assertEqual(normalize_date(once, style), once)

    def test_parse_date(self):
        self.assertEqual(parse_date("01-01-2026"), date(2026, 1, 1))
        self.assertIsNone(parse_date("yesterday"))


class TestNormalizeNumber(unittest.TestCase):
    def test_thousands_separators(self):
        self.assertEqual(normalize_number("1,234,567"), 1234567)
        self.assertEqual(normalize_number("1,50,000"), 150000)

    def test_integral_values_are_ints(self):
        result = normalize_number(2000.0)
        self.assertEqual(result, 2000)
        self.assertIsInstance(result, int)
        self.assertEqual(normalize_number("12.5"), 12.5)

    def test_bad_input_is_zero(self):
        for value in (None, "", "   ", "abc", "12abc", True, float("nan"), float("inf"), [], {}):
            self.assertEqual(normalize_number(value), 0, value)

    def test_never_nan(self):
        self.assertFalse(math.isnan(normalize_number("nan")))


class TestStorageForm(unittest.TestCase):
    def test_dates(self):
        self.assertEqual(storage_date("5-1-2026"), "2026-01-05")
        self.assertEqual(storage_date("2026-01-05T10:00:00Z"), "2026-01-05")
        self.assertEqual(storage_date("next week"), "next week")
        self.assertIsNone(storage_date(None))
        self.assertEqual(storage_date(""), "")

    def test_numbers(self):
        self.assertEqual(storage_number("1,00,000"), "100000")
        self.assertEqual(storage_number(" 2,500.50 "), "2500.5")
        self.assertEqual(storage_number(150000), "150000")
        self.assertEqual(storage_number("2%"), "2%")
        self.assertEqual(storage_number("nan"), "nan")
        self.assertEqual(storage_number(""), "")

    def test_only_named_fields(self):
        values = normalize_for_storage(
            {"login_date": "15-01-2026", "amount": "1,000", "remark": "1,000"},
            date_fields=("login_date", "pd_date"),
            number_fields=("amount",),
        )
        self.assertEqual(values, {"login_date": "2026-01-15", "amount": "1000", "remark": "1,000"})


class TestOtherField(unittest.TestCase):
    def test_resolve(self):
        self.assertEqual(resolve_other_field("Other", "Custom Bank"), "Custom Bank")
        self.assertEqual(resolve_other_field("HDFC", "ignored"), "HDFC")
        self.assertEqual(resolve_other_field("Other", None), "")

    def test_choice(self):
        choice = Choice.parse("Other", "Cooperative Bank")
        self.assertTrue(choice.is_other)
        self.assertEqual(str(choice), "Cooperative Bank")
        known = Choice.parse("SBI", "ignored")
        self.assertFalse(known.is_other)
        self.assertEqual(known.value, "SBI")
        self.assertEqual(Choice.parse(None).value, "")


if __name__ == "__main__":
    unittest.main()
