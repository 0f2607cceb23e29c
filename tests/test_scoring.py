"""
Unit tests for the quality, confidence and critical-field checks.
"""

import pytest
from invoice_reconciler.models.invoice import InvoiceRecord
from invoice_reconciler.services.scoring import RecordScorer, ScoringConfig


def complete_record(**overrides) -> InvoiceRecord:
    values = {
        "invoice_number": "INV-2024-001",
        "invoice_date": "2024-03-10",
        "due_date": "2024-04-09",
        "currency": "EUR",
        "total_amount": 120.0,
        "vendor_name": "Acme Supplies GmbH",
    }
    values.update(overrides)
    return InvoiceRecord(**values)


@pytest.fixture
def scorer():
    return RecordScorer()


class TestQuality:
    """Tests for RecordScorer.quality"""

    def test_complete_record_scores_100(self, scorer):
        assert scorer.quality(complete_record()) == 100

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"total_amount": None}, 70),
            ({"currency": None}, 75),
            ({"currency": ""}, 75),
            ({"vendor_name": None}, 80),
            ({"invoice_number": None}, 95),
            ({"invoice_date": None, "due_date": None}, 85),
            ({"invoice_date": "10/03/2024"}, 95),
            ({"due_date": "2024-02-30"}, 95),
            ({"total_amount": -5.0}, 90),
            ({"due_date": "2024-03-01"}, 95),
        ],
    )
    def test_individual_penalties(self, scorer, overrides, expected):
        assert scorer.quality(complete_record(**overrides)) == expected

    def test_zero_total_is_not_missing(self, scorer):
        assert scorer.quality(complete_record(total_amount=0.0)) == 100

    def test_single_date_avoids_missing_dates_penalty(self, scorer):
        assert scorer.quality(complete_record(invoice_date=None)) == 100

    def test_empty_record(self, scorer):
        # 100 - 30 - 25 - 20 - 15 - 5
        assert scorer.quality(InvoiceRecord()) == 5

    def test_unparseable_dates_skip_order_check(self, scorer):
        record = complete_record(invoice_date="March 10", due_date="2024-01-01")
        # Only the invalid-date penalty applies
        assert scorer.quality(record) == 95

    def test_clamped_at_zero(self):
        harsh = RecordScorer(ScoringConfig(missing_total_penalty=90, missing_currency_penalty=90))
        assert harsh.quality(InvoiceRecord()) == 0

    def test_deterministic(self, scorer):
        record = complete_record(currency=None, due_date="2024-03-01")
        assert scorer.quality(record) == scorer.quality(record)


class TestConfidence:
    """Tests for RecordScorer.confidence"""

    def test_complete_record_clamped_to_one(self, scorer):
        record = complete_record()
        assert scorer.confidence(record, scorer.quality(record)) == 1.0

    def test_missing_critical_fields_reduce_confidence(self, scorer):
        record = InvoiceRecord(
            total_amount=100.0,
            currency="EUR",
            vendor_name="Acme",  # too short for the vendor bonus
            due_date="2024-04-01",
        )
        quality = scorer.quality(record)
        assert quality == 95
        # 0.95 - 0.05 for the missing invoice date
        assert scorer.confidence(record, quality) == pytest.approx(0.90)

    def test_bonuses_for_long_vendor_and_invoice_number(self, scorer):
        record = InvoiceRecord(vendor_name="Acme Supplies GmbH", invoice_number="7")
        # 0.5 - 3 * 0.05 + 0.05 + 0.05
        assert scorer.confidence(record, 50) == pytest.approx(0.45)

    def test_clamped_at_zero(self, scorer):
        record = InvoiceRecord()
        assert scorer.confidence(record, scorer.quality(record)) == 0.0

    @pytest.mark.parametrize("quality", [0, 5, 37, 70, 99, 100])
    def test_always_within_bounds(self, scorer, quality):
        for record in (InvoiceRecord(), complete_record(), complete_record(vendor_name=None)):
            assert 0.0 <= scorer.confidence(record, quality) <= 1.0


class TestMissingCritical:
    """Tests for RecordScorer.missing_critical"""

    def test_nothing_missing(self, scorer):
        assert scorer.missing_critical(complete_record()) == []

    def test_priority_order(self, scorer):
        assert scorer.missing_critical(InvoiceRecord()) == [
            "total_amount",
            "currency",
            "vendor_name",
            "invoice_number",
            "invoice_date",
        ]

    def test_presence_not_validity(self, scorer):
        record = complete_record(invoice_date="not a date", total_amount=0.0)
        assert scorer.missing_critical(record) == []

    def test_empty_strings_are_missing(self, scorer):
        record = complete_record(vendor_name="", invoice_number="")
        assert scorer.missing_critical(record) == ["vendor_name", "invoice_number"]


class TestScoreAttempt:
    def test_scores_follow_data(self, scorer):
        record = complete_record(currency=None)
        attempt = scorer.score_attempt(record, pass_number=3, applied_fixes=["x"])
        assert attempt.quality == scorer.quality(record)
        assert attempt.confidence == scorer.confidence(record, attempt.quality)
        assert attempt.pass_number == 3
        assert attempt.applied_fixes == ("x",)

    def test_sufficiency_needs_threshold_and_no_missing_fields(self, scorer):
        assert scorer.is_sufficient(scorer.score_attempt(complete_record(), 1))
        # Quality 95 but the invoice number is missing
        assert not scorer.is_sufficient(scorer.score_attempt(complete_record(invoice_number=None), 1))
        # Nothing missing but quality 80
        low = complete_record(total_amount=-1.0, invoice_date="bad", due_date="bad")
        strict = RecordScorer(ScoringConfig(quality_threshold=85))
        assert not strict.is_sufficient(strict.score_attempt(low, 1))
