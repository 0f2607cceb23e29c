"""
Tests for single-field requests and targeted re-extraction.
"""

import asyncio
from invoice_reconciler.models.invoice import InvoiceRecord
from invoice_reconciler.services.field_requests import (
    FIELD_REQUESTS,
    ReExtractField,
    request_for,
    sort_by_priority,
)
from invoice_reconciler.services.invoice_types import InvoiceDocument
from invoice_reconciler.services.reextraction import TargetedReExtractor

DOCUMENT = InvoiceDocument.from_text("INVOICE INV-7\nAcme Supplies GmbH\nTotal EUR 120.00")


class TestFieldRequests:
    def test_every_field_has_a_single_field_schema(self):
        assert set(FIELD_REQUESTS) == set(ReExtractField)
        for field, request in FIELD_REQUESTS.items():
            assert request.field is field
            assert list(request.schema_model.model_fields) == [field.value]
            assert request.instruction.startswith("Extract ONLY")

    def test_request_lookup(self):
        assert request_for("currency").field is ReExtractField.CURRENCY
        assert request_for("line_items") is None
        assert request_for("subtotal_amount") is None

    def test_priority_sort_is_stable(self):
        fields = ["invoice_date", "invoice_number", "vendor_name", "currency", "total_amount"]
        assert sort_by_priority(fields) == [
            "currency",
            "total_amount",
            "vendor_name",
            "invoice_date",
            "invoice_number",
        ]

    def test_unknown_fields_sort_last(self):
        assert sort_by_priority(["notes", "tax_rate"]) == ["tax_rate", "notes"]

    def test_value_from_model_or_dict(self):
        request = FIELD_REQUESTS[ReExtractField.TAX_RATE]
        assert request.value_from(request.schema_model(tax_rate=20.0)) == 20.0
        assert request.value_from({"tax_rate": 7.5}) == 7.5
        assert request.value_from(None) is None


class TestTargetedReExtractor:
    def test_fills_fields_in_priority_order(self, scripted_extractor):
        extractor = scripted_extractor(fields={"currency": "EUR", "vendor_name": "Acme Supplies GmbH", "invoice_number": "INV-7"})
        reextractor = TargetedReExtractor(extractor)

        record = InvoiceRecord(total_amount=120.0)
        result = asyncio.run(
            reextractor.reextract(DOCUMENT, record, ["invoice_number", "vendor_name", "currency"], backend="primary")
        )

        assert [name for name, _ in extractor.calls] == ["CurrencyOnly", "VendorNameOnly", "InvoiceNumberOnly"]
        assert extractor.backends_called() == ["primary"] * 3
        assert (result.currency, result.vendor_name, result.invoice_number) == ("EUR", "Acme Supplies GmbH", "INV-7")
        assert result.total_amount == 120.0
        assert record.currency is None

    def test_failed_field_is_skipped(self, scripted_extractor):
        extractor = scripted_extractor(fields={"invoice_date": "2024-03-10"}, failing_fields=["currency"])
        reextractor = TargetedReExtractor(extractor)

        result = asyncio.run(reextractor.reextract(DOCUMENT, InvoiceRecord(), ["currency", "invoice_date"]))

        assert len(extractor.calls) == 2
        assert result.currency is None
        assert result.invoice_date == "2024-03-10"

    def test_null_answers_do_not_overwrite(self, scripted_extractor):
        extractor = scripted_extractor(fields={})
        record = InvoiceRecord(notes="keep")
        result = asyncio.run(TargetedReExtractor(extractor).reextract(DOCUMENT, record, ["vendor_name"]))
        assert result is record

    def test_fields_without_request_are_skipped(self, scripted_extractor):
        extractor = scripted_extractor()
        record = InvoiceRecord()
        result = asyncio.run(TargetedReExtractor(extractor).reextract(DOCUMENT, record, ["line_items"]))
        assert extractor.calls == []
        assert result is record

    def test_long_text_is_truncated(self, scripted_extractor):
        extractor = scripted_extractor(fields={"currency": "EUR"})
        long_document = InvoiceDocument.from_text("x" * 5000)
        asyncio.run(TargetedReExtractor(extractor, text_char_limit=4000).reextract(long_document, InvoiceRecord(), ["currency"]))
        assert len(extractor.documents[0].text) == 4000

    def test_concurrent_mode_matches_sequential(self, scripted_extractor):
        answers = {"currency": "EUR", "invoice_number": "INV-7", "tax_amount": 20.0}
        missing = ["tax_amount", "invoice_number", "currency"]

        sequential = asyncio.run(
            TargetedReExtractor(scripted_extractor(fields=answers)).reextract(DOCUMENT, InvoiceRecord(), missing)
        )
        concurrent = asyncio.run(
            TargetedReExtractor(scripted_extractor(fields=answers), concurrent=True).reextract(DOCUMENT, InvoiceRecord(), missing)
        )
        assert concurrent == sequential


class DictAnswerExtractor:
    """Answers single-field calls with raw dicts, bypassing schema validation"""

    def __init__(self, answers):
        self.answers = answers

    async def extract(self, document, schema, instructions, *, backend=None):
        if schema is InvoiceRecord:
            return InvoiceRecord()
        field = next(iter(schema.model_fields))
        return {field: self.answers.get(field)}


class TestRawDictAnswers:
    def test_wrong_typed_answer_is_skipped(self):
        extractor = DictAnswerExtractor({"total_amount": "not-a-number", "currency": "EUR"})
        result = asyncio.run(
            TargetedReExtractor(extractor).reextract(DOCUMENT, InvoiceRecord(), ["total_amount", "currency"])
        )
        assert result.total_amount is None
        assert result.currency == "EUR"

    def test_valid_answer_is_coerced_by_field_schema(self):
        extractor = DictAnswerExtractor({"total_amount": "120.50"})
        result = asyncio.run(TargetedReExtractor(extractor).reextract(DOCUMENT, InvoiceRecord(), ["total_amount"]))
        assert result.total_amount == 120.5

    def test_concurrent_mode_skips_wrong_typed_answer(self):
        extractor = DictAnswerExtractor({"tax_rate": "twenty", "vendor_name": "Acme Supplies GmbH"})
        result = asyncio.run(
            TargetedReExtractor(extractor, concurrent=True).reextract(DOCUMENT, InvoiceRecord(), ["tax_rate", "vendor_name"])
        )
        assert result.tax_rate is None
        assert result.vendor_name == "Acme Supplies GmbH"
