"""
Quality, confidence and critical-field checks for extracted invoices.

Quality is a 0-100 completeness/validity score of a single record. Confidence
(0.0-1.0) starts from quality and adjusts for critical-field coverage; the
merger uses it to arbitrate between two candidates. Everything here is pure:
same record in, same numbers out.
"""

from pydantic import BaseModel, ConfigDict
from ..models.invoice import InvoiceRecord
from .dates import due_before_invoice, is_valid_iso_date
from .invoice_types import ExtractionAttempt


# Presence order doubles as re-extraction order when priorities tie
CRITICAL_FIELDS: tuple[str, ...] = (
    "total_amount",
    "currency",
    "vendor_name",
    "invoice_number",
    "invoice_date",
)

# Fields whose presence drives the confidence adjustment
CONFIDENCE_FIELDS: tuple[str, ...] = (
    "total_amount",
    "currency",
    "vendor_name",
    "invoice_date",
)


class ScoringConfig(BaseModel):
    """Penalty weights and thresholds (immutable, loaded from settings)"""

    model_config = ConfigDict(frozen=True)

    missing_total_penalty: int = 30
    missing_currency_penalty: int = 25
    missing_vendor_penalty: int = 20
    missing_dates_penalty: int = 15
    missing_invoice_number_penalty: int = 5
    invalid_invoice_date_penalty: int = 5
    invalid_due_date_penalty: int = 5
    negative_total_penalty: int = 10
    due_before_invoice_penalty: int = 5

    all_critical_bonus: float = 0.10
    missing_critical_penalty: float = 0.05
    long_vendor_bonus: float = 0.05
    long_vendor_min_length: int = 5
    invoice_number_bonus: float = 0.05

    quality_threshold: int = 70


def _has_text(value: str | None) -> bool:
    return bool(value)


class RecordScorer:
    """
    Scores InvoiceRecords.

    Usage:
        scorer = RecordScorer()
        attempt = scorer.score_attempt(record, pass_number=1)
        if scorer.is_sufficient(attempt):
            ...
    """

    def __init__(self, config: ScoringConfig = None):
        self.config = config or ScoringConfig()

    def quality(self, record: InvoiceRecord) -> int:
        cfg = self.config
        score = 100

        # Critical fields. A total of 0 is present, only None counts as missing.
        if record.total_amount is None:
            score -= cfg.missing_total_penalty
        if not _has_text(record.currency):
            score -= cfg.missing_currency_penalty
        if not _has_text(record.vendor_name):
            score -= cfg.missing_vendor_penalty
        if not _has_text(record.invoice_date) and not _has_text(record.due_date):
            score -= cfg.missing_dates_penalty
        if not _has_text(record.invoice_number):
            score -= cfg.missing_invoice_number_penalty

        # Validity
        if _has_text(record.invoice_date) and not is_valid_iso_date(record.invoice_date):
            score -= cfg.invalid_invoice_date_penalty
        if _has_text(record.due_date) and not is_valid_iso_date(record.due_date):
            score -= cfg.invalid_due_date_penalty
        if record.total_amount is not None and record.total_amount < 0:
            score -= cfg.negative_total_penalty

        # Date consistency
        if due_before_invoice(record.invoice_date, record.due_date):
            score -= cfg.due_before_invoice_penalty

        return max(0, score)

    def confidence(self, record: InvoiceRecord, quality: int) -> float:
        cfg = self.config
        confidence = quality / 100

        present = sum(1 for name in CONFIDENCE_FIELDS if getattr(record, name) is not None)
        if present == len(CONFIDENCE_FIELDS):
            confidence += cfg.all_critical_bonus
        else:
            confidence -= cfg.missing_critical_penalty * (len(CONFIDENCE_FIELDS) - present)

        if record.vendor_name and len(record.vendor_name) > cfg.long_vendor_min_length:
            confidence += cfg.long_vendor_bonus
        if record.invoice_number:
            confidence += cfg.invoice_number_bonus

        return max(0.0, min(1.0, confidence))

    def missing_critical(self, record: InvoiceRecord) -> list[str]:
        """Critical fields that are absent, in priority order."""
        missing = []
        for name in CRITICAL_FIELDS:
            value = getattr(record, name)
            if name == "total_amount":
                if value is None:
                    missing.append(name)
            elif not _has_text(value):
                missing.append(name)
        return missing

    def score_attempt(
        self,
        record: InvoiceRecord,
        pass_number: int,
        applied_fixes: tuple[str, ...] | list[str] = (),
    ) -> ExtractionAttempt:
        """Wrap a record in an ExtractionAttempt with freshly computed scores."""
        quality = self.quality(record)
        return ExtractionAttempt(
            data=record,
            quality=quality,
            confidence=self.confidence(record, quality),
            pass_number=pass_number,
            applied_fixes=tuple(applied_fixes),
        )

    def is_sufficient(self, attempt: ExtractionAttempt) -> bool:
        """Good enough to skip straight to validation."""
        return (
            attempt.quality >= self.config.quality_threshold
            and not self.missing_critical(attempt.data)
        )


def create_record_scorer(quality_threshold: int = None) -> RecordScorer:
    """
    Factory function to create a scorer with optional overrides.

    Uses environment variables as defaults.
    """
    from ..core.config import settings

    config = ScoringConfig(
        quality_threshold=quality_threshold if quality_threshold is not None else settings.quality_threshold,
    )
    return RecordScorer(config)
