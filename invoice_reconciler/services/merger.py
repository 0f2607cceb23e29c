"""
Merging of two independent extraction attempts.

The first attempt is the anchor: its fields survive unless one of the
precedence rules below lets the second attempt override or fill them. When the
two confidences are far apart, the more trusted attempt wins outright and no
blending happens at all.
"""

from loguru import logger
from pydantic import BaseModel, ConfigDict
from .invoice_types import ExtractionAttempt
from .scoring import RecordScorer

MERGE_PASS_NUMBER = 2

# Filled from the secondary attempt only where the anchor has nothing
FILL_IF_ABSENT_FIELDS: tuple[str, ...] = (
    "invoice_date",
    "due_date",
    "tax_amount",
    "tax_rate",
    "tax_type",
    "customer_name",
    "customer_address",
    "vendor_address",
    "email",
    "website",
    "phone",
    "payment_instructions",
)

# Longer value is treated as more complete
PREFER_LONGER_FIELDS: tuple[str, ...] = ("vendor_name", "invoice_number")


class MergeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    confidence_merge_threshold: float = 0.10
    # Currency a backend falls back to when it cannot tell; None disables the override
    assumed_default_currency: str | None = "USD"


def _is_absent(value) -> bool:
    return value is None or value == ""


def merge_attempts(
    primary: ExtractionAttempt,
    secondary: ExtractionAttempt,
    scorer: RecordScorer = None,
    config: MergeConfig = None,
) -> ExtractionAttempt:
    """
    Merge two attempts; `primary` is the anchor.

    Returns one of the inputs unchanged when the confidence gap exceeds the
    threshold, otherwise a new pass-2 attempt scored from the blended record.
    """
    scorer = scorer or RecordScorer()
    config = config or MergeConfig()

    gap = abs(primary.confidence - secondary.confidence)
    if gap > config.confidence_merge_threshold:
        winner = primary if primary.confidence > secondary.confidence else secondary
        logger.info(
            "Confidence gap too large, keeping the more trusted attempt",
            gap=round(gap, 4),
            winner_pass=winner.pass_number,
            winner_confidence=winner.confidence,
        )
        return winner

    a = primary.data
    b = secondary.data
    updates = {}

    for name in PREFER_LONGER_FIELDS:
        theirs = getattr(b, name)
        ours = getattr(a, name)
        if theirs and len(theirs) > len(ours or ""):
            updates[name] = theirs

    default_currency = config.assumed_default_currency
    if (
        default_currency is not None
        and a.currency == default_currency
        and b.currency
        and b.currency != default_currency
    ):
        updates["currency"] = b.currency

    for name in FILL_IF_ABSENT_FIELDS:
        if _is_absent(getattr(a, name)) and not _is_absent(getattr(b, name)):
            updates[name] = getattr(b, name)

    if len(b.line_items) > len(a.line_items):
        updates["line_items"] = b.line_items

    merged = a.model_copy(update=updates)
    attempt = scorer.score_attempt(merged, pass_number=MERGE_PASS_NUMBER)

    logger.info(
        "Merged extraction attempts",
        fields_from_secondary=sorted(updates),
        quality=attempt.quality,
        confidence=attempt.confidence,
    )
    return attempt


def create_merge_config() -> MergeConfig:
    from ..core.config import settings

    return MergeConfig(
        confidence_merge_threshold=settings.confidence_merge_threshold,
        assumed_default_currency=settings.assumed_default_currency or None,
    )
