"""
The extraction collaborator: given a document, a target schema and an
instruction text, return a best-effort instance of that schema.

Implementations:
- LLMExtractor (llm_client.py): OpenAI-compatible chat completions
- DocumentIntelligenceExtractor (form_recognizer.py): Azure prebuilt-invoice
- DemoExtractor (below): fixed sample data for local runs and demos
"""

from typing import Protocol, TypeVar
from loguru import logger
from pydantic import BaseModel
from ..models.invoice import InvoiceRecord, LineItem, TaxType
from .invoice_types import InvoiceDocument

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ExtractionError(Exception):
    """An extraction backend call failed or returned unusable output."""


class BackendNotConfiguredError(ExtractionError):
    pass


class UnsupportedDocumentError(ExtractionError):
    pass


class Extractor(Protocol):
    async def extract(
        self,
        document: InvoiceDocument,
        schema: type[SchemaT],
        instructions: str,
        *,
        backend: str | None = None,
    ) -> SchemaT:
        ...


def project_record(record: InvoiceRecord, schema: type[SchemaT]) -> SchemaT:
    """Narrow a full record onto a (possibly single-field) target schema."""
    if schema is InvoiceRecord:
        return record
    return schema.model_validate(record.model_dump(include=set(schema.model_fields)))


DEMO_INVOICE = InvoiceRecord(
    invoice_number="INV-10023",
    invoice_date="2025-09-30",
    due_date="2025-10-15",
    currency="AUD",
    total_amount=385.00,
    subtotal_amount=350.00,
    tax_amount=35.00,
    tax_type=TaxType.GST,
    vendor_name="Contoso Pty Ltd",
    customer_name="Fabrikam Holdings",
    line_items=(
        LineItem(description="Consulting hours", quantity=5, unit_price=50.0, total_price=250.0),
        LineItem(description="Support plan", quantity=1, unit_price=100.0, total_price=100.0),
    ),
    language="english",
)


class DemoExtractor:
    """
    Returns a fixed sample invoice regardless of the document.

    Used when neither an LLM endpoint nor Azure Document Intelligence is
    configured, so the service can be exercised end to end without credentials.
    An empty document yields an empty record.
    """

    def __init__(self, record: InvoiceRecord = DEMO_INVOICE):
        self.record = record
        self.calls: int = 0

    async def extract(self, document, schema, instructions, *, backend=None):
        self.calls += 1
        empty = not (document.text or document.image)
        logger.info(
            "Returning demo invoice extraction",
            schema=schema.__name__,
            backend=backend,
            empty_document=empty,
        )
        return project_record(InvoiceRecord() if empty else self.record, schema)


def get_extractor() -> Extractor:
    """Pick the configured backend: LLM first, then Document Intelligence, then demo."""
    from ..core.config import settings

    if settings.llm_base_url and settings.llm_api_key:
        from .llm_client import LLMExtractor

        return LLMExtractor.from_settings(settings)

    if settings.az_di_endpoint and settings.az_di_api_key:
        from .form_recognizer import DocumentIntelligenceExtractor

        return DocumentIntelligenceExtractor.from_settings(settings)

    logger.warning(
        "No extraction backend configured - using DEMO data. "
        "Set LLM_BASE_URL/LLM_API_KEY or AZ_DI_ENDPOINT/AZ_DI_API_KEY to use real extraction."
    )
    return DemoExtractor()
