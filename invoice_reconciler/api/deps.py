
from fastapi import Depends
from pydantic import BaseModel, Field
from ..models.invoice import InvoiceRecord
from ..services.extractor import Extractor, get_extractor
from ..services.orchestrator import InvoiceProcessor, create_invoice_processor


class ExtractTextRequest(BaseModel):
    text: str = Field(min_length=1)
    company_context: str | None = None  # Known customer name, disambiguates vendor vs customer
    max_passes: int | None = Field(default=None, ge=1, le=4)
    primary_backend_id: str | None = None
    fallback_backend_id: str | None = None


class ExtractResponse(BaseModel):
    data: InvoiceRecord
    quality: int
    confidence: float
    pass_number: int
    applied_fixes: list[str] = []
    needs_review: bool = False  # Confidence below REVIEW_MIN_CONFIDENCE


def extractor_dependency() -> Extractor:
    return get_extractor()


def processor_dependency(extractor: Extractor = Depends(extractor_dependency)) -> InvoiceProcessor:
    return create_invoice_processor(extractor)
