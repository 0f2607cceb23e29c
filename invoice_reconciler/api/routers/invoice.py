import asyncio
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from loguru import logger
from ..deps import ExtractResponse, ExtractTextRequest, processor_dependency
from ...core.config import settings
from ...services.extractor import ExtractionError
from ...services.invoice_types import ExtractionAttempt, InvoiceDocument, ProcessingOptions
from ...services.orchestrator import InvoiceProcessor

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _to_response(attempt: ExtractionAttempt) -> ExtractResponse:
    return ExtractResponse(
        data=attempt.data,
        quality=attempt.quality,
        confidence=attempt.confidence,
        pass_number=attempt.pass_number,
        applied_fixes=list(attempt.applied_fixes),
        needs_review=attempt.confidence < settings.review_min_confidence,
    )


async def _run(processor: InvoiceProcessor, document: InvoiceDocument, options: ProcessingOptions) -> ExtractResponse:
    try:
        attempt = await asyncio.wait_for(
            processor.process(document, options),
            timeout=settings.process_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("Invoice processing timed out", timeout=settings.process_timeout_seconds)
        raise HTTPException(status_code=504, detail="Invoice processing timed out")
    except ExtractionError as e:
        logger.error(f"Invoice extraction failed: {str(e)}")
        raise HTTPException(status_code=502, detail=f"Invoice extraction failed: {str(e)}")

    response = _to_response(attempt)
    logger.info(
        "Invoice processed",
        pass_number=response.pass_number,
        quality=response.quality,
        confidence=response.confidence,
        needs_review=response.needs_review,
    )
    return response


def _document_from_upload(content: bytes, content_type: str | None) -> InvoiceDocument:
    content_type = (content_type or "application/octet-stream").split(";")[0].strip()
    if content_type.startswith("text/"):
        try:
            return InvoiceDocument.from_text(content.decode("utf-8"))
        except UnicodeDecodeError:
            raise HTTPException(status_code=422, detail="Text upload is not valid UTF-8")
    return InvoiceDocument.from_image(content, content_type)


@router.post("/extract", response_model=ExtractResponse)
async def extract(
    request: Request,
    file: UploadFile = File(None),
    company_context: str | None = Query(default=None),
    max_passes: int | None = Query(default=None, ge=1, le=4),
    processor: InvoiceProcessor = Depends(processor_dependency),
):
    """
    Extract invoice fields from an uploaded document (page image, PDF or text).

    Accepts either:
    - multipart/form-data (file upload via form)
    - a raw body with its Content-Type (e.g. image/png, text/plain)

    The response carries the final quality/confidence; `needs_review` marks
    results that should go to a human before being trusted.
    """
    if file:
        # Multipart form-data upload
        content = await file.read()
        content_type = file.content_type
    else:
        # Raw binary body
        content = await request.body()
        content_type = request.headers.get("content-type")
    if not content:
        raise HTTPException(status_code=422, detail="No file provided (either multipart or raw body)")

    document = _document_from_upload(content, content_type)
    options = ProcessingOptions(company_context=company_context, max_passes=max_passes)
    return await _run(processor, document, options)


@router.post("/extract-text", response_model=ExtractResponse)
async def extract_text(
    req: ExtractTextRequest,
    processor: InvoiceProcessor = Depends(processor_dependency),
):
    """
    Extract invoice fields from raw invoice text.

    Example request:
    {
        "text": "INVOICE INV-001\\nContoso Pty Ltd\\nTotal: AUD 385.00",
        "company_context": "Fabrikam Holdings",
        "max_passes": 4
    }
    """
    options = ProcessingOptions(
        company_context=req.company_context,
        max_passes=req.max_passes,
        primary_backend_id=req.primary_backend_id,
        fallback_backend_id=req.fallback_backend_id,
    )
    return await _run(processor, InvoiceDocument.from_text(req.text), options)
