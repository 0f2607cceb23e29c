"""
Targeted re-extraction of individual missing fields.

One narrow call per field, each constrained to a single-field schema. A failed
call is logged and skipped; it never aborts the rest of the fields.
"""

import asyncio
from loguru import logger
from pydantic import ValidationError
from ..models.invoice import InvoiceRecord
from .extractor import Extractor
from .field_requests import FieldRequest, request_for, sort_by_priority
from .invoice_types import InvoiceDocument


class TargetedReExtractor:
    def __init__(
        self,
        extractor: Extractor,
        text_char_limit: int = 4000,
        concurrent: bool = False,
    ):
        self.extractor = extractor
        self.text_char_limit = text_char_limit
        self.concurrent = concurrent

    def _narrow_document(self, document: InvoiceDocument) -> InvoiceDocument:
        if document.is_image or len(document.text) <= self.text_char_limit:
            return document
        return InvoiceDocument.from_text(document.text[: self.text_char_limit])

    async def _extract_one(self, document: InvoiceDocument, request: FieldRequest, backend: str | None):
        candidate = await self.extractor.extract(
            document,
            request.schema_model,
            request.instruction,
            backend=backend,
        )
        value = request.value_from(candidate)
        if value is None:
            return None
        # Raw dict answers skip the backend's own validation
        checked = request.schema_model.model_validate({request.field.value: value})
        return request.value_from(checked)

    async def _safe_extract_one(self, document, request, backend):
        try:
            return await self._extract_one(document, request, backend)
        except ValidationError as e:
            logger.warning(
                "Re-extracted value rejected",
                field=request.field.value,
                errors=e.error_count(),
            )
            return None
        except Exception as e:
            logger.warning("Field re-extraction failed", field=request.field.value, error=str(e))
            return None

    async def reextract(
        self,
        document: InvoiceDocument,
        record: InvoiceRecord,
        missing_fields: list[str],
        backend: str | None = None,
    ) -> InvoiceRecord:
        """
        Re-extract `missing_fields` in priority order and fold non-null results
        back into a copy of `record`.

        Fields without a single-field request (e.g. line_items) are skipped.
        """
        ordered = sort_by_priority(missing_fields)
        requests = [r for r in (request_for(name) for name in ordered) if r is not None]
        if not requests:
            return record

        logger.info("Re-extracting missing fields", fields=[r.field.value for r in requests])
        narrowed = self._narrow_document(document)

        if self.concurrent:
            values = await asyncio.gather(
                *(self._safe_extract_one(narrowed, r, backend) for r in requests)
            )
        else:
            values = []
            for request in requests:
                values.append(await self._safe_extract_one(narrowed, request, backend))

        # Fold in priority order so the outcome never depends on completion order
        updates = {}
        for request, value in zip(requests, values):
            if value is None:
                continue
            updates[request.field.value] = value
            logger.info("Field re-extracted", field=request.field.value, value=value)

        if not updates:
            return record
        # Re-validate so a re-extracted value goes through the same coercion as a full record
        return InvoiceRecord.model_validate({**record.model_dump(), **updates})
