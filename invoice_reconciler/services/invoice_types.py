
import base64
from pydantic import BaseModel, ConfigDict, Field, model_validator
from ..models.invoice import InvoiceRecord


class InvoiceDocument(BaseModel):
    """Input document: raw text or a single page image, never both."""

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    image: bytes | None = None
    mime_type: str | None = None

    @model_validator(mode="after")
    def _exactly_one_payload(self):
        if (self.text is None) == (self.image is None):
            raise ValueError("InvoiceDocument needs exactly one of text or image")
        if self.image is not None and not self.mime_type:
            raise ValueError("Image documents need a mime_type")
        return self

    @classmethod
    def from_text(cls, text: str) -> "InvoiceDocument":
        return cls(text=text)

    @classmethod
    def from_image(cls, data: bytes, mime_type: str) -> "InvoiceDocument":
        return cls(image=data, mime_type=mime_type)

    @property
    def is_image(self) -> bool:
        return self.image is not None

    def image_base64(self) -> str:
        return base64.b64encode(self.image or b"").decode("ascii")


class ExtractionAttempt(BaseModel):
    """
    One pass's candidate extraction. Process-local, never persisted.

    Build instances with RecordScorer.score_attempt so quality and confidence
    always reflect `data`.
    """

    model_config = ConfigDict(frozen=True)

    data: InvoiceRecord
    quality: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    pass_number: int
    applied_fixes: tuple[str, ...] = ()


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: InvoiceRecord
    applied_fixes: tuple[str, ...] = ()


class ProcessingOptions(BaseModel):
    company_context: str | None = None
    max_passes: int | None = None
    primary_backend_id: str | None = None
    fallback_backend_id: str | None = None
