import json
import httpx
from loguru import logger
from pydantic import ValidationError
from .extractor import BackendNotConfiguredError, ExtractionError
from .invoice_types import InvoiceDocument


class LLMExtractor:
    """
    Schema-constrained extraction through an OpenAI-compatible
    /chat/completions endpoint.

    The target schema is sent as a JSON-schema response_format and the reply is
    validated back into the schema model. Image documents are sent inline as a
    base64 data URL. `backend` selects the model/deployment; without it the
    default deployment is used.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        default_model: str | None = None,
        temperature: float = 0.1,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.default_model = default_model
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> "LLMExtractor":
        return cls(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            default_model=settings.llm_deployment,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout_seconds,
        )

    def _build_messages(self, document: InvoiceDocument, instructions: str) -> list[dict]:
        if not document.is_image:
            return [{"role": "user", "content": f"{instructions}\n\n{document.text}"}]
        data_url = f"data:{document.mime_type};base64,{document.image_base64()}"
        return [{
            "role": "user",
            "content": [
                {"type": "text", "text": instructions},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
        }]

    def build_payload(self, document: InvoiceDocument, schema, instructions: str, model: str) -> dict:
        return {
            "model": model,
            "temperature": self.temperature,
            "messages": self._build_messages(document, instructions),
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema.__name__,
                    "schema": schema.model_json_schema(),
                },
            },
        }

    async def extract(self, document, schema, instructions, *, backend=None):
        model = backend or self.default_model
        if not model:
            raise BackendNotConfiguredError("No LLM model/deployment given (set LLM_DEPLOYMENT)")

        payload = self.build_payload(document, schema, instructions, model)
        headers = {"Authorization": f"Bearer {self.api_key}", "api-key": self.api_key}

        logger.debug("Calling LLM extraction backend", model=model, schema=schema.__name__)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
                r.raise_for_status()
                body = r.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(
                f"LLM backend {model} returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise ExtractionError(f"LLM backend {model} call failed: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExtractionError(f"LLM backend {model} returned no message content") from e
        if not content:
            raise ExtractionError(f"LLM backend {model} returned an empty message")

        try:
            return schema.model_validate_json(content)
        except ValidationError as e:
            raise ExtractionError(
                f"LLM backend {model} output does not match {schema.__name__}: {e.error_count()} errors"
            ) from e
