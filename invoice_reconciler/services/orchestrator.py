"""
Multi-pass invoice extraction.

    PASS1 -> (PASS2) -> (PASS3) -> PASS4 -> DONE

Pass 1: primary backend, standard instructions
Pass 2: fallback backend, step-by-step instructions, merged with pass 1
Pass 3: targeted re-extraction of missing critical fields
Pass 4: cross-field validation and repair (always runs before a normal return)

A sufficient attempt (quality >= threshold, no missing critical field) after
pass 1 or pass 2 jumps straight to pass 4. A max_passes below 2 (or 3) stops
after pass 1 (or 2) and returns that attempt unvalidated.

Transitions are decided by next_state(), a pure function of the current state
and attempt; InvoiceProcessor only performs the extraction calls.
"""

from enum import Enum
from loguru import logger
from ..models.invoice import InvoiceRecord
from .cross_field_validation import validate_and_fix
from .extractor import Extractor
from .invoice_types import ExtractionAttempt, InvoiceDocument, ProcessingOptions
from .merger import MergeConfig, merge_attempts
from .prompts import primary_instructions, step_by_step_instructions
from .reextraction import TargetedReExtractor
from .scoring import RecordScorer


class PassState(str, Enum):
    PASS1 = "pass1"
    PASS2 = "pass2"
    PASS3 = "pass3"
    PASS4 = "pass4"
    DONE = "done"


def next_state(
    state: PassState,
    attempt: ExtractionAttempt,
    max_passes: int,
    scorer: RecordScorer,
) -> PassState:
    """Where to go after `state` produced `attempt`."""
    if state is PassState.PASS1:
        if scorer.is_sufficient(attempt):
            return PassState.PASS4
        return PassState.PASS2 if max_passes >= 2 else PassState.DONE

    if state is PassState.PASS2:
        if scorer.is_sufficient(attempt):
            return PassState.PASS4
        return PassState.PASS3 if max_passes >= 3 else PassState.DONE

    if state is PassState.PASS3:
        return PassState.PASS4

    return PassState.DONE


class InvoiceProcessor:
    """
    Runs the pass state machine against an injected Extractor.

    Usage:
        processor = InvoiceProcessor(extractor)
        attempt = await processor.process(
            InvoiceDocument.from_text(text),
            ProcessingOptions(company_context="Fabrikam"),
        )
        if attempt.confidence < 0.85:
            ...  # send to human review

    Pass 1 and pass 2 extraction failures propagate to the caller.
    """

    def __init__(
        self,
        extractor: Extractor,
        scorer: RecordScorer = None,
        merge_config: MergeConfig = None,
        reextractor: TargetedReExtractor = None,
        default_max_passes: int = 4,
        primary_backend_id: str | None = None,
        fallback_backend_id: str | None = None,
    ):
        self.extractor = extractor
        self.scorer = scorer or RecordScorer()
        self.merge_config = merge_config or MergeConfig()
        self.reextractor = reextractor or TargetedReExtractor(extractor)
        self.default_max_passes = default_max_passes
        self.primary_backend_id = primary_backend_id
        self.fallback_backend_id = fallback_backend_id

    async def process(
        self,
        document: InvoiceDocument,
        options: ProcessingOptions = None,
    ) -> ExtractionAttempt:
        options = options or ProcessingOptions()
        max_passes = options.max_passes if options.max_passes is not None else self.default_max_passes

        state = PassState.PASS1
        attempt: ExtractionAttempt | None = None

        while state is not PassState.DONE:
            if state is PassState.PASS1:
                attempt = await self._pass1(document, options)
            elif state is PassState.PASS2:
                attempt = await self._pass2(document, options, attempt)
            elif state is PassState.PASS3:
                attempt = await self._pass3(document, options, attempt)
            else:
                attempt = self._pass4(attempt)

            following = next_state(state, attempt, max_passes, self.scorer)
            if following is PassState.PASS4 and state in (PassState.PASS1, PassState.PASS2):
                logger.info(
                    "Attempt sufficient, skipping to validation",
                    after=state.value,
                    quality=attempt.quality,
                )
            elif following is PassState.DONE and state is not PassState.PASS4:
                logger.info(
                    "Pass limit reached, returning unvalidated attempt",
                    after=state.value,
                    max_passes=max_passes,
                )
            state = following

        return attempt

    def _primary_backend(self, options: ProcessingOptions) -> str | None:
        return options.primary_backend_id or self.primary_backend_id

    def _fallback_backend(self, options: ProcessingOptions) -> str | None:
        return options.fallback_backend_id or self.fallback_backend_id

    async def _extract_full(self, document, instructions, backend) -> InvoiceRecord:
        record = await self.extractor.extract(
            document,
            InvoiceRecord,
            instructions,
            backend=backend,
        )
        if not isinstance(record, InvoiceRecord):
            record = InvoiceRecord.model_validate(record)
        return record

    async def _pass1(self, document, options) -> ExtractionAttempt:
        backend = self._primary_backend(options)
        logger.info(
            "Pass 1: primary extraction",
            backend=backend,
            has_context=bool(options.company_context),
        )
        record = await self._extract_full(document, primary_instructions(options.company_context), backend)
        attempt = self.scorer.score_attempt(record, pass_number=1)
        logger.info("Pass 1 complete", quality=attempt.quality, confidence=attempt.confidence)
        return attempt

    async def _pass2(self, document, options, previous: ExtractionAttempt) -> ExtractionAttempt:
        backend = self._fallback_backend(options)
        logger.info("Pass 2: step-by-step extraction", backend=backend)
        record = await self._extract_full(document, step_by_step_instructions(options.company_context), backend)
        candidate = self.scorer.score_attempt(record, pass_number=2)
        logger.info("Pass 2 complete", quality=candidate.quality, confidence=candidate.confidence)
        return merge_attempts(previous, candidate, scorer=self.scorer, config=self.merge_config)

    async def _pass3(self, document, options, previous: ExtractionAttempt) -> ExtractionAttempt:
        missing = self.scorer.missing_critical(previous.data)
        if not missing:
            logger.info("Pass 3: no missing critical fields", quality=previous.quality)
            return previous

        logger.info("Pass 3: re-extracting missing fields", missing_fields=missing)
        record = await self.reextractor.reextract(
            document,
            previous.data,
            missing,
            backend=self._primary_backend(options),
        )
        attempt = self.scorer.score_attempt(record, pass_number=3)
        logger.info("Pass 3 complete", quality=attempt.quality, confidence=attempt.confidence)
        return attempt

    def _pass4(self, previous: ExtractionAttempt) -> ExtractionAttempt:
        logger.info("Pass 4: cross-field validation")
        result = validate_and_fix(previous.data)
        if result.applied_fixes:
            logger.info("Pass 4: applied fixes", fixes=list(result.applied_fixes))
        return self.scorer.score_attempt(result.data, pass_number=4, applied_fixes=result.applied_fixes)


def create_invoice_processor(extractor: Extractor) -> InvoiceProcessor:
    """
    Factory function wiring the processor from environment settings.
    """
    from ..core.config import settings
    from .merger import create_merge_config
    from .scoring import create_record_scorer

    llm_configured = bool(settings.llm_base_url and settings.llm_api_key)
    return InvoiceProcessor(
        extractor,
        scorer=create_record_scorer(),
        merge_config=create_merge_config(),
        reextractor=TargetedReExtractor(
            extractor,
            text_char_limit=settings.field_prompt_char_limit,
            concurrent=settings.reextract_concurrently,
        ),
        default_max_passes=settings.default_max_passes,
        # Backend ids are LLM deployment names; the other extractors use their own defaults
        fallback_backend_id=settings.llm_fallback_deployment if llm_configured else None,
    )
