# src/pipeline/orchestrator.py - v2
"""Generation orchestrator: the per-request state machine.

Drives one request through
  Initializing -> GeneratingOutline -> GeneratingSections -> Refining -> Completed
with Failed and Cancelled reachable from every non-terminal state.

  Initializing: validate input, admission check, resolve provider/model.
  Outline: cache-or-generate, progress 10-30%.
  Sections: strictly sequential in outline order, each cache-or-generate,
    progress scaled into 30-80%.
  Refining: combine in order, optional polish, progress 80-100%.

Provider calls go through with_retry at the call site; every attempt is
recorded by the CallLogger. Cache problems never fail a run. Cancellation is
checked between stages and between sections; a cancelled run writes no
document-stage cache entry.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Callable

from pydantic import ValidationError

from docuforge.cache.manager import CacheManager, estimate_stage_cost, should_cache
from docuforge.cache.models import CacheStage, GeneratedValue
from docuforge.config.document_types import CITATION_TYPES
from docuforge.config.settings import Settings
from docuforge.core.collaborators import (
    AllowAllAdmission,
    BaseAdmissionPolicy,
    BaseJobObserver,
    BasePreferenceStore,
    InMemoryPreferenceStore,
    NullJobObserver,
    ProviderPreference,
)
from docuforge.core.errors import (
    GenerationCancelled,
    ParseError,
    ProviderError,
    QuotaExceeded,
    RequestValidationError,
    RetryExhausted,
)
from docuforge.core.inputs import canonical_payload
from docuforge.core.models import (
    DocumentRecord,
    FailureInfo,
    GeneratedSection,
    GenerationRequest,
    Outline,
    PipelineStage,
    ProgressEvent,
    TokenUsage,
)
from docuforge.events.bus import ProgressBus
from docuforge.llm.base_client import BaseLLMClient, SearchCapable, supports
from docuforge.llm.client_factory import UnsupportedProviderError, create_llm_client
from docuforge.llm.config import GenerationConfig, resolve_generation_config
from docuforge.llm.models import LLMResponse
from docuforge.llm.retry import RetryConfig, with_retry
from docuforge.logging.context import clear_context, set_run_context, set_stage_context
from docuforge.pipeline.outline_chain import OutlineChain
from docuforge.pipeline.refinement_chain import RefinementChain, combine_sections
from docuforge.pipeline.section_chain import SectionChain
from docuforge.pipeline.state import CompletionCall, GenerationState
from docuforge.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., BaseLLMClient]

# Progress bands per stage (percent).
OUTLINE_START, OUTLINE_END = 10, 30
SECTIONS_START, SECTIONS_END = 30, 80
REFINE_START = 80


class GenerationOrchestrator:
    """Runs generation requests against one shared cache and bus.

    One instance serves any number of concurrent runs; all per-run data
    lives in a GenerationState created by ``run``.

    Args:
        settings: Application settings.
        cache_manager: Stage-aware cache front end.
        bus: Progress bus; events are published on the document id.
        admission: Cost-limit collaborator consulted before any provider call.
        preferences: Provider/user preference collaborator.
        job_observer: Job transport callbacks (progress, complete, fail).
        client_factory: ``(provider, model, settings) -> BaseLLMClient``.
    """

    def __init__(
        self,
        settings: Settings,
        cache_manager: CacheManager,
        bus: ProgressBus | None = None,
        admission: BaseAdmissionPolicy | None = None,
        preferences: BasePreferenceStore | None = None,
        job_observer: BaseJobObserver | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings
        self._cache = cache_manager
        self._bus = bus or ProgressBus()
        self._admission = admission or AllowAllAdmission()
        self._preferences = preferences or InMemoryPreferenceStore()
        self._observer = job_observer or NullJobObserver()
        self._client_factory = client_factory or create_llm_client
        self._retry = RetryConfig.from_settings(settings)

    @property
    def bus(self) -> ProgressBus:
        return self._bus

    async def run(
        self,
        request: GenerationRequest,
        document_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DocumentRecord:
        """Generate one document.

        Returns:
            Terminal DocumentRecord (Completed, Failed or Cancelled).

        Raises:
            RequestValidationError: Input or provider configuration invalid.
            QuotaExceeded: Admission denied; no provider call was made.
        """
        started = time.monotonic()
        state = GenerationState(
            document_id=document_id or str(uuid.uuid4()),
            document_type=request.document_type,
        )
        set_run_context(state.document_id, state.run_id)
        call_logger = CallLogger()
        config: GenerationConfig | None = None

        try:
            await self._emit(state, 0, "Initializing generation")
            config, client, temperature_override = await self._initialize(state, request)
            set_run_context(state.document_id, state.run_id, config.provider)
            logger.info(
                "Generating %s with %s/%s (source=%s, cache=%s)",
                state.document_type.value, config.provider, config.model,
                config.source, config.use_cache,
            )

            if await self._load_document_cache(state, request, config):
                return await self._finish(state, config, call_logger, started)

            self._check_cancel(cancel_event, state)
            await self._generate_outline(
                state, request, config, client, call_logger, temperature_override,
            )
            self._check_cancel(cancel_event, state)
            await self._generate_sections(
                state, request, config, client, call_logger, temperature_override, cancel_event,
            )
            self._check_cancel(cancel_event, state)
            await self._refine(state, config, client, call_logger)
            self._check_cancel(cancel_event, state)

            await self._store_document_cache(state, config, call_logger)
            return await self._finish(state, config, call_logger, started)

        except (RequestValidationError, QuotaExceeded) as exc:
            await self._abort(state, config, call_logger, started, exc)
            raise
        except GenerationCancelled:
            return await self._cancelled(state, config, call_logger, started)
        except asyncio.CancelledError:
            await self._cancelled(state, config, call_logger, started)
            raise
        except (ProviderError, RetryExhausted, ParseError) as exc:
            return await self._failed(state, config, call_logger, started, exc)
        finally:
            clear_context()

    # --- Initializing ---

    async def _initialize(
        self, state: GenerationState, request: GenerationRequest
    ) -> tuple[GenerationConfig, BaseLLMClient, float | None]:
        state.payload = canonical_payload(request.document_type, request.raw_input)

        decision = await self._admission.check_cost_limit(request.user_id)
        if not decision.allowed:
            raise QuotaExceeded(decision.reason or "Cost limit exceeded")

        pref = await self._preferences.get_provider_for_document_type(
            request.user_id, request.document_type,
        )
        user = await self._preferences.get_user_preferences(request.user_id)
        config = resolve_generation_config(request, self._settings, pref, user)

        try:
            client = self._client_factory(config.provider, config.model, self._settings)
        except UnsupportedProviderError as exc:
            raise RequestValidationError(str(exc)) from exc

        state.provider, state.model = config.provider, config.model
        return config, client, _temperature_override(request, pref)

    # --- Document stage ---

    async def _load_document_cache(
        self, state: GenerationState, request: GenerationRequest, config: GenerationConfig
    ) -> bool:
        if not self._cacheable(state, config) or request.force_refresh:
            return False
        key = self._cache.document_key(
            state.document_type.value, config.provider, config.model, state.payload,
        )
        entry = await self._cache.cache.get(key)
        if entry is None:
            return False
        try:
            outline = Outline.model_validate(entry.value["outline"])
            sections = dict(entry.value["sections"])
            content = str(entry.value["content"])
        except (KeyError, TypeError, ValidationError) as exc:
            logger.warning("Ignoring malformed document cache entry %s: %s", key, exc)
            return False

        state.outline = outline
        for sid, section in outline.ordered_sections():
            if sid in sections:
                state.sections[sid] = GeneratedSection(
                    section_id=sid, title=section.title, content=sections[sid],
                    word_count=len(sections[sid].split()),
                    target_words=section.estimated_words,
                )
        state.content = content
        state.citations = list(entry.value.get("citations", []))
        state.stats.document_from_cache = True
        state.stats.outline_from_cache = True
        state.stats.sections_from_cache = len(state.sections)
        state.stats.total_sections = len(state.sections)
        state.stats.cost_saved += entry.stage_cost
        logger.info("Document served from cache (saved $%.4f)", entry.stage_cost)
        return True

    async def _store_document_cache(
        self,
        state: GenerationState,
        config: GenerationConfig,
        call_logger: CallLogger,
    ) -> None:
        if not self._cacheable(state, config) or state.outline is None:
            return
        key = self._cache.document_key(
            state.document_type.value, config.provider, config.model, state.payload,
        )
        value = {
            "content": state.content,
            "sections": state.section_texts(),
            "outline": state.outline.model_dump(mode="json"),
            "citations": state.citations,
        }
        cost = call_logger.total_cost + state.stats.cost_saved
        if cost <= 0:
            cost = estimate_stage_cost(CacheStage.DOCUMENT, config.provider, config.model)
        await self._cache.cache.set(key, value, cost_estimate=cost)

    # --- Outline ---

    async def _generate_outline(
        self,
        state: GenerationState,
        request: GenerationRequest,
        config: GenerationConfig,
        client: BaseLLMClient,
        call_logger: CallLogger,
        temperature: float | None,
    ) -> None:
        self._enter(state, PipelineStage.GENERATING_OUTLINE, config)
        await self._emit(state, OUTLINE_START, "Generating document outline")

        chain = OutlineChain(state.document_type, max_tokens=self._settings.outline_max_tokens)
        call = self._bind_call(client, config, call_logger, "outline", "outline")

        async def generate() -> GeneratedValue:
            outline, response = await chain.generate(
                call, config.provider, state.payload, config.prompt_style, temperature,
            )
            return GeneratedValue(
                value=outline.model_dump(mode="json"), cost=_response_cost(client, config, response),
            )

        result = await self._cache.get_or_generate_outline(
            state.document_type.value, config.provider, config.model, state.payload,
            generate, force_refresh=request.force_refresh, use_cache=self._cacheable(state, config),
        )
        try:
            state.outline = Outline.model_validate(result.value)
        except ValidationError:
            logger.warning("Cached outline %s is malformed; regenerating", result.key)
            result = await self._cache.get_or_generate_outline(
                state.document_type.value, config.provider, config.model, state.payload,
                generate, force_refresh=True, use_cache=self._cacheable(state, config),
            )
            state.outline = Outline.model_validate(result.value)

        state.stats.outline_from_cache = result.from_cache
        state.stats.cost_saved += result.cost_saved
        state.stats.total_sections = len(state.outline.sections)
        await self._emit(
            state, OUTLINE_END,
            f"Outline ready with {state.stats.total_sections} sections",
            from_cache=result.from_cache,
        )

    # --- Sections ---

    async def _generate_sections(
        self,
        state: GenerationState,
        request: GenerationRequest,
        config: GenerationConfig,
        client: BaseLLMClient,
        call_logger: CallLogger,
        temperature: float | None,
        cancel_event: asyncio.Event | None,
    ) -> None:
        assert state.outline is not None
        self._enter(state, PipelineStage.GENERATING_SECTIONS, config)
        outline = state.outline
        outline_value = outline.model_dump(mode="json")
        ordered = outline.ordered_sections()
        total = len(ordered)

        chain = SectionChain(
            state.document_type,
            max_tokens_cap=config.max_tokens or self._settings.section_max_tokens,
        )
        use_search = (
            supports(client, SearchCapable) and state.document_type in CITATION_TYPES
        )
        section_started = time.monotonic()

        for index, (section_id, section) in enumerate(ordered):
            self._check_cancel(cancel_event, state)
            await self._emit(
                state, _section_progress(index, total),
                f"Writing section {index + 1} of {total}: {section.title}",
                section_id=section_id,
            )
            call = self._bind_call(
                client, config, call_logger, "section", f"section_{section_id}",
                search=use_search,
            )
            previous = state.section_texts()

            async def generate(
                section_id: str = section_id, call: CompletionCall = call,
                previous: dict[str, str] = previous,
            ) -> GeneratedValue:
                generated, response = await chain.generate(
                    call, config.provider, section_id, outline, state.payload, previous,
                    config.prompt_style, temperature,
                )
                return GeneratedValue(
                    value=generated.model_dump(mode="json"),
                    cost=_response_cost(client, config, response),
                )

            result = await self._cache.get_or_generate_section(
                state.document_type.value, config.provider, config.model, state.payload,
                section_id, outline_value, generate,
                force_refresh=request.force_refresh, use_cache=self._cacheable(state, config),
            )
            try:
                generated = _restore_section(chain, section_id, section, result.value, previous)
            except ValidationError:
                logger.warning("Cached section %s is malformed; regenerating", result.key)
                result = await self._cache.get_or_generate_section(
                    state.document_type.value, config.provider, config.model, state.payload,
                    section_id, outline_value, generate,
                    force_refresh=True, use_cache=self._cacheable(state, config),
                )
                generated = _restore_section(chain, section_id, section, result.value, previous)
            state.sections[section_id] = generated
            for citation in generated.citations:
                if citation not in state.citations:
                    state.citations.append(citation)
            if result.from_cache:
                state.stats.sections_from_cache += 1
                state.stats.cost_saved += result.cost_saved

            done = index + 1
            elapsed_ms = (time.monotonic() - section_started) * 1000
            await self._emit(
                state, _section_progress(done, total),
                f"Completed section {done} of {total}",
                section_id=section_id,
                from_cache=result.from_cache,
                eta_ms=int(elapsed_ms / done * (total - done)),
            )

    # --- Refining ---

    async def _refine(
        self,
        state: GenerationState,
        config: GenerationConfig,
        client: BaseLLMClient,
        call_logger: CallLogger,
    ) -> None:
        assert state.outline is not None
        self._enter(state, PipelineStage.REFINING, config)
        await self._emit(state, REFINE_START, "Assembling document")

        combined = combine_sections(state.outline, state.section_texts())
        state.content = combined
        if not self._settings.is_refinement_enabled(state.document_type):
            return

        await self._emit(state, 85, "Refining and finalizing document")
        chain = RefinementChain(state.document_type)
        call = self._bind_call(client, config, call_logger, "refinement", "refinement")
        content, response = await chain.refine(
            call, config.provider, combined, state.payload,
            temperature=self._settings.refinement_temperature,
            prompt_style=config.prompt_style,
        )
        state.content = content
        state.refined = response is not None and content != combined

    # --- Terminal states ---

    async def _finish(
        self,
        state: GenerationState,
        config: GenerationConfig,
        call_logger: CallLogger,
        started: float,
    ) -> DocumentRecord:
        state.stage = PipelineStage.COMPLETED
        record = self._record(state, config, call_logger, started)
        await self._emit(
            state, 100, "Document generation complete",
            from_cache=state.stats.document_from_cache,
        )
        await self._observer.on_complete(state.document_id, record.model_dump(mode="json"))
        logger.info(
            "Completed %s: %d sections (%d cached), cost $%.4f, saved $%.4f",
            state.document_id, len(state.sections), state.stats.sections_from_cache,
            record.cost, state.stats.cost_saved,
        )
        return record

    async def _failed(
        self,
        state: GenerationState,
        config: GenerationConfig | None,
        call_logger: CallLogger,
        started: float,
        exc: Exception,
    ) -> DocumentRecord:
        failed_stage = state.stage
        reason, kind, transient = _describe_failure(exc)
        fallback = None
        if config is not None and config.allow_fallback and transient:
            fallback = config.fallback_provider
            # Cross-provider failover is not automatic; the intent is recorded.
            logger.warning(
                "Provider %s exhausted retries; fallback to %s permitted but not attempted",
                config.provider, fallback or "<unset>",
            )

        state.stage = PipelineStage.FAILED
        record = self._record(state, config, call_logger, started)
        record.failure = FailureInfo(
            stage=failed_stage,
            provider=state.provider,
            model=state.model,
            reason=reason,
            error_kind=kind,
            fallback_provider=fallback,
        )
        logger.error(
            "Generation failed during %s (%s/%s): %s",
            failed_stage.value, state.provider, state.model, exc,
        )
        await self._emit(state, state.progress, f"Generation failed: {reason}")
        await self._observer.on_fail(state.document_id, record.model_dump(mode="json"))
        return record

    async def _cancelled(
        self,
        state: GenerationState,
        config: GenerationConfig | None,
        call_logger: CallLogger,
        started: float,
    ) -> DocumentRecord:
        cancelled_stage = state.stage
        state.stage = PipelineStage.CANCELLED
        record = self._record(state, config, call_logger, started)
        record.content = ""
        record.failure = FailureInfo(
            stage=cancelled_stage, provider=state.provider, model=state.model,
            reason="Generation cancelled",
        )
        logger.info("Generation cancelled during %s", cancelled_stage.value)
        await self._emit(state, state.progress, "Generation cancelled")
        await self._observer.on_fail(state.document_id, record.model_dump(mode="json"))
        return record

    async def _abort(
        self,
        state: GenerationState,
        config: GenerationConfig | None,
        call_logger: CallLogger,
        started: float,
        exc: Exception,
    ) -> None:
        """Rejected before generation started; subscribers still get a terminal event."""
        failed_stage = state.stage
        state.stage = PipelineStage.FAILED
        record = self._record(state, config, call_logger, started)
        record.failure = FailureInfo(
            stage=failed_stage, provider=state.provider, model=state.model,
            reason=str(exc), error_kind=type(exc).__name__,
        )
        logger.warning("Request rejected: %s", exc)
        await self._emit(state, 0, f"Request rejected: {exc}")
        await self._observer.on_fail(state.document_id, record.model_dump(mode="json"))

    # --- Helpers ---

    def _bind_call(
        self,
        client: BaseLLMClient,
        config: GenerationConfig,
        call_logger: CallLogger,
        stage: str,
        step: str,
        search: bool = False,
    ) -> CompletionCall:
        """Provider call with retry and per-attempt audit records."""
        retry = self._retry

        async def call(
            prompt: str, system_prompt: str | None, temperature: float, max_tokens: int,
        ) -> LLMResponse:
            retries = 0

            def on_retry(error: ProviderError, attempt: int) -> None:
                nonlocal retries
                retries = attempt
                call_logger.record_failure(
                    stage, step, config.provider, config.model, error.kind.value,
                    retry_count=attempt - 1, status="retry",
                )

            fn: Any = client.generate_completion
            if search:
                fn = client.generate_with_search  # type: ignore[attr-defined]
            try:
                response = await with_retry(
                    fn, prompt,
                    system_prompt=system_prompt,
                    model=config.model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    step=step,
                    provider=config.provider,
                    config=retry,
                    on_retry=on_retry,
                )
            except RetryExhausted as exc:
                call_logger.record_failure(
                    stage, step, config.provider, config.model,
                    exc.last_error.kind.value, retry_count=exc.attempts - 1,
                )
                raise
            except ProviderError as exc:
                call_logger.record_failure(
                    stage, step, config.provider, config.model, exc.kind.value,
                    retry_count=retries,
                )
                raise

            call_logger.record(stage, step, response, retry_count=retries)
            return response

        return call

    def _cacheable(self, state: GenerationState, config: GenerationConfig) -> bool:
        return (
            config.use_cache
            and self._cache.cache.enabled
            and should_cache(state.document_type, state.payload)
        )

    def _enter(self, state: GenerationState, stage: PipelineStage, config: GenerationConfig) -> None:
        state.stage = stage
        set_stage_context(stage.value, config.provider)
        logger.debug("Entering stage %s", stage.value)

    @staticmethod
    def _check_cancel(cancel_event: asyncio.Event | None, state: GenerationState) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled(state.stage.value)

    async def _emit(
        self,
        state: GenerationState,
        progress: int,
        message: str,
        section_id: str | None = None,
        from_cache: bool = False,
        eta_ms: int | None = None,
    ) -> None:
        progress = max(progress, state.progress)
        state.progress = progress
        event = ProgressEvent(
            document_id=state.document_id,
            stage=state.stage,
            progress=progress,
            message=message,
            current_section_id=section_id,
            from_cache=from_cache,
            estimated_ms_remaining=eta_ms,
        )
        self._bus.publish(state.document_id, event)
        await self._observer.on_progress(state.document_id, progress)

    def _record(
        self,
        state: GenerationState,
        config: GenerationConfig | None,
        call_logger: CallLogger,
        started: float,
    ) -> DocumentRecord:
        state.stats.elapsed_ms = int((time.monotonic() - started) * 1000)
        return DocumentRecord(
            document_id=state.document_id,
            status=state.stage,
            document_type=state.document_type,
            provider=config.provider if config else state.provider,
            model=config.model if config else state.model,
            content=state.content,
            sections=state.section_texts(),
            outline=state.outline,
            token_usage=TokenUsage(
                prompt_tokens=call_logger.prompt_tokens,
                completion_tokens=call_logger.completion_tokens,
                total_tokens=call_logger.total_tokens,
            ),
            cost=call_logger.total_cost,
            stats=state.stats.model_copy(),
            call_records=call_logger.records,
            citations=list(state.citations),
        )


def _temperature_override(
    request: GenerationRequest, pref: ProviderPreference | None
) -> float | None:
    """Explicit temperature from the request or stored preference, else None (stage defaults)."""
    if request.temperature is not None:
        return request.temperature
    if pref is not None:
        return pref.temperature
    return None


def _section_progress(done: int, total: int) -> int:
    if total <= 0:
        return SECTIONS_END
    return SECTIONS_START + int((SECTIONS_END - SECTIONS_START) * done / total)


def _response_cost(client: BaseLLMClient, config: GenerationConfig, response: LLMResponse) -> float:
    return client.estimate_cost(response.total_tokens, config.model)


def _restore_section(
    chain: SectionChain,
    section_id: str,
    section: Any,
    value: Any,
    previous: dict[str, str],
) -> GeneratedSection:
    """Section from a cache value; plain-text values are re-scored."""
    if isinstance(value, str):
        return chain.finalize(section_id, section, value, previous)
    return GeneratedSection.model_validate(value)


def _describe_failure(exc: Exception) -> tuple[str, str | None, bool]:
    """(public reason, error kind, transient) for a terminal failure."""
    if isinstance(exc, RetryExhausted):
        last = exc.last_error
        return f"{last.public_message} (gave up after {exc.attempts} attempts)", last.kind.value, True
    if isinstance(exc, ProviderError):
        return exc.public_message, exc.kind.value, exc.is_transient
    if isinstance(exc, ParseError):
        return f"The AI provider returned an unusable response: {exc}", "parse_error", False
    return "Unexpected generation error", None, False
