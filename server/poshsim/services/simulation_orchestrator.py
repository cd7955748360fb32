"""Produces one case record per request.

Balances freshness (calling Gemini), latency (staying under the platform's
execution ceiling) and availability (always returning a usable case):

    no credential        -> cache -> template
    cache preferred      -> cache
    generator call       -> timeout / API error -> cache -> template
                         -> unparseable        -> template
                         -> parsed             -> validate / repair -> save to cache

Callers never see an exception; the worst case is the built-in template.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import GenerationProfile
from ..models.simulation import CaseRecord, CaseSource, GenerationSettings
from .case_cache import CaseCache
from .case_generator import (
    SIMPLIFIED_CASE_PROMPT,
    CaseGenerationError,
    CaseGenerator,
    build_case_prompt,
    build_witness_prompt,
)
from .case_validation import CASE_TEMPLATE, is_valid, normalize_structured, parse_candidate, repair

logger = logging.getLogger(__name__)

# Witness text below this length triggers the supplementary request.
WITNESS_SUPPLEMENT_THRESHOLD = 50
WITNESS_MAX_TOKENS = 1000
WITNESS_TEMPERATURE = 0.8


@dataclass
class SimulationResult:
    record: CaseRecord
    source: CaseSource


@dataclass(frozen=True)
class GenerationStrategy:
    """One way of asking the generator for a full case."""

    name: str
    build_prompt: Callable[[random.Random], str]
    temperature: Optional[float] = None


DEFAULT_STRATEGIES: tuple[GenerationStrategy, ...] = (
    GenerationStrategy("full", build_case_prompt),
    GenerationStrategy("simplified", lambda rng: SIMPLIFIED_CASE_PROMPT, temperature=0.9),
)


class Deadline:
    """Remaining time budget for one request."""

    def __init__(self, budget_seconds: float, margin_seconds: float = 0.0):
        self._expires_at = time.monotonic() + budget_seconds
        self._margin = margin_seconds

    def remaining(self) -> float:
        return self._expires_at - time.monotonic()

    def bound(self, timeout: float) -> float:
        """Tighter of ``timeout`` and the remaining budget (minus the fallback margin)."""
        return max(0.0, min(timeout, self.remaining() - self._margin))


class SimulationOrchestrator:
    """Sequences generation, validation, caching and fallback."""

    def __init__(
        self,
        cache: CaseCache,
        profile: GenerationProfile,
        default_api_key: Optional[str] = None,
        generator_factory: Callable[..., CaseGenerator] = CaseGenerator,
        strategies: tuple[GenerationStrategy, ...] = DEFAULT_STRATEGIES,
        rng: Optional[random.Random] = None,
    ):
        self.cache = cache
        self.profile = profile
        self.default_api_key = default_api_key
        self.generator_factory = generator_factory
        self.strategies = strategies
        self._rng = rng or random.Random()
        # Set once this process has produced and cached a fresh case.
        self._has_generated = False

    async def generate(self, settings: GenerationSettings) -> SimulationResult:
        """Return one case record. Never raises."""
        try:
            return await asyncio.wait_for(
                self._generate(settings),
                timeout=self.profile.request_budget_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Case generation exceeded %.1fs request budget; falling back",
                self.profile.request_budget_seconds,
            )
            return await self._late_fallback()
        except Exception as exc:
            logger.error("Unexpected error generating case: %s", exc, exc_info=True)
        return self._template()

    async def _generate(self, settings: GenerationSettings) -> SimulationResult:
        deadline = Deadline(
            self.profile.request_budget_seconds,
            margin_seconds=self.profile.fallback_margin_seconds,
        )

        api_key = settings.api_key or self.default_api_key
        if not api_key:
            logger.info("No Gemini API key configured; serving cached or template case")
            return await self._fallback()

        if await self._should_use_cache():
            cached = await self.cache.get_random()
            if cached is not None:
                logger.info("Serving cached case to stay within the latency budget")
                return SimulationResult(record=cached, source="cache")

        try:
            generator = self.generator_factory(api_key=api_key, model=settings.model)
            text = await self._run_strategies(generator, settings, deadline)
        except asyncio.TimeoutError:
            logger.warning("Gemini did not answer within the time budget; falling back")
            return await self._fallback()
        except CaseGenerationError as exc:
            logger.warning("Gemini case generation failed (%s): %s", exc.model, exc)
            return await self._fallback()
        except Exception as exc:
            logger.warning("Case generation failed unexpectedly: %s", exc)
            return await self._fallback()

        if not text:
            logger.info("All generation strategies returned empty text; using template")
            return self._template()

        candidate, extracted = parse_candidate(text)
        if candidate is None:
            logger.warning("Generator output is not parseable JSON (starts with %r); using template", text[:100])
            return self._template()

        if extracted:
            logger.info("Extracted JSON object from surrounding text")

        valid = not extracted and is_valid(candidate)
        record = repair(candidate)
        if not valid:
            logger.info("Generated case incomplete or invalid; repaired")
            witness_text = normalize_structured(candidate.get("witnessStatements"), "Witness")
            if not witness_text or len(witness_text) < WITNESS_SUPPLEMENT_THRESHOLD:
                record = await self._supplement_witnesses(generator, record, deadline)

        await self.cache.save(record)
        self._has_generated = True
        return SimulationResult(record=record, source="generated" if valid else "repaired")

    async def _run_strategies(
        self,
        generator: CaseGenerator,
        settings: GenerationSettings,
        deadline: Deadline,
    ) -> str:
        """Try each strategy in order until one returns non-empty text."""
        for strategy in self.strategies:
            timeout = deadline.bound(self.profile.call_timeout_seconds)
            if timeout <= 0:
                raise asyncio.TimeoutError
            temperature = strategy.temperature if strategy.temperature is not None else settings.temperature
            logger.info(
                "Generating case with strategy '%s' (model=%s, temperature=%s, max_tokens=%s, timeout=%.1fs)",
                strategy.name,
                settings.model,
                temperature,
                settings.max_tokens,
                timeout,
            )
            text = await asyncio.wait_for(
                generator.generate(
                    strategy.build_prompt(self._rng),
                    temperature=temperature,
                    max_tokens=settings.max_tokens,
                ),
                timeout=timeout,
            )
            if text:
                return text
            logger.info("Strategy '%s' returned no text", strategy.name)
        return ""

    async def _supplement_witnesses(
        self,
        generator: CaseGenerator,
        record: CaseRecord,
        deadline: Deadline,
    ) -> CaseRecord:
        """Best-effort narrower request for witness statements."""
        timeout = deadline.bound(self.profile.witness_timeout_seconds)
        if timeout <= 0:
            return record
        try:
            text = await asyncio.wait_for(
                generator.generate(
                    build_witness_prompt(record.case_overview),
                    temperature=WITNESS_TEMPERATURE,
                    max_tokens=WITNESS_MAX_TOKENS,
                    json_mode=False,
                    contents="Write the witness statements now.",
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Witness statement request timed out after %.1fs", timeout)
            return record
        except CaseGenerationError as exc:
            logger.warning("Error generating witness statements: %s", exc)
            return record

        if text and len(text) > WITNESS_SUPPLEMENT_THRESHOLD:
            return record.model_copy(update={"witness_statements": text})
        return record

    async def _should_use_cache(self) -> bool:
        preference = (
            self.profile.cache_preference if self._has_generated else self.profile.cold_cache_preference
        )
        if preference <= 0:
            return False
        if self._rng.random() >= preference:
            return False
        return await self.cache.count() > 0

    async def _fallback(self) -> SimulationResult:
        cached = await self.cache.get_random()
        if cached is not None:
            return SimulationResult(record=cached, source="cache")
        return self._template()

    async def _late_fallback(self) -> SimulationResult:
        """Cache then template, bounded by the margin reserved after the request budget."""
        try:
            return await asyncio.wait_for(self._fallback(), timeout=self.profile.fallback_margin_seconds)
        except asyncio.TimeoutError:
            logger.warning("Case cache did not answer within the fallback margin; using template")
        except Exception as exc:
            logger.error("Unexpected error reading case cache: %s", exc, exc_info=True)
        return self._template()

    @staticmethod
    def _template() -> SimulationResult:
        return SimulationResult(record=CASE_TEMPLATE.model_copy(), source="template")
