"""End-to-end pipeline: extraction, statistics, synthesis and costing."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .backends import build_backends
from .config import Settings, load_settings
from .costs import PRICING, estimate_cost
from .extractor import PaperExtractor
from .models import IssueSummaryResult, PaperInput
from .orchestrator import ProviderOrchestrator
from .prompts import build_default_synthesis_prompt, build_paper_summary_prompt
from .scheduler import BatchScheduler
from .statistics import compute_issue_statistics
from .synthesizer import TrendSynthesizer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .costs import ModelPricing
    from .models import GenerationResult
    from .scheduler import ProgressCallback

logger = logging.getLogger(__name__)


def normalize_papers(papers: Iterable[PaperInput | Mapping[str, Any]]) -> list[PaperInput]:
    """Build ``PaperInput`` records once, at the ingestion boundary.

    Raises:
        ValueError: if a paper lacks an id or two papers share one.
    """
    normalized: list[PaperInput] = []
    seen: set[str] = set()
    for paper in papers:
        if not isinstance(paper, PaperInput):
            paper = PaperInput(
                id=str(paper.get("id") or "").strip(),
                title=str(paper.get("title") or ""),
                text=str(paper.get("text") or ""),
            )
        if not paper.id:
            raise ValueError("Every paper needs a non-empty id")
        if paper.id in seen:
            raise ValueError(f"Duplicate paper id: {paper.id}")
        seen.add(paper.id)
        normalized.append(paper)
    return normalized


class IssueSummaryService:
    """Coordinates per-paper extraction and issue-level trend synthesis."""

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        batch_size: int = 3,
        batch_delay_sec: float = 0.5,
        max_input_chars: int = 120_000,
        pricing: Mapping[str, ModelPricing] = PRICING,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.orchestrator = orchestrator
        self.batch_size = batch_size
        self.batch_delay_sec = batch_delay_sec
        self.max_input_chars = max_input_chars
        self.pricing = pricing
        self._sleep = sleep
        self.synthesizer = TrendSynthesizer(orchestrator)

    async def generate_issue_summary(
        self,
        papers: Iterable[PaperInput | Mapping[str, Any]],
        journal_name: str,
        issue_info: str,
        custom_prompt: str | None = None,
        field_context: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IssueSummaryResult:
        """Summarize the research trends of one issue.

        Raises:
            AllExtractionsFailed: if not a single paper could be extracted.
            GenerationExhausted: if the synthesis call fails.
        """
        paper_inputs = normalize_papers(papers)

        # fallback state and HTTP clients live for one run only
        self.orchestrator.reset()
        try:
            return await self._run(
                paper_inputs,
                journal_name=journal_name,
                issue_info=issue_info,
                custom_prompt=custom_prompt,
                field_context=field_context,
                on_progress=on_progress,
            )
        finally:
            await self.orchestrator.aclose()

    async def _run(
        self,
        paper_inputs: list[PaperInput],
        journal_name: str,
        issue_info: str,
        custom_prompt: str | None,
        field_context: str | None,
        on_progress: ProgressCallback | None,
    ) -> IssueSummaryResult:
        extractor = PaperExtractor(
            self.orchestrator,
            field_context=field_context,
            max_input_chars=self.max_input_chars,
        )
        scheduler = BatchScheduler(
            extractor,
            batch_size=self.batch_size,
            batch_delay_sec=self.batch_delay_sec,
            sleep=self._sleep,
        )
        outcome = await scheduler.run(paper_inputs, on_progress=on_progress)

        logger.info(
            "Computing statistics from %d extractions...", len(outcome.extractions)
        )
        statistics = compute_issue_statistics(outcome.extractions)

        synthesis = await self.synthesizer.synthesize(
            outcome.extractions,
            statistics,
            journal_name=journal_name,
            issue_info=issue_info,
            custom_prompt=custom_prompt,
            field_context=field_context,
        )

        cost = estimate_cost(
            outcome.tokens_by_model,
            synthesis_tokens=synthesis.tokens_used,
            synthesis_model=synthesis.model,
            pricing=self.pricing,
        )
        logger.info(
            "Issue summary done: %d/%d papers, %d+%d tokens, ~$%.4f (%s)",
            len(outcome.extractions),
            len(paper_inputs),
            outcome.total_tokens,
            synthesis.tokens_used,
            cost,
            synthesis.model,
        )

        return IssueSummaryResult(
            summary=synthesis.summary,
            extractions=outcome.extractions,
            statistics=statistics,
            citation_map=synthesis.citation_map,
            paper_count=len(paper_inputs),
            tokens_extraction=outcome.total_tokens,
            tokens_synthesis=synthesis.tokens_used,
            cost_estimate=cost,
            failed_papers=outcome.failed_papers,
            model_used=synthesis.model,
        )

    def generate_issue_summary_sync(self, *args: Any, **kwargs: Any) -> IssueSummaryResult:
        return asyncio.run(self.generate_issue_summary(*args, **kwargs))

    async def summarize_paper(
        self, text: str, field_context: str | None = None
    ) -> GenerationResult:
        """Plain-language summary of a single paper."""
        try:
            return await self.orchestrator.generate(
                build_paper_summary_prompt(text, field_context=field_context)
            )
        finally:
            await self.orchestrator.aclose()

    def get_default_synthesis_prompt(
        self,
        journal_name: str,
        issue_info: str,
        count: int,
        field_context: str | None = None,
    ) -> str:
        return build_default_synthesis_prompt(
            journal_name=journal_name,
            issue_info=issue_info,
            paper_count=count,
            field_context=field_context,
        )


def create_issue_summary_service(
    settings: Settings | None = None,
    batch_size: int | None = None,
) -> IssueSummaryService:
    """Build a fresh service with its own backend clients and fallback state.

    Raises:
        ProviderUnavailable: if neither backend has an API key.
    """
    settings = settings or load_settings()
    primary, secondary = build_backends(settings)
    orchestrator = ProviderOrchestrator(
        primary,
        secondary,
        max_attempts=settings.llm_max_attempts,
        base_delay_sec=settings.llm_retry_base_delay_sec,
    )
    return IssueSummaryService(
        orchestrator,
        batch_size=batch_size or settings.extraction_batch_size,
        batch_delay_sec=settings.extraction_batch_delay_sec,
        max_input_chars=settings.extraction_max_input_chars,
    )
