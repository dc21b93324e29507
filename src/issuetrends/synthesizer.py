"""Trend synthesis with numbered, resolvable citations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import CitationEntry, CitationMap, SynthesisResult
from .prompts import build_synthesis_instructions
from .statistics import format_statistics

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import Extraction, IssueStatistics
    from .orchestrator import ProviderOrchestrator

logger = logging.getLogger(__name__)

PAPER_LIST_HEADING = "## Paper list (use these numbers when citing)"


def build_citation_map(extractions: Sequence[Extraction]) -> CitationMap:
    """Number extractions 1..N in the order given."""
    return {
        str(number): CitationEntry(paper_id=extraction.paper_id, title=extraction.title)
        for number, extraction in enumerate(extractions, 1)
    }


def format_paper_entry(number: int, extraction: Extraction) -> str:
    subjects = extraction.research_subjects
    subject_text = subjects.type or "N/A"
    if subjects.sample_size:
        subject_text = f"{subject_text} (n={subjects.sample_size})"
    return (
        f"[{number}] {extraction.title}\n"
        f"    - Topic: {extraction.research_topic}\n"
        f"    - Subjects: {subject_text}\n"
        f"    - Methodology: {extraction.methodology_type.value}\n"
        f"    - Key findings: {extraction.key_findings}"
    )


def format_paper_list(extractions: Sequence[Extraction]) -> str:
    entries = [
        format_paper_entry(number, extraction)
        for number, extraction in enumerate(extractions, 1)
    ]
    return PAPER_LIST_HEADING + "\n\n" + "\n\n".join(entries)


class TrendSynthesizer:
    """Write the issue narrative from extractions and their statistics."""

    def __init__(self, orchestrator: ProviderOrchestrator) -> None:
        self.orchestrator = orchestrator

    def build_prompt(
        self,
        extractions: Sequence[Extraction],
        statistics: IssueStatistics,
        journal_name: str,
        issue_info: str,
        custom_prompt: str | None = None,
        field_context: str | None = None,
    ) -> str:
        instructions = build_synthesis_instructions(
            journal_name=journal_name,
            issue_info=issue_info,
            paper_count=len(extractions),
            custom_prompt=custom_prompt,
            field_context=field_context,
        )
        return "\n\n".join(
            [instructions, format_statistics(statistics), format_paper_list(extractions)]
        )

    async def synthesize(
        self,
        extractions: Sequence[Extraction],
        statistics: IssueStatistics,
        journal_name: str,
        issue_info: str,
        custom_prompt: str | None = None,
        field_context: str | None = None,
    ) -> SynthesisResult:
        citation_map = build_citation_map(extractions)
        prompt = self.build_prompt(
            extractions,
            statistics,
            journal_name=journal_name,
            issue_info=issue_info,
            custom_prompt=custom_prompt,
            field_context=field_context,
        )

        logger.info("Synthesizing trends from %d extractions...", len(extractions))
        generation = await self.orchestrator.generate(prompt)

        return SynthesisResult(
            summary=generation.text,
            tokens_used=generation.tokens,
            citation_map=citation_map,
            model=generation.model,
        )
