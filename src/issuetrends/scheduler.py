"""Batched, bounded-concurrency extraction over all papers of an issue."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import AllExtractionsFailed
from .models import BatchOutcome, Extraction, ExtractionResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .extractor import PaperExtractor
    from .models import PaperInput

    ProgressCallback = Callable[[int, int, str], Any]

logger = logging.getLogger(__name__)


async def notify_progress(
    on_progress: ProgressCallback | None, current: int, total: int, paper_title: str
) -> None:
    """Invoke a sync or async progress callback."""
    if on_progress is None:
        return
    outcome = on_progress(current, total, paper_title)
    if inspect.isawaitable(outcome):
        await outcome


class BatchScheduler:
    """Run extractions in fixed-size batches.

    Batches run one after another. Calls inside a batch run concurrently and
    the batch is settled as a whole before results are recorded, so one
    failing paper never cancels its siblings.

    The progress callback fires once per batch with the 1-based position of
    the batch's first paper and that paper's title. ``current`` therefore
    advances in steps of ``batch_size`` and does not count finished papers.
    """

    def __init__(
        self,
        extractor: PaperExtractor,
        batch_size: int = 3,
        batch_delay_sec: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.extractor = extractor
        self.batch_size = max(1, batch_size)
        self.batch_delay_sec = batch_delay_sec
        self._sleep = sleep

    async def run(
        self,
        papers: Sequence[PaperInput],
        on_progress: ProgressCallback | None = None,
    ) -> BatchOutcome:
        extractions: list[Extraction] = []
        failed_papers: list[str] = []
        total_tokens = 0
        tokens_by_model: dict[str, int] = {}
        total = len(papers)

        logger.info("Extracting info from %d papers...", total)

        for start in range(0, total, self.batch_size):
            batch = list(papers[start : start + self.batch_size])

            await notify_progress(on_progress, start + 1, total, batch[0].title)
            logger.info(
                "Processing papers %d-%d of %d...",
                start + 1,
                start + len(batch),
                total,
            )

            results = await asyncio.gather(
                *(self.extractor.extract(paper) for paper in batch),
                return_exceptions=True,
            )

            for paper, result in zip(batch, results):
                if isinstance(result, ExtractionResult):
                    extractions.append(result.extraction)
                    total_tokens += result.tokens_used
                    tokens_by_model[result.model] = (
                        tokens_by_model.get(result.model, 0) + result.tokens_used
                    )
                elif isinstance(result, Exception):
                    logger.error("Failed to extract paper %s: %s", paper.id, result)
                    failed_papers.append(paper.id)
                else:
                    raise result

            if start + self.batch_size < total:
                await self._sleep(self.batch_delay_sec)

        if not extractions:
            raise AllExtractionsFailed(failed_papers)

        if failed_papers:
            logger.warning(
                "%d of %d papers failed extraction: %s",
                len(failed_papers),
                total,
                ", ".join(failed_papers),
            )

        return BatchOutcome(
            extractions=extractions,
            failed_papers=failed_papers,
            total_tokens=total_tokens,
            tokens_by_model=tokens_by_model,
        )
