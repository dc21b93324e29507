"""Issue-level statistics over extraction records."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from .models import (
    Extraction,
    IssueStatistics,
    MethodFrequency,
    MethodologyCounts,
    MethodologyType,
    SampleSizeSummary,
    SophisticationCounts,
    SophisticationTier,
    SubjectFrequency,
)

TOP_N = 10
PROMPT_TOP_N = 5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(count / total * 100)


def normalize_label(label: str) -> str:
    return label.strip().lower()


def _count(labels: Iterable[str]) -> list[tuple[str, int]]:
    # dicts keep first-occurrence order and sorted() is stable, so ties stay
    # in the order they were first seen
    counts: dict[str, int] = {}
    for label in labels:
        if not label:
            continue
        counts[label] = counts.get(label, 0) + 1
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def _method_table(labels: Iterable[str], total: int) -> list[MethodFrequency]:
    return [
        MethodFrequency(method=label, count=count, percentage=percentage(count, total))
        for label, count in _count(labels)[:TOP_N]
    ]


def compute_issue_statistics(extractions: Sequence[Extraction]) -> IssueStatistics:
    """Aggregate extraction records into issue statistics.

    Percentages are relative to the number of extractions passed in.
    Method names are trimmed and lower-cased before counting; subject types
    are only trimmed.
    """
    total = len(extractions)

    methodology = MethodologyCounts(
        quantitative=sum(
            1 for e in extractions if e.methodology_type is MethodologyType.QUANTITATIVE
        ),
        qualitative=sum(
            1 for e in extractions if e.methodology_type is MethodologyType.QUALITATIVE
        ),
        mixed=sum(1 for e in extractions if e.methodology_type is MethodologyType.MIXED),
    )

    data_collection = _method_table(
        (normalize_label(m) for e in extractions for m in e.data_collection),
        total,
    )
    statistical_methods = _method_table(
        (
            normalize_label(m)
            for e in extractions
            for m in (e.statistical_methods or [])
        ),
        total,
    )

    sophistication = SophisticationCounts(
        basic=sum(
            1
            for e in extractions
            if e.statistical_sophistication is SophisticationTier.BASIC
        ),
        intermediate=sum(
            1
            for e in extractions
            if e.statistical_sophistication is SophisticationTier.INTERMEDIATE
        ),
        advanced=sum(
            1
            for e in extractions
            if e.statistical_sophistication is SophisticationTier.ADVANCED
        ),
        unknown=sum(1 for e in extractions if e.statistical_sophistication is None),
    )

    sizes = [
        e.research_subjects.sample_size
        for e in extractions
        if e.research_subjects.sample_size is not None
        and e.research_subjects.sample_size > 0
    ]
    sample_size = SampleSizeSummary(
        count=len(sizes),
        mean=round_half_up(sum(sizes) / len(sizes)) if sizes else 0,
        min=min(sizes) if sizes else 0,
        max=max(sizes) if sizes else 0,
        total=sum(sizes),
    )

    research_subjects = [
        SubjectFrequency(type=label, count=count, percentage=percentage(count, total))
        for label, count in _count(
            e.research_subjects.type.strip() for e in extractions
        )[:TOP_N]
    ]

    return IssueStatistics(
        total_papers=total,
        methodology=methodology,
        data_collection=data_collection,
        statistical_methods=statistical_methods,
        sophistication=sophistication,
        sample_size=sample_size,
        research_subjects=research_subjects,
    )


def format_statistics(stats: IssueStatistics) -> str:
    """Render statistics as the text block embedded in the synthesis prompt."""
    total = stats.total_papers
    lines: list[str] = [f"## Quantitative analysis (based on {total} papers)", ""]

    lines.append("### Methodology distribution")
    lines.append(
        f"- Quantitative: {stats.methodology.quantitative} papers "
        f"({percentage(stats.methodology.quantitative, total)}%)"
    )
    lines.append(
        f"- Qualitative: {stats.methodology.qualitative} papers "
        f"({percentage(stats.methodology.qualitative, total)}%)"
    )
    lines.append(
        f"- Mixed methods: {stats.methodology.mixed} papers "
        f"({percentage(stats.methodology.mixed, total)}%)"
    )
    lines.append("")

    if stats.data_collection:
        lines.append("### Data collection methods (multiple per paper)")
        for entry in stats.data_collection[:PROMPT_TOP_N]:
            lines.append(f"- {entry.method}: {entry.count} papers ({entry.percentage}%)")
        lines.append("")

    soph = stats.sophistication
    if soph.basic + soph.intermediate + soph.advanced > 0:
        lines.append("### Level of statistical analysis")
        if soph.advanced:
            lines.append(
                f"- Advanced (SEM, HLM, multilevel): {soph.advanced} papers "
                f"({percentage(soph.advanced, total)}%)"
            )
        if soph.intermediate:
            lines.append(
                f"- Intermediate (regression, ANOVA, factor analysis): "
                f"{soph.intermediate} papers ({percentage(soph.intermediate, total)}%)"
            )
        if soph.basic:
            lines.append(
                f"- Basic (t-test, correlation, frequencies): {soph.basic} papers "
                f"({percentage(soph.basic, total)}%)"
            )
        lines.append("")

    if stats.statistical_methods:
        lines.append("### Main statistical techniques (multiple per paper)")
        for entry in stats.statistical_methods[:PROMPT_TOP_N]:
            lines.append(f"- {entry.method}: {entry.count} papers")
        lines.append("")

    if stats.sample_size.count:
        lines.append("### Sample size")
        lines.append(f"- Papers reporting a sample size: {stats.sample_size.count}")
        lines.append(f"- Mean sample size: {stats.sample_size.mean}")
        lines.append(f"- Range: {stats.sample_size.min} to {stats.sample_size.max}")
        lines.append("")

    if stats.research_subjects:
        lines.append("### Research subjects")
        for entry in stats.research_subjects[:PROMPT_TOP_N]:
            lines.append(f"- {entry.type}: {entry.count} papers ({entry.percentage}%)")

    return "\n".join(lines).rstrip()
