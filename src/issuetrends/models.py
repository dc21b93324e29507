"""Typed models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MethodologyType(str, Enum):
    QUALITATIVE = "qualitative"
    QUANTITATIVE = "quantitative"
    MIXED = "mixed"


class SophisticationTier(str, Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class PaperInput:
    """One paper of an issue as handed over by the caller."""

    id: str
    title: str
    text: str


@dataclass(frozen=True)
class ResearchSubjects:
    type: str
    sample_size: int | None = None


@dataclass(frozen=True)
class Extraction:
    """Structured methodology record derived from one paper."""

    paper_id: str
    title: str
    research_topic: str
    research_subjects: ResearchSubjects
    methodology_type: MethodologyType
    data_collection: list[str]
    key_findings: str
    statistical_methods: list[str] | None = None
    statistical_sophistication: SophisticationTier | None = None
    parse_failed: bool = False

    def to_dict(self) -> dict[str, Any]:
        subjects: dict[str, Any] = {"type": self.research_subjects.type}
        if self.research_subjects.sample_size is not None:
            subjects["sample_size"] = self.research_subjects.sample_size
        payload: dict[str, Any] = {
            "paper_id": self.paper_id,
            "title": self.title,
            "research_topic": self.research_topic,
            "research_subjects": subjects,
            "methodology_type": self.methodology_type.value,
            "data_collection": list(self.data_collection),
            "key_findings": self.key_findings,
        }
        if self.statistical_methods is not None:
            payload["statistical_methods"] = list(self.statistical_methods)
        if self.statistical_sophistication is not None:
            payload["statistical_sophistication"] = (
                self.statistical_sophistication.value
            )
        if self.parse_failed:
            payload["parse_failed"] = True
        return payload


@dataclass(frozen=True)
class GenerationResult:
    """Text and approximate token usage of one generation call."""

    text: str
    tokens: int
    backend: str
    model: str


@dataclass(frozen=True)
class ExtractionResult:
    extraction: Extraction
    tokens_used: int
    model: str


@dataclass(frozen=True)
class MethodFrequency:
    method: str
    count: int
    percentage: int


@dataclass(frozen=True)
class SubjectFrequency:
    type: str
    count: int
    percentage: int


@dataclass(frozen=True)
class MethodologyCounts:
    quantitative: int = 0
    qualitative: int = 0
    mixed: int = 0


@dataclass(frozen=True)
class SophisticationCounts:
    basic: int = 0
    intermediate: int = 0
    advanced: int = 0
    unknown: int = 0


@dataclass(frozen=True)
class SampleSizeSummary:
    """Summary over extractions that report a positive sample size."""

    count: int = 0
    mean: int = 0
    min: int = 0
    max: int = 0
    total: int = 0


@dataclass(frozen=True)
class IssueStatistics:
    """Issue-level aggregate over all successful extractions."""

    total_papers: int
    methodology: MethodologyCounts
    data_collection: list[MethodFrequency]
    statistical_methods: list[MethodFrequency]
    sophistication: SophisticationCounts
    sample_size: SampleSizeSummary
    research_subjects: list[SubjectFrequency]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPapers": self.total_papers,
            "methodology": {
                "quantitative": self.methodology.quantitative,
                "qualitative": self.methodology.qualitative,
                "mixed": self.methodology.mixed,
            },
            "dataCollection": [
                {"method": e.method, "count": e.count, "percentage": e.percentage}
                for e in self.data_collection
            ],
            "statisticalMethods": [
                {"method": e.method, "count": e.count, "percentage": e.percentage}
                for e in self.statistical_methods
            ],
            "sophistication": {
                "basic": self.sophistication.basic,
                "intermediate": self.sophistication.intermediate,
                "advanced": self.sophistication.advanced,
                "unknown": self.sophistication.unknown,
            },
            "sampleSize": {
                "count": self.sample_size.count,
                "mean": self.sample_size.mean,
                "min": self.sample_size.min,
                "max": self.sample_size.max,
                "total": self.sample_size.total,
            },
            "researchSubjects": [
                {"type": e.type, "count": e.count, "percentage": e.percentage}
                for e in self.research_subjects
            ],
        }


@dataclass(frozen=True)
class CitationEntry:
    paper_id: str
    title: str


CitationMap = dict[str, CitationEntry]


@dataclass(frozen=True)
class SynthesisResult:
    summary: str
    tokens_used: int
    citation_map: CitationMap
    model: str


@dataclass(frozen=True)
class BatchOutcome:
    """Accumulated result of running extraction over every batch."""

    extractions: list[Extraction]
    failed_papers: list[str]
    total_tokens: int
    tokens_by_model: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class IssueSummaryResult:
    """Final output of one issue summary run."""

    summary: str
    extractions: list[Extraction]
    statistics: IssueStatistics
    citation_map: CitationMap
    paper_count: int
    tokens_extraction: int
    tokens_synthesis: int
    cost_estimate: float
    failed_papers: list[str]
    model_used: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "extractions": [e.to_dict() for e in self.extractions],
            "statistics": self.statistics.to_dict(),
            "citationMap": {
                number: {"paper_id": entry.paper_id, "title": entry.title}
                for number, entry in self.citation_map.items()
            },
            "paper_count": self.paper_count,
            "tokens_extraction": self.tokens_extraction,
            "tokens_synthesis": self.tokens_synthesis,
            "cost_estimate": self.cost_estimate,
            "failed_papers": list(self.failed_papers),
            "model_used": self.model_used,
        }
