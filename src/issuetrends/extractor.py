"""Turn one paper into one structured methodology record."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import TYPE_CHECKING, Any

from .exceptions import ExtractionParseError
from .models import (
    Extraction,
    ExtractionResult,
    MethodologyType,
    PaperInput,
    ResearchSubjects,
    SophisticationTier,
)
from .prompts import build_extraction_prompt

if TYPE_CHECKING:
    from .orchestrator import ProviderOrchestrator

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
MAIN_BODY_CUTOFF_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"^\s*#+\s*(?:\d+[.)]?\s*)?(?:references|bibliography)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"^\s*#+\s*(?:\d+[.)]?\s*)?(?:appendix|appendices)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"^\s*#+\s*(?:\d+[.)]?\s*)?(?:supplementary(?:\s+material)?)\b",
        re.IGNORECASE,
    ),
    re.compile(r"^\s*(?:references|bibliography)\s*$", re.IGNORECASE),
)
PARSE_ERROR_TOPIC = "Parse error - could not extract"
PARSE_ERROR_FINDINGS = "Extraction failed"


def placeholder_extraction(paper: PaperInput) -> Extraction:
    return Extraction(
        paper_id=paper.id,
        title=paper.title,
        research_topic=PARSE_ERROR_TOPIC,
        research_subjects=ResearchSubjects(type="unknown"),
        methodology_type=MethodologyType.MIXED,
        data_collection=[],
        key_findings=PARSE_ERROR_FINDINGS,
        parse_failed=True,
    )


def strip_code_fence(response_text: str) -> str:
    match = CODE_FENCE_PATTERN.search(response_text)
    if match:
        return match.group(1).strip()
    return response_text.strip()


def parse_extraction(paper: PaperInput, response_text: str) -> Extraction:
    """Validate model output against the extraction schema.

    Raises:
        ExtractionParseError: if the body is not JSON, not an object, or a
            required field is missing or has the wrong type.
    """
    body = strip_code_fence(response_text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ExtractionParseError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ExtractionParseError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    return Extraction(
        paper_id=paper.id,
        title=paper.title,
        research_topic=_require_text(payload, "research_topic"),
        research_subjects=_parse_subjects(payload.get("research_subjects")),
        methodology_type=_parse_methodology(payload.get("methodology_type")),
        data_collection=_parse_string_list(payload.get("data_collection")) or [],
        key_findings=_require_text(payload, "key_findings"),
        statistical_methods=_parse_string_list(payload.get("statistical_methods")),
        statistical_sophistication=_parse_sophistication(
            payload.get("statistical_sophistication")
        ),
    )


def _require_text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ExtractionParseError(f"Missing or empty field: {key}")
    return value.strip()


def _parse_methodology(value: Any) -> MethodologyType:
    if not isinstance(value, str):
        raise ExtractionParseError(f"Invalid methodology_type: {value!r}")
    try:
        return MethodologyType(value.strip().lower())
    except ValueError as exc:
        raise ExtractionParseError(f"Invalid methodology_type: {value!r}") from exc


def _parse_sophistication(value: Any) -> SophisticationTier | None:
    if not isinstance(value, str):
        return None
    try:
        return SophisticationTier(value.strip().lower())
    except ValueError:
        return None


def _parse_string_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ExtractionParseError(f"Expected a list of strings, got {value!r}")
    return [str(item).strip() for item in value if str(item).strip()]


def _parse_subjects(value: Any) -> ResearchSubjects:
    if value is None:
        return ResearchSubjects(type="unknown")
    if isinstance(value, str):
        return ResearchSubjects(type=value.strip() or "unknown")
    if not isinstance(value, dict):
        raise ExtractionParseError(f"Invalid research_subjects: {value!r}")

    subject_type = value.get("type")
    if not isinstance(subject_type, str) or not subject_type.strip():
        subject_type = "unknown"
    return ResearchSubjects(
        type=subject_type.strip(),
        sample_size=_parse_sample_size(value.get("sample_size")),
    )


def _parse_sample_size(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        try:
            value = float(cleaned)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    size = int(value)
    return size if size > 0 else None


class PaperExtractor:
    """Extract a methodology record from a paper through the orchestrator."""

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        field_context: str | None = None,
        max_input_chars: int = 120_000,
    ) -> None:
        self.orchestrator = orchestrator
        self.field_context = field_context
        self.max_input_chars = max_input_chars

    async def extract(self, paper: PaperInput) -> ExtractionResult:
        prompt = build_extraction_prompt(
            self.prepare_input_text(paper.text), field_context=self.field_context
        )
        generation = await self.orchestrator.generate(prompt)

        try:
            extraction = parse_extraction(paper, generation.text)
        except ExtractionParseError as exc:
            logger.warning(
                "Failed to parse extraction for paper %s (%s); using placeholder. Response: %.500s",
                paper.id,
                exc,
                generation.text,
            )
            extraction = placeholder_extraction(paper)

        return ExtractionResult(
            extraction=extraction,
            tokens_used=generation.tokens,
            model=generation.model,
        )

    def prepare_input_text(self, paper_text: str) -> str:
        safe_text = self._extract_main_body_text(paper_text)
        if len(safe_text) > self.max_input_chars:
            safe_text = (
                safe_text[: self.max_input_chars]
                + "\n\n[Truncated: input text exceeds max_input_chars]"
            )
        return safe_text

    def _extract_main_body_text(self, paper_text: str) -> str:
        lines = paper_text.splitlines()
        cutoff_index: int | None = None

        for index, line in enumerate(lines):
            if any(pattern.match(line) for pattern in MAIN_BODY_CUTOFF_PATTERNS):
                cutoff_index = index
                break

        if cutoff_index is None:
            return paper_text

        main_body = "\n".join(lines[:cutoff_index]).strip()
        if not main_body:
            return paper_text
        return main_body
