import asyncio

from issuetrends.models import (
    Extraction,
    GenerationResult,
    MethodologyType,
    ResearchSubjects,
)
from issuetrends.statistics import compute_issue_statistics
from issuetrends.synthesizer import (
    PAPER_LIST_HEADING,
    TrendSynthesizer,
    build_citation_map,
    format_paper_entry,
)


class FakeOrchestrator:
    def __init__(self, text="Trend report [1][2]"):
        self.text = text
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        return GenerationResult(text=self.text, tokens=900, backend="openai", model="gpt-4o-mini")


def _extractions(count):
    return [
        Extraction(
            paper_id=f"id-{i}",
            title=f"Paper {i}",
            research_topic=f"topic {i}",
            research_subjects=ResearchSubjects(type="adolescents", sample_size=50 * i),
            methodology_type=MethodologyType.QUANTITATIVE,
            data_collection=["survey"],
            key_findings=f"finding {i}",
        )
        for i in range(1, count + 1)
    ]


def test_citation_map_numbers_follow_extraction_order():
    extractions = _extractions(4)

    citation_map = build_citation_map(extractions)

    assert list(citation_map) == ["1", "2", "3", "4"]
    for number, extraction in enumerate(extractions, 1):
        assert citation_map[str(number)].paper_id == extraction.paper_id
        assert citation_map[str(number)].title == extraction.title


def test_paper_entry_includes_sample_size_only_when_known():
    extraction = _extractions(1)[0]
    no_size = Extraction(
        paper_id="x",
        title="No size",
        research_topic="t",
        research_subjects=ResearchSubjects(type="nurses"),
        methodology_type=MethodologyType.QUALITATIVE,
        data_collection=[],
        key_findings="k",
    )

    assert "- Subjects: adolescents (n=50)" in format_paper_entry(1, extraction)
    assert "- Subjects: nurses\n" in format_paper_entry(2, no_size)
    assert format_paper_entry(2, no_size).startswith("[2] No size")


def test_synthesize_builds_prompt_in_order_and_returns_map():
    extractions = _extractions(3)
    statistics = compute_issue_statistics(extractions)
    orchestrator = FakeOrchestrator()

    result = asyncio.run(
        TrendSynthesizer(orchestrator).synthesize(
            extractions, statistics, journal_name="Journal of Counseling", issue_info="Vol. 3 No. 2"
        )
    )

    prompt = orchestrator.prompts[0]
    assert "Journal of Counseling Vol. 3 No. 2" in prompt
    assert "[1][3][5]" in prompt
    assert prompt.index("Citation rules") < prompt.index("## Quantitative analysis")
    assert prompt.index("## Quantitative analysis") < prompt.index(PAPER_LIST_HEADING)
    assert prompt.index("[1] Paper 1") < prompt.index("[2] Paper 2") < prompt.index("[3] Paper 3")
    assert result.summary == "Trend report [1][2]"
    assert result.tokens_used == 900
    assert result.model == "gpt-4o-mini"
    assert set(result.citation_map) == {"1", "2", "3"}


def test_custom_prompt_replaces_default_instructions():
    extractions = _extractions(2)
    orchestrator = FakeOrchestrator()

    asyncio.run(
        TrendSynthesizer(orchestrator).synthesize(
            extractions,
            compute_issue_statistics(extractions),
            journal_name="J",
            issue_info="I",
            custom_prompt="Summarize {{paper_count}} papers from {{journal_name}} briefly.",
        )
    )

    prompt = orchestrator.prompts[0]
    assert prompt.startswith("Summarize 2 papers from J briefly.")
    assert "Citation rules" not in prompt
    assert PAPER_LIST_HEADING in prompt


def test_field_context_shapes_default_prompt():
    extractions = _extractions(1)
    synthesizer = TrendSynthesizer(FakeOrchestrator())

    prompt = synthesizer.build_prompt(
        extractions,
        compute_issue_statistics(extractions),
        journal_name="J",
        issue_info="I",
        field_context="counseling psychology",
    )

    assert prompt.startswith("You are an expert in counseling psychology.")
