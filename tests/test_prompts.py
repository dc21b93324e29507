from issuetrends.prompts import (
    EXTRACTION_PROMPT,
    build_default_synthesis_prompt,
    build_extraction_prompt,
    build_paper_summary_prompt,
    build_synthesis_instructions,
    load_prompt_template,
)


def test_extraction_prompt_lists_schema_and_tiers():
    for field in (
        "research_topic",
        "research_subjects",
        "sample_size",
        "methodology_type",
        "data_collection",
        "statistical_methods",
        "statistical_sophistication",
        "key_findings",
    ):
        assert f'"{field}"' in EXTRACTION_PROMPT
    assert "- basic:" in EXTRACTION_PROMPT
    assert "- intermediate:" in EXTRACTION_PROMPT
    assert "- advanced:" in EXTRACTION_PROMPT


def test_build_extraction_prompt_appends_paper_text():
    assert build_extraction_prompt("TEXT") == EXTRACTION_PROMPT + "TEXT"
    with_context = build_extraction_prompt("TEXT", field_context="nursing")
    assert with_context.startswith("Domain: nursing.")
    assert with_context.endswith(EXTRACTION_PROMPT + "TEXT")


def test_default_synthesis_prompt_requires_citations_outside_emphasis():
    prompt = build_default_synthesis_prompt("Journal", "Vol. 1", 9)

    assert "9 papers published in Journal Vol. 1" in prompt
    assert "[1][3][5]" in prompt
    assert "outside markdown emphasis" in prompt
    assert not prompt.startswith("\n")


def test_custom_prompt_placeholders_are_rendered():
    rendered = build_synthesis_instructions(
        journal_name="J",
        issue_info="No. 4",
        paper_count=7,
        custom_prompt="  {{journal_name}} {{issue_info}}: {{paper_count}} papers in {{field_context}} ",
        field_context="education",
    )

    assert rendered == "J No. 4: 7 papers in education"


def test_blank_custom_prompt_falls_back_to_default():
    rendered = build_synthesis_instructions("J", "I", 2, custom_prompt="   ")

    assert rendered == build_default_synthesis_prompt("J", "I", 2)


def test_paper_summary_prompt_includes_context_and_text():
    prompt = build_paper_summary_prompt("PAPER BODY", field_context="social work")

    assert "expertise in social work" in prompt
    assert prompt.rstrip().endswith("PAPER BODY")


def test_load_prompt_template(tmp_path):
    path = tmp_path / "prompt.md"
    path.write_text("custom", encoding="utf-8")

    assert load_prompt_template(path) == "custom"
    assert load_prompt_template(None) is None
