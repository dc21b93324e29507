"""Prompt templates and rendering helpers."""

from __future__ import annotations

from pathlib import Path

EXTRACTION_PROMPT = """Analyze the following academic paper and extract its key information as JSON.

Respond with the JSON object below only, with no other text:

{
  "research_topic": "main research topic or question",
  "research_subjects": {
    "type": "kind of research subjects (e.g. undergraduates, adolescents, counselors)",
    "sample_size": number or null
  },
  "methodology_type": "qualitative" | "quantitative" | "mixed",
  "data_collection": ["data collection methods"],
  "statistical_methods": ["statistical analysis methods used"] or null,
  "statistical_sophistication": "basic" | "intermediate" | "advanced" | null,
  "key_findings": "key findings in 1-2 sentences"
}

Statistical sophistication tiers:
- basic: t-test, frequency analysis, chi-square, correlation analysis
- intermediate: ANOVA, regression analysis, factor analysis
- advanced: SEM, HLM, multilevel analysis, latent growth modeling

Paper:
"""

DEFAULT_SYNTHESIS_TEMPLATE = """{{field_context_line}}

Below are the records extracted from {{paper_count}} papers published in {{journal_name}} {{issue_info}}, followed by a quantitative analysis of the whole issue.

Interpret the research trends of this issue from the following angles:

1. **Research topic trends**: shared themes and newly emerging interests
2. **Research subject tendencies**: characteristics of the populations studied and what they imply
3. **Methodological characteristics**: interpret methodological tendencies using the statistics provided (e.g. "quantitative studies dominate at X%...")
4. **Level of statistical analysis**: how sophisticated the analysis techniques are and what the use of advanced techniques means

## Citation rules (very important)
- Whenever you mention a specific paper, cite it with a bracketed number: [1], [2], [3] and so on
- When citing several papers together, write them consecutively on one line: [1][3][5] (no line breaks)
- Always place citations outside markdown emphasis (**bold**, *italic*)
  - Correct: **quantitative studies account for 67%**[2][3][7]
  - Wrong: **quantitative studies account for 67%[2][3][7]**
- Example: "studies using structural equation modeling[2][5][7] are increasing"
- Cite the relevant papers for every major claim

Important: quote the figures from the "Quantitative analysis" section below directly and be specific.

Do not simply list the papers; interpret the overall flow and patterns.
Write in an academic but accessible style."""

PAPER_SUMMARY_TEMPLATE = """You are an expert in summarizing academic papers.{{field_context_sentence}}
Summarize the following paper so that researchers and practitioners can understand it quickly.

Include:
1. **Purpose**: the problem or question the study addresses
2. **Method**: the research methodology (number of participants, analysis methods, etc.)
3. **Key findings**: the 2-3 most important results
4. **Implications**: what researchers or practitioners in the field can apply

Length: 150-250 words
Tone: professional but easy to follow

---
{{paper_text}}
"""


def _replace_placeholders(template: str, replacements: dict[str, str]) -> str:
    rendered = template
    for key, value in replacements.items():
        rendered = rendered.replace(key, value)
    return rendered


def load_prompt_template(path: Path | None) -> str | None:
    if path is None:
        return None
    return path.read_text(encoding="utf-8")


def build_extraction_prompt(paper_text: str, field_context: str | None = None) -> str:
    if field_context:
        return (
            f"Domain: {field_context}. Interpret methods and subjects as a "
            f"specialist in this field would.\n\n{EXTRACTION_PROMPT}{paper_text}"
        )
    return EXTRACTION_PROMPT + paper_text


def build_default_synthesis_prompt(
    journal_name: str,
    issue_info: str,
    paper_count: int,
    field_context: str | None = None,
) -> str:
    field_line = f"You are an expert in {field_context}." if field_context else ""
    rendered = _replace_placeholders(
        DEFAULT_SYNTHESIS_TEMPLATE,
        {
            "{{field_context_line}}": field_line,
            "{{paper_count}}": str(paper_count),
            "{{journal_name}}": journal_name,
            "{{issue_info}}": issue_info,
        },
    )
    return rendered.strip()


def build_synthesis_instructions(
    journal_name: str,
    issue_info: str,
    paper_count: int,
    custom_prompt: str | None = None,
    field_context: str | None = None,
) -> str:
    """Return the caller's prompt if given, else the built-in one.

    Custom prompts may use ``{{journal_name}}``, ``{{issue_info}}``,
    ``{{paper_count}}`` and ``{{field_context}}``.
    """
    if not custom_prompt or not custom_prompt.strip():
        return build_default_synthesis_prompt(
            journal_name=journal_name,
            issue_info=issue_info,
            paper_count=paper_count,
            field_context=field_context,
        )
    return _replace_placeholders(
        custom_prompt.strip(),
        {
            "{{journal_name}}": journal_name,
            "{{issue_info}}": issue_info,
            "{{paper_count}}": str(paper_count),
            "{{field_context}}": field_context or "",
        },
    )


def build_paper_summary_prompt(paper_text: str, field_context: str | None = None) -> str:
    sentence = (
        f" You have particular expertise in {field_context}." if field_context else ""
    )
    return _replace_placeholders(
        PAPER_SUMMARY_TEMPLATE,
        {
            "{{field_context_sentence}}": sentence,
            "{{paper_text}}": paper_text,
        },
    )
