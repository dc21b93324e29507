from issuetrends.models import (
    Extraction,
    MethodologyType,
    ResearchSubjects,
    SophisticationTier,
)
from issuetrends.statistics import (
    compute_issue_statistics,
    format_statistics,
    percentage,
    round_half_up,
)


def _extraction(
    index,
    methodology=MethodologyType.QUANTITATIVE,
    data_collection=(),
    statistical_methods=None,
    sophistication=None,
    subject="students",
    sample_size=None,
):
    return Extraction(
        paper_id=f"p{index}",
        title=f"Paper {index}",
        research_topic="topic",
        research_subjects=ResearchSubjects(type=subject, sample_size=sample_size),
        methodology_type=methodology,
        data_collection=list(data_collection),
        key_findings="findings",
        statistical_methods=statistical_methods,
        statistical_sophistication=sophistication,
    )


def test_round_half_up_matches_rounding_of_percentages():
    assert round_half_up(12.5) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13


def test_data_collection_labels_are_normalized_before_counting():
    stats = compute_issue_statistics(
        [
            _extraction(1, data_collection=["Survey"]),
            _extraction(2, data_collection=[" survey "]),
            _extraction(3, data_collection=["SURVEY", "Interview"]),
        ]
    )

    assert [(e.method, e.count, e.percentage) for e in stats.data_collection] == [
        ("survey", 3, 100),
        ("interview", 1, 33),
    ]


def test_statistical_methods_collapse_case_and_whitespace():
    stats = compute_issue_statistics(
        [
            _extraction(1, statistical_methods=["ANOVA"]),
            _extraction(2, statistical_methods=["anova "]),
            _extraction(3),
        ]
    )

    assert len(stats.statistical_methods) == 1
    assert stats.statistical_methods[0].method == "anova"
    assert stats.statistical_methods[0].count == 2
    assert stats.statistical_methods[0].percentage == 67


def test_frequency_tables_keep_first_seen_order_for_ties_and_cap_at_ten():
    methods = [f"method {i}" for i in range(12)]
    extractions = [_extraction(1, data_collection=methods)]
    extractions.append(_extraction(2, data_collection=["method 11"]))

    stats = compute_issue_statistics(extractions)

    labels = [e.method for e in stats.data_collection]
    assert len(labels) == 10
    assert labels[0] == "method 11"
    assert labels[1:] == [f"method {i}" for i in range(9)]


def test_percentages_use_successful_extraction_count():
    extractions = [
        _extraction(i, data_collection=["survey"] if i < 3 else ["interview"])
        for i in range(7)
    ]

    stats = compute_issue_statistics(extractions)

    assert stats.total_papers == 7
    for entry in stats.data_collection:
        assert entry.percentage == round_half_up(entry.count / 7 * 100)


def test_methodology_and_sophistication_counts():
    stats = compute_issue_statistics(
        [
            _extraction(1, MethodologyType.QUANTITATIVE, sophistication=SophisticationTier.ADVANCED),
            _extraction(2, MethodologyType.QUANTITATIVE, sophistication=SophisticationTier.BASIC),
            _extraction(3, MethodologyType.QUALITATIVE),
            _extraction(4, MethodologyType.MIXED, sophistication=SophisticationTier.INTERMEDIATE),
        ]
    )

    assert (stats.methodology.quantitative, stats.methodology.qualitative, stats.methodology.mixed) == (2, 1, 1)
    assert stats.sophistication.advanced == 1
    assert stats.sophistication.intermediate == 1
    assert stats.sophistication.basic == 1
    assert stats.sophistication.unknown == 1


def test_sample_size_summary_skips_missing_and_zero():
    stats = compute_issue_statistics(
        [
            _extraction(1, sample_size=100),
            _extraction(2, sample_size=0),
            _extraction(3),
            _extraction(4, sample_size=251),
        ]
    )

    assert stats.total_papers == 4
    summary = stats.sample_size
    assert (summary.count, summary.min, summary.max, summary.total) == (2, 100, 251, 351)
    assert summary.mean == 176


def test_sample_size_summary_is_zero_when_nothing_reported():
    stats = compute_issue_statistics([_extraction(1)])

    assert stats.sample_size.count == 0
    assert stats.sample_size.mean == 0
    assert stats.sample_size.total == 0


def test_research_subjects_are_trimmed_but_keep_case():
    stats = compute_issue_statistics(
        [
            _extraction(1, subject="Adolescents"),
            _extraction(2, subject=" Adolescents "),
            _extraction(3, subject="adolescents"),
        ]
    )

    assert [(e.type, e.count, e.percentage) for e in stats.research_subjects] == [
        ("Adolescents", 2, 67),
        ("adolescents", 1, 33),
    ]


def test_format_statistics_renders_sections():
    stats = compute_issue_statistics(
        [
            _extraction(
                1,
                data_collection=["survey"],
                statistical_methods=["SEM"],
                sophistication=SophisticationTier.ADVANCED,
                sample_size=300,
            ),
            _extraction(2, MethodologyType.QUALITATIVE, data_collection=["interview"]),
        ]
    )

    text = format_statistics(stats)

    assert text.startswith("## Quantitative analysis (based on 2 papers)")
    assert "- Quantitative: 1 papers (50%)" in text
    assert "- survey: 1 papers (50%)" in text
    assert "Advanced (SEM, HLM, multilevel): 1 papers (50%)" in text
    assert "Intermediate" not in text
    assert "- sem: 1 papers" in text
    assert "- Mean sample size: 300" in text
    assert "- students: 2 papers (100%)" in text


def test_to_dict_uses_wire_key_names():
    payload = compute_issue_statistics([_extraction(1, data_collection=["survey"])]).to_dict()

    assert payload["totalPapers"] == 1
    assert payload["dataCollection"] == [{"method": "survey", "count": 1, "percentage": 100}]
    assert set(payload) == {
        "totalPapers",
        "methodology",
        "dataCollection",
        "statisticalMethods",
        "sophistication",
        "sampleSize",
        "researchSubjects",
    }
