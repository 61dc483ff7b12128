import pytest

from videotrust.aggregation import (
    CredibilityAggregator,
    CredibilityWeights,
    build_authenticity_report,
    failed_result,
    validate_authenticity_sources,
)
from videotrust.models import (
    AIDetectionResult,
    AuthenticityMetadata,
    AuthenticityResult,
    AuthenticitySource,
    ManipulationResult,
    TimelineAnomaly,
)


def results(ai=0.0, manipulation=0.0, authenticity=0.0):
    return (
        AIDetectionResult(confidence=ai, explanation="ai"),
        ManipulationResult(confidence=manipulation, explanation="manipulation"),
        AuthenticityResult(confidence=authenticity, explanation="authenticity"),
    )


def test_weighted_score_example():
    aggregator = CredibilityAggregator()
    assert aggregator.calculate_credibility_score(80, 70, 20) == 24

    result = aggregator.aggregate(*results(80, 70, 20))
    assert result.overall.credibility_score == 24
    assert result.overall.recommendation.startswith("VERY LOW CREDIBILITY")


@pytest.mark.parametrize(
    "confidences, expected",
    [
        ((0, 0, 100), 100),
        ((100, 100, 0), 0),
        ((0, 0, 0), 75),
        ((50, 50, 50), 50),
    ],
)
def test_score_bounds(confidences, expected):
    assert CredibilityAggregator().calculate_credibility_score(*confidences) == expected


@pytest.mark.parametrize(
    "score, tier",
    [
        (100, "HIGH CREDIBILITY"),
        (80, "HIGH CREDIBILITY"),
        (79, "MODERATE CREDIBILITY"),
        (60, "MODERATE CREDIBILITY"),
        (59, "LOW CREDIBILITY"),
        (40, "LOW CREDIBILITY"),
        (39, "VERY LOW CREDIBILITY"),
        (0, "VERY LOW CREDIBILITY"),
    ],
)
def test_recommendation_tiers(score, tier):
    assert CredibilityAggregator.recommendation_tier(score) == tier
    assert CredibilityAggregator.generate_recommendation(score).startswith(f"{tier}:")


def test_aggregation_is_deterministic():
    aggregator = CredibilityAggregator()
    first = aggregator.aggregate(*results(33, 66, 12))
    second = aggregator.aggregate(*results(33, 66, 12))
    assert first.overall == second.overall


def test_summary_clauses_follow_confidence_bands():
    summary = CredibilityAggregator.generate_summary(85, 50, 10, 30)
    assert summary == (
        "Analysis complete with 30% credibility score. High likelihood of AI generation (85% confidence), "
        "some video editing indicators found, limited authenticity verification possible."
    )

    summary = CredibilityAggregator.generate_summary(10, 80, 75, 62)
    assert "Low likelihood of AI generation" in summary
    assert "significant video manipulation detected" in summary
    assert "strong authenticity indicators present" in summary


def test_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        CredibilityWeights(ai=0.5, manipulation=0.5, authenticity=0.5)
    assert sum(CredibilityWeights().as_dict().values()) == pytest.approx(1.0)


def test_validate_clean_result_has_no_warnings():
    result = CredibilityAggregator().aggregate(*results(10, 20, 30))
    assert CredibilityAggregator.validate(result) == []


def test_validate_collects_out_of_range_values_without_raising():
    broken_anomaly = TimelineAnomaly.model_construct(
        timestamp=-1.0, duration=0.0, type="cut", confidence=120.0, description="bad"
    )
    broken_source = AuthenticitySource.model_construct(url=None, similarity=140.0, source="X", verified=False)
    manipulation = ManipulationResult.model_construct(
        confidence=130.0, explanation="m", indicators={}, anomalies=[broken_anomaly]
    )
    authenticity = AuthenticityResult.model_construct(
        confidence=20.0,
        explanation="a",
        indicators={},
        sources=[broken_source],
        metadata=AuthenticityMetadata(),
    )
    ai = AIDetectionResult(confidence=0, explanation="ai")

    result = CredibilityAggregator().aggregate(ai, manipulation, authenticity)
    warnings = CredibilityAggregator.validate(result)

    assert "Manipulation detection confidence score is out of valid range (0-100)" in warnings
    assert any("invalid timestamp" in warning for warning in warnings)
    assert any("invalid duration" in warning for warning in warnings)
    assert any("invalid confidence score" in warning for warning in warnings)
    assert any("invalid similarity score" in warning for warning in warnings)
    assert 0 <= result.overall.credibility_score <= 100


def test_failed_result_degrades_to_zero_score():
    result = failed_result("Analysis failed: provider down")
    assert result.overall.credibility_score == 0
    assert result.overall.summary == "Analysis failed: provider down"
    assert result.ai_generated.explanation == "Analysis failed: provider down"


def test_payload_uses_camel_case_keys():
    payload = CredibilityAggregator().aggregate(*results(10, 10, 90)).to_payload()
    assert set(payload) == {"aiGenerated", "manipulation", "authenticity", "overall"}
    assert payload["overall"]["credibilityScore"] == 90


def test_authenticity_report():
    result = AuthenticityResult(
        confidence=85,
        explanation="ok",
        sources=[AuthenticitySource(similarity=85, source="News Media", verified=True)],
        metadata=AuthenticityMetadata(creation_date="2023-05-01", compression_history=["H264"]),
    )
    report = build_authenticity_report(result)
    assert report["summary"] == "Authenticity confidence: 85% based on 1 source(s) analyzed."
    assert report["details"] == ["Creation date: 2023-05-01", "Compression history: H264"]
    assert report["recommendations"][0].startswith("High authenticity confidence")
    assert report["recommendations"][1] == "1 verified source(s) found"


def test_validate_authenticity_sources():
    good = [
        AuthenticitySource(similarity=0, source="YouTube"),
        AuthenticitySource(similarity=100, source="News Media", verified=True),
    ]
    assert validate_authenticity_sources(good)
    assert validate_authenticity_sources([])

    out_of_range = AuthenticitySource.model_construct(url=None, similarity=101.0, source="X", verified=False)
    unnamed = AuthenticitySource.model_construct(url=None, similarity=50.0, source="", verified=False)
    not_bool = AuthenticitySource.model_construct(url=None, similarity=50.0, source="X", verified="yes")
    for broken in (out_of_range, unnamed, not_bool):
        assert not validate_authenticity_sources(good + [broken])


def test_validate_reports_unnamed_source():
    unnamed = AuthenticitySource.model_construct(url=None, similarity=50.0, source="", verified=False)
    authenticity = AuthenticityResult.model_construct(
        confidence=20.0, explanation="a", indicators={}, sources=[unnamed], metadata=AuthenticityMetadata()
    )
    ai, manipulation, _ = results()
    result = CredibilityAggregator().aggregate(ai, manipulation, authenticity)
    assert "Authenticity source is missing a name" in CredibilityAggregator.validate(result)
