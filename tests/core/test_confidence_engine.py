from __future__ import annotations

from hrcapacity.core.confidence import (
    ConfidenceAssessment,
    SampleSize,
    assess_confidence,
    hedge_message,
    weakest_link,
)


def test_any_sample_below_threshold_is_low():
    assessment = assess_confidence(
        [
            SampleSize("hires", 400, 10),
            SampleSize("offers", 2, 3),
        ]
    )

    assert assessment.level == "LOW"
    assert any("offers" in reason.message for reason in assessment.reasons)


def test_all_samples_at_double_threshold_is_high():
    assessment = assess_confidence([SampleSize("hires", 20, 10), SampleSize("offers", 6, 3)])

    assert assessment.level == "HIGH"
    assert assessment.hedge == "Based on observed patterns"


def test_one_and_a_half_times_threshold_is_med():
    assessment = assess_confidence([SampleSize("hires", 15, 10), SampleSize("offers", 6, 3)])

    assert assessment.level == "MED"
    assert assessment.hedge == "Based on similar cohorts"


def test_between_threshold_and_one_and_a_half_is_low():
    assessment = assess_confidence([SampleSize("hires", 12, 10)])

    assert assessment.level == "LOW"


def test_empty_samples_are_low():
    assert assess_confidence([]).level == "LOW"


def test_weakest_link_picks_minimum():
    assert weakest_link(["HIGH", "MED", "HIGH"]) == "MED"
    assert weakest_link(["HIGH", "INSUFFICIENT"]) == "INSUFFICIENT"
    assert weakest_link([]) == "LOW"


def test_hedge_text_for_low_and_insufficient():
    assert hedge_message("LOW") == "Estimated (limited data)"
    assert hedge_message("INSUFFICIENT") == "Estimated (limited data)"


def test_capped_assessment_never_exceeds_cap():
    assessment = ConfidenceAssessment(level="HIGH")

    assert assessment.capped("MED").level == "MED"
    assert assessment.capped("HIGH").level == "HIGH"
    assert ConfidenceAssessment(level="LOW").capped("HIGH").level == "LOW"
