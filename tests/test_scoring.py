import pytest

from competency.domain.models import (
    Answer,
    AnswerValue,
    Level,
    LevelScore,
    NineBoxBand,
    Pillar,
    PillarResult,
    PotentialLabel,
    TemplateConfig,
)
from competency.domain.scoring import (
    answer_score,
    applicable_threshold,
    classify_potential,
    compute_global_status,
    compute_pillar_result,
    compute_results,
    map_ninebox,
    performance_band,
    potential_band,
    round_half_up,
)

FULL = AnswerValue.FULLY_MET
PARTIAL = AnswerValue.PARTIALLY_MET
NOT_MET = AnswerValue.NOT_MET

LEVELS = [
    Level(1, "Initial", "initial", 1),
    Level(2, "Basic", "basic", 2),
    Level(3, "Advanced", "advanced", 3),
    Level(4, "Expert", "expert", 4),
]
CONFIG = TemplateConfig()  # 80 below 3 years, 95 from 3 years on


def answers_for(pillar_id, *buckets):
    """One Answer per value; ``buckets[i]`` holds the values for LEVELS[i]."""
    out = []
    item_id = pillar_id * 100
    for level, values in zip(LEVELS, buckets):
        for value in values:
            item_id += 1
            out.append(Answer(item_id, pillar_id, level.id, level.order, value))
    return out


def result_with_level(pillar_id, level_id):
    return PillarResult(pillar_id, f"P{pillar_id}", level_id, None, "Advanced")


def test_answer_scores():
    assert answer_score(FULL) == 5
    assert answer_score(PARTIAL) == 2
    assert answer_score(NOT_MET) == 0
    assert answer_score(None) == 0


def test_threshold_switches_at_cutoff():
    assert applicable_threshold(2.99, CONFIG) == 80
    assert applicable_threshold(3.0, CONFIG) == 95
    assert applicable_threshold(0, TemplateConfig(tenure_years_cutoff=0)) == 95


def test_round_half_up_differs_from_bankers_rounding():
    assert round_half_up(0.125) == 0.13
    assert round(0.125, 2) == 0.12
    assert round_half_up(87.5) == 87.5
    assert round_half_up(200 / 3) == 66.67


def test_all_levels_reached():
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL, FULL], [FULL], [FULL, FULL], [FULL])

    result = compute_pillar_result(pillar, LEVELS, answers, 5, CONFIG)

    assert result.real_level_id == 4
    assert result.real_level_name == "Expert"
    assert [s.percentage for s in result.level_scores] == [100.0] * 4
    assert result.expected_level == "Advanced"


def test_walk_stops_at_first_gap():
    pillar = Pillar(1, "Safety", 1)
    # level 2 falls short, level 3 would pass but is never evaluated
    answers = answers_for(1, [FULL, FULL], [FULL, NOT_MET], [FULL, FULL], [FULL, FULL])

    result = compute_pillar_result(pillar, LEVELS, answers, 5, CONFIG)

    assert result.real_level_id == 1
    assert result.level_scores == (LevelScore(1, 1, 100.0), LevelScore(2, 2, 50.0))


def test_lowest_level_not_reached():
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL, PARTIAL])

    result = compute_pillar_result(pillar, LEVELS, answers, 5, CONFIG)

    assert result.real_level_id is None
    assert result.real_level_name is None
    assert result.level_scores == (LevelScore(1, 1, 70.0),)


def test_level_without_items_scores_zero_and_stops():
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL], [], [FULL])

    result = compute_pillar_result(pillar, LEVELS, answers, 5, CONFIG)

    assert result.real_level_id == 1
    assert result.level_scores == (LevelScore(1, 1, 100.0), LevelScore(2, 2, 0.0))


def test_unanswered_counts_like_not_met():
    pillar = Pillar(1, "Safety", 1)
    unanswered = answers_for(1, [FULL, FULL], [FULL, None])
    not_met = answers_for(1, [FULL, FULL], [FULL, NOT_MET])

    assert compute_pillar_result(pillar, LEVELS, unanswered, 5, CONFIG) == compute_pillar_result(
        pillar, LEVELS, not_met, 5, CONFIG
    )


def test_percentage_equal_to_threshold_reaches_level():
    config = TemplateConfig(low_tenure_threshold=50, high_tenure_threshold=100)
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL, NOT_MET])

    assert compute_pillar_result(pillar, LEVELS, answers, 1, config).real_level_id == 1
    # the same answers fall short once tenure reaches the cutoff
    assert compute_pillar_result(pillar, LEVELS, answers, 3, config).real_level_id is None


def test_levels_are_walked_in_order_regardless_of_input_order():
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL], [FULL], [NOT_MET])

    result = compute_pillar_result(pillar, list(reversed(LEVELS)), answers, 5, CONFIG)

    assert result.real_level_id == 2
    assert [s.level_order for s in result.level_scores] == [1, 2, 3]


def test_answers_of_other_pillars_are_ignored():
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL]) + answers_for(2, [NOT_MET, NOT_MET])

    result = compute_pillar_result(pillar, LEVELS, answers, 5, CONFIG)

    assert result.level_scores[0] == LevelScore(1, 1, 100.0)


def test_all_unanswered_level_matches_all_not_met():
    pillar = Pillar(1, "Safety", 1)
    unanswered = answers_for(1, [None, None, None])
    not_met = answers_for(1, [NOT_MET, NOT_MET, NOT_MET])

    result = compute_pillar_result(pillar, LEVELS, unanswered, 5, CONFIG)

    assert result == compute_pillar_result(pillar, LEVELS, not_met, 5, CONFIG)
    assert result.real_level_id is None
    assert result.level_scores == (LevelScore(1, 1, 0.0),)


def test_answer_for_unknown_level_of_same_pillar_is_ignored():
    pillar = Pillar(1, "Safety", 1)
    answers = answers_for(1, [FULL], [FULL], [NOT_MET])
    stray = Answer(999, 1, 99, 3, FULL)  # level 99 is not part of the template

    result = compute_pillar_result(pillar, LEVELS, answers + [stray], 5, CONFIG)

    assert result == compute_pillar_result(pillar, LEVELS, answers, 5, CONFIG)
    assert result.real_level_id == 2


def test_potential_not_evaluable_below_half_a_year():
    results = [result_with_level(1, 4), result_with_level(2, 4)]

    assert classify_potential(results, LEVELS, 0.49) == PotentialLabel.NOT_EVALUABLE
    assert classify_potential(results, LEVELS, 0.5) == PotentialLabel.HIGH_POTENTIAL


def test_potential_not_evaluable_without_pillars():
    assert classify_potential([], LEVELS, 10) == PotentialLabel.NOT_EVALUABLE


@pytest.mark.parametrize(
    "real_levels, expected",
    [
        ([4, 4, 4, 4, 4], PotentialLabel.HIGH_POTENTIAL),
        ([3, 4, 4, 4, 4], PotentialLabel.PROMOTABLE),
        ([3, 3, 3, 1, None], PotentialLabel.LATERAL),
        ([4, 3, 2, 1, None], PotentialLabel.STATIC),
        ([None, None, None, None, None], PotentialLabel.STATIC),
    ],
)
def test_potential_labels(real_levels, expected):
    results = [result_with_level(i, lvl) for i, lvl in enumerate(real_levels, start=1)]

    assert classify_potential(results, LEVELS, 5) == expected


def test_potential_tiers_follow_level_position_not_order_value():
    levels = [Level(i, f"L{i}", f"l{i}", i * 10) for i in range(1, 5)]
    results = [result_with_level(1, 3), result_with_level(2, 4)]

    assert classify_potential(results, levels, 5) == PotentialLabel.PROMOTABLE


def test_potential_with_fewer_levels_uses_fallback_orders():
    three = LEVELS[:3]
    results = [result_with_level(1, 3), result_with_level(2, 3)]
    assert classify_potential(results, three, 5) == PotentialLabel.PROMOTABLE

    two = LEVELS[:2]
    results = [result_with_level(1, 2), result_with_level(2, 2)]
    assert classify_potential(results, two, 5) == PotentialLabel.STATIC


def test_global_status_is_mean_of_pillar_scores():
    full = tuple(LevelScore(i, i, 100.0) for i in range(1, 5))
    half = (LevelScore(1, 1, 100.0), LevelScore(2, 2, 0.0))
    results = [
        PillarResult(1, "A", 4, "Expert", "Advanced", full),
        PillarResult(2, "B", 1, "Initial", "Advanced", half),
        PillarResult(3, "C", None, None, "Advanced", (LevelScore(1, 1, 50.0),)),
    ]

    assert compute_global_status(results) == 66.67
    assert compute_global_status([]) == 0.0


@pytest.mark.parametrize(
    "status, band",
    [
        (0, NineBoxBand.LOW),
        (39.99, NineBoxBand.LOW),
        (40, NineBoxBand.MEDIUM),
        (70, NineBoxBand.MEDIUM),
        (70.01, NineBoxBand.HIGH),
        (100, NineBoxBand.HIGH),
    ],
)
def test_performance_band_boundaries(status, band):
    assert performance_band(status) == band


@pytest.mark.parametrize(
    "potential, band",
    [
        (PotentialLabel.HIGH_POTENTIAL, NineBoxBand.HIGH),
        (PotentialLabel.PROMOTABLE, NineBoxBand.HIGH),
        ("Promotable", NineBoxBand.HIGH),
        (PotentialLabel.LATERAL, NineBoxBand.MEDIUM),
        (PotentialLabel.STATIC, NineBoxBand.LOW),
        (PotentialLabel.NOT_EVALUABLE, NineBoxBand.LOW),
        ("Static", NineBoxBand.LOW),
        ("Not evaluable", NineBoxBand.LOW),
        (None, NineBoxBand.LOW),
        ("Something else", NineBoxBand.LOW),
    ],
)
def test_potential_band(potential, band):
    assert potential_band(potential) == band


def test_map_ninebox():
    assert map_ninebox(85, PotentialLabel.LATERAL) == (NineBoxBand.HIGH, NineBoxBand.MEDIUM)


def test_compute_results_end_to_end():
    pillars = [Pillar(1, "Safety", 1), Pillar(2, "Quality", 2)]
    answers = answers_for(1, [FULL, FULL], [FULL, FULL], [FULL, FULL], [FULL, FULL])
    answers += answers_for(2, [FULL, FULL], [FULL, PARTIAL])

    result = compute_results(answers, pillars, LEVELS, 5, CONFIG)

    assert [r.real_level_id for r in result.pillar_results] == [4, 1]
    assert result.global_status_pct == 92.5  # (100 + (100 + 70) / 2) / 2
    assert result.global_potential == PotentialLabel.STATIC
    assert result.ninebox_performance == NineBoxBand.HIGH
    assert result.ninebox_potential == NineBoxBand.LOW


def test_compute_results_gap_above_basic_with_long_tenure():
    answers = answers_for(1, [FULL], [FULL], [PARTIAL], [NOT_MET])

    result = compute_results(answers, [Pillar(1, "Safety", 1)], LEVELS, 5, CONFIG)

    (pillar,) = result.pillar_results
    assert pillar.real_level_id == 2
    assert [s.percentage for s in pillar.level_scores] == [100.0, 100.0, 40.0]
    assert result.global_status_pct == 80.0
    assert result.global_potential == PotentialLabel.STATIC


def test_compute_results_short_tenure_uses_low_threshold():
    answers = answers_for(1, [FULL], [FULL], [FULL], [PARTIAL])

    result = compute_results(answers, [Pillar(1, "Safety", 1)], LEVELS, 2, CONFIG)

    (pillar,) = result.pillar_results
    assert pillar.real_level_id == 3
    assert result.global_status_pct == 85.0  # (100 + 100 + 100 + 40) / 4
    assert result.global_potential == PotentialLabel.PROMOTABLE


def test_compute_results_all_fully_met_is_high_potential():
    pillars = [Pillar(1, "Safety", 1), Pillar(2, "Quality", 2)]
    answers = answers_for(1, [FULL, FULL], [FULL], [FULL], [FULL, FULL])
    answers += answers_for(2, [FULL], [FULL, FULL], [FULL], [FULL])

    result = compute_results(answers, pillars, LEVELS, 5, CONFIG)

    assert [r.real_level_name for r in result.pillar_results] == ["Expert", "Expert"]
    assert result.global_status_pct == 100.0
    assert result.global_potential == PotentialLabel.HIGH_POTENTIAL
    assert (result.ninebox_performance, result.ninebox_potential) == (
        NineBoxBand.HIGH,
        NineBoxBand.HIGH,
    )


def test_compute_results_is_deterministic():
    pillars = [Pillar(1, "Safety", 1)]
    answers = answers_for(1, [FULL, PARTIAL], [NOT_MET])

    assert compute_results(answers, pillars, LEVELS, 2, CONFIG) == compute_results(
        list(reversed(answers)), pillars, LEVELS, 2, CONFIG
    )


def test_compute_results_degenerate_inputs():
    empty = compute_results([], [], LEVELS, 5, CONFIG)
    assert empty.pillar_results == ()
    assert empty.global_potential == PotentialLabel.NOT_EVALUABLE
    assert empty.global_status_pct == 0.0
    assert empty.ninebox_performance == NineBoxBand.LOW
    assert empty.ninebox_potential == NineBoxBand.LOW

    no_levels = compute_results([], [Pillar(1, "Safety", 1)], [], 5, CONFIG)
    assert no_levels.pillar_results[0].level_scores == ()
    assert no_levels.pillar_results[0].real_level_id is None
    assert no_levels.global_status_pct == 0.0
    assert no_levels.global_potential == PotentialLabel.STATIC


def test_compute_results_rejects_negative_tenure():
    with pytest.raises(ValueError):
        compute_results([], [], LEVELS, -0.1, CONFIG)


def test_template_config_validation():
    with pytest.raises(ValueError):
        TemplateConfig(low_tenure_threshold=101)
    with pytest.raises(ValueError):
        TemplateConfig(high_tenure_threshold=-1)
    with pytest.raises(ValueError):
        TemplateConfig(tenure_years_cutoff=-1)
