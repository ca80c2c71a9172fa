"""
Competency scoring engine.

Turns one assessment's answers into:

- the real competency level of every pillar,
- the global potential classification,
- the global status percentage,
- the 9-box (performance, potential) cell.

Everything here is a pure function of its arguments. Loading inputs and
persisting the returned ``GlobalResult`` is the job of
``competency.domain.services.ScoringService``.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import assert_never

from .models import (
    Answer,
    AnswerValue,
    GlobalResult,
    Level,
    LevelScore,
    NineBoxBand,
    Pillar,
    PillarResult,
    PotentialLabel,
    TemplateConfig,
)

logger = logging.getLogger(__name__)

MAX_ITEM_SCORE = 5
MIN_EVALUABLE_TENURE_YEARS = 0.5
# Orders used when a template defines fewer than three or four levels.
FALLBACK_ADVANCED_ORDER = 3
FALLBACK_EXPERT_ORDER = 4
LATERAL_FRACTION = 0.6
LOW_PERFORMANCE_BELOW = 40
HIGH_PERFORMANCE_ABOVE = 70


def answer_score(value: AnswerValue | None) -> int:
    """Numeric score of one answer; unanswered items score like ``not_met``."""
    match value:
        case AnswerValue.FULLY_MET:
            return 5
        case AnswerValue.PARTIALLY_MET:
            return 2
        case AnswerValue.NOT_MET | None:
            return 0
        case _:
            assert_never(value)


def applicable_threshold(tenure_years: float, config: TemplateConfig) -> float:
    if tenure_years < config.tenure_years_cutoff:
        return config.low_tenure_threshold
    return config.high_tenure_threshold


def round_half_up(value: float, places: int = 2) -> float:
    """Round like ``Math.round(value * 10**places) / 10**places``."""
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def _sorted_levels(levels: Iterable[Level]) -> list[Level]:
    return sorted(levels, key=lambda level: level.order)


def compute_pillar_result(
    pillar: Pillar,
    levels: Sequence[Level],
    answers: Iterable[Answer],
    tenure_years: float,
    config: TemplateConfig,
) -> PillarResult:
    """
    Walk the levels in ascending order and find the pillar's real level.

    A level counts as reached when its percentage is at or above the tenure
    threshold. The walk stops at the first level that falls short or that has
    no answers at all; levels above that point are never evaluated. The stopping
    level is still recorded in ``level_scores``.

    An all-unanswered level scores 0% and stops the walk exactly like an
    all-``not_met`` level.
    """
    threshold = applicable_threshold(tenure_years, config)

    by_level: dict[int, list[Answer]] = defaultdict(list)
    for answer in answers:
        if answer.pillar_id == pillar.id:
            by_level[answer.level_id].append(answer)

    real_level: Level | None = None
    scores: list[LevelScore] = []

    for level in _sorted_levels(levels):
        bucket = by_level.get(level.id, [])
        if not bucket:
            scores.append(LevelScore(level.id, level.order, 0.0))
            break

        total = sum(answer_score(a.value) for a in bucket)
        percentage = total / (len(bucket) * MAX_ITEM_SCORE) * 100
        scores.append(LevelScore(level.id, level.order, percentage))

        if percentage >= threshold:
            real_level = level
        else:
            break

    return PillarResult(
        pillar_id=pillar.id,
        pillar_name=pillar.name,
        real_level_id=real_level.id if real_level else None,
        real_level_name=real_level.name if real_level else None,
        expected_level=config.default_expected_level,
        level_scores=tuple(scores),
    )


def classify_potential(
    pillar_results: Sequence[PillarResult],
    levels: Sequence[Level],
    tenure_years: float,
) -> PotentialLabel:
    """Global potential from how many pillars reached the advanced and expert tiers."""
    if tenure_years < MIN_EVALUABLE_TENURE_YEARS:
        return PotentialLabel.NOT_EVALUABLE

    total_pillars = len(pillar_results)
    if total_pillars == 0:
        return PotentialLabel.NOT_EVALUABLE

    ordered = _sorted_levels(levels)
    advanced_order = ordered[2].order if len(ordered) >= 3 else FALLBACK_ADVANCED_ORDER
    expert_order = ordered[3].order if len(ordered) >= 4 else FALLBACK_EXPERT_ORDER
    order_by_id = {level.id: level.order for level in levels}

    advanced_or_above = 0
    expert_or_above = 0
    for result in pillar_results:
        if result.real_level_id is None:
            continue
        order = order_by_id.get(result.real_level_id)
        if order is None:
            continue
        if order >= advanced_order:
            advanced_or_above += 1
        if order >= expert_order:
            expert_or_above += 1

    fraction_advanced = advanced_or_above / total_pillars
    fraction_expert = expert_or_above / total_pillars

    if fraction_expert == 1:
        return PotentialLabel.HIGH_POTENTIAL
    if fraction_advanced == 1:
        return PotentialLabel.PROMOTABLE
    if fraction_advanced >= LATERAL_FRACTION:
        return PotentialLabel.LATERAL
    return PotentialLabel.STATIC


def pillar_score(result: PillarResult) -> float:
    """Mean percentage over every level visited, including the one that stopped the walk."""
    if not result.level_scores:
        return 0.0
    return sum(s.percentage for s in result.level_scores) / len(result.level_scores)


def compute_global_status(pillar_results: Sequence[PillarResult]) -> float:
    if not pillar_results:
        return 0.0
    mean = sum(pillar_score(r) for r in pillar_results) / len(pillar_results)
    return round_half_up(mean, 2)


def performance_band(global_status_pct: float) -> NineBoxBand:
    if global_status_pct < LOW_PERFORMANCE_BELOW:
        return NineBoxBand.LOW
    if global_status_pct <= HIGH_PERFORMANCE_ABOVE:
        return NineBoxBand.MEDIUM
    return NineBoxBand.HIGH


def potential_band(potential: PotentialLabel | str | None) -> NineBoxBand:
    match potential:
        case PotentialLabel.PROMOTABLE | PotentialLabel.HIGH_POTENTIAL:
            return NineBoxBand.HIGH
        case PotentialLabel.LATERAL:
            return NineBoxBand.MEDIUM
        case PotentialLabel.STATIC | PotentialLabel.NOT_EVALUABLE:
            return NineBoxBand.LOW
        case _:
            # raw strings read back from storage
            return NineBoxBand.LOW


def map_ninebox(
    global_status_pct: float, potential: PotentialLabel | str | None
) -> tuple[NineBoxBand, NineBoxBand]:
    """Return the (performance, potential) 9-box bands."""
    return performance_band(global_status_pct), potential_band(potential)


def compute_results(
    answers: Iterable[Answer],
    pillars: Sequence[Pillar],
    levels: Sequence[Level],
    tenure_years: float,
    config: TemplateConfig,
) -> GlobalResult:
    """
    Compute the full result set for one assessment.

    Answers that reference a pillar or level outside ``pillars``/``levels``
    match no bucket and are ignored. Degenerate inputs (no pillars, no levels,
    no answers) produce defined values rather than errors.

    Raises:
        ValueError: if ``tenure_years`` is negative
    """
    if tenure_years < 0:
        raise ValueError("tenure_years cannot be negative.")

    answers = list(answers)
    pillar_results = tuple(
        compute_pillar_result(pillar, levels, answers, tenure_years, config) for pillar in pillars
    )
    potential = classify_potential(pillar_results, levels, tenure_years)
    status_pct = compute_global_status(pillar_results)
    performance, potential_cell = map_ninebox(status_pct, potential)

    logger.debug(
        "Scored %d answers over %d pillars: potential=%s status=%.2f",
        len(answers),
        len(pillar_results),
        potential,
        status_pct,
    )
    return GlobalResult(
        pillar_results=pillar_results,
        global_potential=potential,
        global_status_pct=status_pct,
        ninebox_performance=performance,
        ninebox_potential=potential_cell,
    )
