from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class AnswerValue(StrEnum):
    FULLY_MET = "fully_met"
    PARTIALLY_MET = "partially_met"
    NOT_MET = "not_met"


class CriterionKind(StrEnum):
    SUBJECTIVE = "subjective"
    OBJECTIVE = "objective"


class PotentialLabel(StrEnum):
    HIGH_POTENTIAL = "High Potential"
    PROMOTABLE = "Promotable"
    LATERAL = "Lateral"
    STATIC = "Static"
    NOT_EVALUABLE = "Not evaluable"


class NineBoxBand(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class Level:
    id: int
    name: str
    code: str
    order: int  # 1 = lowest tier


@dataclass(frozen=True, slots=True)
class Pillar:
    id: int
    name: str
    order: int  # display order only


@dataclass(frozen=True, slots=True)
class Item:
    id: int
    pillar_id: int
    level_id: int
    text: str
    criterion: CriterionKind
    order: int
    expectation: str | None = None


@dataclass(frozen=True, slots=True)
class Answer:
    item_id: int
    pillar_id: int
    level_id: int
    level_order: int
    value: AnswerValue | None  # None = unanswered


@dataclass(frozen=True, slots=True)
class TemplateConfig:
    low_tenure_threshold: float = 80.0  # % below the cutoff
    high_tenure_threshold: float = 95.0  # % at or above the cutoff
    tenure_years_cutoff: float = 3.0
    default_expected_level: str = "Advanced"

    def __post_init__(self) -> None:
        for name in ("low_tenure_threshold", "high_tenure_threshold"):
            value = getattr(self, name)
            if not (0 <= value <= 100):
                raise ValueError(f"{name} must be between 0 and 100 inclusive, got {value}.")
        if self.tenure_years_cutoff < 0:
            raise ValueError("tenure_years_cutoff cannot be negative.")


@dataclass(frozen=True, slots=True)
class LevelScore:
    level_id: int
    level_order: int
    percentage: float


@dataclass(frozen=True, slots=True)
class PillarResult:
    pillar_id: int
    pillar_name: str
    real_level_id: int | None  # None = lowest level not reached
    real_level_name: str | None
    expected_level: str
    level_scores: tuple[LevelScore, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class GlobalResult:
    pillar_results: tuple[PillarResult, ...]
    global_potential: PotentialLabel
    global_status_pct: float
    ninebox_performance: NineBoxBand
    ninebox_potential: NineBoxBand
