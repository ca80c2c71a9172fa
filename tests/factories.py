"""Builders for templates and assessments used across the test modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.orm import Session

from competency.application import api
from competency.utils.seed import DEFAULT_LEVELS


@dataclass
class TemplateFixture:
    template_id: int
    level_ids: list[int]  # ascending order
    pillar_ids: list[int]
    items: dict[tuple[int, int], list[int]] = field(default_factory=dict)

    def bucket(self, pillar_index: int, level_index: int) -> list[int]:
        return self.items[(self.pillar_ids[pillar_index], self.level_ids[level_index])]


def build_template(
    session: Session,
    pillar_names: tuple[str, ...] = ("Safety", "Quality"),
    items_per_level: int = 2,
    **template_fields,
) -> TemplateFixture:
    name = template_fields.pop("name", "Operators")
    template = api.create_template(session, name, **template_fields)
    level_ids = [
        api.add_level(session, template.id, name, code, order).id
        for name, code, order in DEFAULT_LEVELS
    ]
    pillar_ids = [
        api.add_pillar(session, template.id, name, order).id
        for order, name in enumerate(pillar_names, start=1)
    ]
    fixture = TemplateFixture(template.id, level_ids, pillar_ids)
    for pillar_id in pillar_ids:
        for level_id in level_ids:
            fixture.items[(pillar_id, level_id)] = [
                api.add_item(session, pillar_id, level_id, f"Item {n}").id
                for n in range(1, items_per_level + 1)
            ]
    return fixture


def open_assessment(
    session: Session,
    fixture: TemplateFixture,
    tenure_years: float = 5.0,
    assessment_date: date = date(2025, 6, 1),
    **worker_fields,
) -> int:
    worker_fields.setdefault("first_name", "Ana")
    worker_fields.setdefault("last_name", "Ruiz")
    worker = api.create_worker(session, **worker_fields)
    assessment = api.create_assessment(
        session,
        worker_id=worker.id,
        template_id=fixture.template_id,
        assessment_date=assessment_date,
        tenure_years=tenure_years,
    )
    return assessment.id


def answer_bucket(
    session: Session,
    assessment_id: int,
    fixture: TemplateFixture,
    pillar_index: int,
    level_index: int,
    *values: str | None,
) -> None:
    for item_id, value in zip(fixture.bucket(pillar_index, level_index), values, strict=True):
        api.record_answer(session, assessment_id, item_id, value)


def answer_levels(
    session: Session,
    assessment_id: int,
    fixture: TemplateFixture,
    pillar_index: int,
    levels: int,
    value: str = "fully_met",
) -> None:
    """Answer every item of the first ``levels`` levels of one pillar with ``value``."""
    for level_index in range(levels):
        bucket = fixture.bucket(pillar_index, level_index)
        values = [value] * len(bucket)
        answer_bucket(session, assessment_id, fixture, pillar_index, level_index, *values)
