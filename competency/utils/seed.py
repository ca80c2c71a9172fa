from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from competency.infrastructure.config import get_settings
from competency.infrastructure.logging import get_logger
from competency.infrastructure.models import Base, LevelORM, TemplateORM
from competency.infrastructure.repositories import NineBoxCellRepo

logger = get_logger(__name__)

# (potential, performance, label, recommendation, color)
DEFAULT_NINEBOX_CELLS: list[tuple[str, str, str, str, str]] = [
    ("high", "high", "Future leader", "Ready for promotion, strategic projects", "#22c55e"),
    ("high", "medium", "High potential", "Mentoring with directors", "#86efac"),
    ("high", "low", "Enigma", "Investigate barriers", "#fbbf24"),
    ("medium", "high", "Key professional", "Retain and recognise, lateral move", "#60a5fa"),
    ("medium", "medium", "Solid contributor", "Technical training, clear goals", "#93c5fd"),
    ("medium", "low", "Inconsistent", "Close supervision, improvement plan", "#fca5a5"),
    (
        "low",
        "high",
        "Technical expert",
        "Technical referent, avoid management overload",
        "#fbbf24",
    ),
    ("low", "medium", "In development", "Training, review in 6 months", "#f87171"),
    ("low", "low", "Urgent action", "Immediate action plan, consider relocation", "#ef4444"),
]

# (name, code, order)
DEFAULT_LEVELS: list[tuple[str, str, int]] = [
    ("Initial", "initial", 1),
    ("Basic", "basic", 2),
    ("Advanced", "advanced", 3),
    ("Expert", "expert", 4),
]


def initialise_database(engine: Engine) -> bool:
    """
    Ensure all ORM tables exist.

    Returns:
        True if every table already existed before this call, False if at least one table
        needed to be created.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    expected_tables = [table.name for table in Base.metadata.sorted_tables]
    already_exists = all(table in existing_tables for table in expected_tables)
    Base.metadata.create_all(engine)
    return already_exists


def seed_ninebox_defaults(session: Session) -> int:
    """Insert the default 9-box cells that are missing; configured cells are left alone."""
    repo = NineBoxCellRepo(session)
    created = 0
    for potential, performance, label, recommendation, color in DEFAULT_NINEBOX_CELLS:
        if repo.get_cell(potential, performance) is None:
            repo.create(
                potential=potential,
                performance=performance,
                label=label,
                recommendation=recommendation,
                color=color,
            )
            created += 1
    logger.info(f"Seeded {created} nine-box cells")
    return created


def seed_default_template(session: Session, name: str = "Default template") -> TemplateORM:
    """
    Create a template with the four standard levels and the configured thresholds.

    Pillars and items are organisation specific and are added afterwards.
    """
    scoring = get_settings().scoring
    template = TemplateORM(
        name=name,
        default_expected_level=scoring.default_expected_level,
        low_tenure_threshold=scoring.low_tenure_threshold,
        high_tenure_threshold=scoring.high_tenure_threshold,
        tenure_years_cutoff=scoring.tenure_years_cutoff,
    )
    session.add(template)
    session.flush()

    session.add_all(
        LevelORM(template_id=template.id, name=n, code=c, order=o) for n, c, o in DEFAULT_LEVELS
    )
    session.flush()
    logger.info(f"Seeded template '{name}' with ID {template.id}")
    return template
