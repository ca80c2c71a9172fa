"""
Repository classes for the competency assessment data access layer.

Every repository derives from the generic ``BaseRepository`` and logs its
operations through ``log_database_operation``. Import them from here:

    from competency.infrastructure.repositories import AssessmentRepo, ItemRepo
"""

from __future__ import annotations

from .repositories_assessment import (
    ActionPlanRepo,
    AnswerRepo,
    AssessmentRepo,
    PillarResultRepo,
)
from .repositories_ninebox import NineBoxCellRepo
from .repositories_template import ItemRepo, LevelRepo, PillarRepo, TemplateRepo
from .repositories_worker import WorkerRepo

__all__ = [
    "ActionPlanRepo",
    "AnswerRepo",
    "AssessmentRepo",
    "ItemRepo",
    "LevelRepo",
    "NineBoxCellRepo",
    "PillarRepo",
    "PillarResultRepo",
    "TemplateRepo",
    "WorkerRepo",
]
