"""
Cross-sectional reports over persisted assessment results.

Reports read what ``ScoringService.compute`` stored and never run the engine
again; the 9-box report only re-derives each worker's cell from the stored
status and potential with ``map_ninebox``. Apart from the dashboard, every
report looks at the latest completed assessment of each worker.

Tabular reports are assembled with pandas and returned as plain records so
the web layer can serialise them directly.
"""

from __future__ import annotations

from typing import Any

import pandas as pd
from sqlalchemy.orm import Session

from ..domain.models import PotentialLabel
from ..domain.scoring import map_ninebox
from ..infrastructure.exceptions import CompetencyAssessmentError, log_error_details
from ..infrastructure.logging import get_logger, log_operation
from ..infrastructure.models import AssessmentORM, LevelORM, PillarORM, WorkerORM
from ..infrastructure.repositories import (
    AssessmentRepo,
    LevelRepo,
    NineBoxCellRepo,
    PillarRepo,
    WorkerRepo,
)
from .api import action_plan_dict, assessment_summary, pillar_results_dicts

logger = get_logger(__name__)

NO_LEVEL = "No level"
MISSING = "-"
UNKNOWN_WORKER = "Unknown"

WORKER_COLUMNS = [
    "assessment_id",
    "worker_id",
    "name",
    "center",
    "area",
    "collective",
    "job_title",
    "assessment_date",
    "potential",
    "status_pct",
]


def display_name(worker: WorkerORM | None) -> str:
    if worker is None:
        return UNKNOWN_WORKER
    return f"{worker.last_name}, {worker.first_name}"


def _records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """DataFrame rows as dicts with NaN replaced by None."""
    if df.empty:
        return []
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")


def _apply_filters(df: pd.DataFrame, **filters: str | None) -> pd.DataFrame:
    for column, value in filters.items():
        if value:
            df = df[df[column] == value]
    return df


def latest_completed_frame(session: Session) -> pd.DataFrame:
    """One row per worker holding their latest completed assessment."""
    rows = []
    for a in AssessmentRepo(session).latest_completed_per_worker():
        w = a.worker
        rows.append(
            {
                "assessment_id": a.id,
                "worker_id": a.worker_id,
                "name": display_name(w),
                "center": (w.center if w else None) or MISSING,
                "area": (w.area if w else None) or MISSING,
                "collective": (w.collective if w else None) or MISSING,
                "job_title": (w.job_title if w else None) or MISSING,
                "assessment_date": a.assessment_date,
                "potential": a.global_potential,
                "status_pct": a.global_status_pct,
            }
        )
    return pd.DataFrame(rows, columns=WORKER_COLUMNS)


def _pillar_results_frame(session: Session, assessment_ids: list[int]) -> pd.DataFrame:
    """Real level of every pillar for the given assessments."""
    columns = ["assessment_id", "pillar_id", "pillar", "pillar_order", "level", "level_order",
               "expected_level"]
    if not assessment_ids:
        return pd.DataFrame(columns=columns)

    assessments = (
        session.query(AssessmentORM).filter(AssessmentORM.id.in_(assessment_ids)).all()
    )
    pillars = {p.id: p for p in session.query(PillarORM).all()}
    levels = {lv.id: lv for lv in session.query(LevelORM).all()}

    rows = []
    for a in assessments:
        for pr in a.pillar_results:
            pillar = pillars.get(pr.pillar_id)
            level = levels.get(pr.real_level_id) if pr.real_level_id else None
            rows.append(
                {
                    "assessment_id": a.id,
                    "pillar_id": pr.pillar_id,
                    "pillar": pillar.name if pillar else f"Pillar {pr.pillar_id}",
                    "pillar_order": pillar.order if pillar else 0,
                    "level": level.name if level else NO_LEVEL,
                    "level_order": level.order if level else 0,
                    "expected_level": pr.expected_level or MISSING,
                }
            )
    return pd.DataFrame(rows, columns=columns)


@log_operation("dashboard_summary")
def dashboard_summary(session: Session) -> dict[str, Any]:
    """
    Headline numbers over every assessment regardless of status.

    ``mean_status_pct`` averages assessments that have a stored status and
    is None when none do.
    """
    try:
        rows = session.query(
            AssessmentORM.status,
            AssessmentORM.global_potential,
            AssessmentORM.global_status_pct,
            WorkerORM.center,
        ).join(WorkerORM, WorkerORM.id == AssessmentORM.worker_id)
        df = pd.DataFrame(
            [tuple(r) for r in rows.all()],
            columns=["status", "potential", "status_pct", "center"],
        )

        with_status = df.dropna(subset=["status_pct"])
        mean_status = float(with_status["status_pct"].mean()) if not with_status.empty else None

        by_center = []
        centered = df.dropna(subset=["center"])
        for center, group in centered.groupby("center", sort=True):
            scored = group["status_pct"].dropna()
            by_center.append(
                {
                    "center": center,
                    "total": int(len(group)),
                    "completed": int(len(scored)),
                    "mean_status_pct": float(scored.mean()) if len(scored) else 0.0,
                }
            )

        potential_counts = df["potential"].dropna().value_counts()
        return {
            "total": int(len(df)),
            "pending": int(df["status"].isin(["draft", "in_progress"]).sum()),
            "completed": int(df["status"].isin(["completed", "validated"]).sum()),
            "mean_status_pct": mean_status,
            "potential_distribution": {str(k): int(v) for k, v in potential_counts.items()},
            "by_center": by_center,
        }
    except Exception as e:
        error_details = log_error_details(e, {"operation": "dashboard_summary"})
        logger.error("Failed to build dashboard summary", extra={"error_details": error_details})
        raise CompetencyAssessmentError(
            "Failed to build dashboard summary",
            details=error_details,
            user_message="Unable to load the dashboard. Please try again.",
        ) from e


def global_report_frame(
    session: Session,
    center: str | None = None,
    area: str | None = None,
    collective: str | None = None,
) -> pd.DataFrame:
    """
    Latest completed assessment per worker with one column per pillar name
    holding the real level name.

    Example:
        >>> df = global_report_frame(session, center="North plant")
        >>> df[["name", "potential", "status_pct"]].head()
    """
    base = _apply_filters(
        latest_completed_frame(session), center=center, area=area, collective=collective
    )
    results = _pillar_results_frame(session, base["assessment_id"].tolist())
    if results.empty:
        return base.reset_index(drop=True)

    pillar_names = (
        results.sort_values(["pillar_order", "pillar"]).drop_duplicates("pillar")["pillar"].tolist()
    )
    wide = results.pivot_table(
        index="assessment_id", columns="pillar", values="level", aggfunc="first"
    ).reindex(columns=pillar_names)
    wide.columns.name = None
    expected = results.groupby("assessment_id")["expected_level"].first().rename("expected_level")

    merged = base.merge(wide, left_on="assessment_id", right_index=True, how="left").merge(
        expected, left_on="assessment_id", right_index=True, how="left"
    )
    return merged.reset_index(drop=True)


@log_operation("global_report")
def global_report(
    session: Session,
    center: str | None = None,
    area: str | None = None,
    collective: str | None = None,
) -> dict[str, Any]:
    df = global_report_frame(session, center=center, area=area, collective=collective)
    pillar_columns = [
        c for c in df.columns if c not in WORKER_COLUMNS and c != "expected_level"
    ]

    rows = []
    for record in _records(df):
        rows.append(
            {
                **{k: record[k] for k in WORKER_COLUMNS},
                "potential": record["potential"] or MISSING,
                "expected_level": record.get("expected_level") or MISSING,
                "pillars": {p: record.get(p) or NO_LEVEL for p in pillar_columns},
            }
        )
    return {"rows": rows, "pillars": pillar_columns}


@log_operation("worker_report")
def worker_report(session: Session, worker_id: int) -> dict[str, Any]:
    """
    The worker's latest completed assessment with its template structure,
    answers, results and action plans. ``assessment`` is None when the worker
    has no completed assessment yet.
    """
    worker = WorkerRepo(session).get_by_id_required(worker_id)
    worker_info = {
        "id": worker.id,
        "name": display_name(worker),
        "job_title": worker.job_title,
        "center": worker.center,
        "area": worker.area,
        "collective": worker.collective,
        "job_start_date": worker.job_start_date,
    }

    completed = AssessmentRepo(session).list_completed_for_worker(worker_id)
    if not completed:
        return {"worker": worker_info, "assessment": None}

    latest = AssessmentRepo(session).get_detail(completed[-1].id)
    return {
        "worker": worker_info,
        "assessment": assessment_summary(latest),
        "pillars": [
            {"id": p.id, "name": p.name, "order": p.order}
            for p in PillarRepo(session).list_for_template(latest.template_id)
        ],
        "levels": [
            {"id": lv.id, "name": lv.name, "code": lv.code, "order": lv.order}
            for lv in LevelRepo(session).list_for_template(latest.template_id)
        ],
        "pillar_results": pillar_results_dicts(latest),
        "answers": [
            {"item_id": a.item_id, "value": a.value, "score": a.score}
            for a in sorted(latest.answers, key=lambda a: a.item_id)
        ],
        "action_plans": [action_plan_dict(p) for p in latest.action_plans],
    }


@log_operation("worker_evolution")
def worker_evolution(session: Session, worker_id: int) -> dict[str, Any]:
    """Status, potential and real level order per pillar across completed assessments."""
    worker = WorkerRepo(session).get_by_id_required(worker_id)
    completed = AssessmentRepo(session).list_completed_for_worker(worker_id)
    results = _pillar_results_frame(session, [a.id for a in completed])

    pillar_names: list[str] = []
    if not results.empty:
        pillar_names = (
            results.sort_values(["pillar_order", "pillar"])
            .drop_duplicates("pillar")["pillar"]
            .tolist()
        )

    points = []
    for a in completed:
        mine = results[results["assessment_id"] == a.id]
        points.append(
            {
                "assessment_id": a.id,
                "assessment_date": a.assessment_date,
                "status_pct": a.global_status_pct or 0.0,
                "potential": a.global_potential or MISSING,
                "levels": {
                    row.pillar: int(row.level_order) for row in mine.itertuples(index=False)
                },
            }
        )

    template_ids = {a.template_id for a in completed}
    reference_levels: dict[int, str] = {}
    for template_id in sorted(template_ids):
        for lv in LevelRepo(session).list_for_template(template_id):
            reference_levels.setdefault(lv.order, lv.name)

    return {
        "worker": {"id": worker.id, "name": display_name(worker)},
        "points": points,
        "pillars": pillar_names,
        "levels": [
            {"order": order, "name": name} for order, name in sorted(reference_levels.items())
        ],
    }


@log_operation("pillar_analysis")
def pillar_analysis(
    session: Session, center: str | None = None, area: str | None = None
) -> dict[str, Any]:
    """Per pillar name, how many workers sit at each real level."""
    base = _apply_filters(latest_completed_frame(session), center=center, area=area)
    results = _pillar_results_frame(session, base["assessment_id"].tolist())

    level_names = [NO_LEVEL]
    ordered_levels = session.query(LevelORM.name).order_by(LevelORM.order, LevelORM.id).all()
    for (name,) in ordered_levels:
        if name not in level_names:
            level_names.append(name)

    pillars = []
    if not results.empty:
        counts = pd.crosstab(results["pillar"], results["level"])
        order = (
            results.sort_values(["pillar_order", "pillar"]).drop_duplicates("pillar")["pillar"]
        )
        for pillar in order:
            row = counts.loc[pillar]
            levels = {str(level): int(n) for level, n in row.items() if n}
            pillars.append({"name": pillar, "levels": levels, "total": int(row.sum())})

    return {"pillars": pillars, "levels": level_names}


@log_operation("potential_analysis")
def potential_analysis(
    session: Session,
    center: str | None = None,
    area: str | None = None,
    collective: str | None = None,
) -> dict[str, Any]:
    """Potential label and status of every worker's latest completed assessment."""
    base = _apply_filters(
        latest_completed_frame(session), center=center, area=area, collective=collective
    )
    base = base.assign(
        potential=base["potential"].fillna(str(PotentialLabel.NOT_EVALUABLE)),
        status_pct=base["status_pct"].fillna(0.0),
    )

    distribution = base["potential"].value_counts()
    return {
        "workers": [
            {
                "worker_id": r["worker_id"],
                "name": r["name"],
                "center": r["center"],
                "area": r["area"],
                "collective": r["collective"],
                "potential": r["potential"],
                "status_pct": r["status_pct"],
            }
            for r in _records(base)
        ],
        "distribution": {str(k): int(v) for k, v in distribution.items()},
    }


@log_operation("ninebox_report")
def ninebox_report(
    session: Session, center: str | None = None, area: str | None = None
) -> dict[str, Any]:
    """
    Place every worker in the 9-box grid.

    Missing status counts as 0 and a missing potential as the lowest band.
    """
    base = _apply_filters(latest_completed_frame(session), center=center, area=area)

    workers = []
    for r in _records(base):
        status = r["status_pct"] or 0.0
        performance, potential = map_ninebox(status, r["potential"])
        workers.append(
            {
                "worker_id": r["worker_id"],
                "name": r["name"],
                "center": r["center"],
                "area": r["area"],
                "job_title": r["job_title"],
                "performance": str(performance),
                "potential": str(potential),
                "status_pct": status,
                "potential_label": r["potential"] or MISSING,
            }
        )

    cells = [
        {
            "potential": c.potential,
            "performance": c.performance,
            "label": c.label,
            "recommendation": c.recommendation,
            "color": c.color,
            "count": sum(
                1
                for w in workers
                if w["potential"] == c.potential and w["performance"] == c.performance
            ),
        }
        for c in NineBoxCellRepo(session).list_grid()
    ]
    return {"workers": workers, "cells": cells}
