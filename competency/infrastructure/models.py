from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class TemplateORM(Base):
    __tablename__ = "templates"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    collective: Mapped[str | None] = mapped_column(String(200), nullable=True)
    default_expected_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    low_tenure_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    high_tenure_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    tenure_years_cutoff: Mapped[float | None] = mapped_column(Float, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "(low_tenure_threshold IS NULL OR (low_tenure_threshold BETWEEN 0 AND 100)) "
            "AND (high_tenure_threshold IS NULL OR (high_tenure_threshold BETWEEN 0 AND 100)) "
            "AND (tenure_years_cutoff IS NULL OR tenure_years_cutoff >= 0)",
            name="ck_template_thresholds",
        ),
    )

    levels: Mapped[list[LevelORM]] = relationship(
        back_populates="template", cascade="all, delete", order_by="LevelORM.order"
    )
    pillars: Mapped[list[PillarORM]] = relationship(
        back_populates="template", cascade="all, delete", order_by="PillarORM.order"
    )


class LevelORM(Base):
    __tablename__ = "levels"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    order: Mapped[int] = mapped_column("order", Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("template_id", "order", name="uq_level_template_order"),
        CheckConstraint('"order" >= 1', name="ck_level_order"),
    )

    template: Mapped[TemplateORM] = relationship(back_populates="levels")


class PillarORM(Base):
    __tablename__ = "pillars"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column("order", Integer, nullable=False)

    __table_args__ = (UniqueConstraint("template_id", "order", name="uq_pillar_template_order"),)

    template: Mapped[TemplateORM] = relationship(back_populates="pillars")
    items: Mapped[list[ItemORM]] = relationship(back_populates="pillar", cascade="all, delete")


class ItemORM(Base):
    __tablename__ = "items"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    pillar_id: Mapped[int] = mapped_column(
        ForeignKey("pillars.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level_id: Mapped[int] = mapped_column(
        ForeignKey("levels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    criterion: Mapped[str] = mapped_column(String(20), default="subjective", nullable=False)
    expectation: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column("order", Integer, default=0, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("criterion IN ('subjective', 'objective')", name="ck_item_criterion"),
    )

    pillar: Mapped[PillarORM] = relationship(back_populates="items")
    level: Mapped[LevelORM] = relationship()


class WorkerORM(Base):
    __tablename__ = "workers"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(150), nullable=True)
    center: Mapped[str | None] = mapped_column(String(150), nullable=True)
    area: Mapped[str | None] = mapped_column(String(150), nullable=True)
    collective: Mapped[str | None] = mapped_column(String(150), nullable=True)
    job_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    assessments: Mapped[list[AssessmentORM]] = relationship(back_populates="worker")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AssessmentORM(Base):
    __tablename__ = "assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    worker_id: Mapped[int] = mapped_column(
        ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    template_id: Mapped[int] = mapped_column(
        ForeignKey("templates.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    evaluator: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assessment_date: Mapped[date] = mapped_column(Date, nullable=False)
    tenure_years: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    global_potential: Mapped[str | None] = mapped_column(String(30), nullable=True)
    global_status_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'in_progress', 'completed', 'validated')",
            name="ck_assessment_status",
        ),
        CheckConstraint("tenure_years >= 0", name="ck_assessment_tenure"),
    )

    worker: Mapped[WorkerORM] = relationship(back_populates="assessments")
    template: Mapped[TemplateORM] = relationship()
    answers: Mapped[list[AnswerORM]] = relationship(
        back_populates="assessment", cascade="all, delete-orphan"
    )
    pillar_results: Mapped[list[PillarResultORM]] = relationship(
        back_populates="assessment", cascade="all, delete-orphan"
    )
    action_plans: Mapped[list[ActionPlanORM]] = relationship(
        back_populates="assessment", cascade="all, delete-orphan"
    )


class AnswerORM(Base):
    __tablename__ = "answers"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value: Mapped[str | None] = mapped_column(String(20), nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("assessment_id", "item_id", name="uq_answer_assessment_item"),
        CheckConstraint(
            "value IS NULL OR value IN ('fully_met', 'partially_met', 'not_met')",
            name="ck_answer_value",
        ),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="answers")
    item: Mapped[ItemORM] = relationship()


class PillarResultORM(Base):
    __tablename__ = "pillar_results"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pillar_id: Mapped[int] = mapped_column(
        ForeignKey("pillars.id", ondelete="CASCADE"), nullable=False, index=True
    )
    real_level_id: Mapped[int | None] = mapped_column(
        ForeignKey("levels.id", ondelete="SET NULL"), nullable=True
    )
    expected_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("assessment_id", "pillar_id", name="uq_result_assessment_pillar"),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="pillar_results")
    pillar: Mapped[PillarORM] = relationship()
    real_level: Mapped[LevelORM | None] = relationship()
    level_scores: Mapped[list[PillarLevelScoreORM]] = relationship(
        back_populates="pillar_result",
        cascade="all, delete-orphan",
        order_by="PillarLevelScoreORM.level_order",
    )


class PillarLevelScoreORM(Base):
    __tablename__ = "pillar_level_scores"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    pillar_result_id: Mapped[int] = mapped_column(
        ForeignKey("pillar_results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level_id: Mapped[int] = mapped_column(
        ForeignKey("levels.id", ondelete="CASCADE"), nullable=False
    )
    level_order: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("pillar_result_id", "level_id", name="uq_level_score_result_level"),
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_level_score_range"),
    )

    pillar_result: Mapped[PillarResultORM] = relationship(back_populates="level_scores")


class ActionPlanORM(Base):
    __tablename__ = "action_plans"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pillar_id: Mapped[int | None] = mapped_column(
        ForeignKey("pillars.id", ondelete="SET NULL"), nullable=True
    )
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    follow_up_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed')", name="ck_action_plan_status"
        ),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="action_plans")
    pillar: Mapped[PillarORM | None] = relationship()


class NineBoxCellORM(Base):
    __tablename__ = "ninebox_cells"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    potential: Mapped[str] = mapped_column(String(10), nullable=False)
    performance: Mapped[str] = mapped_column(String(10), nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    recommendation: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        UniqueConstraint("potential", "performance", name="uq_ninebox_cell"),
        CheckConstraint(
            "potential IN ('low', 'medium', 'high') AND performance IN ('low', 'medium', 'high')",
            name="ck_ninebox_bands",
        ),
    )
