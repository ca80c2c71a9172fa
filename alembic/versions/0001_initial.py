"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "templates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("collective", sa.String(length=200), nullable=True),
        sa.Column("default_expected_level", sa.String(length=50), nullable=True),
        sa.Column("low_tenure_threshold", sa.Float(), nullable=True),
        sa.Column("high_tenure_threshold", sa.Float(), nullable=True),
        sa.Column("tenure_years_cutoff", sa.Float(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "(low_tenure_threshold IS NULL OR (low_tenure_threshold BETWEEN 0 AND 100)) "
            "AND (high_tenure_threshold IS NULL OR (high_tenure_threshold BETWEEN 0 AND 100)) "
            "AND (tenure_years_cutoff IS NULL OR tenure_years_cutoff >= 0)",
            name="ck_template_thresholds",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "workers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(length=50), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("job_title", sa.String(length=150), nullable=True),
        sa.Column("center", sa.String(length=150), nullable=True),
        sa.Column("area", sa.String(length=150), nullable=True),
        sa.Column("collective", sa.String(length=150), nullable=True),
        sa.Column("job_start_date", sa.Date(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id"),
    )
    op.create_table(
        "ninebox_cells",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("potential", sa.String(length=10), nullable=False),
        sa.Column("performance", sa.String(length=10), nullable=False),
        sa.Column("label", sa.String(length=100), nullable=False),
        sa.Column("recommendation", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.CheckConstraint(
            "potential IN ('low', 'medium', 'high') AND performance IN ('low', 'medium', 'high')",
            name="ck_ninebox_bands",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("potential", "performance", name="uq_ninebox_cell"),
    )
    op.create_table(
        "levels",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.CheckConstraint('"order" >= 1', name="ck_level_order"),
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("template_id", "order", name="uq_level_template_order"),
    )
    op.create_index("ix_levels_template_id", "levels", ["template_id"])
    op.create_table(
        "pillars",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("template_id", "order", name="uq_pillar_template_order"),
    )
    op.create_index("ix_pillars_template_id", "pillars", ["template_id"])
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("pillar_id", sa.Integer(), nullable=False),
        sa.Column("level_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("criterion", sa.String(length=20), nullable=False),
        sa.Column("expectation", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("criterion IN ('subjective', 'objective')", name="ck_item_criterion"),
        sa.ForeignKeyConstraint(["pillar_id"], ["pillars.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["level_id"], ["levels.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_items_pillar_id", "items", ["pillar_id"])
    op.create_index("ix_items_level_id", "items", ["level_id"])
    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("worker_id", sa.Integer(), nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("evaluator", sa.String(length=255), nullable=True),
        sa.Column("assessment_date", sa.Date(), nullable=False),
        sa.Column("tenure_years", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("global_potential", sa.String(length=30), nullable=True),
        sa.Column("global_status_pct", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'in_progress', 'completed', 'validated')",
            name="ck_assessment_status",
        ),
        sa.CheckConstraint("tenure_years >= 0", name="ck_assessment_tenure"),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_assessments_worker_id", "assessments", ["worker_id"])
    op.create_index("ix_assessments_template_id", "assessments", ["template_id"])
    op.create_table(
        "answers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(length=20), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "value IS NULL OR value IN ('fully_met', 'partially_met', 'not_met')",
            name="ck_answer_value",
        ),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assessment_id", "item_id", name="uq_answer_assessment_item"),
    )
    op.create_index("ix_answers_assessment_id", "answers", ["assessment_id"])
    op.create_index("ix_answers_item_id", "answers", ["item_id"])
    op.create_table(
        "pillar_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("pillar_id", sa.Integer(), nullable=False),
        sa.Column("real_level_id", sa.Integer(), nullable=True),
        sa.Column("expected_level", sa.String(length=50), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["pillar_id"], ["pillars.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["real_level_id"], ["levels.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assessment_id", "pillar_id", name="uq_result_assessment_pillar"),
    )
    op.create_index("ix_pillar_results_assessment_id", "pillar_results", ["assessment_id"])
    op.create_index("ix_pillar_results_pillar_id", "pillar_results", ["pillar_id"])
    op.create_table(
        "pillar_level_scores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("pillar_result_id", sa.Integer(), nullable=False),
        sa.Column("level_id", sa.Integer(), nullable=False),
        sa.Column("level_order", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        sa.CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_level_score_range"),
        sa.ForeignKeyConstraint(["pillar_result_id"], ["pillar_results.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["level_id"], ["levels.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pillar_result_id", "level_id", name="uq_level_score_result_level"),
    )
    op.create_index(
        "ix_pillar_level_scores_pillar_result_id", "pillar_level_scores", ["pillar_result_id"]
    )
    op.create_table(
        "action_plans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("pillar_id", sa.Integer(), nullable=True),
        sa.Column("action_type", sa.String(length=100), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed')", name="ck_action_plan_status"
        ),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["pillar_id"], ["pillars.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_action_plans_assessment_id", "action_plans", ["assessment_id"])


def downgrade() -> None:
    op.drop_table("action_plans")
    op.drop_table("pillar_level_scores")
    op.drop_table("pillar_results")
    op.drop_table("answers")
    op.drop_table("assessments")
    op.drop_table("items")
    op.drop_table("pillars")
    op.drop_table("levels")
    op.drop_table("ninebox_cells")
    op.drop_table("workers")
    op.drop_table("templates")
