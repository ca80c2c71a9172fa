"""
Pydantic schemas for input validation across the application.

These schemas validate user input, API requests and data transfers
within the competency assessment system before they reach the database.
"""

from __future__ import annotations

import re
from datetime import date
from html import unescape
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

AnswerValueInput = Literal["fully_met", "partially_met", "not_met"]
CriterionInput = Literal["subjective", "objective"]
AssessmentStatus = Literal["draft", "in_progress", "completed", "validated"]
ActionPlanStatus = Literal["pending", "in_progress", "completed"]
NineBoxBandInput = Literal["low", "medium", "high"]


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
        "use_enum_values": True,
    }

    @field_validator("*", mode="before")
    def sanitize_strings(cls, v):
        """Strip markup and control characters from string inputs."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


def _blank_to_none(v: str | None) -> str | None:
    if v is not None and len(v.strip()) == 0:
        return None
    return v


class TemplateInput(BaseValidationSchema):
    """Validation schema for creating assessment templates."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    collective: str | None = Field(None, max_length=200)
    default_expected_level: str | None = Field(None, max_length=50)
    low_tenure_threshold: float | None = Field(None, ge=0, le=100)
    high_tenure_threshold: float | None = Field(None, ge=0, le=100)
    tenure_years_cutoff: float | None = Field(None, ge=0)
    version: int = Field(1, ge=1)

    @field_validator("name")
    def validate_template_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Template name cannot be empty")
        return v.strip()

    @field_validator("description", "collective", "default_expected_level")
    def validate_optional_fields(cls, v):
        return _blank_to_none(v)


class TemplateUpdateInput(BaseValidationSchema):
    """Partial update of a template; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    collective: str | None = Field(None, max_length=200)
    default_expected_level: str | None = Field(None, max_length=50)
    low_tenure_threshold: float | None = Field(None, ge=0, le=100)
    high_tenure_threshold: float | None = Field(None, ge=0, le=100)
    tenure_years_cutoff: float | None = Field(None, ge=0)


class LevelInput(BaseValidationSchema):
    """Validation schema for template levels."""

    template_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=50)
    code: str = Field(..., min_length=1, max_length=20)
    order: int = Field(..., ge=1)

    @field_validator("code")
    def validate_level_code(cls, v):
        v = v.strip().lower()
        if not re.match(r"^[a-z0-9_]+$", v):
            raise ValueError("Level code may only contain letters, digits and underscores")
        return v


class PillarInput(BaseValidationSchema):
    """Validation schema for template pillars."""

    template_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=5000)
    order: int = Field(..., ge=0)

    @field_validator("name")
    def validate_pillar_name(cls, v):
        if not re.match(r"^[\w\s\-&().,/']+$", v):
            raise ValueError("Pillar name contains invalid characters")
        return v.strip()


class ItemInput(BaseValidationSchema):
    """Validation schema for questionnaire items."""

    pillar_id: int = Field(..., gt=0)
    level_id: int = Field(..., gt=0)
    text: str = Field(..., min_length=1, max_length=2000)
    criterion: CriterionInput = Field(default="subjective")
    expectation: str | None = Field(None, max_length=2000)

    @field_validator("text")
    def validate_item_text(cls, v):
        if not v or not v.strip():
            raise ValueError("Item text cannot be empty")
        return v.strip()

    @field_validator("expectation")
    def validate_expectation(cls, v):
        return _blank_to_none(v)


class ItemUpdateInput(BaseValidationSchema):
    text: str | None = Field(None, min_length=1, max_length=2000)
    criterion: CriterionInput | None = None
    expectation: str | None = Field(None, max_length=2000)


class WorkerInput(BaseValidationSchema):
    """Validation schema for workers."""

    external_id: str | None = Field(None, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=150)
    email: str | None = Field(None, max_length=255)
    job_title: str | None = Field(None, max_length=150)
    center: str | None = Field(None, max_length=150)
    area: str | None = Field(None, max_length=150)
    collective: str | None = Field(None, max_length=150)
    job_start_date: date | None = None

    @field_validator("email")
    def validate_email(cls, v):
        v = _blank_to_none(v)
        if v is not None and not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", v):
            raise ValueError("Email address is not valid")
        return v

    @field_validator("external_id", "job_title", "center", "area", "collective")
    def validate_optional_fields(cls, v):
        return _blank_to_none(v)


class AssessmentCreationInput(BaseValidationSchema):
    """Validation schema for opening a new assessment."""

    worker_id: int = Field(..., gt=0)
    template_id: int = Field(..., gt=0)
    evaluator: str | None = Field(None, max_length=255)
    assessment_date: date | None = None
    tenure_years: float | None = Field(None, ge=0, description="Tenure at assessment date")

    @field_validator("evaluator")
    def validate_evaluator(cls, v):
        return _blank_to_none(v)


class AnswerInput(BaseValidationSchema):
    """Validation schema for a single item answer."""

    assessment_id: int = Field(..., gt=0)
    item_id: int = Field(..., gt=0)
    value: AnswerValueInput | None = None


class ObservationsInput(BaseValidationSchema):
    assessment_id: int = Field(..., gt=0)
    observations: str | None = Field(None, max_length=10000)

    @field_validator("observations")
    def validate_observations(cls, v):
        return _blank_to_none(v)


class ActionPlanInput(BaseValidationSchema):
    """Validation schema for action plans attached to an assessment."""

    assessment_id: int = Field(..., gt=0)
    pillar_id: int | None = Field(None, gt=0)
    action_type: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=5000)
    start_date: date | None = None
    follow_up_date: date | None = None
    observations: str | None = Field(None, max_length=5000)
    status: ActionPlanStatus = Field(default="pending")

    @model_validator(mode="after")
    def validate_dates(self):
        """Follow-up cannot precede the start of the plan."""
        if self.start_date and self.follow_up_date and self.follow_up_date < self.start_date:
            raise ValueError("follow_up_date cannot be earlier than start_date")
        return self


class NineBoxCellInput(BaseValidationSchema):
    """Validation schema for 9-box cell configuration."""

    potential: NineBoxBandInput
    performance: NineBoxBandInput
    label: str = Field(..., min_length=1, max_length=100)
    recommendation: str | None = Field(None, max_length=2000)
    color: str | None = Field(None, max_length=20)

    @field_validator("color")
    def validate_color(cls, v):
        v = _blank_to_none(v)
        if v is not None and not re.match(r"^#[0-9a-fA-F]{6}$", v):
            raise ValueError("Color must be a hex value like #22c55e")
        return v


class ValidationErrorDetail(BaseModel):
    """Schema for validation error details."""

    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    """Schema for validation responses."""

    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Args:
        schema_class: Pydantic model class to use for validation
        data: Input data to validate

    Returns:
        ValidationResponse with success status and any errors

    Example:
        >>> result = validate_input(TemplateInput, {"name": "Operators 2025"})
        >>> if result.success:
        ...     validated_data = result.data
        >>> else:
        ...     for error in result.errors:
        ...         print(f"Error in {error.field}: {error.message}")
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):  # Pydantic validation errors
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]) or "general",
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
