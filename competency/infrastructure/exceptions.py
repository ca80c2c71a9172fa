"""
Custom exception classes for the competency assessment service.

Provides structured error handling with user-friendly messages and proper
error categorization for different failure scenarios. The scoring engine
itself never raises these: they belong to the collaborators that load and
persist its inputs and outputs.
"""

from __future__ import annotations

from typing import Any


class CompetencyAssessmentError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(CompetencyAssessmentError):
    """Raised when input validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )

    def _get_default_user_message(self) -> str:
        return f"Please check your input for {self.field.replace('_', ' ')} and try again."


class DatabaseError(CompetencyAssessmentError):
    """Raised when database operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
            user_message="A database error occurred. Please try again in a moment.",
        )


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)
        self.user_message = (
            "Unable to connect to the database. Please check your connection and try again."
        )


class IntegrityError(DatabaseError):
    """Raised when database integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )
        self.user_message = self._constraint_message()

    def _constraint_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "This item already exists. Please use a different value."
            elif "foreign" in self.constraint.lower():
                return "Referenced item no longer exists. Please refresh and try again."
        return "Data integrity error. Please check your input and try again."


class NotFoundError(CompetencyAssessmentError):
    """Raised when a requested entity does not exist."""

    entity = "Record"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(
            message=f"{self.entity} with ID {entity_id} not found",
            details={"entity": self.entity, "id": entity_id},
            user_message=(
                f"The selected {self.entity.lower()} could not be found. "
                "Please refresh and try again."
            ),
        )


class AssessmentNotFoundError(NotFoundError):
    entity = "Assessment"


class TemplateNotFoundError(NotFoundError):
    entity = "Template"


class WorkerNotFoundError(NotFoundError):
    entity = "Worker"


class ItemNotFoundError(NotFoundError):
    entity = "Item"


class LevelNotFoundError(NotFoundError):
    entity = "Level"


class PillarNotFoundError(NotFoundError):
    entity = "Pillar"


class ActionPlanNotFoundError(NotFoundError):
    entity = "Action plan"


class NineBoxCellNotFoundError(NotFoundError):
    entity = "Nine-box cell"


class BusinessLogicError(CompetencyAssessmentError):
    """Raised when business rules forbid an operation."""

    def __init__(
        self, message: str, rule: str | None = None, details: dict[str, Any] | None = None
    ):
        self.rule = rule
        super().__init__(
            message=message,
            details=details or {"rule": rule},
            user_message="This operation cannot be completed due to business rules.",
        )


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Convert generic database exceptions to application exceptions.

    Example:
        >>> try:
        ...     session.commit()
        ... except Exception as e:
        ...     raise handle_database_error(e, "commit transaction")
    """
    error_msg = str(e).lower()

    if "connection" in error_msg or "timeout" in error_msg:
        return ConnectionError(str(e))
    elif "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = ValidationError("name", "cannot be empty")
        >>> create_user_friendly_error_message(error)
        'Invalid name: cannot be empty'
    """
    if isinstance(error, CompetencyAssessmentError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Example:
        >>> details = log_error_details(DatabaseError("boom", "connect"), {"assessment_id": 3})
        >>> details["error_type"]
        'DatabaseError'
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, CompetencyAssessmentError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details
