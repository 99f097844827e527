"""
modules/validation package: structural guards run before scheduling.
"""
from modules.validation.ingestion_validator import (
    ScheduleInputError,
    ValidationResult,
    validate_distance_matrix,
    validate_location,
    validate_project,
    validate_schedule_input,
)

__all__ = [
    "ScheduleInputError",
    "ValidationResult",
    "validate_distance_matrix",
    "validate_location",
    "validate_project",
    "validate_schedule_input",
]
