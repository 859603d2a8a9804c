"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .evaluation_record import SCORE_FIELDS, EvaluationRecord  # noqa: F401

__all__ = [
    "Base",
    "EvaluationRecord",
    "SCORE_FIELDS",
]
