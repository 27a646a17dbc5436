"""
SQLAlchemy execution layer for criteria.

Public API:
    - ``SelectQueryContext`` — ``QueryContext`` over a SQLAlchemy ``Select``
    - ``CriteriaRepository`` — async base repository with
      ``find_by_criteria`` / ``count_by_criteria``
"""

from .context import SelectQueryContext
from .repository import CriteriaRepository

__all__ = [
    "CriteriaRepository",
    "SelectQueryContext",
]
