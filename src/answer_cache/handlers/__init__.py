"""HTTP handler layer.

Handlers convert between DTOs and service calls and own HTTP concerns.
"""

from .answer_handler import AnswerHandler

__all__ = ["AnswerHandler"]
