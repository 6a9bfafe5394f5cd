"""Quiz Service infrastructure layer - Persistence ports."""
from .repository import QuizContentRepositoryPort, ResponseSinkPort

__all__ = ["QuizContentRepositoryPort", "ResponseSinkPort"]
