"""Repository implementations."""

from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.persistence.repositories.session_repo import SessionRepository

__all__ = [
    "GraphRepository",
    "SessionRepository",
]
