"""
Activation consistency checks for categories.

A category may only go live when none of its Question nodes is a dead end,
that is, every question has at least one active outgoing connection.
The check runs at activation time only, so inactive categories can be
edited incrementally.
"""

from typing import List

import structlog

from troubleshooter.core.exceptions import ValidationError
from troubleshooter.domain.models.graph import IncompleteQuestion
from troubleshooter.persistence.repositories.graph_repo import GraphRepository

log = structlog.get_logger(__name__)


class ActivationValidator:
    """Detects Question nodes that would strand a user."""

    def __init__(self, graph_repo: GraphRepository):
        self.graph_repo = graph_repo

    async def find_incomplete_questions(
        self, category: str, include_inactive: bool = False
    ) -> List[IncompleteQuestion]:
        """
        List Question nodes of a category with zero active outgoing connections.

        Args:
            category: Category to inspect
            include_inactive: Also inspect inactive questions. Activation
                switches every node of the category on, so the gate inspects
                all of them.
        """
        return await self.graph_repo.find_incomplete_questions(
            category, include_inactive=include_inactive
        )

    async def ensure_activatable(self, category: str) -> None:
        """
        Raise if switching the category on would expose dead-end questions.

        Raises:
            ValidationError: Enumerating every dead-end question
        """
        incomplete = await self.find_incomplete_questions(category, include_inactive=True)
        if not incomplete:
            return

        log.warning(
            "category_activation_blocked",
            category=category,
            incomplete_count=len(incomplete),
            node_ids=[q.node_id for q in incomplete],
        )

        details = ", ".join(q.describe() for q in incomplete)
        raise ValidationError(
            [
                {
                    "field": "incomplete_nodes",
                    "message": (
                        f"This issue has {len(incomplete)} end node(s) with no conclusion: "
                        f"{details}. These nodes need outgoing connections or should be "
                        "changed to Conclusion type."
                    ),
                }
            ]
            + [
                {"field": f"nodes.{q.node_id}", "message": q.describe()}
                for q in incomplete
            ]
        )
