"""Run-scoped deal aggregation.

Junta todas las ofertas que pasaron el presupuesto durante una corrida,
agrupadas por usuario, para mandar UN solo aviso por usuario al final
(y no uno por búsqueda).
"""

import logging
from dataclasses import dataclass, field

from fareradar.models import DealSummary, ExtractedPrice, SearchTask

logger = logging.getLogger(__name__)


@dataclass
class UserDeals:
    """All qualifying deals for one user in one run."""

    user_id: str
    email: str
    budget_cents: int
    currency: str
    deals: list[DealSummary] = field(default_factory=list)


class DealBatch:
    """Accumulator of deals keyed by user, built and consumed within one run."""

    def __init__(self) -> None:
        self._users: dict[str, UserDeals] = {}
        self._dispatched: set[str] = set()

    def add(self, task: SearchTask, best: ExtractedPrice) -> DealSummary:
        """Append the deal for ``task`` to its owner's entry (creating it if absent)."""
        budget = task.budget
        entry = self._users.get(task.user_id)
        if entry is None:
            entry = UserDeals(
                user_id=task.user_id,
                email=budget.alert_email,
                budget_cents=budget.max_price_cents or 0,
                currency=budget.currency,
            )
            self._users[task.user_id] = entry

        deal = DealSummary(
            search_id=task.id,
            origin=task.origin,
            destination=task.destination,
            destination_city=task.destination_city,
            outbound_date=task.outbound_date,
            return_date=task.return_date,
            price_cents=best.price_cents,
            currency=best.currency,
            platform=best.platform,
            booking_urls={**task.urls, best.platform: best.booking_url},
        )
        entry.deals.append(deal)

        logger.info(
            "🔥 Deal para %s: %s %s (presupuesto %.2f)",
            task.user_id, task.route_key, deal.display_price, entry.budget_cents / 100,
        )
        return deal

    def pending(self) -> list[UserDeals]:
        """Users with deals that have not been notified yet, in insertion order."""
        return [
            entry for user_id, entry in self._users.items()
            if entry.deals and user_id not in self._dispatched
        ]

    def mark_dispatched(self, user_id: str) -> None:
        self._dispatched.add(user_id)

    def __len__(self) -> int:
        return len(self._users)
