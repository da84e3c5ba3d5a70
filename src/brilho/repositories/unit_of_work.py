from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol


def now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat(sep=" ")


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create_sale(self, customer_id: int, items: Iterable[dict], notes: Optional[str], actor_user_id: int | None = None) -> int: ...
    def cancel_sale(self, sale_id: int, reason: str, actor_user_id: int | None = None) -> None: ...
    def record_stock_movement(self, product_id: int, movement_type: str, quantity: int, reason: Optional[str], actor_user_id: int | None = None) -> tuple[int, int]: ...


@dataclass
class RepositoryUnitOfWork:
    """Unit of Work adapter for transactional write use-cases.

    Each repository write method runs in its own SQLite transaction, so a sale
    (header, items, exit movements and stock decrements) commits or rolls back
    as a whole. This class stamps the timestamps and keeps services
    persistence-agnostic.
    """

    repo: object

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def create_sale(self, customer_id: int, items: Iterable[dict], notes: Optional[str], actor_user_id: int | None = None) -> int:
        return int(self.repo.create_sale(customer_id, items, now_iso(), notes=notes, actor_user_id=actor_user_id))

    def cancel_sale(self, sale_id: int, reason: str, actor_user_id: int | None = None) -> None:
        self.repo.cancel_sale(sale_id, reason, now_iso(), actor_user_id=actor_user_id)

    def record_stock_movement(
        self,
        product_id: int,
        movement_type: str,
        quantity: int,
        reason: Optional[str],
        actor_user_id: int | None = None,
    ) -> tuple[int, int]:
        return self.repo.record_stock_movement(
            product_id, movement_type, quantity, now_iso(), reason=reason, actor_user_id=actor_user_id
        )
