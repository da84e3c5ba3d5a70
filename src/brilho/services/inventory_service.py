from __future__ import annotations

import logging
from typing import Callable, Optional

from brilho.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from brilho.domain.models import MOVEMENT_ENTRY, MOVEMENT_EXIT, Product, StockMovement
from brilho.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork, now_iso

log = logging.getLogger("brilho.stock")

LOW_STOCK_THRESHOLD = 3


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def matches_product(product: Product, term: str) -> bool:
    term = (term or "").strip().lower()
    if not term:
        return True
    return term in product.name.lower() or term in (product.category or "").lower()


class InventoryService:
    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def list_products(self) -> list[Product]:
        return self.repo.list_products()

    def search_products(self, term: str) -> list[Product]:
        return [p for p in self.repo.list_products() if matches_product(p, term)]

    def in_stock_products(self) -> list[Product]:
        return [p for p in self.repo.list_products() if p.stock_quantity > 0]

    def low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> list[Product]:
        return [p for p in self.repo.list_products() if p.stock_quantity < threshold]

    def get_product(self, product_id: int) -> Product:
        p = self.repo.get_product_by_id(int(product_id))
        if not p:
            raise NotFoundError("Produto não encontrado.")
        return p

    def _validate(self, name: str, buy_price: float, sell_price: float) -> str:
        name = (name or "").strip()
        if not name or not sell_price:
            raise ValidationError("Nome e preço de venda são obrigatórios.")
        if sell_price < 0:
            raise ValidationError("Preço de venda deve ser maior que zero.")
        if buy_price < 0:
            raise ValidationError("Custo não pode ser negativo.")
        return name

    def create_product(
        self,
        name: str,
        sell_price: float,
        buy_price: float = 0.0,
        stock_quantity: int = 0,
        category: Optional[str] = None,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        actor_user_id: int | None = None,
    ) -> int:
        name = self._validate(name, float(buy_price), float(sell_price))
        if int(stock_quantity) < 0:
            raise ValidationError("Estoque inicial não pode ser negativo.")

        pid = self.repo.add_product(
            name,
            _clean(description),
            _clean(category),
            float(buy_price),
            float(sell_price),
            _clean(image_url),
            now_iso(),
            initial_stock=int(stock_quantity),
            actor_user_id=actor_user_id,
        )
        log.info("product_created product_id=%s stock=%s actor=%s", pid, stock_quantity, actor_user_id)
        return pid

    def update_product(
        self,
        product_id: int,
        name: str,
        sell_price: float,
        buy_price: float = 0.0,
        category: Optional[str] = None,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> None:
        name = self._validate(name, float(buy_price), float(sell_price))
        updated = self.repo.update_product(
            int(product_id), name, _clean(description), _clean(category),
            float(buy_price), float(sell_price), _clean(image_url),
        )
        if not updated:
            raise NotFoundError("Produto não encontrado.")

    def delete_product(self, product_id: int) -> None:
        if not self.repo.deactivate_product(int(product_id)):
            raise NotFoundError("Produto não encontrado.")
        log.info("product_deleted product_id=%s", product_id)

    def record_entry(self, product_id: int, quantity: int, notes: str | None = None, actor_user_id: int | None = None) -> int:
        return self._move(product_id, MOVEMENT_ENTRY, quantity, notes, actor_user_id)

    def record_exit(self, product_id: int, quantity: int, notes: str | None = None, actor_user_id: int | None = None) -> int:
        return self._move(product_id, MOVEMENT_EXIT, quantity, notes, actor_user_id)

    def _move(self, product_id: int, movement_type: str, quantity: int, notes: str | None, actor_user_id: int | None) -> int:
        quantity = int(quantity)
        if quantity <= 0:
            raise ValidationError("Quantidade deve ser maior que zero.")
        product = self.get_product(product_id)
        if movement_type == MOVEMENT_EXIT and quantity > product.stock_quantity:
            raise InsufficientStockError(f"Estoque insuficiente. Disponível: {product.stock_quantity}")

        with self.uow_factory() as uow:
            _mid, stock_after = uow.record_stock_movement(
                product.id, movement_type, quantity, _clean(notes), actor_user_id=actor_user_id
            )
        log.info(
            "stock_movement product_id=%s type=%s qty=%s stock_after=%s actor=%s",
            product.id, movement_type, quantity, stock_after, actor_user_id,
        )
        return stock_after

    def movements_for_product(self, product_id: int) -> list[StockMovement]:
        return self.repo.movements_for_product(int(product_id))
