from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import logging
from typing import Callable, Iterable, Optional

from brilho.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from brilho.domain.models import Product, Sale, SaleLine
from brilho.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("brilho.sales")


@dataclass
class CartLine:
    product: Product
    quantity: int

    @property
    def line_total(self) -> float:
        return self.product.sell_price * self.quantity


class Cart:
    """Items picked for a sale before it is confirmed."""

    def __init__(self):
        self.lines: list[CartLine] = []

    def add(self, product: Product, quantity: int) -> CartLine:
        quantity = int(quantity)
        if quantity <= 0:
            raise ValidationError("Quantidade deve ser maior que zero.")
        for line in self.lines:
            if line.product.id == product.id:
                if line.quantity + quantity > product.stock_quantity:
                    raise InsufficientStockError(f"Estoque insuficiente. Disponível: {product.stock_quantity}")
                line.quantity += quantity
                return line
        if quantity > product.stock_quantity:
            raise InsufficientStockError(f"Estoque insuficiente. Disponível: {product.stock_quantity}")
        line = CartLine(product=product, quantity=quantity)
        self.lines.append(line)
        return line

    def remove(self, product_id: int) -> None:
        self.lines = [line for line in self.lines if line.product.id != int(product_id)]

    def clear(self) -> None:
        self.lines = []

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total(self) -> float:
        return sum(line.line_total for line in self.lines)

    def to_items(self) -> list[dict]:
        return [
            {"product_id": line.product.id, "quantity": line.quantity, "unit_price": line.product.sell_price}
            for line in self.lines
        ]


class SalesService:
    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def create_sale(
        self,
        customer_id: Optional[int],
        items: Iterable[dict],
        notes: Optional[str] = None,
        actor_user_id: int | None = None,
    ) -> int:
        """
        items: [{product_id, quantity, unit_price?}]; unit_price defaults to the
        product's sell price.
        """
        items = list(items)
        if not customer_id or not items:
            raise ValidationError("Selecione um cliente e adicione produtos.")
        if not self.repo.get_customer_by_id(int(customer_id)):
            raise NotFoundError("Cliente não encontrado.")

        # aggregate qty by product to avoid overselling
        qty_by_product: Counter[int] = Counter()
        resolved: list[dict] = []
        for it in items:
            qty = int(it["quantity"])
            if qty <= 0:
                raise ValidationError("Quantidade deve ser maior que zero.")

            product_id = int(it["product_id"])
            prod = self.repo.get_product_by_id(product_id)
            if not prod:
                raise NotFoundError("Produto não encontrado.")

            unit_price = it.get("unit_price")
            unit_price = float(prod.sell_price if unit_price is None else unit_price)
            if unit_price < 0:
                raise ValidationError("Preço unitário não pode ser negativo.")

            qty_by_product[product_id] += qty
            if qty_by_product[product_id] > prod.stock_quantity:
                raise InsufficientStockError(f"Estoque insuficiente para {prod.name}. Disponível: {prod.stock_quantity}")
            resolved.append({"product_id": product_id, "quantity": qty, "unit_price": unit_price})

        notes = (notes or "").strip() or None
        with self.uow_factory() as uow:
            sale_id = uow.create_sale(int(customer_id), resolved, notes, actor_user_id=actor_user_id)
        log.info(
            "sale_created sale_id=%s customer_id=%s items=%s actor=%s",
            sale_id, customer_id, len(resolved), actor_user_id,
        )
        return sale_id

    def cancel_sale(self, sale_id: int, reason: str, actor_user_id: int | None = None) -> None:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Informe o motivo do cancelamento.")
        sale = self.repo.get_sale(int(sale_id))
        if not sale:
            raise NotFoundError("Venda não encontrada.")
        if sale.is_cancelled:
            raise ValidationError("Esta venda já foi cancelada.")

        with self.uow_factory() as uow:
            uow.cancel_sale(sale.id, reason, actor_user_id=actor_user_id)
        log.warning("sale_cancelled sale_id=%s reason=%s actor=%s", sale.id, reason, actor_user_id)

    def list_sales(self, start_iso: str | None = None, end_iso: str | None = None) -> list[Sale]:
        return self.repo.list_sales(start_iso, end_iso)

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.repo.get_sale(int(sale_id))
        if not sale:
            raise NotFoundError("Venda não encontrada.")
        return sale

    def sale_items(self, sale_id: int) -> list[SaleLine]:
        return self.repo.sale_items_for_sale(int(sale_id))
