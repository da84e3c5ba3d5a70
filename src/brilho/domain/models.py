from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional


CATEGORIES = ("Anéis", "Brincos", "Colares", "Pulseiras", "Conjuntos", "Outros")

SALE_COMPLETED = "completed"
SALE_CANCELLED = "cancelled"

MOVEMENT_ENTRY = "entry"
MOVEMENT_EXIT = "exit"


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    description: Optional[str]
    category: Optional[str]
    buy_price: float
    sell_price: float
    stock_quantity: int
    image_url: Optional[str] = None
    active: int = 1
    created_at: str = ""


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    complement: Optional[str] = None
    notes: Optional[str] = None
    active: int = 1
    created_at: str = ""

    @property
    def address(self) -> str:
        street = " ".join(p for p in (self.street, self.number) if p)
        parts = [street, self.complement, self.neighborhood]
        city = "/".join(p for p in (self.city, self.state) if p)
        parts.append(city)
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class Sale:
    id: int
    customer_id: int
    customer_name: Optional[str]
    total_amount: float
    status: str
    created_at: str
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == SALE_CANCELLED


@dataclass(frozen=True)
class SaleLine:
    product_id: int
    name: str
    quantity: int
    unit_price: float
    line_total: float


@dataclass(frozen=True)
class StockMovement:
    id: int
    product_id: int
    type: str
    quantity: int
    sale_id: Optional[int]
    reason: Optional[str]
    created_at: str
    user_id: Optional[int] = None


@dataclass(frozen=True)
class User:
    id: int
    email: str
    role: str
    active: int = 1


@dataclass(frozen=True)
class RankedEntry:
    name: str
    value: float


@dataclass(frozen=True)
class DashboardSummary:
    total_inventory_value: float
    potential_revenue: float
    monthly_revenue: float
    monthly_expenses: float
    total_customers: int
    low_stock_products: list[Product] = field(default_factory=list)
    top_customers: list[RankedEntry] = field(default_factory=list)
    best_sellers: list[RankedEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total_customers == 0 and not self.low_stock_products
