from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Optional

from brilho.domain.errors import NotFoundError, ValidationError
from brilho.domain.formatting import parse_date
from brilho.domain.models import Customer, Sale
from brilho.repositories.sqlite_repo import CUSTOMER_FIELDS
from brilho.repositories.unit_of_work import now_iso

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class PurchaseHistory:
    customer: Customer
    sales: list[Sale]

    @property
    def count(self) -> int:
        return len(self.sales)

    @property
    def total(self) -> float:
        return sum(s.total_amount for s in self.sales if not s.is_cancelled)


def matches_customer(customer: Customer, term: str) -> bool:
    raw = (term or "").strip()
    if not raw:
        return True
    term = raw.lower()
    return (
        term in customer.name.lower()
        or term in (customer.email or "").lower()
        or raw in (customer.phone or "")
    )


def normalize_customer_fields(fields: dict) -> dict:
    """Trims every field, blanks become None, birth date becomes ISO text."""
    out: dict[str, Optional[str]] = {}
    for f in CUSTOMER_FIELDS:
        v = fields.get(f)
        if f == "birth_date":
            d = parse_date(v, "Data de nascimento")
            out[f] = d.isoformat() if d else None
            continue
        v = str(v).strip() if v is not None else ""
        out[f] = v or None

    if not out["name"]:
        raise ValidationError("Nome é obrigatório.")
    if out["email"] and not EMAIL_RE.match(out["email"]):
        raise ValidationError(f"Email inválido: {out['email']}")
    if out["state"]:
        out["state"] = out["state"].upper()
    return out


class CustomerService:
    def __init__(self, repo):
        self.repo = repo

    def list_customers(self) -> list[Customer]:
        return self.repo.list_customers()

    def search_customers(self, term: str) -> list[Customer]:
        return [c for c in self.repo.list_customers() if matches_customer(c, term)]

    def get_customer(self, customer_id: int) -> Customer:
        c = self.repo.get_customer_by_id(int(customer_id))
        if not c:
            raise NotFoundError("Cliente não encontrado.")
        return c

    def create_customer(self, actor_user_id: int | None = None, **fields) -> int:
        clean = normalize_customer_fields(fields)
        cid = self.repo.add_customer(clean, now_iso(), actor_user_id=actor_user_id)
        log.info("customer_created customer_id=%s actor=%s", cid, actor_user_id)
        return cid

    def update_customer(self, customer_id: int, **fields) -> None:
        clean = normalize_customer_fields(fields)
        if not self.repo.update_customer(int(customer_id), clean):
            raise NotFoundError("Cliente não encontrado.")

    def delete_customer(self, customer_id: int) -> None:
        if not self.repo.deactivate_customer(int(customer_id)):
            raise NotFoundError("Cliente não encontrado.")
        log.info("customer_deleted customer_id=%s", customer_id)

    def purchase_history(self, customer_id: int) -> PurchaseHistory:
        customer = self.get_customer(customer_id)
        return PurchaseHistory(customer=customer, sales=self.repo.sales_for_customer(customer.id))
