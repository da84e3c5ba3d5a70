from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from brilho.repositories.sqlite_repo import SqliteRepository
from brilho.services.auth_service import AuthService
from brilho.services.customer_service import CustomerService
from brilho.services.excel_service import ExcelService
from brilho.services.image_service import ImageService
from brilho.services.inventory_service import InventoryService
from brilho.services.reporting_service import ReportingService
from brilho.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    inventory: InventoryService
    customers: CustomerService
    sales: SalesService
    excel: ExcelService
    reporting: ReportingService
    auth: AuthService
    images: ImageService


def build_container(db_path: Path | str, images_dir: Path | str | None = None) -> AppContainer:
    repo = SqliteRepository(db_path)
    repo.init_db()

    images_dir = images_dir or Path(db_path).parent / "images"

    return AppContainer(
        repo=repo,
        inventory=InventoryService(repo),
        customers=CustomerService(repo),
        sales=SalesService(repo),
        excel=ExcelService(repo),
        reporting=ReportingService(repo),
        auth=AuthService(repo),
        images=ImageService(images_dir),
    )
