from .auth_service import AuthService
from .customer_service import CustomerService
from .inventory_service import InventoryService
from .sales_service import SalesService
from .excel_service import ExcelService
from .reporting_service import ReportingService
from .image_service import ImageService

__all__ = [
    "AuthService",
    "CustomerService",
    "InventoryService",
    "SalesService",
    "ExcelService",
    "ReportingService",
    "ImageService",
]
