from .models import Product, Customer, Sale, SaleLine, StockMovement, User, DashboardSummary, RankedEntry
from .errors import (
    AppError,
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    AuthorizationError,
    ImportFileError,
)

__all__ = [
    "Product",
    "Customer",
    "Sale",
    "SaleLine",
    "StockMovement",
    "User",
    "DashboardSummary",
    "RankedEntry",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "AuthorizationError",
    "ImportFileError",
]
