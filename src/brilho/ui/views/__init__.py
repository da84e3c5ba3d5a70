from .dashboard_view import DashboardView
from .products_view import ProductsView
from .customers_view import CustomersView
from .sales_view import SalesView
from .import_view import ImportView
from .settings_view import SettingsView

__all__ = ["DashboardView", "ProductsView", "CustomersView", "SalesView", "ImportView", "SettingsView"]
