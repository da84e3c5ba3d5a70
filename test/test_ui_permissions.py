import pytest

pytest.importorskip("tkinter")

from brilho.domain.errors import AuthorizationError, ValidationError
from brilho.domain.models import User
from brilho.services.auth_service import AuthService
from brilho.ui import app as app_module
from brilho.ui.app import App
from brilho.ui.views.import_view import ImportView
from brilho.ui.views.products_view import ProductsView
from brilho.ui.views.sales_view import SalesView


class DeniedApp:
    def __init__(self):
        self.calls = []

    def can_action(self, _action):
        return False

    def require_action(self, _action, message):
        raise AuthorizationError(message)

    def handle_error(self, title, err, toast_text):
        self.calls.append((title, err, toast_text))


def test_import_denied_without_permission():
    view = ImportView.__new__(ImportView)
    view.app = DeniedApp()

    view.import_excel("products")

    title, err, _ = view.app.calls[0]
    assert title == "Erro na importação"
    assert isinstance(err, AuthorizationError)
    assert "importar" in str(err)


def test_report_export_denied_without_permission():
    view = ImportView.__new__(ImportView)
    view.app = DeniedApp()

    view.export_report()

    title, err, _ = view.app.calls[0]
    assert title == "Erro na exportação"
    assert "exportar relatórios" in str(err)


def test_sale_confirmation_denied_without_permission():
    view = SalesView.__new__(SalesView)
    view.app = DeniedApp()

    view.confirm_sale()

    title, err, _ = view.app.calls[0]
    assert title == "Venda"
    assert "registrar vendas" in str(err)


def test_product_delete_denied_without_permission():
    view = ProductsView.__new__(ProductsView)
    view.app = DeniedApp()

    view.on_delete_product()

    assert "excluir produtos" in str(view.app.calls[0][1])


def test_app_permission_check_uses_current_user():
    shell = App.__new__(App)
    shell.auth = AuthService(None)

    shell.current_user = User(id=1, email="v@b.com", role="viewer")
    assert shell.can_action("export_report")
    assert not shell.can_action("create_sale")

    with pytest.raises(AuthorizationError, match="sem acesso"):
        shell.require_action("create_sale", "sem acesso")


def test_handle_error_warns_for_business_errors_and_logs_the_rest(monkeypatch):
    shown = []
    toasts = []
    monkeypatch.setattr(app_module.messagebox, "showwarning", lambda *a, **k: shown.append(("warning", a)))
    monkeypatch.setattr(app_module.messagebox, "showerror", lambda *a, **k: shown.append(("error", a)))

    shell = App.__new__(App)
    shell.toast = lambda msg, kind="info", ms=2500: toasts.append((msg, kind))

    shell.handle_error("Venda", ValidationError("Selecione um cliente e adicione produtos."), "Falha.")
    shell.handle_error("Venda", RuntimeError("disk full"), "Falha ao registrar venda.")

    assert shown[0] == ("warning", ("Venda", "Selecione um cliente e adicione produtos."))
    assert shown[1][0] == "error"
    assert toasts == [
        ("Selecione um cliente e adicione produtos.", "warn"),
        ("Falha ao registrar venda.", "error"),
    ]
