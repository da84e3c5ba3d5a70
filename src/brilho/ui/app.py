from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging
from pathlib import Path

from brilho.domain.errors import AppError, AuthorizationError
from brilho.ui.login_dialog import LoginDialog
from brilho.ui.views.dashboard_view import DashboardView
from brilho.ui.views.products_view import ProductsView
from brilho.ui.views.customers_view import CustomersView
from brilho.ui.views.sales_view import SalesView
from brilho.ui.views.import_view import ImportView
from brilho.ui.views.settings_view import SettingsView

log = logging.getLogger(__name__)


class App(tk.Tk):
    def __init__(self, container, db_path: str, logs_dir: str):
        super().__init__()
        self.title("Clube do Brilho")
        self.geometry("1280x760")
        self.minsize(1120, 640)

        self.inventory = container.inventory
        self.customers = container.customers
        self.sales = container.sales
        self.excel = container.excel
        self.reporting = container.reporting
        self.auth = container.auth
        self.images = container.images

        self.db_path = db_path
        self.logs_dir = logs_dir
        self.current_user = None

        self.status_var = tk.StringVar(value="")
        self.user_var = tk.StringVar(value="")
        self._toast_after_id = None

        self.withdraw()
        if not self._ask_login():
            self.destroy()
            return

        self._build_styles()
        self._build_topbar()

        main = ttk.Frame(self)
        main.pack(fill="both", expand=True, padx=12, pady=(0, 8))

        self.sidebar = ttk.Frame(main)
        self.sidebar.pack(side="left", fill="y", padx=(0, 10))

        self.content = ttk.Frame(main)
        self.content.pack(side="right", fill="both", expand=True)

        self.nb = ttk.Notebook(self.content, style="Side.TNotebook")
        self.nb.pack(fill="both", expand=True)

        # Views (tabs hidden)
        self.dashboard_view = DashboardView(self.nb, self)
        self.products_view = ProductsView(self.nb, self)
        self.customers_view = CustomersView(self.nb, self)
        self.sales_view = SalesView(self.nb, self)
        self.import_view = ImportView(self.nb, self)
        self.settings_view = SettingsView(self.nb, self)

        self._build_sidebar()
        self._build_status_bar()

        self.deiconify()
        self.refresh_all(show_toast=False)
        self.toast("Pronto.", kind="info", ms=1200)

    def _ask_login(self) -> bool:
        dialog = LoginDialog(self, self.auth)
        self.wait_window(dialog.win)
        if dialog.user is None:
            return False
        self.current_user = dialog.user
        self.user_var.set(f"{self.current_user.email} ({self.current_user.role})")
        log.info("session_started user_id=%s role=%s", self.current_user.id, self.current_user.role)
        return True

    def _build_styles(self):
        style = ttk.Style(self)
        style.layout("Side.TNotebook.Tab", [])
        style.configure("Side.TNotebook", tabmargins=0)

        try:
            style.configure("Big.TButton", padding=(14, 10))
            style.configure("Title.TLabel", font=("Segoe UI", 12, "bold"))
            style.configure("KPI.TLabel", font=("Segoe UI", 10))
            style.configure("KPIValue.TLabel", font=("Segoe UI", 14, "bold"))
        except tk.TclError as e:
            log.exception("UI style setup failed: %s", e)

    def _build_topbar(self):
        top = ttk.Frame(self)
        top.pack(fill="x", padx=12, pady=10)

        ttk.Label(top, text="💎 Clube do Brilho", style="Title.TLabel").pack(side="left")
        ttk.Label(top, textvariable=self.user_var).pack(side="left", padx=16)

        ttk.Label(top, text=f"DB: {Path(self.db_path).name}").pack(side="right")

    def _build_sidebar(self):
        box = ttk.LabelFrame(self.sidebar, text="Menu")
        box.pack(fill="x", pady=(0, 10))

        entries = [
            ("📊 Dashboard", self.dashboard_view),
            ("💍 Estoque", self.products_view),
            ("👥 Clientes", self.customers_view),
            ("🛍 Vendas", self.sales_view),
            ("📥 Importar Dados", self.import_view),
            ("⚙ Ajustes", self.settings_view),
        ]
        for i, (text, view) in enumerate(entries):
            ttk.Button(
                box, text=text, style="Big.TButton",
                command=lambda v=view: self.show(v),
            ).pack(fill="x", padx=10, pady=(10 if i == 0 else 6, 6))

        ttk.Button(box, text="🔄 Atualizar", style="Big.TButton",
                   command=self.refresh_all).pack(fill="x", padx=10, pady=(6, 10))

    def _build_status_bar(self):
        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=(0, 10))
        ttk.Label(bar, textvariable=self.status_var).pack(side="left")
        ttk.Label(bar, text=f"Logs: {self.logs_dir}").pack(side="right")

    def show(self, view):
        self.nb.select(view.frame)
        view.refresh()

    def toast(self, msg: str, kind: str = "info", ms: int = 2500):
        prefix = {"info": "ℹ ", "success": "✅ ", "warn": "⚠ ", "error": "❌ "}.get(kind, "")
        self.status_var.set(prefix + msg)
        if self._toast_after_id is not None:
            try:
                self.after_cancel(self._toast_after_id)
            except tk.TclError:
                pass
        self._toast_after_id = self.after(ms, lambda: self.status_var.set(""))

    # ---------- permissions / errors ----------
    def can_action(self, action: str) -> bool:
        return self.auth.can(self.current_user, action)

    def require_action(self, action: str, message: str) -> None:
        if not self.can_action(action):
            raise AuthorizationError(message)

    def handle_error(self, title: str, err: Exception, toast_text: str):
        if isinstance(err, AppError):
            messagebox.showwarning(title, str(err), parent=self)
            self.toast(str(err), kind="warn")
            return
        log.exception("%s: %s", title, err, exc_info=err)
        messagebox.showerror(title, f"{toast_text}\n\n{err}", parent=self)
        self.toast(toast_text, kind="error")

    # ---------- session ----------
    def sign_out(self):
        log.info("session_ended user_id=%s", self.current_user.id if self.current_user else None)
        self.current_user = None
        self.withdraw()
        if not self._ask_login():
            self.destroy()
            return
        self.deiconify()
        self.show(self.dashboard_view)
        self.refresh_all(show_toast=False)

    # ---------- Refresh ----------
    def refresh_all(self, show_toast: bool = True):
        for view in (
            self.dashboard_view,
            self.products_view,
            self.customers_view,
            self.sales_view,
            self.settings_view,
        ):
            try:
                view.refresh()
            except Exception as e:
                log.exception("View refresh failed (%s): %s", type(view).__name__, e)

        if show_toast:
            self.toast("Atualizado.", kind="info", ms=1200)
