from __future__ import annotations

import tkinter as tk
from tkinter import ttk, filedialog
from datetime import date, datetime, timedelta

from brilho.domain.errors import AuthorizationError
from brilho.services.excel_service import CUSTOMER_HEADERS, PRODUCT_HEADERS

XLSX = [("Planilhas Excel", "*.xlsx")]

KIND_LABELS = {"products": "produtos", "customers": "clientes"}


class ImportView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Importar Dados")

        self.period = tk.StringVar(value="monthly")
        self._build()

    def _build(self):
        tab = self.frame

        for kind, headers in (("products", PRODUCT_HEADERS), ("customers", CUSTOMER_HEADERS)):
            label = KIND_LABELS[kind]
            box = ttk.LabelFrame(tab, text=f"Importar {label}")
            box.pack(fill="x", padx=10, pady=10)
            ttk.Label(box, text="Colunas: " + " | ".join(headers), wraplength=900)\
                .pack(anchor="w", padx=10, pady=(8, 4))
            row = ttk.Frame(box)
            row.pack(fill="x", padx=10, pady=(0, 10))
            ttk.Button(row, text="Baixar modelo", command=lambda k=kind: self.save_template(k))\
                .pack(side="left")
            ttk.Button(row, text="Escolher arquivo e importar", style="Big.TButton",
                       command=lambda k=kind: self.import_excel(k)).pack(side="left", padx=10)
            ttk.Button(row, text=f"Exportar {label}", command=lambda k=kind: self.export_list(k))\
                .pack(side="left")

        box = ttk.LabelFrame(tab, text="Relatório de vendas (Excel)")
        box.pack(fill="x", padx=10, pady=10)

        row = ttk.Frame(box)
        row.pack(fill="x", padx=10, pady=10)
        ttk.Label(row, text="Período").pack(side="left")
        ttk.Radiobutton(row, text="Últimos 7 dias", value="weekly", variable=self.period).pack(side="left", padx=10)
        ttk.Radiobutton(row, text="Últimos 30 dias", value="monthly", variable=self.period).pack(side="left", padx=10)

        ttk.Button(box, text="Exportar relatório", style="Big.TButton", command=self.export_report)\
            .pack(anchor="w", padx=10, pady=(0, 10))

    def refresh(self):
        pass

    def save_template(self, kind: str):
        path = filedialog.asksaveasfilename(
            title="Salvar modelo",
            defaultextension=".xlsx",
            filetypes=XLSX,
            initialfile=f"modelo_{KIND_LABELS[kind]}.xlsx",
        )
        if not path:
            return
        try:
            self.app.excel.write_template(kind, path)
            self.app.toast("Modelo salvo.", kind="success")
        except Exception as e:
            self.app.handle_error("Modelo", e, "Falha ao salvar modelo.")

    def import_excel(self, kind: str = "products"):
        try:
            if not self.app.can_action("import_excel"):
                raise AuthorizationError("Seu perfil não pode importar planilhas.")

            path = filedialog.askopenfilename(title="Selecione a planilha", filetypes=XLSX)
            if not path:
                return

            actor = self.app.current_user.id
            if kind == "customers":
                result = self.app.excel.import_customers(path, actor_user_id=actor)
            else:
                result = self.app.excel.import_products(path, actor_user_id=actor)

            msg = f"{result.imported} {KIND_LABELS[kind]} importados com sucesso!"
            if result.skipped:
                msg += f" ({result.skipped} linhas ignoradas)"
            self.app.toast(msg, kind="success")
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Erro na importação", e, "Falha ao importar planilha.")

    def export_list(self, kind: str):
        try:
            if not self.app.can_action("export_report"):
                raise AuthorizationError("Seu perfil não pode exportar dados.")

            path = filedialog.asksaveasfilename(
                title="Exportar como",
                defaultextension=".xlsx",
                filetypes=XLSX,
                initialfile=f"{KIND_LABELS[kind]}_{date.today().isoformat()}.xlsx",
            )
            if not path:
                return

            if kind == "customers":
                count = self.app.excel.export_customers(path)
            else:
                count = self.app.excel.export_products(path)
            self.app.toast(f"{count} {KIND_LABELS[kind]} exportados.", kind="success")
        except Exception as e:
            self.app.handle_error("Erro na exportação", e, "Falha ao exportar.")

    def export_report(self):
        try:
            if not self.app.can_action("export_report"):
                raise AuthorizationError("Seu perfil não pode exportar relatórios.")

            today = datetime.now().replace(microsecond=0)
            start = today - timedelta(days=7 if self.period.get() == "weekly" else 30)
            # end bound is exclusive
            end = today + timedelta(seconds=1)

            path = filedialog.asksaveasfilename(
                title="Salvar relatório como",
                defaultextension=".xlsx",
                filetypes=XLSX,
                initialfile=f"relatorio_vendas_{date.today().isoformat()}.xlsx",
            )
            if not path:
                return

            self.app.reporting.export_sales_report_excel(path, start.isoformat(sep=" "), end.isoformat(sep=" "))
            self.app.toast("Relatório exportado.", kind="success")
        except Exception as e:
            self.app.handle_error("Erro na exportação", e, "Falha ao exportar relatório.")
