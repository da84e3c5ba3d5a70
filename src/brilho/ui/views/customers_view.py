from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from brilho.domain.errors import ValidationError
from brilho.domain.formatting import format_currency, format_date, format_datetime

log = logging.getLogger(__name__)

# (customer field, label)
FORM_FIELDS = [
    ("name", "Nome *"),
    ("phone", "Telefone"),
    ("email", "Email"),
    ("birth_date", "Nascimento"),
    ("street", "Rua"),
    ("number", "Número"),
    ("neighborhood", "Bairro"),
    ("city", "Cidade"),
    ("state", "Estado"),
    ("complement", "Complemento"),
    ("notes", "Observações"),
]


class CustomersView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Clientes")

        self.editing_id: int | None = None
        self.search_var = tk.StringVar()
        self.entries: dict[str, ttk.Entry] = {}

        self._build()

    def _build(self):
        tab = self.frame

        left = ttk.LabelFrame(tab, text="Cliente", width=290)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        for row, (field, label) in enumerate(FORM_FIELDS):
            ttk.Label(left, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=3)
            e = ttk.Entry(left, width=20)
            e.grid(row=row, column=1, sticky="ew", padx=8, pady=3)
            self.entries[field] = e
        left.columnconfigure(1, weight=1)
        ttk.Label(left, text="Data: dd/mm/aaaa", foreground="#64748b")\
            .grid(row=len(FORM_FIELDS), column=0, columnspan=2, sticky="w", padx=8)

        btns = ttk.Frame(left)
        btns.grid(row=len(FORM_FIELDS) + 1, column=0, columnspan=2, sticky="ew", padx=8, pady=(8, 4))
        for c in range(3):
            btns.columnconfigure(c, weight=1)
        self.save_btn = ttk.Button(btns, text="Adicionar", command=self.on_save_customer)
        self.save_btn.grid(row=0, column=0, sticky="ew", padx=(0, 6))
        ttk.Button(btns, text="Excluir", command=self.on_delete_customer).grid(row=0, column=1, sticky="ew", padx=6)
        ttk.Button(btns, text="Limpar", command=self.clear_form).grid(row=0, column=2, sticky="ew", padx=(6, 0))

        ttk.Button(left, text="Histórico de compras", command=self.open_purchase_history)\
            .grid(row=len(FORM_FIELDS) + 2, column=0, columnspan=2, sticky="ew", padx=8, pady=(4, 8))

        right = ttk.LabelFrame(tab, text="Clientes")
        right.pack(side="right", fill="both", expand=True, pady=8)

        search = ttk.Frame(right)
        search.pack(fill="x", padx=6, pady=(6, 0))
        ttk.Label(search, text="Buscar (nome, email ou telefone)").pack(side="left")
        search_e = ttk.Entry(search, textvariable=self.search_var, width=36)
        search_e.pack(side="left", padx=8)
        search_e.bind("<KeyRelease>", lambda _e: self.refresh())

        cols = ("id", "name", "phone", "email", "city", "birth")
        self.tree = ttk.Treeview(right, columns=cols, show="headings", height=20)
        heads = {"id": "ID", "name": "Nome", "phone": "Telefone", "email": "Email", "city": "Cidade", "birth": "Nascimento"}
        widths = {"id": 48, "name": 240, "phone": 130, "email": 200, "city": 130, "birth": 100}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=6, pady=6)
        self.tree.bind("<<TreeviewSelect>>", self.on_select)
        self.tree.bind("<Double-1>", lambda _e: self.open_purchase_history())

    def _form_values(self) -> dict:
        return {field: e.get() for field, e in self.entries.items()}

    def _selected_id(self) -> int:
        selected = self.tree.selection()
        if not selected:
            raise ValidationError("Selecione um cliente.")
        return int(self.tree.item(selected[0], "values")[0])

    def on_save_customer(self):
        try:
            self.app.require_action("manage_customers", "Seu perfil não pode cadastrar clientes.")
            fields = self._form_values()
            if self.editing_id is None:
                cid = self.app.customers.create_customer(actor_user_id=self.app.current_user.id, **fields)
                self.app.toast(f"Cliente adicionado (ID {cid}).", kind="success")
            else:
                self.app.customers.update_customer(self.editing_id, **fields)
                self.app.toast("Cliente atualizado.", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Cliente", e, "Falha ao salvar cliente.")

    def on_delete_customer(self):
        try:
            self.app.require_action("delete_customer", "Seu perfil não pode excluir clientes.")
            customer = self.app.customers.get_customer(self._selected_id())
            if not messagebox.askyesno(
                "Excluir cliente",
                f"Tem certeza que deseja excluir '{customer.name}'?",
                parent=self.frame,
            ):
                return
            self.app.customers.delete_customer(customer.id)
            self.app.toast("Cliente excluído.", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Excluir cliente", e, "Falha ao excluir cliente.")

    def on_select(self, _evt=None):
        selected = self.tree.selection()
        if not selected:
            return
        c = self.app.customers.get_customer(int(self.tree.item(selected[0], "values")[0]))
        self.editing_id = c.id
        for field, e in self.entries.items():
            value = getattr(c, field)
            if field == "birth_date":
                value = format_date(value)
            e.delete(0, tk.END)
            e.insert(0, value or "")
        self.save_btn.config(text="Salvar")

    def clear_form(self):
        self.editing_id = None
        for e in self.entries.values():
            e.delete(0, tk.END)
        self.save_btn.config(text="Adicionar")

    def refresh(self):
        for item in self.tree.get_children():
            self.tree.delete(item)
        for c in self.app.customers.search_customers(self.search_var.get()):
            self.tree.insert("", "end", values=(
                c.id, c.name, c.phone or "", c.email or "", c.city or "", format_date(c.birth_date),
            ))

    def open_purchase_history(self):
        try:
            history = self.app.customers.purchase_history(self._selected_id())
        except Exception as e:
            self.app.handle_error("Histórico de compras", e, "Falha ao carregar histórico.")
            return

        win = tk.Toplevel(self.app)
        win.title(f"Histórico - {history.customer.name}")
        win.geometry("720x420")

        c = history.customer
        head = ttk.LabelFrame(win, text="Cliente")
        head.pack(fill="x", padx=10, pady=10)
        ttk.Label(head, text=c.name, style="Title.TLabel").pack(anchor="w", padx=10, pady=(6, 2))
        ttk.Label(head, text=f"Telefone: {c.phone or '-'} | Email: {c.email or '-'}").pack(anchor="w", padx=10)
        ttk.Label(head, text=f"Endereço: {c.address or '-'}").pack(anchor="w", padx=10, pady=(0, 6))

        cols = ("id", "dt", "total", "status")
        tree = ttk.Treeview(win, columns=cols, show="headings", height=12)
        heads = {"id": "Venda", "dt": "Data", "total": "Total", "status": "Status"}
        for col in cols:
            tree.heading(col, text=heads[col])
            tree.column(col, width=150, anchor="w")
        tree.tag_configure("cancelled", foreground="#94a3b8")
        tree.pack(fill="both", expand=True, padx=10)

        for s in history.sales:
            tree.insert("", "end", values=(
                s.id, format_datetime(s.created_at), format_currency(s.total_amount),
                "Cancelada" if s.is_cancelled else "Concluída",
            ), tags=("cancelled",) if s.is_cancelled else ())

        ttk.Label(
            win, text=f"Total de compras: {history.count} | Total gasto: {format_currency(history.total)}",
        ).pack(anchor="w", padx=14, pady=10)
