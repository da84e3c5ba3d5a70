from __future__ import annotations

import tkinter as tk
from tkinter import ttk, simpledialog
import logging

from brilho.domain.errors import ValidationError
from brilho.domain.formatting import format_currency, format_datetime, parse_int
from brilho.services.sales_service import Cart

log = logging.getLogger(__name__)


class SalesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Vendas")

        self.cart = Cart()
        self.customer_pick = tk.StringVar()
        self.product_pick = tk.StringVar()
        self.total_var = tk.StringVar(value="Total: R$ 0,00")

        self.customer_choices: list[str] = []
        self.customer_map: dict[str, int] = {}
        self.product_choices: list[str] = []
        self.product_map: dict[str, int] = {}

        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.LabelFrame(tab, text="Nova venda")
        top.pack(fill="x", padx=10, pady=10)

        ttk.Label(top, text="Cliente").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.customer_combo = ttk.Combobox(top, textvariable=self.customer_pick, width=40)
        self.customer_combo.grid(row=0, column=1, padx=10, pady=8, sticky="w")
        self.customer_combo.bind(
            "<KeyRelease>",
            lambda _e: self._filter_combobox(self.customer_combo, self.customer_choices, self.customer_pick.get()),
        )

        ttk.Label(top, text="Produto").grid(row=1, column=0, padx=10, pady=8, sticky="w")
        self.product_combo = ttk.Combobox(top, textvariable=self.product_pick, width=56)
        self.product_combo.grid(row=1, column=1, padx=10, pady=8, sticky="w")
        self.product_combo.bind(
            "<KeyRelease>",
            lambda _e: self._filter_combobox(self.product_combo, self.product_choices, self.product_pick.get()),
        )

        ttk.Label(top, text="Qtd").grid(row=1, column=2, padx=10, pady=8, sticky="w")
        self.qty_e = ttk.Entry(top, width=8)
        self.qty_e.insert(0, "1")
        self.qty_e.grid(row=1, column=3, padx=10, pady=8, sticky="w")

        ttk.Button(top, text="Adicionar ao carrinho", style="Big.TButton", command=self.add_to_cart)\
            .grid(row=1, column=4, padx=10, pady=8)
        self.product_combo.bind("<Return>", lambda _e: self.add_to_cart())
        self.qty_e.bind("<Return>", lambda _e: self.add_to_cart())

        mid = ttk.Frame(tab)
        mid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cart_box = ttk.LabelFrame(mid, text="Carrinho")
        cart_box.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("id", "name", "qty", "unit", "line")
        self.cart_tree = ttk.Treeview(cart_box, columns=cols, show="headings", height=8)
        heads = {"id": "ID", "name": "Produto", "qty": "Qtd", "unit": "Preço", "line": "Subtotal"}
        widths = {"id": 50, "name": 380, "qty": 60, "unit": 110, "line": 110}
        for c in cols:
            self.cart_tree.heading(c, text=heads[c])
            self.cart_tree.column(c, width=widths[c], anchor="w")
        self.cart_tree.pack(fill="both", expand=True, padx=10, pady=10)

        btnrow = ttk.Frame(cart_box)
        btnrow.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btnrow, text="Remover selecionado", command=self.remove_selected).pack(side="left")
        ttk.Button(btnrow, text="Limpar carrinho", command=self.clear_cart).pack(side="left", padx=10)

        right = ttk.LabelFrame(mid, text="Finalizar venda")
        right.pack(side="right", fill="y")

        ttk.Label(right, text="Observações (opcional)").pack(anchor="w", padx=10, pady=(10, 4))
        self.notes = tk.Text(right, width=34, height=5)
        self.notes.pack(padx=10)

        ttk.Label(right, textvariable=self.total_var, style="Title.TLabel").pack(anchor="w", padx=10, pady=10)
        ttk.Button(right, text="Finalizar venda", style="Big.TButton", command=self.confirm_sale)\
            .pack(fill="x", padx=10, pady=(0, 10))
        self.notes.bind("<Control-Return>", lambda _e: self.confirm_sale())

        hist = ttk.LabelFrame(tab, text="Histórico de vendas (duplo clique para detalhes)")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        bar = ttk.Frame(hist)
        bar.pack(fill="x", padx=10, pady=6)
        ttk.Button(bar, text="Cancelar venda selecionada", command=self.cancel_selected).pack(side="left")

        cols = ("id", "dt", "customer", "total", "status", "reason")
        self.sales_tree = ttk.Treeview(hist, columns=cols, show="headings", height=8)
        heads = {"id": "Venda", "dt": "Data", "customer": "Cliente", "total": "Total",
                 "status": "Status", "reason": "Motivo do cancelamento"}
        widths = {"id": 70, "dt": 140, "customer": 240, "total": 110, "status": 100, "reason": 320}
        for c in cols:
            self.sales_tree.heading(c, text=heads[c])
            self.sales_tree.column(c, width=widths[c], anchor="w")
        self.sales_tree.tag_configure("cancelled", foreground="#94a3b8")
        self.sales_tree.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.sales_tree.bind("<Double-1>", self.open_sale_details)

    def _filter_combobox(self, combo: ttk.Combobox, all_choices: list[str], typed: str):
        typed = typed.strip().lower()
        combo["values"] = all_choices if not typed else [c for c in all_choices if typed in c.lower()]

    def refresh_choices(self):
        self.customer_choices, self.customer_map = [], {}
        for c in self.app.customers.list_customers():
            label = f"{c.name} (#{c.id})"
            self.customer_choices.append(label)
            self.customer_map[label] = c.id
        self.customer_combo["values"] = self.customer_choices

        self.product_choices, self.product_map = [], {}
        for p in self.app.inventory.in_stock_products():
            label = f"{p.name} - {format_currency(p.sell_price)} (estoque: {p.stock_quantity})"
            self.product_choices.append(label)
            self.product_map[label] = p.id
        self.product_combo["values"] = self.product_choices

    def refresh(self):
        self.refresh_choices()
        self.refresh_cart_view()
        self.refresh_history()

    def add_to_cart(self):
        try:
            product_id = self.product_map.get(self.product_pick.get().strip())
            if not product_id:
                raise ValidationError("Escolha um produto da lista.")
            qty = parse_int(self.qty_e.get(), "Quantidade")
            product = self.app.inventory.get_product(product_id)
            self.cart.add(product, qty)
        except Exception as e:
            self.app.handle_error("Carrinho", e, "Falha ao adicionar ao carrinho.")
            return

        self.refresh_cart_view()
        self.product_pick.set("")
        self.app.toast("Adicionado ao carrinho.", kind="success", ms=1500)

    def refresh_cart_view(self):
        for item in self.cart_tree.get_children():
            self.cart_tree.delete(item)
        for line in self.cart.lines:
            self.cart_tree.insert("", "end", values=(
                line.product.id, line.product.name, line.quantity,
                format_currency(line.product.sell_price), format_currency(line.line_total),
            ))
        self.total_var.set(f"Total: {format_currency(self.cart.total)}")

    def remove_selected(self):
        sel = self.cart_tree.selection()
        if not sel:
            return
        self.cart.remove(int(self.cart_tree.item(sel[0], "values")[0]))
        self.refresh_cart_view()
        self.app.toast("Removido do carrinho.", kind="info", ms=1500)

    def clear_cart(self):
        self.cart.clear()
        self.refresh_cart_view()

    def confirm_sale(self):
        try:
            self.app.require_action("create_sale", "Seu perfil não pode registrar vendas.")
            customer_id = self.customer_map.get(self.customer_pick.get().strip())
            notes = self.notes.get("1.0", "end").strip() or None
            sale_id = self.app.sales.create_sale(
                customer_id, self.cart.to_items(), notes, actor_user_id=self.app.current_user.id
            )
        except Exception as e:
            self.app.handle_error("Venda", e, "Falha ao registrar venda.")
            return

        self.app.toast(f"Venda registrada (#{sale_id}). Estoque atualizado.", kind="success")
        self.notes.delete("1.0", "end")
        self.customer_pick.set("")
        self.clear_cart()
        self.app.refresh_all(show_toast=False)

    def cancel_selected(self):
        try:
            self.app.require_action("cancel_sale", "Seu perfil não pode cancelar vendas.")
            sel = self.sales_tree.selection()
            if not sel:
                raise ValidationError("Selecione uma venda.")
            sale = self.app.sales.get_sale(int(self.sales_tree.item(sel[0], "values")[0]))
            if sale.is_cancelled:
                raise ValidationError("Esta venda já foi cancelada.")

            reason = simpledialog.askstring(
                "Cancelar venda",
                f"Venda #{sale.id} - {format_currency(sale.total_amount)}\n"
                "Os produtos voltarão ao estoque. Informe o motivo:",
                parent=self.frame,
            )
            if reason is None:
                return
            self.app.sales.cancel_sale(sale.id, reason, actor_user_id=self.app.current_user.id)
        except Exception as e:
            self.app.handle_error("Cancelar venda", e, "Falha ao cancelar venda.")
            return

        self.app.toast(f"Venda #{sale.id} cancelada. Estoque restaurado.", kind="warn")
        self.app.refresh_all(show_toast=False)

    def refresh_history(self):
        for item in self.sales_tree.get_children():
            self.sales_tree.delete(item)
        for s in self.app.sales.list_sales():
            self.sales_tree.insert("", "end", values=(
                s.id, format_datetime(s.created_at), s.customer_name or "",
                format_currency(s.total_amount),
                "Cancelada" if s.is_cancelled else "Concluída",
                s.cancellation_reason or "",
            ), tags=("cancelled",) if s.is_cancelled else ())

    def open_sale_details(self, _evt=None):
        sel = self.sales_tree.selection()
        if not sel:
            return
        sale_id = int(self.sales_tree.item(sel[0], "values")[0])
        try:
            sale = self.app.sales.get_sale(sale_id)
            items = self.app.sales.sale_items(sale_id)
        except Exception as e:
            self.app.handle_error("Venda", e, "Falha ao abrir venda.")
            return

        win = tk.Toplevel(self.app)
        win.title(f"Venda #{sale_id}")
        win.geometry("760x440")

        h = ttk.LabelFrame(win, text="Resumo")
        h.pack(fill="x", padx=10, pady=10)
        ttk.Label(h, text=f"Data: {format_datetime(sale.created_at)} | Cliente: {sale.customer_name or ''}")\
            .pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Total: {format_currency(sale.total_amount)} | "
                          f"Status: {'Cancelada' if sale.is_cancelled else 'Concluída'}")\
            .pack(anchor="w", padx=10, pady=2)
        if sale.is_cancelled:
            ttk.Label(h, text=f"Cancelada em {format_datetime(sale.cancelled_at)}: {sale.cancellation_reason or ''}")\
                .pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Observações: {sale.notes or ''}").pack(anchor="w", padx=10, pady=2)

        cols = ("name", "qty", "unit", "line")
        tree = ttk.Treeview(win, columns=cols, show="headings", height=12)
        heads = {"name": "Produto", "qty": "Qtd", "unit": "Preço", "line": "Subtotal"}
        widths = {"name": 380, "qty": 70, "unit": 120, "line": 120}
        for c in cols:
            tree.heading(c, text=heads[c])
            tree.column(c, width=widths[c], anchor="w")
        tree.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        for it in items:
            tree.insert("", "end", values=(
                it.name, it.quantity, format_currency(it.unit_price), format_currency(it.line_total),
            ))
