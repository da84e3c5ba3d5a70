from __future__ import annotations

import tkinter as tk
from tkinter import ttk

from brilho.domain.formatting import format_currency


class DashboardView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Dashboard")

        self.cards: dict[str, ttk.Label] = {}
        self._build()

    def _build(self):
        tab = self.frame

        ttk.Label(tab, text="Dashboard", style="Title.TLabel").pack(anchor="w", padx=10, pady=(10, 0))
        self.empty_label = ttk.Label(tab, text="", foreground="#64748b")
        self.empty_label.pack(anchor="w", padx=10)

        grid = ttk.Frame(tab)
        grid.pack(fill="x", padx=10, pady=10)

        cards = [
            ("inventory", "Valor em Estoque"),
            ("potential", "Receita Potencial"),
            ("revenue", "Receita do Mês"),
            ("expenses", "Gastos do Mês"),
            ("customers", "Clientes"),
            ("low", "Estoque Baixo"),
        ]
        for i, (key, title) in enumerate(cards):
            card = ttk.LabelFrame(grid, text=title)
            card.grid(row=i // 3, column=i % 3, sticky="nsew", padx=6, pady=6)
            value = ttk.Label(card, text="-", style="KPIValue.TLabel")
            value.pack(anchor="w", padx=12, pady=10)
            self.cards[key] = value
        for c in range(3):
            grid.columnconfigure(c, weight=1)

        lists = ttk.Frame(tab)
        lists.pack(fill="both", expand=True, padx=10)
        for c in range(3):
            lists.columnconfigure(c, weight=1)

        self.top_customers = self._ranked_tree(lists, "Top 5 Clientes", "Total", 0)
        self.best_sellers = self._ranked_tree(lists, "Mais Vendidos do Mês", "Qtd", 1)

        low_box = ttk.LabelFrame(lists, text="Estoque Baixo (menos de 3)")
        low_box.grid(row=0, column=2, sticky="nsew", padx=6, pady=6)
        self.low_list = tk.Listbox(low_box, height=6)
        self.low_list.pack(fill="both", expand=True, padx=8, pady=8)
        self.low_list.bind("<Double-1>", self.on_low_stock_open)
        self._low_ids: list[int] = []

        self.sales_canvas = tk.Canvas(tab, height=200, bg="#f8fafc", highlightthickness=1, highlightbackground="#cbd5e1")
        self.sales_canvas.pack(fill="x", padx=16, pady=10)

    def _ranked_tree(self, parent, title: str, value_title: str, column: int) -> ttk.Treeview:
        box = ttk.LabelFrame(parent, text=title)
        box.grid(row=0, column=column, sticky="nsew", padx=6, pady=6)
        tree = ttk.Treeview(box, columns=("name", "value"), show="headings", height=5)
        tree.heading("name", text="Nome")
        tree.heading("value", text=value_title)
        tree.column("name", width=200, anchor="w")
        tree.column("value", width=110, anchor="e")
        tree.pack(fill="both", expand=True, padx=8, pady=8)
        return tree

    def refresh(self):
        s = self.app.reporting.summary()

        self.cards["inventory"].config(text=format_currency(s.total_inventory_value))
        self.cards["potential"].config(text=format_currency(s.potential_revenue))
        self.cards["revenue"].config(text=format_currency(s.monthly_revenue))
        self.cards["expenses"].config(text=format_currency(s.monthly_expenses))
        self.cards["customers"].config(text=str(s.total_customers))
        self.cards["low"].config(text=str(len(s.low_stock_products)))

        self.empty_label.config(
            text="Nenhum dado ainda. Cadastre produtos e clientes para começar." if s.is_empty else ""
        )

        for tree, rows, fmt in (
            (self.top_customers, s.top_customers, format_currency),
            (self.best_sellers, s.best_sellers, lambda v: str(int(v))),
        ):
            for item in tree.get_children():
                tree.delete(item)
            for r in rows:
                tree.insert("", "end", values=(r.name, fmt(r.value)))

        self.low_list.delete(0, tk.END)
        self._low_ids = []
        for p in s.low_stock_products[:5]:
            self.low_list.insert(tk.END, f"{p.name} ({p.stock_quantity} un.)")
            self._low_ids.append(p.id)

        data = self.app.reporting.monthly_sales_totals(6)
        self._draw_bar_chart(self.sales_canvas, "Vendas mensais (R$)", data, color="#b45309")

    def on_low_stock_open(self, _evt=None):
        sel = self.low_list.curselection()
        if not sel:
            return
        product_id = self._low_ids[sel[0]]
        self.app.show(self.app.products_view)
        self.app.products_view.select_product_in_tree(product_id)

    def _draw_bar_chart(self, canvas: tk.Canvas, title: str, data: list[tuple[str, float]], color: str = "#2b78c2"):
        canvas.delete("all")
        w, h = int(canvas.winfo_width() or 560), int(canvas.winfo_height() or 200)
        # not mapped yet
        if w < 100 or h < 100:
            w, h = 560, 200
        canvas.create_text(12, 16, text=title, anchor="w", font=("Segoe UI", 10, "bold"), fill="#0f172a")
        if not data:
            canvas.create_text(w // 2, h // 2, text="Sem dados", fill="#64748b")
            return
        maxv = max(v for _, v in data) or 1
        bw = max(24, (w - 40) // len(data))
        for i, (label, val) in enumerate(data):
            x0 = 24 + i * bw
            x1 = x0 + bw - 8
            y1 = h - 30
            y0 = y1 - int((val / maxv) * (h - 70))
            canvas.create_rectangle(x0, y0, x1, y1, fill=color, outline="")
            canvas.create_text((x0 + x1) // 2, y1 + 12, text=label, font=("Segoe UI", 8), fill="#475569")
            canvas.create_text((x0 + x1) // 2, y0 - 8, text=f"{val:.0f}", font=("Segoe UI", 8), fill="#0f172a")
