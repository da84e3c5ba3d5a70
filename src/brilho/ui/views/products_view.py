from __future__ import annotations

import base64
import queue
import threading
import tkinter as tk
from tkinter import ttk, messagebox
import logging

from brilho.domain.errors import ValidationError
from brilho.domain.formatting import format_currency, format_datetime, parse_decimal, parse_int
from brilho.domain.models import CATEGORIES, MOVEMENT_ENTRY
from brilho.services.inventory_service import LOW_STOCK_THRESHOLD

log = logging.getLogger(__name__)

PREVIEW_POLL_MS = 100


class ProductsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Estoque")

        self.editing_id: int | None = None
        self.search_var = tk.StringVar()
        self.category_var = tk.StringVar(value=CATEGORIES[0])
        self._preview_image = None
        self._preview_token = 0
        self._preview_queue: queue.Queue = queue.Queue()

        tab = self.frame
        style = ttk.Style(self.frame)
        style.configure("ProductsCompact.Treeview", rowheight=24, font=("Segoe UI", 9))
        style.configure("ProductsCompact.Treeview.Heading", font=("Segoe UI", 9, "bold"))

        left = ttk.LabelFrame(tab, text="Produto", width=290)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        right = ttk.LabelFrame(tab, text="Produtos")
        right.pack(side="right", fill="both", expand=True, pady=8)

        self.p_name = self._entry(left, "Nome *", 0)
        ttk.Label(left, text="Categoria").grid(row=1, column=0, sticky="w", padx=8, pady=4)
        ttk.Combobox(left, textvariable=self.category_var, values=list(CATEGORIES), state="readonly", width=14)\
            .grid(row=1, column=1, sticky="ew", padx=8, pady=4)
        self.p_cost = self._entry(left, "Custo (R$)", 2)
        self.p_price = self._entry(left, "Venda (R$) *", 3)
        self.p_stock = self._entry(left, "Estoque inicial", 4)
        self.p_image = self._entry(left, "URL da imagem", 5)
        self.p_desc = self._entry(left, "Descrição", 6)

        btns = ttk.Frame(left)
        btns.grid(row=7, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        for c in range(3):
            btns.columnconfigure(c, weight=1)

        self.save_btn = ttk.Button(btns, text="Adicionar", command=self.on_save_product)
        self.save_btn.grid(row=0, column=0, sticky="ew", padx=(0, 6))
        ttk.Button(btns, text="Excluir", command=self.on_delete_product)\
            .grid(row=0, column=1, sticky="ew", padx=6)
        ttk.Button(btns, text="Limpar", command=self.clear_form)\
            .grid(row=0, column=2, sticky="ew", padx=(6, 0))

        moves = ttk.Frame(left)
        moves.grid(row=8, column=0, columnspan=2, sticky="ew", padx=8, pady=(0, 8))
        moves.columnconfigure(0, weight=1)
        moves.columnconfigure(1, weight=1)
        ttk.Button(moves, text="Movimentar estoque", command=self.open_movement_dialog)\
            .grid(row=0, column=0, sticky="ew", padx=(0, 6))
        ttk.Button(moves, text="Histórico", command=self.open_movement_history)\
            .grid(row=0, column=1, sticky="ew", padx=(6, 0))

        self.preview = ttk.Label(left, text="Sem imagem", anchor="center")
        self.preview.grid(row=9, column=0, columnspan=2, sticky="nsew", padx=8, pady=8)

        for entry in (self.p_name, self.p_cost, self.p_price, self.p_stock, self.p_image, self.p_desc):
            entry.bind("<Return>", self._on_enter_save)

        search = ttk.Frame(right)
        search.pack(fill="x", padx=6, pady=(6, 0))
        ttk.Label(search, text="Buscar (nome ou categoria)").pack(side="left")
        search_e = ttk.Entry(search, textvariable=self.search_var, width=36)
        search_e.pack(side="left", padx=8)
        search_e.bind("<KeyRelease>", lambda _e: self.refresh())

        tree_wrap = ttk.Frame(right)
        tree_wrap.pack(fill="both", expand=True, padx=6, pady=6)

        cols = ("id", "name", "category", "cost", "price", "stock")
        self.tree = ttk.Treeview(tree_wrap, columns=cols, show="headings", height=20, style="ProductsCompact.Treeview")
        heads = {
            "id": "ID", "name": "Nome", "category": "Categoria",
            "cost": "Custo", "price": "Venda", "stock": "Estoque",
        }
        widths = {"id": 48, "name": 300, "category": 110, "cost": 100, "price": 100, "stock": 78}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")

        self.tree.tag_configure("low", background="#ffdddd")
        self.tree.bind("<<TreeviewSelect>>", self.on_select)

        vsb = ttk.Scrollbar(tree_wrap, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")

        tree_wrap.columnconfigure(0, weight=1)
        tree_wrap.rowconfigure(0, weight=1)

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
        e = ttk.Entry(parent, width=18)
        e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
        parent.columnconfigure(1, weight=1)
        return e

    def _selected_id(self) -> int:
        selected = self.tree.selection()
        if not selected:
            raise ValidationError("Selecione um produto.")
        return int(self.tree.item(selected[0], "values")[0])

    def _on_enter_save(self, _event=None):
        self.on_save_product()
        return "break"

    def on_save_product(self):
        try:
            name = self.p_name.get().strip()
            cost = parse_decimal(self.p_cost.get(), "Custo")
            price = parse_decimal(self.p_price.get(), "Venda")
            fields = dict(
                category=self.category_var.get(),
                description=self.p_desc.get(),
                image_url=self.p_image.get(),
            )

            if self.editing_id is None:
                self.app.require_action("create_product", "Seu perfil não pode cadastrar produtos.")
                stock = parse_int(self.p_stock.get(), "Estoque inicial")
                pid = self.app.inventory.create_product(
                    name, price, cost, stock, actor_user_id=self.app.current_user.id, **fields
                )
                self.app.toast(f"Produto adicionado (ID {pid}).", kind="success")
            else:
                self.app.require_action("edit_product", "Seu perfil não pode editar produtos.")
                self.app.inventory.update_product(self.editing_id, name, price, cost, **fields)
                self.app.toast("Produto atualizado.", kind="success")

            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Produto", e, "Falha ao salvar produto.")

    def on_delete_product(self):
        try:
            self.app.require_action("delete_product", "Seu perfil não pode excluir produtos.")
            product_id = self._selected_id()
            product = self.app.inventory.get_product(product_id)

            confirmed = messagebox.askyesno(
                "Excluir produto",
                f"Tem certeza que deseja excluir '{product.name}'?",
                parent=self.frame,
            )
            if not confirmed:
                return

            self.app.inventory.delete_product(product_id)
            self.app.toast("Produto excluído.", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Excluir produto", e, "Falha ao excluir produto.")

    def on_select(self, _evt=None):
        selected = self.tree.selection()
        if not selected:
            return
        p = self.app.inventory.get_product(int(self.tree.item(selected[0], "values")[0]))
        self.editing_id = p.id
        self._fill_form(p)
        self.save_btn.config(text="Salvar")
        self._show_preview(p.image_url)

    def _fill_form(self, p):
        for e, value in (
            (self.p_name, p.name),
            (self.p_cost, f"{p.buy_price:.2f}"),
            (self.p_price, f"{p.sell_price:.2f}"),
            (self.p_stock, str(p.stock_quantity)),
            (self.p_image, p.image_url or ""),
            (self.p_desc, p.description or ""),
        ):
            e.delete(0, tk.END)
            e.insert(0, value)
        self.p_stock.config(state="disabled")
        self.category_var.set(p.category or "Outros")

    def _show_preview(self, url):
        self._preview_token += 1
        self._preview_image = None
        if not (url or "").strip():
            self.preview.config(image="", text="Sem imagem")
            return
        self.preview.config(image="", text="Carregando imagem...")
        # downloads run off the Tk thread; results come back through the queue
        threading.Thread(target=self._fetch_preview, args=(self._preview_token, url), daemon=True).start()
        self.frame.after(PREVIEW_POLL_MS, self._poll_preview)

    def _fetch_preview(self, token: int, url: str):
        self._preview_queue.put((token, self.app.images.fetch(url)))

    def _poll_preview(self):
        try:
            token, data = self._preview_queue.get_nowait()
        except queue.Empty:
            self.frame.after(PREVIEW_POLL_MS, self._poll_preview)
            return
        # stale result from an earlier selection
        if token != self._preview_token:
            return
        self._apply_preview(data)

    def _apply_preview(self, data):
        if not data:
            self._preview_image = None
            self.preview.config(image="", text="Sem imagem")
            return
        try:
            img = tk.PhotoImage(data=base64.b64encode(data))
        except tk.TclError:
            # Tk only decodes PNG/GIF
            self._preview_image = None
            self.preview.config(image="", text="Prévia indisponível")
            return
        factor = max(1, img.width() // 200, img.height() // 200)
        self._preview_image = img.subsample(factor)
        self.preview.config(image=self._preview_image, text="")

    def clear_form(self):
        self._preview_token += 1
        self.editing_id = None
        self.p_stock.config(state="normal")
        for e in (self.p_name, self.p_cost, self.p_price, self.p_stock, self.p_image, self.p_desc):
            e.delete(0, tk.END)
        self.category_var.set(CATEGORIES[0])
        self.save_btn.config(text="Adicionar")
        self._preview_image = None
        self.preview.config(image="", text="Sem imagem")
        self.p_name.focus_set()

    def refresh(self):
        for item in self.tree.get_children():
            self.tree.delete(item)

        for p in self.app.inventory.search_products(self.search_var.get()):
            tag = "low" if p.stock_quantity < LOW_STOCK_THRESHOLD else ""
            self.tree.insert(
                "", "end",
                values=(p.id, p.name, p.category or "", format_currency(p.buy_price),
                        format_currency(p.sell_price), p.stock_quantity),
                tags=(tag,) if tag else (),
            )

    def select_product_in_tree(self, product_id: int):
        self.search_var.set("")
        self.refresh()
        for iid in self.tree.get_children():
            vals = self.tree.item(iid, "values")
            if vals and int(vals[0]) == int(product_id):
                self.tree.selection_set(iid)
                self.tree.focus(iid)
                self.tree.see(iid)
                return

    # ---------- stock movements ----------
    def open_movement_dialog(self):
        try:
            self.app.require_action("record_stock", "Seu perfil não pode movimentar o estoque.")
            product = self.app.inventory.get_product(self._selected_id())
        except Exception as e:
            self.app.handle_error("Movimentar estoque", e, "Falha ao abrir movimentação.")
            return
        StockMovementDialog(self.app, product)

    def open_movement_history(self):
        try:
            product = self.app.inventory.get_product(self._selected_id())
        except Exception as e:
            self.app.handle_error("Histórico", e, "Falha ao abrir histórico.")
            return

        win = tk.Toplevel(self.app)
        win.title(f"Movimentações - {product.name}")
        win.geometry("760x420")

        cols = ("dt", "type", "qty", "reason")
        tree = ttk.Treeview(win, columns=cols, show="headings", height=16)
        heads = {"dt": "Data", "type": "Tipo", "qty": "Qtd", "reason": "Observação"}
        widths = {"dt": 140, "type": 90, "qty": 70, "reason": 420}
        for c in cols:
            tree.heading(c, text=heads[c])
            tree.column(c, width=widths[c], anchor="w")
        tree.pack(fill="both", expand=True, padx=10, pady=10)

        for m in self.app.inventory.movements_for_product(product.id):
            tree.insert("", "end", values=(
                format_datetime(m.created_at),
                "Entrada" if m.type == MOVEMENT_ENTRY else "Saída",
                f"+{m.quantity}" if m.type == MOVEMENT_ENTRY else f"-{m.quantity}",
                m.reason or "",
            ))


class StockMovementDialog:
    def __init__(self, app, product):
        self.app = app
        self.product = product
        self.kind = tk.StringVar(value="entry")

        self.win = tk.Toplevel(app)
        self.win.title("Movimentar Estoque")
        self.win.geometry("360x260")
        self.win.transient(app)

        box = ttk.Frame(self.win)
        box.pack(fill="both", expand=True, padx=14, pady=12)

        ttk.Label(box, text=f"{product.name} (atual: {product.stock_quantity})", style="Title.TLabel")\
            .grid(row=0, column=0, columnspan=2, sticky="w", pady=(0, 8))
        ttk.Radiobutton(box, text="Entrada", value="entry", variable=self.kind).grid(row=1, column=0, sticky="w")
        ttk.Radiobutton(box, text="Saída", value="exit", variable=self.kind).grid(row=1, column=1, sticky="w")

        ttk.Label(box, text="Quantidade").grid(row=2, column=0, sticky="w", pady=6)
        self.qty_e = ttk.Entry(box, width=10)
        self.qty_e.grid(row=2, column=1, sticky="w", pady=6)

        ttk.Label(box, text="Observação").grid(row=3, column=0, sticky="w", pady=6)
        self.notes_e = ttk.Entry(box, width=26)
        self.notes_e.grid(row=3, column=1, sticky="ew", pady=6)

        ttk.Button(box, text="Confirmar", style="Big.TButton", command=self.confirm)\
            .grid(row=4, column=0, columnspan=2, sticky="ew", pady=(10, 0))
        box.columnconfigure(1, weight=1)
        self.qty_e.focus_set()

    def confirm(self):
        try:
            qty = parse_int(self.qty_e.get(), "Quantidade")
            notes = self.notes_e.get()
            actor = self.app.current_user.id
            if self.kind.get() == "entry":
                stock_after = self.app.inventory.record_entry(self.product.id, qty, notes, actor_user_id=actor)
            else:
                stock_after = self.app.inventory.record_exit(self.product.id, qty, notes, actor_user_id=actor)
        except Exception as e:
            self.app.handle_error("Movimentar estoque", e, "Falha ao registrar movimentação.")
            return

        self.app.toast(f"Estoque atualizado: {self.product.name} agora tem {stock_after} un.", kind="success")
        self.win.destroy()
        self.app.refresh_all(show_toast=False)
