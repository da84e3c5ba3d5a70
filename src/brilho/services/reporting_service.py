from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from brilho.domain.models import DashboardSummary, RankedEntry
from brilho.services.inventory_service import LOW_STOCK_THRESHOLD

MONEY_FORMAT = '"R$" #,##0.00'


def month_start_iso(today: Optional[date] = None) -> str:
    today = today or date.today()
    return datetime(today.year, today.month, 1).isoformat(sep=" ")


def last_months(n: int, today: Optional[date] = None) -> list[str]:
    """`YYYY-MM` keys of the last n calendar months, oldest first, ending at today's month."""
    today = today or date.today()
    y, m = today.year, today.month
    keys = []
    for _ in range(max(0, n)):
        keys.append(f"{y:04d}-{m:02d}")
        y, m = (y - 1, 12) if m == 1 else (y, m - 1)
    return list(reversed(keys))


def top_n(totals: dict[int, float], names: dict[int, str], n: int = 5) -> list[RankedEntry]:
    # keyed by id: distinct customers/products may share a display name
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], names[kv[0]], kv[0]))
    return [RankedEntry(name=names[key], value=value) for key, value in ranked[:n]]


class ReportingService:
    def __init__(self, repo):
        self.repo = repo

    def summary(self, today: Optional[date] = None, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> DashboardSummary:
        since = month_start_iso(today)

        products = self.repo.list_products()
        inventory_value = sum(p.buy_price * p.stock_quantity for p in products)
        potential = sum(p.sell_price * p.stock_quantity for p in products)
        low = [p for p in products if p.stock_quantity < low_stock_threshold]

        completed = [s for s in self.repo.list_sales() if not s.is_cancelled]
        monthly_revenue = sum(s.total_amount for s in completed if s.created_at >= since)

        expenses = sum(qty * buy_price for qty, buy_price in self.repo.entry_costs_since(since))

        by_customer: dict[int, float] = defaultdict(float)
        names: dict[int, str] = {}
        for s in completed:
            by_customer[s.customer_id] += s.total_amount
            names[s.customer_id] = s.customer_name or "Desconhecido"
        top_customers = top_n(by_customer, names)

        by_product: dict[int, float] = defaultdict(float)
        product_names: dict[int, str] = {}
        for product_id, name, qty in self.repo.sold_quantities_since(since):
            by_product[product_id] += qty
            product_names[product_id] = name
        best_sellers = top_n(by_product, product_names)

        return DashboardSummary(
            total_inventory_value=inventory_value,
            potential_revenue=potential,
            monthly_revenue=monthly_revenue,
            monthly_expenses=expenses,
            total_customers=len(self.repo.list_customers()),
            low_stock_products=low,
            top_customers=top_customers,
            best_sellers=best_sellers,
        )

    def monthly_sales_totals(self, months: int = 6, today: Optional[date] = None) -> list[tuple[str, float]]:
        keys = last_months(months, today)
        if not keys:
            return []
        totals = dict(self.repo.monthly_sales_totals(f"{keys[0]}-01 00:00:00"))
        return [(k, float(totals.get(k, 0.0))) for k in keys]

    def export_sales_report_excel(self, path: str, start_iso: str, end_iso: str) -> None:
        wb = Workbook()

        def money(cell):
            cell.number_format = MONEY_FORMAT

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        sales = self.repo.list_sales(start_iso, end_iso)
        movements = self.repo.movements_between(start_iso, end_iso)

        completed = [s for s in sales if not s.is_cancelled]
        cancelled = [s for s in sales if s.is_cancelled]
        revenue = sum(s.total_amount for s in completed)
        spent = sum(qty * buy_price for qty, buy_price in self.repo.entry_costs_since(start_iso, end_iso))

        # -------- 1) Resumo --------
        ws = wb.active
        ws.title = "Resumo"
        ws["A1"] = "Resumo"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Período"
        ws["B3"] = f"{start_iso}  ->  {end_iso}"

        rows = [
            ("Vendas concluídas", len(completed), "int"),
            ("Receita", float(revenue), "money"),
            ("Vendas canceladas", len(cancelled), "int"),
            ("Valor cancelado", float(sum(s.total_amount for s in cancelled)), "money"),
            ("Gastos com reposição", float(spent), "money"),
        ]
        for i, (label, val, kind) in enumerate(rows):
            r = 5 + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])
        set_widths(ws, {"A": 28, "B": 34})

        # -------- 2) Vendas --------
        ws2 = wb.create_sheet("Vendas")
        ws2.append([
            "Venda", "Data", "Cliente", "Status",
            "Produto", "Qtd", "Preço unitário", "Total da linha", "Motivo do cancelamento",
        ])
        bold_row(ws2, 1)

        out_row = 2
        for s in sales:
            for it in self.repo.sale_items_for_sale(s.id):
                ws2.append([
                    int(s.id), s.created_at, s.customer_name or "", s.status,
                    it.name, int(it.quantity), float(it.unit_price), float(it.line_total),
                    s.cancellation_reason or "",
                ])
                money(ws2[f"G{out_row}"])
                money(ws2[f"H{out_row}"])
                out_row += 1

        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 8, "B": 20, "C": 28, "D": 12, "E": 34, "F": 6, "G": 16, "H": 16, "I": 34})
        if ws2.max_row >= 2:
            add_table(ws2, "VendasDetalhe", 1, 1, ws2.max_row, 9)

        # -------- 3) Movimentações --------
        ws3 = wb.create_sheet("Movimentações")
        ws3.append(["Data", "Produto", "Tipo", "Qtd", "Venda", "Observação"])
        bold_row(ws3, 1)
        for m, product_name in movements:
            ws3.append([
                m.created_at, product_name, "Entrada" if m.type == "entry" else "Saída",
                int(m.quantity), m.sale_id or "", m.reason or "",
            ])
        ws3.freeze_panes = "A2"
        set_widths(ws3, {"A": 20, "B": 34, "C": 10, "D": 6, "E": 8, "F": 40})
        if ws3.max_row >= 2:
            add_table(ws3, "Movimentacoes", 1, 1, ws3.max_row, 6)

        wb.save(path)
