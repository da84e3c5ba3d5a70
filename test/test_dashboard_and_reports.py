from datetime import date
from pathlib import Path

from openpyxl import load_workbook

from conftest import add_customer, new_repo, set_created_at

from brilho.services.inventory_service import InventoryService
from brilho.services.reporting_service import ReportingService, last_months, month_start_iso, top_n
from brilho.services.sales_service import SalesService


def _seed(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)
    sales = SalesService(repo)

    ring = inv.create_product("Anel", 100.0, buy_price=40.0, stock_quantity=5)
    necklace = inv.create_product("Colar", 250.0, buy_price=90.0, stock_quantity=2)
    maria = add_customer(repo, "Maria")
    joana = add_customer(repo, "Joana")

    sales.create_sale(maria, [{"product_id": ring, "quantity": 2}])
    sales.create_sale(joana, [{"product_id": necklace, "quantity": 1}])
    cancelled = sales.create_sale(joana, [{"product_id": ring, "quantity": 1}])
    sales.cancel_sale(cancelled, "Desistiu")
    old = sales.create_sale(maria, [{"product_id": ring, "quantity": 1}])
    set_created_at(repo, "sales", old, "2000-01-15 10:00:00")
    return repo


def test_summary_metrics(tmp_path: Path):
    repo = _seed(tmp_path)

    s = ReportingService(repo).summary()

    assert s.total_inventory_value == 2 * 40.0 + 1 * 90.0
    assert s.potential_revenue == 2 * 100.0 + 1 * 250.0
    assert s.monthly_revenue == 450.0
    # initial stock entries only; cancellation entries are not purchases
    assert s.monthly_expenses == 5 * 40.0 + 2 * 90.0
    assert s.total_customers == 2
    assert [(r.name, r.value) for r in s.top_customers] == [("Maria", 300.0), ("Joana", 250.0)]
    assert [(r.name, r.value) for r in s.best_sellers] == [("Anel", 2), ("Colar", 1)]
    assert sorted(p.name for p in s.low_stock_products) == ["Anel", "Colar"]
    assert not s.is_empty


def test_summary_of_empty_store(tmp_path: Path):
    s = ReportingService(new_repo(tmp_path)).summary()

    assert s.is_empty
    assert s.total_inventory_value == 0
    assert s.monthly_revenue == 0
    assert s.top_customers == []
    assert s.best_sellers == []


def test_rankings_keep_customers_and_products_that_share_a_name(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)
    sales = SalesService(repo)

    gold = inv.create_product("Anel", 100.0, stock_quantity=10)
    silver = inv.create_product("Anel", 10.0, stock_quantity=10)
    first_maria = add_customer(repo, "Maria")
    second_maria = add_customer(repo, "Maria")

    sales.create_sale(first_maria, [{"product_id": gold, "quantity": 9}, {"product_id": silver, "quantity": 1}])
    sales.create_sale(second_maria, [{"product_id": silver, "quantity": 1, "unit_price": 100.0}])

    s = ReportingService(repo).summary()

    assert [(r.name, r.value) for r in s.top_customers] == [("Maria", 910.0), ("Maria", 100.0)]
    assert [(r.name, r.value) for r in s.best_sellers] == [("Anel", 9), ("Anel", 2)]


def test_monthly_totals_cover_recent_calendar_months(tmp_path: Path):
    repo = _seed(tmp_path)

    totals = ReportingService(repo).monthly_sales_totals(6)

    assert len(totals) == 6
    assert "2000-01" not in [ym for ym, _ in totals]
    assert totals[-1] == (date.today().strftime("%Y-%m"), 450.0)
    assert sum(v for _, v in totals) == 450.0


def test_monthly_totals_fill_months_without_sales(tmp_path: Path):
    repo = new_repo(tmp_path)
    ring = InventoryService(repo).create_product("Anel", 80.0, stock_quantity=5)
    sale = SalesService(repo).create_sale(add_customer(repo), [{"product_id": ring, "quantity": 1}])
    set_created_at(repo, "sales", sale, "2026-01-10 10:00:00")

    totals = ReportingService(repo).monthly_sales_totals(3, today=date(2026, 2, 15))

    assert totals == [("2025-12", 0.0), ("2026-01", 80.0), ("2026-02", 0.0)]


def test_last_months_crosses_year_boundary():
    assert last_months(3, date(2026, 1, 31)) == ["2025-11", "2025-12", "2026-01"]
    assert last_months(0) == []


def test_top_n_orders_by_value_then_name():
    totals = {1: 10.0, 2: 10.0, 3: 30.0, 4: 1.0}
    names = {1: "b", 2: "a", 3: "c", 4: "d"}

    ranked = top_n(totals, names, n=3)

    assert [r.name for r in ranked] == ["c", "a", "b"]


def test_month_start():
    assert month_start_iso(date(2026, 3, 15)) == "2026-03-01 00:00:00"


def test_export_sales_report_excel(tmp_path: Path):
    repo = _seed(tmp_path)
    path = tmp_path / "report.xlsx"

    ReportingService(repo).export_sales_report_excel(str(path), "2000-01-01 00:00:00", "9999")

    wb = load_workbook(path)
    assert wb.sheetnames == ["Resumo", "Vendas", "Movimentações"]

    resumo = wb["Resumo"]
    assert resumo["B5"].value == 3
    assert resumo["B6"].value == 550.0
    assert resumo["B7"].value == 1
    assert resumo["B8"].value == 100.0

    vendas = wb["Vendas"]
    assert vendas.max_row == 5
    statuses = {vendas.cell(row=r, column=4).value for r in range(2, 6)}
    assert statuses == {"completed", "cancelled"}
    assert "VendasDetalhe" in vendas.tables

    moves = wb["Movimentações"]
    # 2 initial entries, 4 sale exits, 1 cancellation entry
    assert moves.max_row == 1 + 7
