from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from conftest import new_repo

from brilho.domain.errors import ImportFileError
from brilho.services.excel_service import (
    CUSTOMER_HEADERS,
    IMPORT_REASON,
    PRODUCT_HEADERS,
    ExcelService,
)
from brilho.services.inventory_service import InventoryService


def _sheet(path: Path, rows: list[list]) -> str:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return str(path)


def test_import_products_with_stock_movements(tmp_path: Path):
    repo = new_repo(tmp_path)
    excel = ExcelService(repo)
    path = _sheet(tmp_path / "p.xlsx", [
        PRODUCT_HEADERS,
        ["Brinco Gota", "Brincos", 25.0, 60.0, 4, "Folheado"],
        ["Anel Aparador", None, "10,50", "39,90", None, None],
        ["", "Anéis", 1, 2, 3, ""],
        ["Sem preço", "Colares", 10, None, 1, ""],
        [None, None, None, None, None, None],
    ])

    result = excel.import_products(path)

    assert result.imported == 2
    assert result.skipped == 2

    products = {p.name: p for p in InventoryService(repo).list_products()}
    assert set(products) == {"Brinco Gota", "Anel Aparador"}
    assert products["Brinco Gota"].stock_quantity == 4
    assert products["Brinco Gota"].description == "Folheado"
    assert products["Anel Aparador"].category == "Outros"
    assert products["Anel Aparador"].buy_price == 10.5
    assert products["Anel Aparador"].sell_price == 39.9

    moves = repo.movements_for_product(products["Brinco Gota"].id)
    assert [(m.type, m.quantity, m.reason) for m in moves] == [("entry", 4, IMPORT_REASON)]


def test_import_fractional_stock_is_not_truncated(tmp_path: Path):
    repo = new_repo(tmp_path)
    path = _sheet(tmp_path / "p.xlsx", [
        PRODUCT_HEADERS,
        ["Pulseira Elo", "Pulseiras", 12.0, 35.0, 2.5, ""],
        ["Pulseira Fina", "Pulseiras", 8.0, 22.0, "3,0", ""],
    ])

    ExcelService(repo).import_products(path)

    stock = {p.name: p.stock_quantity for p in InventoryService(repo).list_products()}
    assert stock == {"Pulseira Elo": 0, "Pulseira Fina": 3}


def test_import_headers_are_case_insensitive(tmp_path: Path):
    repo = new_repo(tmp_path)
    path = _sheet(tmp_path / "p.xlsx", [
        ["nome", "VENDA (R$)"],
        ["Colar Ponto de Luz", 89.9],
    ])

    assert ExcelService(repo).import_products(path).imported == 1


def test_import_rejects_empty_or_invalid_files(tmp_path: Path):
    excel = ExcelService(new_repo(tmp_path))

    with pytest.raises(ImportFileError, match="vazio"):
        excel.import_products(_sheet(tmp_path / "empty.xlsx", [PRODUCT_HEADERS]))
    with pytest.raises(ImportFileError, match="Venda"):
        excel.import_products(_sheet(tmp_path / "cols.xlsx", [["Nome", "Preço"], ["Anel", 10]]))
    with pytest.raises(ImportFileError, match="Nenhum produto válido"):
        excel.import_products(_sheet(tmp_path / "bad.xlsx", [PRODUCT_HEADERS, ["Anel", "", 1, "abc", 1, ""]]))

    not_excel = tmp_path / "notes.xlsx"
    not_excel.write_text("not a workbook", encoding="utf-8")
    with pytest.raises(ImportFileError, match="Não foi possível abrir"):
        excel.import_products(str(not_excel))


def test_import_customers(tmp_path: Path):
    repo = new_repo(tmp_path)
    excel = ExcelService(repo)
    path = _sheet(tmp_path / "c.xlsx", [
        CUSTOMER_HEADERS,
        ["Maria Silva", 11999999999, "1990-05-25", "Rua das Flores", 123, "Centro", "São Paulo", "sp", None, "VIP"],
        ["Joana", None, datetime(1985, 12, 1), None, None, None, None, None, None, None],
        ["Data ruim", None, "99/99/1999", None, None, None, None, None, None, None],
        [None, "1234", None, None, None, None, None, None, None, None],
    ])

    result = excel.import_customers(path)

    assert result.imported == 2
    assert result.skipped == 2
    customers = {c.name: c for c in repo.list_customers()}
    assert customers["Maria Silva"].phone == "11999999999"
    assert customers["Maria Silva"].number == "123"
    assert customers["Maria Silva"].state == "SP"
    assert customers["Maria Silva"].birth_date == "1990-05-25"
    assert customers["Joana"].birth_date == "1985-12-01"


def test_import_customers_without_valid_rows(tmp_path: Path):
    excel = ExcelService(new_repo(tmp_path))
    path = _sheet(tmp_path / "c.xlsx", [CUSTOMER_HEADERS, [None, "119"]])

    with pytest.raises(ImportFileError, match="Nenhum cliente válido"):
        excel.import_customers(path)


def test_templates_import_back(tmp_path: Path):
    repo = new_repo(tmp_path)
    excel = ExcelService(repo)

    excel.write_template("products", str(tmp_path / "mp.xlsx"))
    excel.write_template("customers", str(tmp_path / "mc.xlsx"))

    assert excel.import_products(str(tmp_path / "mp.xlsx")).imported == 1
    assert excel.import_customers(str(tmp_path / "mc.xlsx")).imported == 1


def test_export_products_and_customers(tmp_path: Path):
    repo = new_repo(tmp_path)
    excel = ExcelService(repo)
    InventoryService(repo).create_product("Pulseira", 75.0, buy_price=30.0, stock_quantity=3, category="Pulseiras")

    out = tmp_path / "produtos.xlsx"
    assert excel.export_products(str(out)) == 1

    ws = load_workbook(out).active
    assert [c.value for c in ws[1]] == PRODUCT_HEADERS
    assert [c.value for c in ws[2]][:5] == ["Pulseira", "Pulseiras", 30.0, 75.0, 3]

    out_c = tmp_path / "clientes.xlsx"
    assert excel.export_customers(str(out_c)) == 0
    assert [c.value for c in load_workbook(out_c).active[1]] == CUSTOMER_HEADERS
