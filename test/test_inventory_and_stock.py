from pathlib import Path

import pytest

from conftest import new_repo

from brilho.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from brilho.services.inventory_service import InventoryService


def test_create_product_logs_initial_stock_as_entry(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)

    pid = inv.create_product("Anel Solitário", 120.0, buy_price=50.0, stock_quantity=4, category="Anéis")

    p = inv.get_product(pid)
    assert p.stock_quantity == 4
    assert p.category == "Anéis"

    moves = inv.movements_for_product(pid)
    assert len(moves) == 1
    assert moves[0].type == "entry"
    assert moves[0].quantity == 4
    assert moves[0].reason == "Estoque inicial"


def test_product_without_initial_stock_has_no_movements(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)

    pid = inv.create_product("Brinco", 30.0)

    assert inv.get_product(pid).stock_quantity == 0
    assert inv.movements_for_product(pid) == []


def test_name_and_sell_price_are_required(tmp_path: Path):
    inv = InventoryService(new_repo(tmp_path))

    with pytest.raises(ValidationError, match="obrigatórios"):
        inv.create_product("", 10.0)
    with pytest.raises(ValidationError, match="obrigatórios"):
        inv.create_product("Colar", 0)
    with pytest.raises(ValidationError, match="negativo"):
        inv.create_product("Colar", 10.0, stock_quantity=-1)


def test_entry_and_exit_update_stock_and_log(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)
    pid = inv.create_product("Pulseira", 80.0, buy_price=30.0, stock_quantity=2)

    assert inv.record_entry(pid, 5, "Reposição") == 7
    assert inv.record_exit(pid, 3, "Perda") == 4

    assert inv.get_product(pid).stock_quantity == 4
    moves = inv.movements_for_product(pid)
    assert [(m.type, m.quantity) for m in moves] == [("exit", 3), ("entry", 5), ("entry", 2)]
    assert moves[0].reason == "Perda"


def test_exit_cannot_exceed_stock(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)
    pid = inv.create_product("Colar", 90.0, stock_quantity=2)

    with pytest.raises(InsufficientStockError, match="Disponível: 2"):
        inv.record_exit(pid, 3)

    assert inv.get_product(pid).stock_quantity == 2
    assert len(inv.movements_for_product(pid)) == 1


def test_movement_quantity_must_be_positive(tmp_path: Path):
    inv = InventoryService(new_repo(tmp_path))
    pid = inv.create_product("Colar", 90.0, stock_quantity=2)

    with pytest.raises(ValidationError):
        inv.record_entry(pid, 0)
    with pytest.raises(ValidationError):
        inv.record_exit(pid, -1)


def test_repository_guards_stock_even_without_service_check(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)
    pid = inv.create_product("Conjunto", 200.0, stock_quantity=1)

    with pytest.raises(InsufficientStockError):
        repo.record_stock_movement(pid, "exit", 5, "2026-01-01 10:00:00")

    assert repo.get_product_by_id(pid).stock_quantity == 1


def test_update_and_delete_product(tmp_path: Path):
    repo = new_repo(tmp_path)
    inv = InventoryService(repo)
    pid = inv.create_product("Anel", 50.0, stock_quantity=1)

    inv.update_product(pid, "Anel Dourado", 65.0, buy_price=20.0, category="Anéis", image_url=" ")
    p = inv.get_product(pid)
    assert p.name == "Anel Dourado"
    assert p.sell_price == 65.0
    assert p.image_url is None
    # stock is only changed through movements
    assert p.stock_quantity == 1

    inv.delete_product(pid)
    assert repo.get_product_by_id(pid) is None
    assert inv.list_products() == []

    with pytest.raises(NotFoundError):
        inv.delete_product(pid)


def test_search_matches_name_or_category(tmp_path: Path):
    inv = InventoryService(new_repo(tmp_path))
    inv.create_product("Argola Prata", 40.0, category="Brincos")
    inv.create_product("Choker", 60.0, category="Colares")

    assert [p.name for p in inv.search_products("argola")] == ["Argola Prata"]
    assert [p.name for p in inv.search_products("COLAR")] == ["Choker"]
    assert len(inv.search_products("")) == 2


def test_low_stock_is_below_three(tmp_path: Path):
    inv = InventoryService(new_repo(tmp_path))
    inv.create_product("A", 10.0, stock_quantity=2)
    inv.create_product("B", 10.0, stock_quantity=3)
    inv.create_product("C", 10.0, stock_quantity=0)

    assert sorted(p.name for p in inv.low_stock()) == ["A", "C"]
    assert [p.name for p in inv.in_stock_products()] == ["A", "B"]
