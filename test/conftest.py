import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def new_repo(tmp_path: Path, name: str = "t.db"):
    from brilho.repositories.sqlite_repo import SqliteRepository

    repo = SqliteRepository(tmp_path / name)
    repo.init_db()
    return repo


def add_customer(repo, name: str = "Maria Silva", **fields) -> int:
    from brilho.services.customer_service import CustomerService

    return CustomerService(repo).create_customer(name=name, **fields)


def set_created_at(repo, table: str, row_id: int, created_at: str) -> None:
    conn = repo._conn()
    cur = conn.cursor()
    cur.execute(f"UPDATE {table} SET created_at=? WHERE id=?", (created_at, int(row_id)))
    conn.commit()
    conn.close()
