from __future__ import annotations

import sqlite3
import hashlib
import hmac
import secrets
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from brilho.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from brilho.domain.models import (
    MOVEMENT_ENTRY,
    MOVEMENT_EXIT,
    SALE_CANCELLED,
    SALE_COMPLETED,
    Customer,
    Product,
    Sale,
    SaleLine,
    StockMovement,
    User,
)

PRODUCT_COLUMNS = (
    "id, name, description, category, buy_price, sell_price, stock_quantity, image_url, active, created_at"
)
CUSTOMER_FIELDS = (
    "name", "phone", "email", "birth_date", "street", "number",
    "neighborhood", "city", "state", "complement", "notes",
)
CUSTOMER_COLUMNS = "id, " + ", ".join(CUSTOMER_FIELDS) + ", active, created_at"
SALE_COLUMNS = (
    "s.id, s.customer_id, c.name, s.total_amount, s.status, s.created_at, "
    "s.cancellation_reason, s.cancelled_at, s.notes"
)
MOVEMENT_COLUMNS = "id, product_id, type, quantity, sale_id, reason, created_at, user_id"


def _product(r) -> Product:
    return Product(
        id=int(r[0]),
        name=str(r[1]),
        description=r[2],
        category=r[3],
        buy_price=float(r[4]),
        sell_price=float(r[5]),
        stock_quantity=int(r[6]),
        image_url=r[7],
        active=int(r[8]),
        created_at=str(r[9] or ""),
    )


def _customer(r) -> Customer:
    return Customer(int(r[0]), *r[1:12], active=int(r[12]), created_at=str(r[13] or ""))


def _sale(r) -> Sale:
    return Sale(
        id=int(r[0]),
        customer_id=int(r[1]),
        customer_name=(str(r[2]) if r[2] is not None else None),
        total_amount=float(r[3]),
        status=str(r[4]),
        created_at=str(r[5]),
        cancellation_reason=r[6],
        cancelled_at=r[7],
        notes=r[8],
    )


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_users),
                (3, self._migration_v3_indexes),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()
            if backup_path is not None:
                backup_path.unlink(missing_ok=True)

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT,
                category TEXT,
                buy_price REAL NOT NULL DEFAULT 0 CHECK(buy_price >= 0),
                sell_price REAL NOT NULL CHECK(sell_price > 0),
                stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK(stock_quantity >= 0),
                image_url TEXT,
                active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0,1)),
                created_at TEXT NOT NULL,
                user_id INTEGER
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS customers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT,
                email TEXT,
                birth_date TEXT,
                street TEXT,
                number TEXT,
                neighborhood TEXT,
                city TEXT,
                state TEXT,
                complement TEXT,
                notes TEXT,
                active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0,1)),
                created_at TEXT NOT NULL,
                user_id INTEGER
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id INTEGER NOT NULL,
                total_amount REAL NOT NULL CHECK(total_amount >= 0),
                status TEXT NOT NULL DEFAULT 'completed' CHECK(status IN ('completed','cancelled')),
                cancellation_reason TEXT,
                cancelled_at TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                user_id INTEGER,
                FOREIGN KEY(customer_id) REFERENCES customers(id)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sale_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sale_id INTEGER NOT NULL,
                product_id INTEGER NOT NULL,
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                unit_price REAL NOT NULL CHECK(unit_price >= 0),
                FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE,
                FOREIGN KEY(product_id) REFERENCES products(id)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS stock_movements (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_id INTEGER NOT NULL,
                type TEXT NOT NULL CHECK(type IN ('entry','exit')),
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                sale_id INTEGER,
                reason TEXT,
                created_at TEXT NOT NULL,
                user_id INTEGER,
                FOREIGN KEY(product_id) REFERENCES products(id),
                FOREIGN KEY(sale_id) REFERENCES sales(id)
            )
            """
        )

    def _migration_v2_users(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                password TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('admin','seller','viewer')),
                active INTEGER NOT NULL DEFAULT 1,
                failed_attempts INTEGER NOT NULL DEFAULT 0,
                locked_until TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )

    def _migration_v3_indexes(self, cur: sqlite3.Cursor) -> None:
        cur.execute("CREATE INDEX IF NOT EXISTS idx_movements_product ON stock_movements(product_id, created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_customer ON sales(customer_id, created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_created ON sales(created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id)")

    # ---------- Users ----------
    def count_active_users(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM users WHERE active=1")
        n = int(cur.fetchone()[0])
        conn.close()
        return n

    def list_users(self) -> list[User]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, email, role, active FROM users WHERE active=1 ORDER BY email")
        rows = cur.fetchall()
        conn.close()
        return [User(id=int(r[0]), email=str(r[1]), role=str(r[2]), active=int(r[3])) for r in rows]

    def _get_user_row(self, cur: sqlite3.Cursor, email: str):
        cur.execute(
            """
            SELECT id, email, role, active, password, failed_attempts, locked_until
            FROM users
            WHERE active=1 AND email=?
            """,
            (email,),
        )
        return cur.fetchone()

    def user_exists(self, email: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM users WHERE email=?", (email,))
        found = cur.fetchone() is not None
        conn.close()
        return found

    def get_user_security_state(self, email: str) -> tuple[int, Optional[str]] | None:
        conn = self._conn()
        cur = conn.cursor()
        row = self._get_user_row(cur, email)
        conn.close()
        if not row:
            return None
        return int(row[5]), (str(row[6]) if row[6] is not None else None)

    def record_login_failure(self, email: str, max_attempts: int, lockout_seconds: int) -> tuple[int, Optional[str]]:
        conn = self._conn()
        cur = conn.cursor()
        row = self._get_user_row(cur, email)
        if not row:
            conn.close()
            return 0, None

        attempts = int(row[5]) + 1
        locked_until = None
        if attempts >= int(max_attempts):
            attempts = 0
            cur.execute(
                "UPDATE users SET failed_attempts=?, locked_until=datetime('now', ?) WHERE id=?",
                (attempts, f"+{int(lockout_seconds)} seconds", int(row[0])),
            )
            cur.execute("SELECT locked_until FROM users WHERE id=?", (int(row[0]),))
            locked_until = str(cur.fetchone()[0])
        else:
            cur.execute("UPDATE users SET failed_attempts=? WHERE id=?", (attempts, int(row[0])))
        conn.commit()
        conn.close()
        return attempts, locked_until

    def clear_login_guard(self, user_id: int) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("UPDATE users SET failed_attempts=0, locked_until=NULL WHERE id=?", (int(user_id),))
        conn.commit()
        conn.close()

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        conn = self._conn()
        cur = conn.cursor()
        row = self._get_user_row(cur, email)
        conn.close()
        if row and self._verify_password(str(row[4]), password):
            return User(id=int(row[0]), email=str(row[1]), role=str(row[2]), active=int(row[3]))
        return None

    def create_user(self, email: str, password: str, role: str) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                "INSERT INTO users (email, password, role, active) VALUES (?, ?, ?, 1)",
                (email, self._hash_password(password), role),
            )
            uid = int(cur.lastrowid)
            conn.commit()
            return uid
        finally:
            conn.close()

    def change_user_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT password FROM users WHERE id=? AND active=1", (int(user_id),))
        row = cur.fetchone()
        if not row or not self._verify_password(str(row[0]), current_password):
            conn.close()
            return False

        cur.execute("UPDATE users SET password=? WHERE id=?", (self._hash_password(new_password), int(user_id)))
        conn.commit()
        conn.close()
        return True

    # ---------- Products ----------
    def add_product(
        self,
        name: str,
        description: Optional[str],
        category: Optional[str],
        buy_price: float,
        sell_price: float,
        image_url: Optional[str],
        created_at: str,
        initial_stock: int = 0,
        actor_user_id: Optional[int] = None,
    ) -> int:
        ids = self.add_products(
            [{
                "name": name,
                "description": description,
                "category": category,
                "buy_price": buy_price,
                "sell_price": sell_price,
                "image_url": image_url,
                "stock_quantity": initial_stock,
            }],
            created_at=created_at,
            reason="Estoque inicial",
            actor_user_id=actor_user_id,
        )
        return ids[0]

    def add_products(
        self,
        rows: Iterable[dict],
        created_at: str,
        reason: str,
        actor_user_id: Optional[int] = None,
    ) -> list[int]:
        """Inserts every row or none. Initial stock is logged as an entry movement."""
        conn = self._conn()
        cur = conn.cursor()
        try:
            ids: list[int] = []
            for row in rows:
                cur.execute(
                    """
                    INSERT INTO products (name, description, category, buy_price, sell_price,
                                          stock_quantity, image_url, created_at, user_id)
                    VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
                    """,
                    (
                        row["name"],
                        row.get("description"),
                        row.get("category"),
                        float(row.get("buy_price") or 0),
                        float(row["sell_price"]),
                        row.get("image_url"),
                        created_at,
                        actor_user_id,
                    ),
                )
                pid = int(cur.lastrowid)
                qty = int(row.get("stock_quantity") or 0)
                if qty > 0:
                    self._apply_movement(cur, pid, MOVEMENT_ENTRY, qty, created_at, reason, actor_user_id)
                ids.append(pid)
            conn.commit()
            return ids
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_product(
        self,
        product_id: int,
        name: str,
        description: Optional[str],
        category: Optional[str],
        buy_price: float,
        sell_price: float,
        image_url: Optional[str],
    ) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE products
            SET name=?, description=?, category=?, buy_price=?, sell_price=?, image_url=?
            WHERE id=? AND active=1
            """,
            (name, description, category, float(buy_price), float(sell_price), image_url, int(product_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def deactivate_product(self, product_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("UPDATE products SET active=0 WHERE id=? AND active=1", (int(product_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def list_products(self) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE active = 1 ORDER BY name")
        rows = cur.fetchall()
        conn.close()
        return [_product(r) for r in rows]

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE active=1 AND id=?", (int(product_id),))
        r = cur.fetchone()
        conn.close()
        return _product(r) if r else None

    # ---------- Stock movements ----------
    def _apply_movement(
        self,
        cur: sqlite3.Cursor,
        product_id: int,
        movement_type: str,
        quantity: int,
        created_at: str,
        reason: Optional[str],
        actor_user_id: Optional[int],
        sale_id: Optional[int] = None,
        require_active: bool = True,
    ) -> tuple[int, int]:
        """Moves stock and logs the movement on the caller's transaction.

        Returns (movement_id, stock_after).
        """
        active_clause = " AND active=1" if require_active else ""
        if movement_type == MOVEMENT_EXIT:
            cur.execute(
                f"UPDATE products SET stock_quantity = stock_quantity - ? WHERE id=? AND stock_quantity >= ?{active_clause}",
                (int(quantity), int(product_id), int(quantity)),
            )
        else:
            cur.execute(
                f"UPDATE products SET stock_quantity = stock_quantity + ? WHERE id=?{active_clause}",
                (int(quantity), int(product_id)),
            )

        if cur.rowcount == 0:
            cur.execute(f"SELECT name, stock_quantity FROM products WHERE id=?{active_clause}", (int(product_id),))
            row = cur.fetchone()
            if not row:
                raise NotFoundError("Produto não encontrado.")
            raise InsufficientStockError(f"Estoque insuficiente para {row[0]}. Disponível: {row[1]}")

        cur.execute("SELECT stock_quantity FROM products WHERE id=?", (int(product_id),))
        stock_after = int(cur.fetchone()[0])
        cur.execute(
            """
            INSERT INTO stock_movements (product_id, type, quantity, sale_id, reason, created_at, user_id)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (int(product_id), movement_type, int(quantity), sale_id, reason, created_at, actor_user_id),
        )
        return int(cur.lastrowid), stock_after

    def record_stock_movement(
        self,
        product_id: int,
        movement_type: str,
        quantity: int,
        created_at: str,
        reason: Optional[str] = None,
        actor_user_id: Optional[int] = None,
    ) -> tuple[int, int]:
        conn = self._conn()
        cur = conn.cursor()
        try:
            out = self._apply_movement(cur, product_id, movement_type, quantity, created_at, reason, actor_user_id)
            conn.commit()
            return out
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def movements_for_product(self, product_id: int) -> list[StockMovement]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {MOVEMENT_COLUMNS} FROM stock_movements WHERE product_id=? ORDER BY created_at DESC, id DESC",
            (int(product_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [StockMovement(*r) for r in rows]

    def movements_between(self, start_iso: str, end_iso: str) -> list[tuple[StockMovement, str]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT m.id, m.product_id, m.type, m.quantity, m.sale_id, m.reason, m.created_at, m.user_id, p.name
            FROM stock_movements m
            JOIN products p ON p.id = m.product_id
            WHERE m.created_at >= ? AND m.created_at < ?
            ORDER BY m.created_at DESC, m.id DESC
            """,
            (start_iso, end_iso),
        )
        rows = cur.fetchall()
        conn.close()
        return [(StockMovement(*r[:8]), str(r[8])) for r in rows]

    def entry_costs_since(self, start_iso: str, end_iso: str = "9999") -> list[tuple[int, float]]:
        """(quantity, buy_price) of manual entries; sale cancellations excluded."""
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT m.quantity, p.buy_price
            FROM stock_movements m
            JOIN products p ON p.id = m.product_id
            WHERE m.type = 'entry' AND m.sale_id IS NULL AND m.created_at >= ? AND m.created_at < ?
            """,
            (start_iso, end_iso),
        )
        rows = cur.fetchall()
        conn.close()
        return [(int(r[0]), float(r[1])) for r in rows]

    # ---------- Customers ----------
    def add_customers(self, rows: Iterable[dict], created_at: str, actor_user_id: Optional[int] = None) -> list[int]:
        conn = self._conn()
        cur = conn.cursor()
        cols = ", ".join(CUSTOMER_FIELDS)
        marks = ", ".join("?" for _ in CUSTOMER_FIELDS)
        try:
            ids = []
            for row in rows:
                cur.execute(
                    f"INSERT INTO customers ({cols}, created_at, user_id) VALUES ({marks}, ?, ?)",
                    tuple(row.get(f) for f in CUSTOMER_FIELDS) + (created_at, actor_user_id),
                )
                ids.append(int(cur.lastrowid))
            conn.commit()
            return ids
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def add_customer(self, fields: dict, created_at: str, actor_user_id: Optional[int] = None) -> int:
        return self.add_customers([fields], created_at, actor_user_id)[0]

    def update_customer(self, customer_id: int, fields: dict) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        assignments = ", ".join(f"{f}=?" for f in CUSTOMER_FIELDS)
        cur.execute(
            f"UPDATE customers SET {assignments} WHERE id=? AND active=1",
            tuple(fields.get(f) for f in CUSTOMER_FIELDS) + (int(customer_id),),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def deactivate_customer(self, customer_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("UPDATE customers SET active=0 WHERE id=? AND active=1", (int(customer_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def list_customers(self) -> list[Customer]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE active=1 ORDER BY name")
        rows = cur.fetchall()
        conn.close()
        return [_customer(r) for r in rows]

    def get_customer_by_id(self, customer_id: int) -> Optional[Customer]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE active=1 AND id=?", (int(customer_id),))
        r = cur.fetchone()
        conn.close()
        return _customer(r) if r else None

    # ---------- Sales ----------
    def create_sale(
        self,
        customer_id: int,
        items: Iterable[dict],
        created_at: str,
        notes: Optional[str] = None,
        actor_user_id: Optional[int] = None,
    ) -> int:
        """items: [{product_id, quantity, unit_price}]. All rows or none."""
        items = list(items)
        total = sum(float(it["unit_price"]) * int(it["quantity"]) for it in items)

        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                INSERT INTO sales (customer_id, total_amount, status, notes, created_at, user_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (int(customer_id), float(total), SALE_COMPLETED, notes, created_at, actor_user_id),
            )
            sale_id = int(cur.lastrowid)

            for it in items:
                cur.execute(
                    "INSERT INTO sale_items (sale_id, product_id, quantity, unit_price) VALUES (?, ?, ?, ?)",
                    (sale_id, int(it["product_id"]), int(it["quantity"]), float(it["unit_price"])),
                )
                self._apply_movement(
                    cur, int(it["product_id"]), MOVEMENT_EXIT, int(it["quantity"]),
                    created_at, f"Venda #{sale_id}", actor_user_id, sale_id=sale_id,
                )

            conn.commit()
            return sale_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def cancel_sale(
        self,
        sale_id: int,
        reason: str,
        cancelled_at: str,
        actor_user_id: Optional[int] = None,
    ) -> None:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                UPDATE sales
                SET status=?, cancellation_reason=?, cancelled_at=?
                WHERE id=? AND status=?
                """,
                (SALE_CANCELLED, reason, cancelled_at, int(sale_id), SALE_COMPLETED),
            )
            if cur.rowcount == 0:
                raise ValidationError("Venda não encontrada ou já cancelada.")

            cur.execute("SELECT product_id, quantity FROM sale_items WHERE sale_id=? ORDER BY id", (int(sale_id),))
            for product_id, quantity in cur.fetchall():
                self._apply_movement(
                    cur, int(product_id), MOVEMENT_ENTRY, int(quantity), cancelled_at,
                    f"Cancelamento da venda #{sale_id}: {reason}", actor_user_id,
                    sale_id=int(sale_id), require_active=False,
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def list_sales(self, start_iso: Optional[str] = None, end_iso: Optional[str] = None) -> list[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {SALE_COLUMNS}
            FROM sales s
            LEFT JOIN customers c ON c.id = s.customer_id
            WHERE s.created_at >= ? AND s.created_at < ?
            ORDER BY s.created_at DESC, s.id DESC
            """,
            (start_iso or "0000", end_iso or "9999"),
        )
        rows = cur.fetchall()
        conn.close()
        return [_sale(r) for r in rows]

    def sales_for_customer(self, customer_id: int) -> list[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {SALE_COLUMNS}
            FROM sales s
            LEFT JOIN customers c ON c.id = s.customer_id
            WHERE s.customer_id = ?
            ORDER BY s.created_at DESC, s.id DESC
            """,
            (int(customer_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [_sale(r) for r in rows]

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {SALE_COLUMNS} FROM sales s LEFT JOIN customers c ON c.id = s.customer_id WHERE s.id = ?",
            (int(sale_id),),
        )
        r = cur.fetchone()
        conn.close()
        return _sale(r) if r else None

    def sale_items_for_sale(self, sale_id: int) -> list[SaleLine]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT si.product_id, p.name, si.quantity, si.unit_price, (si.quantity * si.unit_price)
            FROM sale_items si
            JOIN products p ON p.id = si.product_id
            WHERE si.sale_id = ?
            ORDER BY si.id
            """,
            (int(sale_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [SaleLine(int(r[0]), str(r[1]), int(r[2]), float(r[3]), float(r[4])) for r in rows]

    def sold_quantities_since(self, start_iso: str) -> list[tuple[int, str, int]]:
        """(product_id, product name, quantity) per item of completed sales."""
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT si.product_id, p.name, si.quantity
            FROM sale_items si
            JOIN sales s ON s.id = si.sale_id
            JOIN products p ON p.id = si.product_id
            WHERE s.status = 'completed' AND s.created_at >= ?
            """,
            (start_iso,),
        )
        rows = cur.fetchall()
        conn.close()
        return [(int(r[0]), str(r[1]), int(r[2])) for r in rows]

    def monthly_sales_totals(self, start_iso: str) -> list[tuple[str, float]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT substr(created_at,1,7) AS ym, COALESCE(SUM(total_amount),0)
            FROM sales
            WHERE status = 'completed' AND created_at >= ?
            GROUP BY ym
            ORDER BY ym
            """,
            (start_iso,),
        )
        rows = cur.fetchall()
        conn.close()
        return [(str(r[0]), float(r[1])) for r in rows]

    @staticmethod
    def _hash_password(password: str, *, rounds: int = 200_000, salt: str | None = None) -> str:
        salt = salt or secrets.token_hex(16)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), rounds).hex()
        return f"pbkdf2_sha256${rounds}${salt}${digest}"

    @staticmethod
    def _verify_password(stored: str, provided: str) -> bool:
        try:
            _algo, rounds_s, salt, digest = stored.split("$", 3)
            candidate = hashlib.pbkdf2_hmac(
                "sha256",
                provided.encode("utf-8"),
                bytes.fromhex(salt),
                int(rounds_s),
            ).hex()
        except ValueError:
            return False
        return hmac.compare_digest(candidate, digest)
