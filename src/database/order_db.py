"""
SQLite store for customers, products, customer-specific prices and orders.

Rows come back as plain dicts; orders are returned with their customer and
items embedded and are treated by the document pipeline as untrusted raw input.
"""
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from order_normalization.normalizer import parse_number, to_number

CUSTOMER_FIELDS = (
    "name", "email", "phone", "document",
    "address_line1", "address_line2", "city", "state", "zip", "notes",
)
PRODUCT_FIELDS = ("name", "sku", "unit", "price", "description")


class DuplicateRecordError(Exception):
    """A unique column (customer document, product sku, ...) already holds the value."""

    def __init__(self, table: str, field: str):
        self.table = table
        self.field = field
        super().__init__(f"Duplicate {table}.{field}")


class RecordNotFoundError(Exception):
    """A referenced customer or product does not exist."""

    def __init__(self, entity: str, record_id: Any):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found: {record_id}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _duplicate_from(error: sqlite3.IntegrityError, table: str) -> DuplicateRecordError:
    """Map 'UNIQUE constraint failed: customers.document' to the column name."""
    message = str(error)
    field = "record"
    if "UNIQUE constraint failed:" in message:
        column = message.split("UNIQUE constraint failed:", 1)[1].split(",")[0].strip()
        table, _, field = column.partition(".")
    return DuplicateRecordError(table, field or "record")


class OrderDB:
    """SQLite database for the order desk."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a new connection (sqlite3 connections are not thread-safe)."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        """Create tables if they don't exist."""
        conn = self._get_conn()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS customers (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT,
                    phone TEXT,
                    document TEXT UNIQUE,
                    address_line1 TEXT,
                    address_line2 TEXT,
                    city TEXT,
                    state TEXT,
                    zip TEXT,
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS products (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    sku TEXT UNIQUE,
                    unit TEXT NOT NULL DEFAULT 'un',
                    price REAL NOT NULL DEFAULT 0,
                    description TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    deleted_at TEXT
                );

                CREATE TABLE IF NOT EXISTS customer_prices (
                    id TEXT PRIMARY KEY,
                    customer_id TEXT NOT NULL,
                    product_id TEXT NOT NULL,
                    price REAL NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (customer_id, product_id)
                );

                CREATE TABLE IF NOT EXISTS orders (
                    id TEXT PRIMARY KEY,
                    number INTEGER UNIQUE NOT NULL,
                    customer_id TEXT NOT NULL,
                    notes TEXT,
                    total REAL NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS order_items (
                    id TEXT PRIMARY KEY,
                    order_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    product_id TEXT,
                    name TEXT NOT NULL,
                    unit TEXT,
                    quantity REAL NOT NULL,
                    unit_price REAL NOT NULL,
                    total REAL NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);
            """)
            conn.commit()
        finally:
            conn.close()

    # ─── Customers ────────────────────────────────────────────────

    def list_customers(self) -> List[Dict[str, Any]]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM customers ORDER BY name COLLATE NOCASE").fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM customers WHERE id = ?", (customer_id,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def create_customer(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a customer.

        Raises:
            DuplicateRecordError: If the document is already registered
        """
        now = _now()
        record = {field: data.get(field) for field in CUSTOMER_FIELDS}
        record.update({"id": _new_id(), "created_at": now, "updated_at": now})

        columns = ", ".join(record)
        placeholders = ", ".join("?" for _ in record)
        conn = self._get_conn()
        try:
            conn.execute(f"INSERT INTO customers ({columns}) VALUES ({placeholders})", tuple(record.values()))
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise _duplicate_from(e, "customers") from e
        finally:
            conn.close()
        return record

    def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update the given columns; returns None when the customer doesn't exist."""
        fields = {k: v for k, v in fields.items() if k in CUSTOMER_FIELDS}
        if self.get_customer(customer_id) is None:
            return None
        if fields:
            fields["updated_at"] = _now()
            assignments = ", ".join(f"{k} = ?" for k in fields)
            conn = self._get_conn()
            try:
                conn.execute(
                    f"UPDATE customers SET {assignments} WHERE id = ?",
                    (*fields.values(), customer_id),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise _duplicate_from(e, "customers") from e
            finally:
                conn.close()
        return self.get_customer(customer_id)

    def delete_customer(self, customer_id: str) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM customers WHERE id = ?", (customer_id,))
            conn.execute("DELETE FROM customer_prices WHERE customer_id = ?", (customer_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ─── Products ─────────────────────────────────────────────────

    def list_products(self) -> List[Dict[str, Any]]:
        """Non-deleted products ordered by name."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM products WHERE deleted_at IS NULL ORDER BY name COLLATE NOCASE"
            ).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def get_product(self, product_id: str, include_deleted: bool = False) -> Optional[Dict[str, Any]]:
        query = "SELECT * FROM products WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        conn = self._get_conn()
        try:
            row = conn.execute(query, (product_id,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def create_product(self, name: str, unit: str, price: float,
                       sku: str = None, description: str = None) -> Dict[str, Any]:
        """
        Insert a product.

        Raises:
            DuplicateRecordError: If the sku is already taken
        """
        now = _now()
        record = {
            "id": _new_id(),
            "name": name,
            "sku": sku or None,
            "unit": unit,
            "price": float(price),
            "description": description,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        columns = ", ".join(record)
        placeholders = ", ".join("?" for _ in record)
        conn = self._get_conn()
        try:
            conn.execute(f"INSERT INTO products ({columns}) VALUES ({placeholders})", tuple(record.values()))
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise _duplicate_from(e, "products") from e
        finally:
            conn.close()
        return record

    def update_product(self, product_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Patch a non-deleted product; returns None when it doesn't exist."""
        fields = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS}
        if self.get_product(product_id) is None:
            return None
        if fields:
            fields["updated_at"] = _now()
            assignments = ", ".join(f"{k} = ?" for k in fields)
            conn = self._get_conn()
            try:
                conn.execute(
                    f"UPDATE products SET {assignments} WHERE id = ?",
                    (*fields.values(), product_id),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise _duplicate_from(e, "products") from e
            finally:
                conn.close()
        return self.get_product(product_id)

    def soft_delete_product(self, product_id: str) -> bool:
        """Mark a product deleted; it stays referenced by past orders."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE products SET deleted_at = ?, updated_at = ? WHERE id = ? AND deleted_at IS NULL",
                (_now(), _now(), product_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ─── Customer prices ──────────────────────────────────────────

    def list_customer_prices(self) -> List[Dict[str, Any]]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT customer_id, product_id, price FROM customer_prices ORDER BY customer_id, product_id"
            ).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def upsert_customer_price(self, customer_id: str, product_id: str, price: float) -> Dict[str, Any]:
        """
        Set the special price of a product for one customer.

        Raises:
            RecordNotFoundError: If the customer or the product doesn't exist
        """
        if self.get_customer(customer_id) is None:
            raise RecordNotFoundError("customer", customer_id)
        if self.get_product(product_id) is None:
            raise RecordNotFoundError("product", product_id)

        now = _now()
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO customer_prices (id, customer_id, product_id, price, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT (customer_id, product_id)
                   DO UPDATE SET price = excluded.price, updated_at = excluded.updated_at""",
                (_new_id(), customer_id, product_id, float(price), now, now),
            )
            conn.commit()
        finally:
            conn.close()
        return {"customer_id": customer_id, "product_id": product_id, "price": float(price)}

    def delete_customer_price(self, customer_id: str, product_id: str) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM customer_prices WHERE customer_id = ? AND product_id = ?",
                (customer_id, product_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def find_unit_price(self, customer_id: str, product_id: str) -> Optional[float]:
        """Customer special price if set, else the product list price, else None."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT price FROM customer_prices WHERE customer_id = ? AND product_id = ?",
                (customer_id, product_id),
            ).fetchone()
            if row:
                return row["price"]
            row = conn.execute("SELECT price FROM products WHERE id = ?", (product_id,)).fetchone()
            return row["price"] if row else None
        finally:
            conn.close()

    # ─── Orders ───────────────────────────────────────────────────

    def _resolve_item(self, customer_id: str, raw: Dict[str, Any]) -> Dict[str, Any]:
        product_id = raw.get("product_id") or raw.get("productId")
        product = self.get_product(product_id, include_deleted=True) if product_id else None
        if product_id and product is None:
            raise RecordNotFoundError("product", product_id)

        quantity = parse_number(raw.get("quantity"))
        quantity = quantity if quantity is not None else 0.0

        unit_price = parse_number(raw.get("unit_price", raw.get("unitPrice")))
        if unit_price is None and product_id:
            unit_price = self.find_unit_price(customer_id, product_id)
        unit_price = unit_price if unit_price is not None else 0.0

        total = parse_number(raw.get("total"))
        if total is None:
            total = to_number(quantity * unit_price)

        return {
            "product_id": product_id,
            "name": (raw.get("name") or (product or {}).get("name") or "-"),
            "unit": raw.get("unit") or (product or {}).get("unit"),
            "quantity": quantity,
            "unit_price": unit_price,
            "total": total,
        }

    def create_order(self, customer_id: str, items: Iterable[Dict[str, Any]],
                     notes: str = None) -> Dict[str, Any]:
        """
        Create an order with the next sequential number.

        Missing unit prices resolve to the customer's special price, then the
        product price. The order total is the sum of the line totals.

        Raises:
            RecordNotFoundError: If the customer or a referenced product doesn't exist
        """
        if self.get_customer(customer_id) is None:
            raise RecordNotFoundError("customer", customer_id)

        lines = [self._resolve_item(customer_id, item) for item in items]
        total = to_number(sum(line["total"] for line in lines))
        order_id = _new_id()

        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT MAX(number) AS last FROM orders").fetchone()
            number = (row["last"] or 0) + 1
            conn.execute(
                "INSERT INTO orders (id, number, customer_id, notes, total, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (order_id, number, customer_id, notes, total, _now()),
            )
            for position, line in enumerate(lines):
                conn.execute(
                    """INSERT INTO order_items
                       (id, order_id, position, product_id, name, unit, quantity, unit_price, total)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (_new_id(), order_id, position, line["product_id"], line["name"], line["unit"],
                     line["quantity"], line["unit_price"], line["total"]),
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        return self.get_order(order_id)

    def _order_to_dict(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Dict[str, Any]:
        order = dict(row)
        customer = conn.execute(
            "SELECT * FROM customers WHERE id = ?", (row["customer_id"],)
        ).fetchone()
        order["customer"] = dict(customer) if customer else None
        items = conn.execute(
            "SELECT * FROM order_items WHERE order_id = ? ORDER BY position", (row["id"],)
        ).fetchall()
        order["items"] = [dict(item) for item in items]
        return order

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Order with its customer and items embedded, or None."""
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
            return self._order_to_dict(conn, row) if row else None
        finally:
            conn.close()

    def list_orders(self) -> List[Dict[str, Any]]:
        """All orders, newest first."""
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM orders ORDER BY created_at DESC, number DESC").fetchall()
            return [self._order_to_dict(conn, row) for row in rows]
        finally:
            conn.close()
