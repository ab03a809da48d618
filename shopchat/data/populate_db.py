"""Load the product catalogue and order history from CSV exports.

One-time utility; the live pipeline only reads these tables.
"""
import argparse
import csv
import os
from datetime import datetime
from typing import Optional

from .database import SessionLocal, create_tables, engine
from .models import Order, Product

DATA_DIR = os.path.join(os.path.dirname(__file__), "raw")
PRODUCTS_CSV_PATH = os.path.join(DATA_DIR, "products.csv")
ORDERS_CSV_PATH = os.path.join(DATA_DIR, "orders.csv")


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Empty cells become NULL; exports use ISO timestamps, sometimes with a trailing 'UTC'."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if value.endswith(" UTC"):
        value = value[: -len(" UTC")] + "+00:00"
    return datetime.fromisoformat(value)


def product_from_row(row: dict) -> Product:
    return Product(
        id=int(row["id"]),
        cost=float(row["cost"]),
        category=row["category"],
        name=row["name"],
        brand=row["brand"],
        retail_price=float(row["retail_price"]),
        department=row["department"],
        sku=row["sku"],
        distribution_center_id=int(row["distribution_center_id"]),
    )


def order_from_row(row: dict) -> Order:
    return Order(
        order_id=int(row["order_id"]),
        user_id=int(row["user_id"]),
        status=row["status"],
        gender=row["gender"],
        num_of_item=int(row["num_of_item"]),
        created_at=parse_date(row["created_at"]),
        shipped_at=parse_date(row.get("shipped_at")),
        delivered_at=parse_date(row.get("delivered_at")),
        returned_at=parse_date(row.get("returned_at")),
    )


def _populate(path: str, model, from_row, session_factory) -> int:
    db = session_factory()
    try:
        if db.query(model).count() > 0:
            print(f"{model.__tablename__} table is not empty. Skipping population.")
            return 0

        count = 0
        with open(path, mode="r", encoding="utf-8", newline="") as csvfile:
            for row in csv.DictReader(csvfile):
                db.add(from_row(row))
                count += 1
        db.commit()
        print(f"Loaded {count} rows into {model.__tablename__}.")
        return count
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def populate_products(path: str = PRODUCTS_CSV_PATH, session_factory=SessionLocal) -> int:
    """Read products.csv and populate the products table."""
    return _populate(path, Product, product_from_row, session_factory)


def populate_orders(path: str = ORDERS_CSV_PATH, session_factory=SessionLocal) -> int:
    """Read orders.csv and populate the orders table."""
    return _populate(path, Order, order_from_row, session_factory)


def main():
    parser = argparse.ArgumentParser(description="Load reference data from CSV files")
    parser.add_argument("--products", default=PRODUCTS_CSV_PATH, help="path to products.csv")
    parser.add_argument("--orders", default=ORDERS_CSV_PATH, help="path to orders.csv")
    args = parser.parse_args()

    # Ensure tables are created
    create_tables(engine)
    populate_products(args.products)
    populate_orders(args.orders)


if __name__ == "__main__":
    main()
