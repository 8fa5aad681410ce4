"""
Create tables for a local/dev database and optionally seed demo customers.

Usage:
  python scripts/init_db.py            # tables only
  SEED_DEMO=1 python scripts/init_db.py
"""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.models import Base  # noqa: E402
from app.crm.modules.customers.models import Customer  # noqa: E402
from scripts._db_utils import create_script_engine, script_session  # noqa: E402

DEMO_CUSTOMERS = (
    ("C001", "Acme Trading", "12 Harbor Rd", "30D"),
    ("C002", "Northwind Supplies", "4 Mill Lane", "COD"),
    ("C003", "Blue Finch Bakery", None, "15D"),
)


def create_tables(database_url: str) -> None:
    engine = create_script_engine(database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def seed_demo(database_url: str) -> int:
    """Insert demo customers that are not there yet. Returns how many were added."""
    added = 0
    with script_session(database_url) as s:
        for custno, custname, address, payterm in DEMO_CUSTOMERS:
            if s.query(Customer).filter(Customer.custno == custno).one_or_none():
                continue
            s.add(Customer(custno=custno, custname=custname, address=address, payterm=payterm))
            added += 1
    return added


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()
    create_tables(db_url)
    print("Initialized database tables.")
    if (os.environ.get("SEED_DEMO") or "").strip() == "1":
        print(f"Seeded {seed_demo(db_url)} demo customers.")


if __name__ == "__main__":
    main()
