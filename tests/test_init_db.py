from sqlalchemy import create_engine, inspect

from scripts.init_db import DEMO_CUSTOMERS, create_tables, seed_demo


def test_create_tables_and_seed_is_idempotent(tmp_path):
    db_url = f"sqlite:///{tmp_path/'init.db'}"
    create_tables(db_url)

    engine = create_engine(db_url, future=True)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"customers", "kv_items"} <= tables

    assert seed_demo(db_url) == len(DEMO_CUSTOMERS)
    assert seed_demo(db_url) == 0


def test_script_session_rolls_back_on_error(tmp_path):
    from app.crm.modules.customers.models import Customer
    from scripts._db_utils import script_session

    db_url = f"sqlite:///{tmp_path/'init.db'}"
    create_tables(db_url)
    try:
        with script_session(db_url) as s:
            s.add(Customer(custno="X1", custname="Gone"))
            s.flush()
            raise RuntimeError("abort run")
    except RuntimeError:
        pass

    with script_session(db_url) as s:
        assert s.query(Customer).count() == 0
