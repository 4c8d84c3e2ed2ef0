import os


def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    # Import lazily so monkeypatch can affect env usage deterministically.
    from fivlo.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./fivlo.db")
    assert "connect_args" in kwargs
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_has_conservative_pooling(monkeypatch):
    from fivlo.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "7")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "3")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "30")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 7
    assert kwargs["max_overflow"] == 3
    assert kwargs["pool_timeout"] == 30


def test_sqlite_pragmas_listener_is_guarded():
    from fivlo.database import database as db

    assert db._is_sqlite_url("sqlite:///./fivlo.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_schema_has_ledger_and_instance_unique_keys():
    """The idempotency of rewards and materialization rests on these constraints."""
    from sqlalchemy import UniqueConstraint
    from fivlo.database.models import RewardLedgerDB, TaskInstanceDB

    def unique_columns(model):
        return {
            tuple(c.name for c in constraint.columns)
            for constraint in model.__table__.constraints
            if isinstance(constraint, UniqueConstraint)
        }

    assert ("template_id", "due_date") in unique_columns(TaskInstanceDB)
    assert ("user_id", "reason", "reward_day") in unique_columns(RewardLedgerDB)


def test_init_db_creates_tables_for_sqlite(tmp_path, monkeypatch):
    from sqlalchemy import create_engine, inspect
    from fivlo.database import database as db

    engine = create_engine(f"sqlite:///{tmp_path / 'fivlo.db'}", connect_args={"check_same_thread": False})
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.delenv("RUN_MIGRATIONS", raising=False)

    db.init_db()

    tables = set(inspect(engine).get_table_names())
    assert {"users", "categories", "task_templates", "task_instances", "reward_ledger", "pomodoro_sessions"} <= tables
    engine.dispose()
    assert os.path.exists(tmp_path / "fivlo.db")
