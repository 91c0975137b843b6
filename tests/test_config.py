"""Tests for settings, logging setup and database bootstrap."""

import pytest
import structlog
from sqlalchemy import create_engine, inspect

from healthdb.config import Settings
from healthdb.core.logging import configure_logging
from healthdb.database import check_database_connection, create_db_engine, init_database
from healthdb.models import metadata


@pytest.fixture
def clean_env(monkeypatch):
    """Remove settings that could leak in from the environment."""
    for name in (
        "ENVIRONMENT",
        "DATABASE_URL",
        "LOG_FORMAT",
        "LOG_LEVEL",
        "SELF_PAY_SENTINEL",
        "CHRONIC_ICD10_CODES",
        "LATE_PAYMENT_DAYS",
        "ER_WINDOW_DAYS",
        "RETENTION_WINDOW_DAYS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def reset_logging():
    """Restore structlog defaults after a test configures it."""
    yield
    structlog.reset_defaults()


def test_settings_defaults(clean_env) -> None:
    """Test metric parameters fall back to their documented defaults."""
    settings = Settings(_env_file=None)

    assert settings.self_pay_sentinel == "None/SelfPay"
    assert settings.chronic_icd10_codes == ["I10", "E11.9", "J45.909", "E78.5"]
    assert settings.late_payment_days == 45
    assert settings.er_window_days == 45
    assert settings.retention_window_days == 180
    assert settings.is_sqlite
    assert not settings.is_production


def test_settings_from_environment(clean_env) -> None:
    """Test environment variables override defaults."""
    clean_env.setenv("DATABASE_URL", "postgresql://localhost/healthdb")
    clean_env.setenv("LATE_PAYMENT_DAYS", "30")
    clean_env.setenv("CHRONIC_ICD10_CODES", '["I10"]')
    clean_env.setenv("ENVIRONMENT", "production")

    settings = Settings(_env_file=None)

    assert settings.database_url == "postgresql://localhost/healthdb"
    assert settings.late_payment_days == 30
    assert settings.chronic_icd10_codes == ["I10"]
    assert settings.is_production
    assert not settings.is_sqlite


@pytest.mark.parametrize("log_format", ["json", "console"])
def test_configure_logging(clean_env, reset_logging, log_format) -> None:
    """Test both renderers can be configured."""
    settings = Settings(_env_file=None, LOG_FORMAT=log_format, LOG_LEVEL="DEBUG")

    configure_logging(settings)

    renderer = structlog.get_config()["processors"][-1]
    if log_format == "json":
        assert isinstance(renderer, structlog.processors.JSONRenderer)
    else:
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)


def test_production_forces_json_logs(clean_env, reset_logging) -> None:
    """Test production logs JSON whatever the configured format."""
    settings = Settings(_env_file=None, ENVIRONMENT="production", LOG_FORMAT="console")

    configure_logging(settings)

    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)


def test_create_db_engine_url_override(tmp_path) -> None:
    """Test an explicit SQLite URL wins over the configured one and enforces foreign keys."""
    path = tmp_path / "override.sqlite3"
    engine = create_db_engine(f"sqlite:///{path}", echo=False)

    assert engine.url.database == str(path)
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
    engine.dispose()


def test_init_database_creates_tables(tmp_path) -> None:
    """Test every table is created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'init.sqlite3'}", echo=False)

    init_database(engine)

    assert set(inspect(engine).get_table_names()) == set(metadata.tables)
    engine.dispose()


def test_sqlite_foreign_keys_enabled(engine) -> None:
    """Test SQLite connections enforce foreign keys."""
    if engine.dialect.name != "sqlite":
        pytest.skip("SQLite only")

    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


def test_check_database_connection(engine) -> None:
    """Test the health check on a reachable and an unreachable database."""
    assert check_database_connection(engine) is True

    unreachable = create_engine("sqlite:////nonexistent-dir/healthdb.sqlite3")
    assert check_database_connection(unreachable) is False
