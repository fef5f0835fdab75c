"""Engine configuration tests."""

from headacher.config import Settings
from headacher.db.engine import engine_options


def test_pool_sizing_from_settings():
    config = Settings(
        database_url="postgresql+asyncpg://u:p@db:5432/headacher",
        database_pool_size=12,
        database_max_overflow=3,
        database_pool_recycle_seconds=600,
    )
    options = engine_options(config)

    assert options["pool_size"] == 12
    assert options["max_overflow"] == 3
    assert options["pool_recycle"] == 600
    assert options["pool_pre_ping"] is True


def test_sqlite_keeps_default_pool():
    config = Settings(database_url="sqlite+aiosqlite:///headacher.db", database_pool_size=12)
    options = engine_options(config)

    assert "pool_size" not in options
    assert "max_overflow" not in options
