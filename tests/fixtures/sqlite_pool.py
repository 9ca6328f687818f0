import aiodbpool
import pytest


@pytest.fixture
async def sqlite_pool(tmp_path):
    """Pool on a file-backed SQLite database with a populated test table"""
    pool = await aiodbpool.create_pool({
        'drivername': 'sqlite',
        'database': str(tmp_path / 'test.db'),
        'pool_max_connections': 3,
    })

    await pool.query("""
    CREATE TABLE test_table (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        value INTEGER NOT NULL
    )
    """)

    await pool.query("""
    INSERT INTO test_table (name, value) VALUES
    ('Alice', 10),
    ('Bob', 20),
    ('Charlie', 30)
    """)

    yield pool

    if not pool.pool.closed:
        await pool.end()
