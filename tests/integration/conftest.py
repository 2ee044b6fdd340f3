import os
import uuid
from collections.abc import AsyncGenerator
from importlib import resources
from typing import Any

import psycopg
import pytest
import pytest_asyncio

from docsieve.config.settings import Settings
from docsieve.database.connection import close_pool, get_connection, init_pool
from docsieve.database.models import JobRecord


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docsieve_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest_asyncio.fixture
async def integration_pool(test_settings: Settings) -> AsyncGenerator[None, None]:
    try:
        await init_pool(test_settings, max_size=4, timeout_seconds=5.0)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    schema = resources.files("docsieve.database").joinpath("schema.sql").read_text("utf-8")
    async with get_connection() as conn:
        await conn.execute(schema)
        await conn.commit()
    try:
        yield
    finally:
        await close_pool()


@pytest_asyncio.fixture
async def db_conn(
    integration_pool: None,
) -> AsyncGenerator[psycopg.AsyncConnection[Any], None]:
    async with get_connection() as conn:
        yield conn


@pytest_asyncio.fixture
async def integration_cleanup(
    integration_pool: None,
) -> AsyncGenerator[list[tuple[str, Any]], None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    if not cleanup:
        return
    async with get_connection() as conn:
        for table, key in cleanup:
            if table == "ocr_cache":
                await conn.execute("DELETE FROM ocr_cache WHERE file_hash_sha256 = %s", (key,))
        for table, key in cleanup:
            if table == "documents":
                # Attempts, page results, chunks and jobs cascade.
                await conn.execute("DELETE FROM documents WHERE id = %s", (key,))
        await conn.commit()


@pytest_asyncio.fixture
async def seed_document(
    db_conn: psycopg.AsyncConnection[Any],
    integration_cleanup: list[tuple[str, Any]],
) -> tuple[int, str]:
    doc_uuid = str(uuid.uuid4())
    async with db_conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO documents
            (uuid, user_id, storage_disk, file_size_bytes, mime_type, file_hash_sha256)
            VALUES (%s::uuid, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (doc_uuid, 1, "local", 1024, "application/pdf", uuid.uuid4().hex * 2),
        )
        row = await cur.fetchone()
        assert row is not None
        document_id = row[0]
    await db_conn.commit()
    integration_cleanup.append(("documents", document_id))
    return (document_id, doc_uuid)


@pytest_asyncio.fixture
async def seed_job(
    db_conn: psycopg.AsyncConnection[Any],
    seed_document: tuple[int, str],
) -> JobRecord:
    document_id = seed_document[0]
    async with db_conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO processing_jobs (document_id, status, attempts)
            VALUES (%s, 'pending', 0)
            RETURNING id
            """,
            (document_id,),
        )
        row = await cur.fetchone()
        assert row is not None
        job_id = row[0]
    await db_conn.commit()
    return JobRecord(id=job_id, document_id=document_id, status="pending", attempts=0)
