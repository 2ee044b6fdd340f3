from typing import Any

import psycopg
import pytest

from docsieve.database.models import JobRecord
from docsieve.database.repositories.job_repository import JobRepository


async def _reset_other_pending_jobs(conn: psycopg.AsyncConnection[Any], keep_id: int) -> None:
    await conn.execute(
        "UPDATE processing_jobs SET status = 'done' WHERE status = 'pending' AND id <> %s",
        (keep_id,),
    )
    await conn.commit()


@pytest.mark.integration
class TestJobRepositoryClaimNextJob:
    @pytest.mark.asyncio
    async def test_claim_next_job_returns_and_locks_job(
        self, seed_job: JobRecord, db_conn: psycopg.AsyncConnection[Any]
    ) -> None:
        await _reset_other_pending_jobs(db_conn, seed_job.id)
        repo = JobRepository(max_attempts=3)

        job = await repo.claim_next_job(db_conn)

        assert job is not None
        assert job.id == seed_job.id
        assert job.document_id == seed_job.document_id
        assert job.status == "processing"
        stored = await repo.find_by_id(job.id)
        assert stored is not None
        assert stored.status == "processing"
        assert stored.locked_at is not None

    @pytest.mark.asyncio
    async def test_claim_next_job_skips_job_with_attempts_at_max(
        self, seed_job: JobRecord, db_conn: psycopg.AsyncConnection[Any]
    ) -> None:
        await _reset_other_pending_jobs(db_conn, seed_job.id)
        await db_conn.execute(
            "UPDATE processing_jobs SET attempts = 3 WHERE id = %s", (seed_job.id,)
        )
        await db_conn.commit()

        job = await JobRepository(max_attempts=3).claim_next_job(db_conn)

        assert job is None


@pytest.mark.integration
class TestJobRepositoryUpdates:
    @pytest.mark.asyncio
    async def test_mark_done_updates_status(self, seed_job: JobRecord) -> None:
        repo = JobRepository(max_attempts=3)
        await repo.mark_done(seed_job.id)
        stored = await repo.find_by_id(seed_job.id)
        assert stored is not None
        assert stored.status == "done"

    @pytest.mark.asyncio
    async def test_mark_failed_updates_status_and_error_message(
        self, seed_job: JobRecord
    ) -> None:
        repo = JobRepository(max_attempts=3)
        await repo.mark_failed(seed_job.id, "Document 1: File not found")
        stored = await repo.find_by_id(seed_job.id)
        assert stored is not None
        assert stored.status == "failed"
        assert stored.error_message == "Document 1: File not found"

    @pytest.mark.asyncio
    async def test_increment_attempts_returns_job_to_pending(self, seed_job: JobRecord) -> None:
        repo = JobRepository(max_attempts=3)
        await repo.increment_attempts(seed_job.id)
        stored = await repo.find_by_id(seed_job.id)
        assert stored is not None
        assert stored.attempts == 1
        assert stored.status == "pending"
        assert stored.locked_at is None

    @pytest.mark.asyncio
    async def test_find_by_id_returns_none_when_missing(self, integration_pool: None) -> None:
        assert await JobRepository(max_attempts=3).find_by_id(-1) is None
