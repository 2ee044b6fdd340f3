from typing import Any

import psycopg
from psycopg.rows import dict_row

from docsieve.database.connection import get_connection
from docsieve.database.models import JobRecord


class JobRepository:
    """Database operations for the processing_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    async def claim_next_job(self, conn: psycopg.AsyncConnection[Any]) -> JobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                SELECT id, document_id, status, attempts
                FROM processing_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = await cur.fetchone()

        if row is None:
            await conn.commit()
            return None

        await conn.execute(
            """
            UPDATE processing_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        await conn.commit()

        return JobRecord(
            id=row["id"],
            document_id=row["document_id"],
            status="processing",
            attempts=row["attempts"],
        )

    async def mark_done(self, job_id: int) -> None:
        """Mark a job as done."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE processing_jobs
                SET status = 'done', updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            await conn.commit()

    async def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE processing_jobs
                SET status = 'failed', error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            await conn.commit()

    async def increment_attempts(self, job_id: int) -> None:
        """Increment attempt count and return job to pending."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE processing_jobs
                SET attempts = attempts + 1, status = 'pending',
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            await conn.commit()

    async def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, document_id, status, attempts,
                           error_message, locked_at, created_at, updated_at
                    FROM processing_jobs
                    WHERE id = %s
                    """,
                    (job_id,),
                )
                row = await cur.fetchone()

        if row is None:
            return None

        return JobRecord(
            id=row["id"],
            document_id=row["document_id"],
            status=row["status"],
            attempts=row["attempts"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
