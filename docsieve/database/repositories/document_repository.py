from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docsieve.database.connection import get_connection
from docsieve.pipeline.exceptions import DocumentNotFoundError
from docsieve.pipeline.models import (
    AttemptOutcome,
    CachedOcrResult,
    Chunk,
    Document,
    DocumentStatus,
    Entity,
    PageResult,
    PageStatus,
    ProcessingAttempt,
    Stage,
)
from docsieve.storage.base import BaseDocumentStore


class PostgresDocumentStore(BaseDocumentStore):
    """Database operations for documents and their processing records."""

    async def find_document(self, document_id: int) -> Document:
        """Find a document by ID, with its cached chunks.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, uuid, user_id, storage_disk, mime_type, file_size_bytes,
                           file_hash_sha256, domain, page_count, status, extracted_text,
                           winning_stage, confidence, entities, failed_pages,
                           chunks_text_hash, error_message, updated_at
                    FROM documents
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                row = await cur.fetchone()
                if row is None:
                    raise DocumentNotFoundError(f"Document {document_id} not found")

                await cur.execute(
                    """
                    SELECT chunk_id, chunk_index, start_offset, end_offset, text, keywords
                    FROM document_chunks
                    WHERE document_id = %s
                    ORDER BY chunk_index
                    """,
                    (document_id,),
                )
                chunk_rows = await cur.fetchall()

        return Document(
            id=row["id"],
            uuid=str(row["uuid"]),
            user_id=row["user_id"],
            storage_disk=row["storage_disk"],
            mime_type=row["mime_type"],
            file_size_bytes=row["file_size_bytes"],
            file_hash_sha256=row["file_hash_sha256"],
            domain=row["domain"],
            page_count=row["page_count"],
            status=DocumentStatus(row["status"]),
            text=row["extracted_text"],
            winning_stage=Stage(row["winning_stage"]) if row["winning_stage"] else None,
            confidence=row["confidence"],
            entities=[_entity_from_json(e) for e in row["entities"] or []],
            failed_pages=list(row["failed_pages"] or []),
            chunks=[
                Chunk(
                    id=c["chunk_id"],
                    document_id=document_id,
                    index=c["chunk_index"],
                    start=c["start_offset"],
                    end=c["end_offset"],
                    text=c["text"],
                    keywords=dict(c["keywords"] or {}),
                )
                for c in chunk_rows
            ],
            chunks_text_hash=row["chunks_text_hash"],
            error_message=row["error_message"],
            updated_at=row["updated_at"],
        )

    async def save_document(self, document: Document) -> None:
        """Persist status and extraction results.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE documents
                    SET status = %s,
                        page_count = %s,
                        extracted_text = %s,
                        winning_stage = %s,
                        confidence = %s,
                        entities = %s,
                        failed_pages = %s,
                        chunks_text_hash = %s,
                        error_message = %s,
                        updated_at = NOW()
                    WHERE id = %s
                    """,
                    (
                        document.status.value,
                        document.page_count,
                        document.text,
                        document.winning_stage.value if document.winning_stage else None,
                        document.confidence,
                        Jsonb([_entity_to_json(e) for e in document.entities]),
                        Jsonb(list(document.failed_pages)),
                        document.chunks_text_hash,
                        document.error_message,
                        document.id,
                    ),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document.id} not found")
            await conn.commit()

    async def append_attempt(self, document_id: int, attempt: ProcessingAttempt) -> None:
        if attempt.run_id is None:
            raise ValueError("Attempt has no run id")
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO processing_attempts
                    (document_id, run_id, stage, attempt_number, started_at, outcome,
                     error_code, error_detail, duration_ms)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    document_id,
                    attempt.run_id,
                    attempt.stage.value,
                    attempt.attempt_number,
                    attempt.started_at,
                    attempt.outcome.value,
                    attempt.error_code,
                    attempt.error_detail,
                    attempt.duration_ms,
                ),
            )
            await conn.commit()

    async def list_attempts(
        self, document_id: int, run_id: str | None = None
    ) -> list[ProcessingAttempt]:
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT run_id, stage, attempt_number, started_at, outcome,
                           error_code, error_detail, duration_ms
                    FROM processing_attempts
                    WHERE document_id = %s AND (%s::text IS NULL OR run_id = %s)
                    ORDER BY id
                    """,
                    (document_id, run_id, run_id),
                )
                rows = await cur.fetchall()

        return [
            ProcessingAttempt(
                stage=Stage(r["stage"]),
                attempt_number=r["attempt_number"],
                started_at=r["started_at"],
                outcome=AttemptOutcome(r["outcome"]),
                error_detail=r["error_detail"],
                error_code=r["error_code"],
                duration_ms=r["duration_ms"],
                run_id=r["run_id"],
            )
            for r in rows
        ]

    async def save_page_results(self, document_id: int, page_results: list[PageResult]) -> None:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM page_results WHERE document_id = %s", (document_id,)
                )
                await cur.executemany(
                    """
                    INSERT INTO page_results
                        (document_id, page_index, text, ocr_confidence, status,
                         attempts, error_detail, entities)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    [
                        (
                            document_id,
                            p.page_index,
                            p.text,
                            p.ocr_confidence,
                            p.status.value,
                            p.attempts,
                            p.error_detail,
                            Jsonb([_entity_to_json(e) for e in p.entities]),
                        )
                        for p in page_results
                    ],
                )
            await conn.commit()

    async def save_chunks(self, document_id: int, chunks: list[Chunk]) -> None:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM document_chunks WHERE document_id = %s", (document_id,)
                )
                await cur.executemany(
                    """
                    INSERT INTO document_chunks
                        (document_id, chunk_index, chunk_id, start_offset, end_offset,
                         text, keywords)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    [
                        (
                            document_id,
                            c.index,
                            c.id,
                            c.start,
                            c.end,
                            c.text,
                            Jsonb(c.keywords),
                        )
                        for c in chunks
                    ],
                )
            await conn.commit()

    async def find_cached_ocr(self, file_hash_sha256: str) -> CachedOcrResult | None:
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT file_hash_sha256, page_results, cached_at
                    FROM ocr_cache
                    WHERE file_hash_sha256 = %s
                    """,
                    (file_hash_sha256,),
                )
                row = await cur.fetchone()

        if row is None:
            return None

        return CachedOcrResult(
            file_hash_sha256=row["file_hash_sha256"],
            page_results=tuple(_page_from_json(p) for p in row["page_results"]),
            cached_at=row["cached_at"],
        )

    async def save_cached_ocr(self, result: CachedOcrResult) -> None:
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO ocr_cache (file_hash_sha256, page_results, cached_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (file_hash_sha256)
                DO UPDATE SET page_results = EXCLUDED.page_results, cached_at = NOW()
                """,
                (
                    result.file_hash_sha256,
                    Jsonb([_page_to_json(p) for p in result.page_results]),
                ),
            )
            await conn.commit()


def _entity_to_json(entity: Entity) -> dict[str, Any]:
    return {"type": entity.type, "value": entity.value, "confidence": entity.confidence}


def _entity_from_json(data: dict[str, Any]) -> Entity:
    return Entity(type=data["type"], value=data["value"], confidence=data.get("confidence"))


def _page_to_json(page: PageResult) -> dict[str, Any]:
    return {
        "page_index": page.page_index,
        "text": page.text,
        "ocr_confidence": page.ocr_confidence,
        "status": page.status.value,
        "attempts": page.attempts,
        "error_detail": page.error_detail,
        "entities": [_entity_to_json(e) for e in page.entities],
    }


def _page_from_json(data: dict[str, Any]) -> PageResult:
    return PageResult(
        page_index=data["page_index"],
        text=data["text"],
        ocr_confidence=data["ocr_confidence"],
        status=PageStatus(data["status"]),
        attempts=data.get("attempts", 0),
        error_detail=data.get("error_detail"),
        entities=tuple(_entity_from_json(e) for e in data.get("entities", [])),
    )
