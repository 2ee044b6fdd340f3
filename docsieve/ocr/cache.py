from collections import OrderedDict

from docsieve.logging.logger import Log
from docsieve.pipeline.models import CachedOcrResult, PageStatus
from docsieve.storage.base import BaseDocumentStore


class OcrCache:
    """OCR results keyed by file SHA-256: an in-process LRU in front of storage.

    Storage errors are logged and treated as a miss; OCR then simply runs.
    """

    def __init__(self, store: BaseDocumentStore | None = None, max_size: int = 100) -> None:
        self._store = store
        self._max_size = max_size
        self._memory: OrderedDict[str, CachedOcrResult] = OrderedDict()

    async def get(self, file_hash_sha256: str) -> CachedOcrResult | None:
        cached = self._memory.get(file_hash_sha256)
        if cached is not None:
            self._memory.move_to_end(file_hash_sha256)
            Log.info(f"OCR cache hit (memory) {file_hash_sha256[:8]}")
            return cached

        if self._store is not None:
            try:
                cached = await self._store.find_cached_ocr(file_hash_sha256)
            except Exception as exc:
                Log.warning(f"OCR cache lookup failed for {file_hash_sha256[:8]}: {exc!r}")
                return None
            if cached is not None:
                Log.info(f"OCR cache hit (storage) {file_hash_sha256[:8]}")
                self._remember(cached)
                return cached

        Log.debug(f"OCR cache miss {file_hash_sha256[:8]}")
        return None

    async def put(self, result: CachedOcrResult) -> None:
        """Cache a fully successful OCR run. Partial runs are not cached."""
        if any(p.status is PageStatus.FAILED for p in result.page_results):
            return
        self._remember(result)
        if self._store is not None:
            try:
                await self._store.save_cached_ocr(result)
            except Exception as exc:
                Log.warning(
                    f"OCR cache write failed for {result.file_hash_sha256[:8]}: {exc!r}"
                )

    def __len__(self) -> int:
        return len(self._memory)

    def _remember(self, result: CachedOcrResult) -> None:
        self._memory[result.file_hash_sha256] = result
        self._memory.move_to_end(result.file_hash_sha256)
        while len(self._memory) > self._max_size:
            self._memory.popitem(last=False)
