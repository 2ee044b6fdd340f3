from docsieve.ocr.cache import OcrCache
from docsieve.ocr.scheduler import (
    BatchOcrScheduler,
    assemble_page_results,
    partition_pages,
)

__all__ = [
    "BatchOcrScheduler",
    "OcrCache",
    "assemble_page_results",
    "partition_pages",
]
