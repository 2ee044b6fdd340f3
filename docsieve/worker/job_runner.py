from docsieve.config.settings import Settings
from docsieve.database.models import JobRecord
from docsieve.database.repositories.job_repository import JobRepository
from docsieve.logging.logger import Log
from docsieve.pipeline.exceptions import PermanentDocumentError
from docsieve.pipeline.processor import DocumentPipeline


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic."""

    def __init__(
        self,
        pipeline: DocumentPipeline,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._pipeline = pipeline
        self._job_repo = job_repo
        self._settings = settings

    async def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} (attempt {job.attempts + 1})")
        try:
            analysis = await self._pipeline.process_document(job.document_id)
        except PermanentDocumentError as exc:
            await self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Job {job.id} failed permanently, not retrying: {exc}")
            return
        except Exception as exc:
            await self._handle_failure(job, exc)
            return

        await self._job_repo.mark_done(job.id)
        Log.info(f"Job {job.id} finished, document {job.document_id} {analysis.status.value}")

    async def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.error(f"Job {job.id} failed: {exc!r}")
        if job.attempts + 1 >= self._settings.max_job_attempts:
            await self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            await self._job_repo.increment_attempts(job.id)
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
