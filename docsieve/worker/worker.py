import asyncio

from docsieve.config.settings import Settings
from docsieve.database.connection import get_connection
from docsieve.database.models import JobRecord
from docsieve.database.repositories.job_repository import JobRepository
from docsieve.logging.logger import Log
from docsieve.worker.job_runner import JobRunner


class Worker:
    """Poll loop: acquire a slot -> claim -> dispatch as a task.

    The semaphore bounds how many documents are processed at once across
    the whole process.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._slots = asyncio.Semaphore(settings.max_concurrent_documents)
        self._in_flight: set[asyncio.Task[None]] = set()

    async def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after dispatching that many jobs (for testing).
        In-flight jobs are always awaited before returning.
        """
        Log.info(
            f"Worker started, polling for jobs "
            f"(up to {self._settings.max_concurrent_documents} at once)"
        )
        jobs_started = 0
        try:
            while max_jobs is None or jobs_started < max_jobs:
                await self._slots.acquire()
                try:
                    job = await self._try_claim_job()
                except BaseException:
                    self._slots.release()
                    raise
                if job is None:
                    self._slots.release()
                    Log.debug("No jobs available, sleeping")
                    await asyncio.sleep(self._settings.job_poll_interval_seconds)
                    continue
                self._dispatch(job)
                jobs_started += 1
        except (KeyboardInterrupt, asyncio.CancelledError):
            Log.info("Worker shutting down gracefully")
        finally:
            if self._in_flight:
                Log.info(f"Waiting for {len(self._in_flight)} in-flight jobs")
                await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _dispatch(self, job: JobRecord) -> None:
        task = asyncio.create_task(self._run_job(job), name=f"job-{job.id}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_job(self, job: JobRecord) -> None:
        try:
            await self._job_runner.run(job)
        finally:
            self._slots.release()

    async def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next pending job. Gracefully handle DB errors."""
        try:
            async with get_connection() as conn:
                return await self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
