import asyncio

from docsieve.config.settings import Settings
from docsieve.database.connection import close_pool, init_pool
from docsieve.database.repositories.job_repository import JobRepository
from docsieve.logging.logger import Log
from docsieve.pipeline.processor import build_pipeline
from docsieve.worker.job_runner import JobRunner
from docsieve.worker.worker import Worker


async def run(settings: Settings) -> None:
    """Initialize pool -> build dependencies -> run worker loop."""
    await init_pool(settings, max_size=settings.max_concurrent_documents + 2)
    try:
        pipeline = build_pipeline(settings)
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(pipeline, job_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        await worker.run()
    finally:
        await close_pool()


def main() -> None:
    """Entry point."""
    settings = Settings()
    Log.configure(settings.log_level)
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        Log.info("Interrupted")


if __name__ == "__main__":
    main()
