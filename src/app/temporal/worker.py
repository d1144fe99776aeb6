"""
Temporal Worker - Separate process from API.

Run with:
    python -m src.app.temporal.worker
"""

import asyncio

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.worker import Worker

from src.app.core.config import get_settings
from src.app.core.db import dispose_engine
from src.app.core.logging import get_logger, setup_logging
from src.app.temporal.activities import sweep_pending_cascades
from src.app.temporal.client import get_temporal_client
from src.app.temporal.workflows import CascadeSweepWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001
CASCADE_SWEEP_WORKFLOW_ID = "cascade-sweep"


def create_worker(client: Client, task_queue: str) -> Worker:
    """Create the jobs worker.

    Cascade sweeps are short database batches, so concurrency stays low.
    """
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[CascadeSweepWorkflow],
        activities=[sweep_pending_cascades],
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=10,
    )


def create_health_app(task_queue: str) -> FastAPI:
    """Lightweight health app for K8s probes."""
    health_app = FastAPI(title="Temporal Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": "temporal-worker",
            "task_queue": task_queue,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    return health_app


async def run_health_server(task_queue: str, port: int = WORKER_HEALTH_PORT) -> None:
    """Serve the health app until cancelled."""
    config = uvicorn.Config(
        create_health_app(task_queue),
        host="0.0.0.0",
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)
    logger.info(f"Starting health server on port {port}")
    await server.serve()


async def ensure_cascade_sweep_schedule(client: Client, task_queue: str, cron: str) -> None:
    """Start the cron sweep workflow unless it is already running."""
    try:
        await client.start_workflow(
            CascadeSweepWorkflow.run,
            id=CASCADE_SWEEP_WORKFLOW_ID,
            task_queue=task_queue,
            cron_schedule=cron,
        )
        logger.info("Cascade sweep scheduled", cron=cron)
    except WorkflowAlreadyStartedError:
        logger.info("Cascade sweep already scheduled", cron=cron)


async def main() -> None:
    """Main entry point for the Temporal worker."""
    settings = get_settings()
    setup_logging(settings.debug)

    client = await get_temporal_client()
    task_queue = settings.temporal_task_queue

    if settings.cascade_sweep_schedule:
        await ensure_cascade_sweep_schedule(client, task_queue, settings.cascade_sweep_schedule)

    worker = create_worker(client, task_queue)
    logger.info(f"Starting worker on queue: {task_queue}")

    try:
        await asyncio.gather(worker.run(), run_health_server(task_queue))
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
