"""Tests for the Temporal worker's health app and cron registration."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from temporalio.exceptions import WorkflowAlreadyStartedError

from src.app.temporal.worker import (
    CASCADE_SWEEP_WORKFLOW_ID,
    create_health_app,
    ensure_cascade_sweep_schedule,
)
from src.app.temporal.workflows import CascadeSweepWorkflow

pytestmark = pytest.mark.unit


@pytest.fixture
async def health_client():
    app = create_health_app("membership-jobs")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def test_worker_health_endpoint(health_client):
    response = await health_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "service": "temporal-worker",
        "task_queue": "membership-jobs",
    }


async def test_worker_ready_endpoint(health_client):
    response = await health_client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


async def test_schedules_cascade_sweep():
    client = AsyncMock()

    await ensure_cascade_sweep_schedule(client, "membership-jobs", "*/15 * * * *")

    client.start_workflow.assert_awaited_once_with(
        CascadeSweepWorkflow.run,
        id=CASCADE_SWEEP_WORKFLOW_ID,
        task_queue="membership-jobs",
        cron_schedule="*/15 * * * *",
    )


async def test_existing_schedule_is_kept():
    client = AsyncMock()
    client.start_workflow.side_effect = WorkflowAlreadyStartedError(
        CASCADE_SWEEP_WORKFLOW_ID, "CascadeSweepWorkflow"
    )

    await ensure_cascade_sweep_schedule(client, "membership-jobs", "*/15 * * * *")

    client.start_workflow.assert_awaited_once()
