"""
Cascade Sweep Workflow.

Archives projects left behind when a tenant's archival cascade exhausted
its retries. Designed to be run on a schedule (Temporal cron).
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.app.temporal.activities import sweep_pending_cascades


@workflow.defn
class CascadeSweepWorkflow:
    """Re-run pending tenant-to-project archival cascades."""

    @workflow.run
    async def run(self) -> dict[str, int]:
        """
        Run the sweep activity.

        Returns:
            Counts from the sweep: tenants repaired, projects archived,
            projects still pending.
        """
        workflow.logger.info("Starting cascade sweep")

        result = await workflow.execute_activity(
            sweep_pending_cascades,
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=2),
            ),
        )

        workflow.logger.info(
            f"Cascade sweep complete: {result['tenants']} tenants, "
            f"{result['archived']} archived, {result['pending']} pending"
        )
        return result
