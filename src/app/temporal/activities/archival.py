"""Archival cascade repair activities."""

from temporalio import activity

from src.app.core.db import get_session
from src.app.core.logging import get_logger
from src.app.services import build_archival_cascade

logger = get_logger(__name__)


@activity.defn
async def sweep_pending_cascades() -> dict[str, int]:
    """
    Finish cascades that ran out of retries at archival time.

    Re-runs the cascade for every archived tenant that still owns
    non-archived projects.

    Idempotent: the cascade only touches projects that are not archived
    yet, so a second run finds nothing to do.

    Returns:
        dict with counts:
        {
            "tenants": int,   # tenants that needed repair
            "archived": int,  # projects archived by this run
            "pending": int,   # projects still pending afterwards
        }
    """
    result = {"tenants": 0, "archived": 0, "pending": 0}

    async with get_session() as session:
        cascade = build_archival_cascade(session)
        tenant_ids = await cascade.list_pending_cascades()
        result["tenants"] = len(tenant_ids)

        for tenant_id in tenant_ids:
            report = await cascade.cascade_archive_tenant(tenant_id)
            result["archived"] += report.archived
            result["pending"] += report.pending

    logger.info("Cascade sweep finished", **result)
    return result
