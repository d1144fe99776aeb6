"""Unit-of-work helper shared by the services."""

from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.config import get_settings
from src.app.core.exceptions import InternalError, StaleWriteError
from src.app.core.logging import get_logger

logger = get_logger(__name__)


async def transactional[T](
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    attempts: int | None = None,
) -> T:
    """Run `operation` as one transaction and commit it.

    The operation must read everything it decides on inside the call, so a
    retry after `StaleWriteError` re-validates every rule against fresh state.
    Any other exception rolls back and propagates unchanged.

    After the transaction ends the session is emptied: returned entities are
    detached with their loaded state, and no request state leaks into the
    next operation on the same session.

    Raises:
        InternalError: If the operation kept losing races for `attempts` tries.
    """
    max_attempts = attempts or get_settings().optimistic_retry_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            await session.commit()
            return result
        except StaleWriteError:
            await session.rollback()
            logger.info("Concurrent modification, retrying", operation=name, attempt=attempt)
        except Exception:
            await session.rollback()
            raise
        finally:
            session.expunge_all()

    logger.error("Optimistic retries exhausted", operation=name, attempts=max_attempts)
    raise InternalError(
        "concurrency.retries_exhausted",
        f"{name} kept conflicting with concurrent writers",
    )
