"""Tests for the unit-of-work retry helper."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.app.core.db.transaction import transactional
from src.app.core.exceptions import ConflictError, InternalError, StaleWriteError

pytestmark = pytest.mark.unit


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


async def test_commits_and_returns_result(session):
    result = await transactional(session, AsyncMock(return_value=42), name="op")

    assert result == 42
    session.commit.assert_awaited_once()
    session.rollback.assert_not_awaited()
    session.expunge_all.assert_called_once()


async def test_retries_stale_writes_then_succeeds(session):
    operation = AsyncMock(side_effect=[StaleWriteError("t"), StaleWriteError("t"), "ok"])

    result = await transactional(session, operation, name="op", attempts=5)

    assert result == "ok"
    assert operation.await_count == 3
    assert session.rollback.await_count == 2
    session.commit.assert_awaited_once()


async def test_exhausted_retries_raise_internal(session, capturing_logger):
    operation = AsyncMock(side_effect=StaleWriteError("t"))

    with pytest.raises(InternalError) as exc_info:
        await transactional(session, operation, name="op", attempts=3)

    assert exc_info.value.code == "concurrency.retries_exhausted"
    assert operation.await_count == 3
    session.commit.assert_not_awaited()
    assert capturing_logger.calls[-1].method_name == "error"


async def test_domain_errors_roll_back_without_retry(session):
    operation = AsyncMock(side_effect=ConflictError("tenant.name_taken"))

    with pytest.raises(ConflictError):
        await transactional(session, operation, name="op", attempts=5)

    assert operation.await_count == 1
    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
    session.expunge_all.assert_called_once()
