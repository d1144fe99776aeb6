"""Tests for structured logging context binding."""

from uuid import uuid4

import pytest
import structlog

from src.app.core.logging import (
    bind_actor_context,
    bind_request_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


def test_bind_request_context(capturing_logger):
    """Test binding request_id to log context."""
    bind_request_context("test-request-123")

    structlog.get_logger().info("test_event")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"


def test_bind_request_context_ignores_missing_id(capturing_logger):
    bind_request_context(None)

    structlog.get_logger().info("test_event")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_actor_context(capturing_logger):
    """Actor and scope ids are attached to every subsequent entry."""
    scope_id = uuid4()
    bind_actor_context("alice", scope_id)

    logger = structlog.get_logger()
    logger.info("first")
    logger.info("second")

    entries = capturing_logger.calls
    assert len(entries) == 2
    for entry in entries:
        assert entry.kwargs["actor_id"] == "alice"
        assert entry.kwargs["scope_id"] == str(scope_id)


def test_bind_actor_context_without_scope(capturing_logger):
    bind_actor_context("bob")

    structlog.get_logger().info("test_event")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["actor_id"] == "bob"
    assert "scope_id" not in kwargs


def test_clear_request_context(capturing_logger):
    """Test clearing all request context."""
    bind_request_context("test-request-789")
    bind_actor_context("carol")
    clear_request_context()

    structlog.get_logger().info("after_clear")

    kwargs = capturing_logger.calls[0].kwargs
    assert "request_id" not in kwargs
    assert "actor_id" not in kwargs


def test_event_kwargs_are_preserved(capturing_logger):
    bind_request_context("req-1")

    structlog.get_logger().info("Invite redeemed", invite_id="abc", redeemed_by="dave")

    entry = capturing_logger.calls[0]
    assert entry.method_name == "info"
    assert entry.kwargs["event"] == "Invite redeemed"
    assert entry.kwargs["invite_id"] == "abc"
    assert entry.kwargs["redeemed_by"] == "dave"
    assert entry.kwargs["request_id"] == "req-1"
