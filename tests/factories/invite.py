"""Invite factory for test data generation."""

import secrets
from datetime import timedelta

from polyfactory import Use

from src.app.models import Invite
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class InviteFactory(BaseFactory):
    """Factory for generating Invite test data."""

    __model__ = Invite

    id = Use(generate_uuid)
    code = Use(lambda: secrets.token_hex(16))
    email = None
    created_by = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    created_at = Use(utc_now)
    expires_at = Use(lambda: utc_now() + timedelta(hours=1))
    redeemed = False
    redeemed_by = None
    redeemed_at = None

    @classmethod
    def expired(cls, **kwargs):
        """Create an invite that expired an hour ago."""
        return cls.build(expires_at=utc_now() - timedelta(hours=1), **kwargs)
