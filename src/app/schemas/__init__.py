from src.app.schemas.archival import CascadeReport, TenantArchival
from src.app.schemas.invite import InviteInfo, InviteRedemption

__all__ = [
    # Archival
    "CascadeReport",
    "TenantArchival",
    # Invite
    "InviteInfo",
    "InviteRedemption",
]
