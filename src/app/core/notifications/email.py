"""Email client using Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime

import resend

from src.app.core.config import get_settings
from src.app.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_LINK_STYLE = "color: #2563eb; word-break: break-all;"
_MUTED_STYLE = "color: #666; font-size: 14px;"


def send_invite_email(
    to: str,
    code: str,
    scope_name: str,
    role: str,
    expires_at: datetime | None = None,
) -> bool:
    """Send an invite code to an email-scoped invitee.

    Args:
        to: Recipient email address
        code: Invite code (included in the accept URL)
        scope_name: Name of the tenant or project being joined
        role: Role granted on redemption
        expires_at: When the code stops working, if ever

    Returns:
        True if email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()
    invite_url = f"{settings.app_url}/accept-invite?code={code}"

    if not settings.resend_api_key:
        # Dev mode: log instead of sending
        logger.warning(
            "RESEND_API_KEY not set - invite email not sent",
            to=to,
            email_type="invite",
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [to],
                "subject": f"You've been invited to join {scope_name}",
                "html": _get_invite_email_html(scope_name, role, invite_url, expires_at),
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Invite email sent", to=to)
        return True
    except FuturesTimeoutError:
        logger.error("Email send timed out", to=to, timeout=settings.email_send_timeout_seconds)
        return False
    except Exception as e:
        logger.error("Failed to send invite email", to=to, error=str(e))
        return False


def _get_invite_email_html(
    scope_name: str, role: str, invite_url: str, expires_at: datetime | None
) -> str:
    """Generate HTML content for invite email."""
    safe_scope_name = html.escape(scope_name)
    safe_role = html.escape(role)
    if expires_at is None:
        expiry_note = "This invitation does not expire."
    else:
        expiry_note = f"This invitation expires on {expires_at:%Y-%m-%d %H:%M} UTC."
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">You're invited!</h1>
    <p>You have been invited to join <strong>{safe_scope_name}</strong> as {safe_role}.</p>
    <p>Click the button below to accept the invitation:</p>
    <p style="margin: 32px 0;">
        <a href="{invite_url}" style="{_BUTTON_STYLE}">Accept Invitation</a>
    </p>
    <p style="{_MUTED_STYLE}">
        Or copy and paste this link into your browser:<br>
        <a href="{invite_url}" style="{_LINK_STYLE}">{invite_url}</a>
    </p>
    <p style="{_MUTED_STYLE} margin-top: 32px;">
        {expiry_note} If you didn't expect this invitation, you can safely ignore this email.
    </p>
</body>
</html>"""
