"""
Email Delivery for alerts and digests via SendGrid.
"""

import asyncio
import html

import sendgrid
import structlog
from sendgrid.helpers.mail import Mail

from alerts.messages import Notification
from core.config import get_settings

logger = structlog.get_logger()


def _html_content(notification: Notification) -> str:
    accent = "#dc2626" if notification.kind == "alert" else "#4f46e5"
    body = "<br>".join(html.escape(line) for line in notification.body.splitlines())
    return f"""
    <div style="font-family: Inter, sans-serif; max-width: 600px; margin: 0 auto;">
      <div style="background: #0f3d3e; color: white; padding: 24px; border-radius: 12px 12px 0 0;">
        <h1 style="margin: 0; font-size: 20px;">{html.escape(notification.subject)}</h1>
      </div>
      <div style="background: #f8fafc; padding: 24px; border: 1px solid #e2e8f0;">
        <div style="border-left: 4px solid {accent}; padding: 16px; border-radius: 0 8px 8px 0;">
          <p style="color: #334155; line-height: 1.6; margin: 0;">{body}</p>
        </div>
      </div>
      <div style="text-align: center; padding: 16px; color: #94a3b8; font-size: 12px;">
        PharmaStock Inventory Alerts
      </div>
    </div>
    """


async def send_email_notification(notification: Notification) -> bool:
    """
    Send one notification to one address.

    Returns True if SendGrid accepted the message.
    """
    settings = get_settings()
    if not settings.sendgrid_api_key:
        logger.warning("email.not_configured", recipient=notification.recipient)
        return False

    message = Mail(
        from_email=settings.alert_from_email,
        to_emails=notification.recipient,
        subject=notification.subject,
        html_content=_html_content(notification),
    )
    client = sendgrid.SendGridAPIClient(api_key=settings.sendgrid_api_key)
    response = await asyncio.to_thread(client.send, message)
    return response.status_code in (200, 201, 202)
