"""
Outbound notifications (welcome mails, chore submitted, reward redeemed).
Best effort only: a failed notification is logged and never reaches the caller.
"""
from typing import Any, Dict, Optional
import logging

import requests

from ..core.config import settings

logger = logging.getLogger(__name__)

WELCOME_PARENT = "welcome_parent"
ADMIN_NEW_REGISTRATION = "admin_new_registration"
CHORE_SUBMITTED = "chore_submitted"
REWARD_REDEEMED = "reward_redeemed"


def send_notification(type: str, to: str, data: Optional[Dict[str, Any]] = None) -> bool:
    """POST ``{type, to, data}`` to the notification endpoint.

    Returns True when the endpoint accepted it. Without a configured
    endpoint the notification is only logged.
    """
    payload = {"type": type, "to": to, "data": data or {}}
    if not settings.NOTIFICATIONS_URL:
        logger.info(f"Notification {type} to {to} skipped, no endpoint configured")
        return False

    try:
        response = requests.post(
            settings.NOTIFICATIONS_URL,
            json=payload,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        logger.info(f"Notification {type} sent to {to}")
        return True
    except Exception as e:
        logger.warning(f"Notification {type} to {to} failed: {e}")
        return False
