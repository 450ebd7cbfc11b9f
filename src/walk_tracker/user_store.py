"""Hand-off of finished walk totals to the external user-record store."""
import logging
from typing import Optional

import httpx

from .config import TrackerSettings, get_tracker_settings

logger = logging.getLogger(__name__)


def hand_off_steps(
    user_id: str,
    steps: int,
    settings: Optional[TrackerSettings] = None,
) -> bool:
    """
    POST a walk's step total to the user-record store.

    Args:
        user_id: Identity-provider user id
        steps: Steps walked in the finished session
        settings: Tracker settings (for the store URL)

    Returns:
        True if the store accepted the update
    """
    settings = settings or get_tracker_settings()
    url = f"{settings.user_store_url}/api/user/steps"

    try:
        response = httpx.post(
            url,
            json={"userId": user_id, "steps": steps},
            timeout=5.0,
        )

        if response.status_code == 200:
            logger.info(f"[HANDOFF] Saved {steps} steps for {user_id}")
            return True
        else:
            logger.warning(f"[HANDOFF FAILED] Status {response.status_code}: {response.text}")
            return False

    except httpx.ConnectError:
        logger.debug(f"[HANDOFF] User store not available at {settings.user_store_url}")
        return False
    except httpx.HTTPError as e:
        logger.error(f"[HANDOFF ERROR] Failed to save steps: {e}")
        return False
