from __future__ import annotations

import json
import logging
from typing import Any

from plan_ingest_core.models import Creator
from plan_ingest_core.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

CREATOR_PROFILE_KEYS = ("authenticatedUser", "user_data", "user_profile")


def creator_from_profile(profile: dict[str, Any]) -> Creator:
    username = profile.get("username") or None
    first = profile.get("firstName") or None
    last = profile.get("lastName") or None
    full = f"{first or ''} {last or ''}".strip() or None
    return Creator(
        name=username or f"{first or 'Coach'} {last or ''}".strip(),
        username=username,
        first_name=first,
        last_name=last,
        full_name=full,
        profile_image=profile.get("profileImage") or None,
    )


async def load_creator(store: KeyValueStore) -> Creator:
    """First readable profile among the known keys, else the anonymous "Coach" creator."""
    for key in CREATOR_PROFILE_KEYS:
        try:
            value = await store.get(key)
        except Exception:  # noqa: BLE001
            logger.debug("Could not read creator profile %s", key, exc_info=True)
            continue
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                continue
        if isinstance(value, dict) and value:
            return creator_from_profile(value)
    return Creator()
