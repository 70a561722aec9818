"""Preference Store adapter for the per-user PMI setting.

The setting lives in Mattermost's preference table under
``(category="plugin:zoom", name="use-pmi")``; one value per user, last write
wins.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import structlog

from src.zoom_plugin.platform.schemas import Preference

if TYPE_CHECKING:
    from src.zoom_plugin.platform.client import MattermostClient

logger = structlog.get_logger(__name__)

ZOOM_PREFERENCE_CATEGORY = "plugin:zoom"
ZOOM_PMI_SETTING_NAME = "use-pmi"


class PMIPreference(str, Enum):
    """Whether a user's instant meetings use their Personal Meeting ID."""

    UNSET = ""
    TRUE = "true"
    FALSE = "false"
    ASK = "ask"

    @classmethod
    def from_value(cls, value: str | None) -> PMIPreference:
        """Map a stored value to a preference.

        Missing values are UNSET. Values written by anything other than this
        adapter count as a concrete "do not use PMI" choice.
        """
        if not value:
            return cls.UNSET
        try:
            return cls(value)
        except ValueError:
            return cls.FALSE

    @property
    def asks_user(self) -> bool:
        return self in (PMIPreference.UNSET, PMIPreference.ASK)


class PreferenceStore:
    """Reads and writes the use-pmi preference through the chat platform."""

    def __init__(self, platform: MattermostClient) -> None:
        self._platform = platform

    async def get_pmi_setting(self, user_id: str) -> PMIPreference:
        """Return the user's PMI preference. Storage errors propagate."""
        pref = await self._platform.get_preference(
            user_id, ZOOM_PREFERENCE_CATEGORY, ZOOM_PMI_SETTING_NAME
        )
        return PMIPreference.from_value(pref.value if pref else None)

    async def set_pmi_setting(self, user_id: str, value: PMIPreference) -> None:
        await self._platform.update_preferences(
            user_id,
            [
                Preference(
                    user_id=user_id,
                    category=ZOOM_PREFERENCE_CATEGORY,
                    name=ZOOM_PMI_SETTING_NAME,
                    value=value.value,
                )
            ],
        )
        logger.info("preferences.pmi_updated", user_id=user_id, value=value.value)
