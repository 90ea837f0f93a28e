# instreg/instances/standard.py
"""
Standard instances.

Type: standard

The default instance type. Besides the common name, it tracks the
version the instance was set up for, free-form notes, an icon key and
the last launch time.
"""

import logging
import time
from typing import Dict, List, Optional

from ..instance import Instance
from ..loader import DEFAULT_INSTANCE_TYPE, register_instance_type

logger = logging.getLogger(__name__)


@register_instance_type(DEFAULT_INSTANCE_TYPE)
class StandardInstance(Instance):
    """
    A standard instance.

    Settings:
        intendedVersion: Version the instance targets
        notes: Free-form notes
        iconKey: Icon shown for the instance
        lastLaunchTime: Unix timestamp in milliseconds (0 if never)
    """

    @classmethod
    def validate_settings(cls, settings: Dict[str, str]) -> List[str]:
        errors = []
        last_launch = settings.get("lastLaunchTime", "0").strip() or "0"
        if not last_launch.isdecimal():
            errors.append(f"lastLaunchTime must be an integer, got {last_launch!r}")
        return errors

    @classmethod
    def default_settings(cls) -> Dict[str, str]:
        return {
            "intendedVersion": "",
            "iconKey": "default",
            "notes": "",
            "lastLaunchTime": "0",
        }

    @property
    def intended_version(self) -> str:
        return self.settings.get("intendedVersion", "")

    @property
    def notes(self) -> str:
        return self.settings.get("notes", "")

    @property
    def icon_key(self) -> str:
        return self.settings.get("iconKey", "default")

    @property
    def last_launch(self) -> Optional[float]:
        """Last launch as a Unix timestamp in seconds, None if never launched."""
        millis = int(self.settings.get("lastLaunchTime", "0").strip() or "0")
        return millis / 1000.0 if millis else None

    def mark_launched(self, when: Optional[float] = None):
        """Record a launch (defaults to now)."""
        when = time.time() if when is None else when
        self.set_setting("lastLaunchTime", str(int(when * 1000)))
        logger.debug(f"Marked {self.instance_id} launched at {when}")

    def to_dict(self) -> Dict[str, Optional[str]]:
        data = super().to_dict()
        data["intendedVersion"] = self.intended_version
        return data
