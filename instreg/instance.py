# instreg/instance.py
"""
Instance records.

An Instance is one directory under the registry root. The registry owns
the instance while it is listed; observers only hold references to it.
Each instance has its own change channel so its owner can relay property
changes without the instance knowing who owns it.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import INSTANCE_CFG, write_instance_config

logger = logging.getLogger(__name__)

# Change callback type
ChangeCallback = Callable[["Instance"], None]


class Instance:
    """
    A loaded instance directory.

    Attributes:
        root: The instance directory
        instance_type: Type tag the instance was loaded with
        settings: Raw marker file settings (type-specific payload)
        group: Group name, None when ungrouped
    """

    def __init__(
        self,
        root: Path | str,
        instance_type: str,
        settings: Optional[Dict[str, str]] = None,
    ):
        self.root = Path(root)
        self.instance_type = instance_type
        self.settings: Dict[str, str] = dict(settings or {})
        self.group: Optional[str] = None
        self._callbacks: List[ChangeCallback] = []

    @classmethod
    def validate_settings(cls, settings: Dict[str, str]) -> List[str]:
        """
        Validate marker file settings before construction.

        Returns list of error messages (empty if valid).
        Override in subclasses for type-specific validation.
        """
        return []

    @classmethod
    def default_settings(cls) -> Dict[str, str]:
        """Settings written into the marker file of a new instance."""
        return {}

    @property
    def instance_id(self) -> str:
        """The instance ID is the directory name."""
        return self.root.name

    @property
    def name(self) -> str:
        return self.settings.get("name") or self.instance_id

    @property
    def config_path(self) -> Path:
        return self.root / INSTANCE_CFG

    def set_name(self, name: str):
        self.settings["name"] = name
        self.notify_changed()

    def set_group(self, group: Optional[str]):
        """Assign a group (None to ungroup)."""
        if group == self.group:
            return
        self.group = group
        self.notify_changed()

    def set_setting(self, key: str, value: str):
        self.settings[key] = value
        self.notify_changed()

    def save(self):
        """Write settings back to the marker file."""
        settings = dict(self.settings)
        settings["type"] = self.instance_type
        write_instance_config(self.config_path, settings)

    def subscribe(self, callback: ChangeCallback):
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: ChangeCallback):
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def notify_changed(self):
        """Tell every subscriber that this instance's properties changed."""
        for callback in list(self._callbacks):
            callback(self)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "id": self.instance_id,
            "name": self.name,
            "type": self.instance_type,
            "group": self.group,
            "path": str(self.root),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.instance_id!r}, group={self.group!r})"
