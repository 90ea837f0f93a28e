# instreg/loader.py
"""
Instance loader and type registry.

Instance types are registered by type tag and looked up when a directory
is loaded. The tag comes from the ``type`` key of the directory's marker
file, so new instance types plug in without touching the registry.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Dict, Optional, Type

from .config import INSTANCE_CFG, ConfigError, read_instance_config, write_instance_config
from .instance import Instance

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_TYPE = "standard"

# Global instance type registry
_INSTANCE_TYPES: Dict[str, Type[Instance]] = {}


class LoadError(Enum):
    """Outcome of loading an instance directory."""
    NONE = 0
    UNKNOWN = auto()
    NOT_AN_INSTANCE = auto()


class CreateError(Enum):
    """Outcome of creating an instance directory."""
    NONE = 0
    UNKNOWN = auto()
    ALREADY_EXISTS = auto()
    CANT_CREATE_DIR = auto()


@dataclass
class LoadResult:
    """Result of InstanceLoader.load_instance."""
    instance: Optional[Instance] = None
    error: LoadError = LoadError.NONE

    @property
    def ok(self) -> bool:
        return self.error == LoadError.NONE


@dataclass
class CreateResult:
    """Result of InstanceLoader.create_instance."""
    instance: Optional[Instance] = None
    error: CreateError = CreateError.NONE

    @property
    def ok(self) -> bool:
        return self.error == CreateError.NONE


def register_instance_type(type_tag: str) -> Callable:
    """
    Decorator to register an Instance class for a type tag.

    Usage:
        @register_instance_type("standard")
        class StandardInstance(Instance):
            ...
    """
    def decorator(cls: Type[Instance]) -> Type[Instance]:
        if type_tag in _INSTANCE_TYPES:
            logger.warning(f"Overwriting instance type {type_tag}")
        _INSTANCE_TYPES[type_tag] = cls
        return cls
    return decorator


def get_instance_type(type_tag: str) -> Optional[Type[Instance]]:
    """Get the Instance class registered for a type tag, or None."""
    return _INSTANCE_TYPES.get(type_tag)


def list_instance_types() -> Dict[str, Type[Instance]]:
    """List all registered instance types."""
    return dict(_INSTANCE_TYPES)


def clear_instance_types():
    """Clear all registered instance types (for testing)."""
    _INSTANCE_TYPES.clear()


class InstanceLoader:
    """
    Loads and creates instances.

    There is one loader per process, obtained with InstanceLoader.get().
    Neither operation raises for a bad directory; the outcome is reported
    through the result's error code.
    """

    _loader: Optional["InstanceLoader"] = None

    @classmethod
    def get(cls) -> "InstanceLoader":
        """Get the process-wide loader."""
        if cls._loader is None:
            cls._loader = cls()
        return cls._loader

    def _build(self, instance_dir: Path, settings: Dict[str, str]) -> Optional[Instance]:
        """Construct an instance from its settings, or None on failure."""
        type_tag = settings.get("type") or DEFAULT_INSTANCE_TYPE
        instance_cls = get_instance_type(type_tag)
        if instance_cls is None:
            logger.warning(f"Unknown instance type '{type_tag}' in {instance_dir.name}")
            return None

        try:
            problems = instance_cls.validate_settings(settings)
            if problems:
                logger.warning(f"Invalid {type_tag} instance {instance_dir.name}: {problems}")
                return None
            return instance_cls(instance_dir, type_tag, settings)
        except Exception as e:
            logger.warning(f"Failed to construct {type_tag} instance {instance_dir.name}: {e}")
            return None

    def _discard(self, instance_dir: Path, created_dir: bool):
        """Undo a failed create so the directory is not left looking like an instance."""
        try:
            (instance_dir / INSTANCE_CFG).unlink(missing_ok=True)
            if created_dir:
                instance_dir.rmdir()
        except OSError as e:
            logger.warning(f"Cannot clean up failed instance {instance_dir}: {e}")

    def load_instance(self, instance_dir: Path | str) -> LoadResult:
        """
        Load an instance from a directory.

        Reads the marker file to find the instance type first.

        Returns:
            LoadResult with the instance, or with NOT_AN_INSTANCE when the
            directory has no marker file, or UNKNOWN when the marker is
            unusable
        """
        instance_dir = Path(instance_dir)
        config_path = instance_dir / INSTANCE_CFG

        try:
            is_instance = config_path.is_file()
        except OSError as e:
            logger.warning(f"Cannot inspect {instance_dir.name}: {e}")
            return LoadResult(error=LoadError.UNKNOWN)

        if not is_instance:
            logger.debug(f"Not an instance: {instance_dir.name}")
            return LoadResult(error=LoadError.NOT_AN_INSTANCE)

        try:
            settings = read_instance_config(config_path)
        except ConfigError as e:
            logger.warning(str(e))
            return LoadResult(error=LoadError.UNKNOWN)

        instance = self._build(instance_dir, settings)
        if instance is None:
            return LoadResult(error=LoadError.UNKNOWN)
        return LoadResult(instance=instance)

    def create_instance(
        self,
        instance_dir: Path | str,
        instance_type: str = DEFAULT_INSTANCE_TYPE,
        name: Optional[str] = None,
    ) -> CreateResult:
        """
        Create a new instance in a directory.

        Args:
            instance_dir: The new instance's directory (created if missing)
            instance_type: Registered type tag for the new instance
            name: Display name (defaults to the directory name)

        Returns:
            CreateResult with ALREADY_EXISTS if the directory is already an
            instance, CANT_CREATE_DIR if the directory cannot be created
        """
        instance_dir = Path(instance_dir)
        config_path = instance_dir / INSTANCE_CFG

        try:
            if config_path.exists():
                return CreateResult(error=CreateError.ALREADY_EXISTS)
            created_dir = not instance_dir.exists()
        except OSError as e:
            logger.warning(f"Cannot inspect {instance_dir}: {e}")
            return CreateResult(error=CreateError.UNKNOWN)

        instance_cls = get_instance_type(instance_type)
        if instance_cls is None:
            logger.warning(f"Cannot create instance of unknown type '{instance_type}'")
            return CreateResult(error=CreateError.UNKNOWN)

        try:
            instance_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create instance directory {instance_dir}: {e}")
            return CreateResult(error=CreateError.CANT_CREATE_DIR)

        settings = instance_cls.default_settings()
        settings.update({"type": instance_type, "name": name or instance_dir.name})

        try:
            write_instance_config(config_path, settings)
        except OSError as e:
            logger.warning(f"Cannot write {config_path}: {e}")
            self._discard(instance_dir, created_dir)
            return CreateResult(error=CreateError.UNKNOWN)

        instance = self._build(instance_dir, settings)
        if instance is None:
            self._discard(instance_dir, created_dir)
            return CreateResult(error=CreateError.UNKNOWN)

        logger.info(f"Created {instance_type} instance {instance.instance_id}")
        return CreateResult(instance=instance)
