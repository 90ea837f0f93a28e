# instreg/instance_list.py
"""
The instance list.

Keeps the in-memory list of instances found under a root directory.
A rescan:
1. Reads the group index
2. Loads every sub-directory through the instance loader
3. Attaches groups to the loaded instances
4. Replaces the list and tells observers once

Per-directory problems are logged and skipped. Only an unusable root
directory fails a rescan, and then the current list is kept as it is.

Observers are called synchronously. They must not call rescan() or
clear() from inside a notification.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .groups import load_group_map
from .instance import Instance
from .loader import InstanceLoader, LoadError

logger = logging.getLogger(__name__)


class ListError(Enum):
    """Outcome of InstanceList.rescan."""
    NONE = 0
    ROOT_DIR_UNREADABLE = auto()


class EventKind(Enum):
    """Kinds of list change notification."""
    INVALIDATED = auto()  # Whole list replaced
    ADDED = auto()        # One instance appended at index
    CHANGED = auto()      # Instance at index changed


@dataclass(frozen=True)
class ListEvent:
    """A change notification sent to list observers."""
    kind: EventKind
    index: Optional[int] = None


# Observer callback type
ListObserver = Callable[[ListEvent], None]


class InstanceList:
    """
    Instances stored as sub-directories of a root directory.

    Usage:
        instances = InstanceList("/path/to/instances")
        instances.add_observer(lambda event: print(event))
        if instances.rescan() == ListError.NONE:
            dev = instances.get_instance_by_id("dev")
    """

    def __init__(self, root_dir: Path | str, loader: Optional[InstanceLoader] = None):
        self.root_dir = Path(root_dir)
        self.loader = loader or InstanceLoader.get()
        self._instances: List[Instance] = []
        self._observers: List[ListObserver] = []

    def add_observer(self, observer: ListObserver):
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: ListObserver):
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, event: ListEvent):
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"Instance list observer error: {e}")

    def _list_dirs(self) -> Optional[List[Path]]:
        """Sub-directories of the root, or None if the root is unusable."""
        if not self.root_dir.is_dir():
            return None
        try:
            entries = list(self.root_dir.iterdir())
        except OSError as e:
            logger.warning(f"Cannot list instance directory {self.root_dir}: {e}")
            return None

        sub_dirs = []
        for entry in entries:
            try:
                if entry.is_dir():
                    sub_dirs.append(entry)
            except OSError as e:
                logger.warning(f"Skipping {entry.name}: {e}")
        return sub_dirs

    def rescan(self) -> ListError:
        """
        Reload all instances from the root directory.

        Returns:
            ListError.NONE on success, ROOT_DIR_UNREADABLE if the root
            directory is missing or cannot be listed
        """
        group_map = load_group_map(self.root_dir)

        sub_dirs = self._list_dirs()
        if sub_dirs is None:
            logger.warning(f"Instance directory {self.root_dir} is not readable")
            return ListError.ROOT_DIR_UNREADABLE

        instances: List[Instance] = []
        for sub_dir in sub_dirs:
            result = self.loader.load_instance(sub_dir)

            if result.error == LoadError.NOT_AN_INSTANCE:
                continue

            if result.error != LoadError.NONE:
                logger.warning(f"Failed to load instance {sub_dir.name}: {result.error.name}")
                continue

            instance = result.instance
            if instance is None:
                logger.warning(f"Error loading instance {sub_dir.name}. Instance loader returned no instance.")
                continue

            group = group_map.get(instance.instance_id)
            if group is not None:
                instance.group = group

            logger.debug(f"Loaded instance {instance.name}")
            instances.append(instance)

        for old in self._instances:
            old.unsubscribe(self._on_instance_changed)
        for instance in instances:
            instance.subscribe(self._on_instance_changed)
        self._instances = instances

        logger.info(f"Loaded {len(instances)} instances from {self.root_dir}")
        self._notify(ListEvent(EventKind.INVALIDATED))
        return ListError.NONE

    def clear(self):
        """Remove all instances."""
        for instance in self._instances:
            instance.unsubscribe(self._on_instance_changed)
        self._instances = []
        self._notify(ListEvent(EventKind.INVALIDATED))

    def add(self, instance: Instance) -> int:
        """
        Append an instance without rescanning.

        Returns:
            Index of the new instance
        """
        self._instances.append(instance)
        instance.subscribe(self._on_instance_changed)
        index = len(self._instances) - 1
        self._notify(ListEvent(EventKind.ADDED, index))
        return index

    def get_instance_by_id(self, instance_id: str) -> Optional[Instance]:
        """Find the first instance with the given ID."""
        for instance in self._instances:
            if instance.instance_id == instance_id:
                return instance
        return None

    def index_of(self, instance: Instance) -> Optional[int]:
        """Index of this exact instance object, None if not listed."""
        for i, listed in enumerate(self._instances):
            if listed is instance:
                return i
        return None

    def _on_instance_changed(self, instance: Instance):
        index = self.index_of(instance)
        if index is None:
            return
        self._notify(ListEvent(EventKind.CHANGED, index))

    def instances(self) -> List[Instance]:
        """List all instances."""
        return list(self._instances)

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[Instance]:
        return iter(list(self._instances))

    def __getitem__(self, index: int) -> Instance:
        return self._instances[index]
