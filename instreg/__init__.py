# instreg - Directory-backed instance registry
#
# Discovers instances stored as sub-directories of a root directory, loads
# each one through a loader chosen by its marker file, attaches groups from
# the instgroups.json side-car and keeps an observable in-memory list.
#
# Core concepts:
# - Instance: One loaded instance directory
# - InstanceLoader: Turns a directory into an Instance or an error code
# - Group index: instgroups.json mapping instance IDs to group names
# - InstanceList: The list of instances and the rescan logic

from .config import INSTANCE_CFG, ConfigError, read_instance_config, write_instance_config
from .groups import GROUP_FILE, load_group_map, save_group_map
from .instance import Instance
from .loader import (
    CreateError,
    CreateResult,
    InstanceLoader,
    LoadError,
    LoadResult,
    get_instance_type,
    register_instance_type,
)
from .instance_list import EventKind, InstanceList, ListError, ListEvent
from .instances.standard import StandardInstance  # Registers the built-in type

__all__ = [
    "INSTANCE_CFG",
    "ConfigError",
    "read_instance_config",
    "write_instance_config",
    "GROUP_FILE",
    "load_group_map",
    "save_group_map",
    "Instance",
    "CreateError",
    "CreateResult",
    "InstanceLoader",
    "LoadError",
    "LoadResult",
    "get_instance_type",
    "register_instance_type",
    "EventKind",
    "InstanceList",
    "ListError",
    "ListEvent",
    "StandardInstance",
]

__version__ = "0.1.0"
