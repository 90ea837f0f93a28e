# instreg/groups.py
"""
Instance group index.

Group membership lives beside the instances in ``instgroups.json``:

    {
      "formatVersion": 1,
      "groups": {
        "<group>": {"instances": ["<id>", ...]}
      }
    }

Loading never fails the caller. Anything wrong with the file degrades to
"no groups"; a bad group entry only drops that group.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

GROUP_FILE = "instgroups.json"
GROUP_FILE_FORMAT_VERSION = 1


def _format_version(value: Any) -> Optional[int]:
    """Coerce formatVersion the way a lenient JSON reader would."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _instance_key(value: Any) -> str:
    # non-string entries collapse to the empty ID
    return value if isinstance(value, str) else ""


def _read_group_file(root_dir: Path | str) -> Tuple[Dict[str, str], bool]:
    """
    Parse the group index.

    Returns:
        (group map, clean) where clean is False if any part of an existing
        file was rejected or skipped
    """
    group_path = Path(root_dir) / GROUP_FILE
    group_map: Dict[str, str] = {}

    if not group_path.exists():
        return group_map, True

    try:
        raw = group_path.read_bytes()
    except OSError as e:
        logger.debug(f"Failed to read instance group file: {e}")
        return group_map, False

    try:
        # utf-8-sig also accepts files written with a byte order mark
        data = json.loads(raw.decode("utf-8-sig"))
    except UnicodeDecodeError as e:
        logger.warning(f"Failed to parse instance group file: {e.reason} at offset {e.start}")
        return group_map, False
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse instance group file: {e.msg} at offset {e.pos}")
        return group_map, False

    if not isinstance(data, dict):
        logger.warning("Invalid group file. Root entry should be an object.")
        return group_map, False

    if _format_version(data.get("formatVersion")) != GROUP_FILE_FORMAT_VERSION:
        return group_map, False

    groups = data.get("groups")
    if not isinstance(groups, dict):
        logger.warning("Invalid group list JSON: 'groups' should be an object.")
        return group_map, False

    clean = True
    for group_name, group_obj in groups.items():
        if not isinstance(group_obj, dict):
            logger.warning(f"Group '{group_name}' in the group list should be an object.")
            clean = False
            continue

        instances = group_obj.get("instances")
        if not isinstance(instances, list):
            logger.warning(
                f"Group '{group_name}' in the group list is invalid. "
                "It should contain an array called 'instances'."
            )
            clean = False
            continue

        for instance_id in instances:
            if not isinstance(instance_id, str):
                clean = False
            group_map[_instance_key(instance_id)] = group_name

    return group_map, clean


def load_group_map(root_dir: Path | str) -> Dict[str, str]:
    """
    Read the group index of a registry root.

    Args:
        root_dir: Registry root containing instgroups.json

    Returns:
        Mapping of instance ID to group name (empty on any problem)
    """
    group_map, _ = _read_group_file(root_dir)
    return group_map


def load_group_map_for_update(root_dir: Path | str) -> Optional[Dict[str, str]]:
    """
    Read the group index before rewriting it.

    Returns None when an existing file was not fully understood, since
    saving over it would lose groups. A missing file gives an empty map.
    """
    group_map, clean = _read_group_file(root_dir)
    return group_map if clean else None


def save_group_map(root_dir: Path | str, group_map: Dict[str, str]):
    """
    Write a group index for a registry root.

    Ungrouped IDs (empty or None group) are left out.
    """
    groups: Dict[str, List[str]] = {}
    for instance_id, group_name in group_map.items():
        if group_name:
            groups.setdefault(group_name, []).append(instance_id)

    data = {
        "formatVersion": GROUP_FILE_FORMAT_VERSION,
        "groups": {
            name: {"instances": sorted(ids)}
            for name, ids in sorted(groups.items())
        },
    }
    group_path = Path(root_dir) / GROUP_FILE
    with open(group_path, "w") as f:
        json.dump(data, f, indent=2)
    logger.debug(f"Saved {len(groups)} groups to {group_path}")
