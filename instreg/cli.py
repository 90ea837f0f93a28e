#!/usr/bin/env python3
"""
instreg CLI

Command-line interface for an instance directory:
  instreg list - Show all instances with their groups
  instreg find - Show one instance
  instreg create - Create a new instance directory
  instreg group - Move an instance into a group (or out of all groups)

Usage:
  instreg [--root <dir>] list [--format text|json|yaml]
  instreg [--root <dir>] find <id>
  instreg [--root <dir>] create <id> [--type <type>] [--name <name>]
  instreg [--root <dir>] group <id> (<group> | --none)

The root directory defaults to $INSTREG_ROOT, then ./instances.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .groups import GROUP_FILE, load_group_map_for_update, save_group_map
from .instance_list import InstanceList, ListError
from .loader import DEFAULT_INSTANCE_TYPE, CreateError, InstanceLoader
from . import instances  # Register built-in instance types

EXIT_NOT_FOUND = 1
EXIT_ROOT_UNREADABLE = 2


def _valid_instance_id(instance_id: str) -> bool:
    """An instance ID must be a single directory name inside the root."""
    if instance_id in ("", ".", ".."):
        return False
    return Path(instance_id).name == instance_id and "\\" not in instance_id


def _load(root: str) -> Optional[InstanceList]:
    instance_list = InstanceList(root)
    if instance_list.rescan() != ListError.NONE:
        print(f"ERROR: Instance directory not readable: {root}", file=sys.stderr)
        return None
    return instance_list


def cmd_list(args) -> int:
    """List all instances."""
    instance_list = _load(args.root)
    if instance_list is None:
        return EXIT_ROOT_UNREADABLE

    rows = [instance.to_dict() for instance in instance_list]

    if args.format == "json":
        print(json.dumps(rows, indent=2))
    elif args.format == "yaml":
        print(yaml.safe_dump(rows, sort_keys=False), end="")
    else:
        if not rows:
            print("No instances found")
        for row in rows:
            group = row["group"] or "-"
            print(f"{row['id']:<24} {row['name']:<24} {group:<16} {row['type']}")
    return 0


def cmd_find(args) -> int:
    """Show a single instance."""
    instance_list = _load(args.root)
    if instance_list is None:
        return EXIT_ROOT_UNREADABLE

    instance = instance_list.get_instance_by_id(args.id)
    if instance is None:
        print(f"Instance not found: {args.id}", file=sys.stderr)
        return EXIT_NOT_FOUND

    print(json.dumps(instance.to_dict(), indent=2))
    return 0


def cmd_create(args) -> int:
    """Create a new instance and add it to the list."""
    if not _valid_instance_id(args.id):
        print(f"ERROR: Invalid instance ID: {args.id!r}", file=sys.stderr)
        return 1

    instance_list = _load(args.root)
    if instance_list is None:
        return EXIT_ROOT_UNREADABLE

    loader = InstanceLoader.get()
    result = loader.create_instance(
        instance_list.root_dir / args.id,
        instance_type=args.type,
        name=args.name,
    )

    if result.error == CreateError.ALREADY_EXISTS:
        print(f"ERROR: Instance already exists: {args.id}", file=sys.stderr)
        return 1
    if result.error == CreateError.CANT_CREATE_DIR:
        print(f"ERROR: Cannot create instance directory for {args.id}", file=sys.stderr)
        return 1
    if not result.ok or result.instance is None:
        print(f"ERROR: Failed to create instance {args.id} ({result.error.name})", file=sys.stderr)
        return 1

    index = instance_list.add(result.instance)
    print(f"Created {result.instance.instance_id} at index {index}")
    return 0


def cmd_group(args) -> int:
    """Assign an instance to a group."""
    instance_list = _load(args.root)
    if instance_list is None:
        return EXIT_ROOT_UNREADABLE

    instance = instance_list.get_instance_by_id(args.id)
    if instance is None:
        print(f"Instance not found: {args.id}", file=sys.stderr)
        return EXIT_NOT_FOUND

    group = None if args.none else args.group
    if group is None and not args.none:
        print("ERROR: Give a group name or --none", file=sys.stderr)
        return 1

    group_map = load_group_map_for_update(instance_list.root_dir)
    if group_map is None:
        print(f"ERROR: {GROUP_FILE} could not be fully read; not overwriting it", file=sys.stderr)
        return 1
    if group is None:
        group_map.pop(instance.instance_id, None)
    else:
        group_map[instance.instance_id] = group
    save_group_map(instance_list.root_dir, group_map)
    instance.set_group(group)

    print(f"{instance.instance_id}: {group or 'ungrouped'}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="instreg",
        description="instreg - Directory-backed instance registry",
    )
    parser.add_argument("--root", default=os.environ.get("INSTREG_ROOT", "instances"),
                        help="Instance root directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # list command
    list_parser = subparsers.add_parser("list", help="List instances")
    list_parser.add_argument("--format", choices=["text", "json", "yaml"], default="text",
                             help="Output format")

    # find command
    find_parser = subparsers.add_parser("find", help="Show one instance")
    find_parser.add_argument("id", help="Instance ID")

    # create command
    create_parser = subparsers.add_parser("create", help="Create a new instance")
    create_parser.add_argument("id", help="Instance ID (directory name)")
    create_parser.add_argument("--type", default=DEFAULT_INSTANCE_TYPE, help="Instance type")
    create_parser.add_argument("--name", help="Display name")

    # group command
    group_parser = subparsers.add_parser("group", help="Set an instance's group")
    group_parser.add_argument("id", help="Instance ID")
    group_parser.add_argument("group", nargs="?", help="Group name")
    group_parser.add_argument("--none", action="store_true", help="Remove from its group")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "list":
        return cmd_list(args)
    elif args.command == "find":
        return cmd_find(args)
    elif args.command == "create":
        return cmd_create(args)
    elif args.command == "group":
        return cmd_group(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
