# instreg/config.py
"""
Instance marker file.

Every instance directory holds an ``instance.cfg`` file made of plain
``key=value`` lines. Its presence is what makes a directory an instance;
the ``type`` key selects the loader used to build it.
"""

import configparser
import logging
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

INSTANCE_CFG = "instance.cfg"

# configparser needs a section header; the file format has none
_SECTION = "instance"


class ConfigError(Exception):
    """Raised when an instance marker file cannot be read or parsed."""


def _parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=("#", ";"),
        interpolation=None,
        strict=False,
    )
    parser.optionxform = str  # keep key case
    return parser


def read_instance_config(path: Path | str) -> Dict[str, str]:
    """
    Read a marker file into a flat dictionary.

    Args:
        path: Path to the ``instance.cfg`` file

    Returns:
        Mapping of keys to string values

    Raises:
        ConfigError: The file is unreadable or not valid key=value content
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    parser = _parser()
    try:
        parser.read_string(f"[{_SECTION}]\n{text}", source=str(path))
    except configparser.Error as e:
        raise ConfigError(f"Malformed instance config {path}: {e}") from e

    return dict(parser.items(_SECTION))


def write_instance_config(path: Path | str, settings: Dict[str, str]):
    """Write settings back as key=value lines."""
    path = Path(path)
    lines = [f"{key}={value}" for key, value in settings.items()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.debug(f"Wrote {len(lines)} settings to {path}")
