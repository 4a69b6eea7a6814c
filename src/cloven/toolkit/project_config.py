import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from cloven.errors import (
    CloveError,
    ConfigMissingError,
    InvalidServerIdError,
    NoServerIdError,
)

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILENAME = ".cloven_config"
PLACEHOLDER_SERVER_IDS = ("", "YOUR_SERVER_ID")
DEFAULT_PROJECT_CONFIG = "SERVER_ID = YOUR_SERVER_ID\nSKIP_FILES = \n"

_LINE_RE = re.compile(r"^\s*([\w_]+)\s*=\s*(.*)\s*$")


@dataclass
class ProjectConfig:
    server_id: str
    skip_patterns: List[str] = field(default_factory=list)


def parse_config_text(text: str) -> Dict[str, str]:
    """
    Parses `KEY = value` lines. Lines that do not match (blank lines, comments)
    are ignored and a repeated key keeps its last value.
    """

    values = {}
    for line in text.splitlines():
        match = _LINE_RE.match(line)
        if match:
            values[match.group(1)] = match.group(2).strip()

    return values


def normalize_skip_patterns(value: Union[None, str, Sequence[str]]) -> List[str]:
    """
    Turns a SKIP_FILES value into a list of trimmed, non-empty patterns.

    Accepts a comma-separated string (`a, b/**`), a bracketed list written in
    the config file (`["a", "b/**"]`) or an already split sequence. Duplicates
    are dropped, first occurrence wins.
    """

    if value is None:
        return []

    if isinstance(value, str):
        text = value.strip()
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1]
        items = [item.strip().strip("\"'").strip() for item in text.split(",")]
    else:
        items = [str(item).strip() for item in value]

    patterns = []
    for item in items:
        if item and item not in patterns:
            patterns.append(item)

    return patterns


def is_placeholder_server_id(server_id: Optional[str]) -> bool:
    return server_id is None or server_id.strip() in PLACEHOLDER_SERVER_IDS


def get_project_config_path(project_dir: Path) -> Path:
    return project_dir / PROJECT_CONFIG_FILENAME


def _read_config_file(config_path: Path) -> str:
    try:
        return config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigMissingError(
            f"Could not read {PROJECT_CONFIG_FILENAME} file '{config_path}': {exc}"
        ) from exc


def read_project_config(project_dir: Path) -> ProjectConfig:
    config_path = get_project_config_path(project_dir)
    if not config_path.is_file():
        raise ConfigMissingError(
            f"No {PROJECT_CONFIG_FILENAME} file found in '{project_dir}'. "
            "Run: cloven create_config to create a default one."
        )

    values = parse_config_text(_read_config_file(config_path))
    server_id = values.get("SERVER_ID", "")
    if is_placeholder_server_id(server_id):
        raise InvalidServerIdError(
            f"SERVER_ID not found in {PROJECT_CONFIG_FILENAME} file."
        )

    skip_patterns = normalize_skip_patterns(values.get("SKIP_FILES"))
    logger.debug(
        "Read project config: server %s, %d skip pattern(s)",
        server_id,
        len(skip_patterns),
    )
    return ProjectConfig(server_id=server_id, skip_patterns=skip_patterns)


def write_default_project_config(project_dir: Path, overwrite: bool = True) -> Path:
    config_path = get_project_config_path(project_dir)
    if overwrite or not config_path.exists():
        try:
            config_path.write_text(DEFAULT_PROJECT_CONFIG, encoding="utf-8")
        except OSError as exc:
            raise CloveError(
                f"Could not write {PROJECT_CONFIG_FILENAME} file '{config_path}': {exc}"
            ) from exc

    return config_path


def resolve_server_id(server_id: Optional[str], project_dir: Path) -> str:
    """
    An explicit server id wins, otherwise SERVER_ID from the project config.
    """

    if server_id is None:
        config_path = get_project_config_path(project_dir)
        if not config_path.is_file():
            raise NoServerIdError(
                f"Please create a {PROJECT_CONFIG_FILENAME} file "
                "or provide a server id in the arguments."
            )
        server_id = parse_config_text(_read_config_file(config_path)).get("SERVER_ID")

    if is_placeholder_server_id(server_id):
        raise NoServerIdError("Please provide a valid server id.")

    return server_id.strip()
