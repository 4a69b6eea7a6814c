"""
Global configuration object for the CLI. The root callback builds it from the
GlobalConfig JSON file and hands it to the commands through `ctx.obj`.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from cloven.errors import CloveError, UnauthenticatedError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_PATH = Path(__file__).parent / "config.json"
DEFAULT_PANEL_URL = "https://manage.clovenbots.com/"
PLACEHOLDER_API_KEYS = ("", "YOUR_API_KEY")
CONFIG_FILE_HINT = "Use --config-file or CLOVEN_CONFIG_FILE to pick another location."


@dataclass
class CliConfig:
    config_file_path: Path
    project_dir: Path
    api_key: str = ""
    panel_url: str = DEFAULT_PANEL_URL
    sftp_password: str = ""
    verbose: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_api_key(self) -> bool:
        return self.api_key not in PLACEHOLDER_API_KEYS

    def require_api_key(self) -> None:
        if not self.has_api_key:
            raise UnauthenticatedError(
                "You need to set up your API key. Run: cloven login <api_key>"
            )


def default_global_config() -> Dict[str, str]:
    return {"api_key": "", "panel_url": DEFAULT_PANEL_URL, "sftp_password": ""}


def load_cli_config(
    config_file_path: Path, project_dir: Path, verbose: bool = False
) -> CliConfig:
    """
    Reads the GlobalConfig file, creating it with placeholder values on first run.
    """

    try:
        if not config_file_path.exists():
            logger.debug("Creating default configuration file at %s", config_file_path)
            config_file_path.parent.mkdir(parents=True, exist_ok=True)
            config_file_path.write_text(json.dumps(default_global_config()))

        text = config_file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CloveError(
            f"Could not read configuration file '{config_file_path}': {exc}. "
            f"{CONFIG_FILE_HINT}"
        ) from exc

    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError as exc:
        raise CloveError(
            f"Configuration file '{config_file_path}' is not valid JSON: {exc}"
        ) from exc
    if not isinstance(data, dict):
        raise CloveError(
            f"Configuration file '{config_file_path}' must hold a JSON object."
        )

    known = default_global_config()
    extra = {k: v for k, v in data.items() if k not in known}

    return CliConfig(
        config_file_path=config_file_path,
        project_dir=project_dir,
        api_key=str(data.get("api_key") or ""),
        panel_url=str(data.get("panel_url") or DEFAULT_PANEL_URL),
        sftp_password=str(data.get("sftp_password") or ""),
        verbose=verbose,
        extra=extra,
    )


def save_cli_config(cli_config: CliConfig) -> None:
    data = dict(cli_config.extra)
    data.update(
        api_key=cli_config.api_key,
        panel_url=cli_config.panel_url,
        sftp_password=cli_config.sftp_password,
    )
    try:
        cli_config.config_file_path.write_text(json.dumps(data), encoding="utf-8")
    except OSError as exc:
        raise CloveError(
            f"Could not save configuration file '{cli_config.config_file_path}': "
            f"{exc}. {CONFIG_FILE_HINT}"
        ) from exc
    logger.debug("Saved configuration to %s", cli_config.config_file_path)
