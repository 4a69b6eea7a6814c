import logging
import shutil
import subprocess
from pathlib import Path

from cloven.errors import CloveError

logger = logging.getLogger(__name__)


class NpmError(CloveError):
    pass


def check_command_result(result: subprocess.CompletedProcess) -> None:
    if result.returncode != 0:
        output = (result.stderr or result.stdout).strip()
        raise NpmError(f"npm command failed: {output}")


def npm_cmd(*args: str, cwd: Path) -> subprocess.CompletedProcess:
    npm = shutil.which("npm")
    if npm is None:
        raise NpmError("npm was not found. Install Node.js and try again.")

    logger.debug("Running npm %s in %s", " ".join(args), cwd)
    result = subprocess.run(
        [npm, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )

    check_command_result(result)
    return result


def init_package(project_dir: Path) -> None:
    npm_cmd("init", "-y", cwd=project_dir)
