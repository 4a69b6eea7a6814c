import fnmatch
import logging
import os
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, List, Optional
from zipfile import ZIP_DEFLATED, ZipFile

from cloven.errors import ArchiveIOError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def _normalize_pattern(pattern: str) -> str:
    pattern = pattern.strip().replace("\\", "/")
    if pattern.startswith("./"):
        pattern = pattern[2:]

    return pattern.rstrip("/")


def is_excluded(relative_path: PurePosixPath, patterns: Iterable[str]) -> bool:
    """
    True if the path, or one of the directories containing it, matches a
    pattern. `*` also matches `/`, and a leading `**/` matches at the root too.
    """

    candidates = [relative_path.as_posix()]
    candidates.extend(
        parent.as_posix() for parent in relative_path.parents if parent.name
    )

    for pattern in patterns:
        pattern = _normalize_pattern(pattern)
        if not pattern:
            continue

        variants = [pattern]
        if pattern.startswith("**/"):
            variants.append(pattern[3:])

        for candidate in candidates:
            if any(fnmatch.fnmatchcase(candidate, variant) for variant in variants):
                return True

    return False


def collect_files(root: Path, excludes: Iterable[str]) -> List[PurePosixPath]:
    """
    Lists the files under `root`, relative to it and sorted, skipping excluded
    files and never descending into excluded directories.
    """

    excludes = list(excludes)
    files = []

    for dirpath, dirnames, filenames in os.walk(root):
        relative_dir = PurePosixPath(Path(dirpath).relative_to(root).as_posix())

        dirnames[:] = sorted(
            name for name in dirnames if not is_excluded(relative_dir / name, excludes)
        )
        for name in filenames:
            relative_path = relative_dir / name
            if not is_excluded(relative_path, excludes):
                files.append(relative_path)

    return sorted(files)


def create_archive(
    root: Path,
    artifact_path: Path,
    excludes: Iterable[str],
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """
    Zips every non-excluded file under `root` into `artifact_path`, replacing
    any previous artifact. Returns the number of archived files.
    """

    excludes = list(excludes)
    try:
        if artifact_path.exists():
            logger.debug("Removing stale artifact %s", artifact_path)
            artifact_path.unlink()

        if artifact_path.parent.resolve() == root.resolve():
            excludes.append(artifact_path.name)

        files = collect_files(root, excludes)
        total = len(files)
        if on_progress is not None:
            on_progress(0, total)

        with ZipFile(
            artifact_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False
        ) as zip_file:
            for index, relative_path in enumerate(files, start=1):
                zip_file.write(root / relative_path, relative_path.as_posix())
                if on_progress is not None:
                    on_progress(index, total)

    except OSError as exc:
        if artifact_path.exists():
            artifact_path.unlink()
        raise ArchiveIOError(f"Could not create archive '{artifact_path}': {exc}") from exc

    logger.debug("Archived %d file(s) into %s", total, artifact_path)
    return total
