import os
from pathlib import PurePosixPath
from zipfile import ZipFile

import pytest

from cloven.errors import ArchiveIOError
from cloven.toolkit.archive import collect_files, create_archive, is_excluded


def make_project(root):
    files = {
        "index.js": "console.log('hi')",
        "package.json": "{}",
        "src/bot.js": "module.exports = {}",
        "src/logs/debug.log": "debug",
        "node_modules/dep/index.js": "dep",
        ".cloven_config": "SERVER_ID = abc123",
    }
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def test_is_excluded():
    path = PurePosixPath("node_modules/dep/index.js")

    assert is_excluded(path, ["node_modules"])
    assert is_excluded(path, ["node_modules/**"])
    assert is_excluded(PurePosixPath("src/a.log"), ["*.log"])
    assert is_excluded(PurePosixPath("a.log"), ["**/*.log"])
    assert is_excluded(PurePosixPath("dist/app.js"), ["./dist/"])
    assert not is_excluded(PurePosixPath("src/bot.js"), ["node_modules", "*.log", ""])


def test_collect_files(tmp_path):
    make_project(tmp_path)

    files = collect_files(tmp_path, ["node_modules", ".cloven_config", "src/logs"])

    assert [f.as_posix() for f in files] == ["index.js", "package.json", "src/bot.js"]


def test_create_archive(tmp_path):
    make_project(tmp_path)
    artifact = tmp_path / "archive.zip"
    progress = []

    count = create_archive(
        tmp_path,
        artifact,
        ["node_modules", "node_modules/**", ".cloven_config"],
        on_progress=lambda completed, total: progress.append((completed, total)),
    )

    assert count == 4
    with ZipFile(artifact) as zip_file:
        assert sorted(zip_file.namelist()) == [
            "index.js",
            "package.json",
            "src/bot.js",
            "src/logs/debug.log",
        ]
        assert zip_file.read("src/bot.js") == b"module.exports = {}"

    assert progress[0] == (0, 4)
    assert progress[-1] == (4, 4)


def test_create_archive_replaces_stale_artifact(tmp_path):
    make_project(tmp_path)
    artifact = tmp_path / "archive.zip"
    artifact.write_text("left over from a failed run")

    create_archive(tmp_path, artifact, ["node_modules"])

    with ZipFile(artifact) as zip_file:
        assert "archive.zip" not in zip_file.namelist()


def test_create_archive_io_error(tmp_path):
    make_project(tmp_path)

    with pytest.raises(ArchiveIOError):
        create_archive(tmp_path, tmp_path / "missing" / "archive.zip", [])


def test_create_archive_pre_1980_timestamps(tmp_path):
    make_project(tmp_path)
    os.utime(tmp_path / "index.js", (0, 0))
    artifact = tmp_path / "archive.zip"

    create_archive(tmp_path, artifact, ["node_modules"])

    with ZipFile(artifact) as zip_file:
        assert zip_file.read("index.js") == b"console.log('hi')"
        assert zip_file.getinfo("index.js").date_time[0] == 1980
