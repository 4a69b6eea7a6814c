"""
Upload pipeline: turns the local project directory into an updated deployment
on the remote server.

The steps run in a fixed order and each one must succeed before the next
starts:

1. read the project config (server id, skip patterns)
2. check that an API key is configured
3. fetch the server's SFTP details and the account username
4. open the SFTP session, asking for the password once if the saved one is
   missing or rejected
5. zip the project into the artifact
6. send the artifact over SFTP
7. ask the panel to decompress it
8. ask the panel to delete it
9. optionally restart the server

The SFTP session is closed and the local artifact removed whatever the
outcome of steps 5 to 9. Nothing is retried: a failed upload is run again
from the start.
"""

import logging
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterable, List, Optional, Protocol

from cloven.cli_config import CliConfig, save_cli_config
from cloven.errors import TransferAuthError
from cloven.toolkit.archive import ProgressCallback, create_archive
from cloven.toolkit.panel import PanelClient, ServerDetails
from cloven.toolkit.project_config import (
    PROJECT_CONFIG_FILENAME,
    normalize_skip_patterns,
    read_project_config,
)
from cloven.toolkit.sftp import SftpSession

logger = logging.getLogger(__name__)

ARTIFACT_NAME = "archive.zip"
REMOTE_ROOT = "/"
DEPENDENCY_CACHE_DIR = "node_modules"


class UploadReporter(Protocol):
    def step(self, description: str) -> ContextManager: ...

    def progress(
        self, description: str, transfer: bool = False
    ) -> ContextManager[ProgressCallback]: ...

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...


@dataclass
class TransferTarget:
    host: str
    port: int
    username: str


@dataclass
class UploadResult:
    server: ServerDetails
    files_archived: int
    restarted: bool


def build_excludes(skip_patterns: Optional[Iterable[str]] = None) -> List[str]:
    return [
        DEPENDENCY_CACHE_DIR,
        f"{DEPENDENCY_CACHE_DIR}/**",
        PROJECT_CONFIG_FILENAME,
        ARTIFACT_NAME,
        *normalize_skip_patterns(list(skip_patterns or [])),
    ]


def get_transfer_username(account_username: str, server_identifier: str) -> str:
    return f"{account_username}.{server_identifier}"


class UploadWorkflow:
    def __init__(
        self,
        cli_config: CliConfig,
        panel: PanelClient,
        ask_password: Callable[[], str],
        confirm_restart: Callable[[], bool],
        reporter: UploadReporter,
        session_factory: Callable[[], SftpSession] = SftpSession,
    ):
        self.cli_config = cli_config
        self.panel = panel
        self.ask_password = ask_password
        self.confirm_restart = confirm_restart
        self.reporter = reporter
        self.session_factory = session_factory

    @property
    def project_dir(self):
        return self.cli_config.project_dir

    @property
    def artifact_path(self):
        return self.project_dir / ARTIFACT_NAME

    @property
    def remote_artifact_path(self) -> str:
        return REMOTE_ROOT.rstrip("/") + "/" + ARTIFACT_NAME

    def run(self) -> UploadResult:
        project = read_project_config(self.project_dir)
        self.cli_config.require_api_key()

        server, target = self.fetch_remote_identity(project.server_id)

        with self.open_session(target) as session:
            try:
                files_archived = self.build_archive(project.skip_patterns)
                self.send_artifact(session)
                self.decompress_artifact(server.identifier)
                self.delete_remote_artifact(server.identifier)
            finally:
                self.remove_local_artifact()

            restarted = self.restart_if_confirmed(server.identifier)

        return UploadResult(
            server=server, files_archived=files_archived, restarted=restarted
        )

    def fetch_remote_identity(self, server_id: str):
        with self.reporter.step("Fetching server details..."):
            server = self.panel.get_server_details(server_id)
            account = self.panel.get_account_details()

        target = TransferTarget(
            host=server.sftp_details.ip,
            port=server.sftp_details.port,
            username=get_transfer_username(account.username, server.identifier),
        )
        return server, target

    def open_session(self, target: TransferTarget) -> SftpSession:
        session = self.session_factory()

        if self.cli_config.sftp_password:
            try:
                with self.reporter.step("Connecting to the server over SFTP..."):
                    session.connect(
                        target.host,
                        target.port,
                        target.username,
                        self.cli_config.sftp_password,
                    )
                return session
            except TransferAuthError:
                self.reporter.warn("The saved SFTP password was rejected.")

        password = self.ask_password()
        with self.reporter.step("Connecting to the server over SFTP..."):
            session.connect(target.host, target.port, target.username, password)

        self.cli_config.sftp_password = password
        save_cli_config(self.cli_config)
        logger.debug("Saved the new SFTP password")
        return session

    def build_archive(self, skip_patterns: Iterable[str]) -> int:
        with self.reporter.progress("Compressing project...") as on_progress:
            files_archived = create_archive(
                self.project_dir,
                self.artifact_path,
                build_excludes(skip_patterns),
                on_progress=on_progress,
            )

        self.reporter.info("Project has been compressed, uploading...")
        return files_archived

    def send_artifact(self, session: SftpSession) -> None:
        with self.reporter.progress(
            "Uploading files to server...", transfer=True
        ) as on_progress:
            session.send_file(
                self.artifact_path, self.remote_artifact_path, on_progress=on_progress
            )

    def decompress_artifact(self, server_identifier: str) -> None:
        with self.reporter.step("Decompressing files on server..."):
            self.panel.decompress_file(server_identifier, ARTIFACT_NAME, root=REMOTE_ROOT)

    def delete_remote_artifact(self, server_identifier: str) -> None:
        with self.reporter.step("Deleting temporary files on server..."):
            self.panel.delete_files(server_identifier, [ARTIFACT_NAME], root=REMOTE_ROOT)

    def remove_local_artifact(self) -> None:
        if self.artifact_path.exists():
            self.artifact_path.unlink()
            logger.debug("Removed local artifact %s", self.artifact_path)

    def restart_if_confirmed(self, server_identifier: str) -> bool:
        if not self.confirm_restart():
            return False

        with self.reporter.step("Restarting server..."):
            self.panel.restart_server(server_identifier)

        return True
