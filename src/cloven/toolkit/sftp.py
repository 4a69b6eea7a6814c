import logging
from pathlib import Path
from typing import Callable, Optional, Union

import paramiko

from cloven.errors import TransferAuthError, TransferConnectError, UploadError

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 30.0

ProgressCallback = Callable[[int, int], None]


class SftpSession:
    """
    A password-authenticated SFTP session to the hosted server's filesystem.

    Use it as a context manager: the session is closed when the block exits,
    whatever happens inside it.
    """

    def __init__(self, timeout: float = DEFAULT_CONNECT_TIMEOUT):
        self.timeout = timeout
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    def __enter__(self) -> "SftpSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def connected(self) -> bool:
        return self._sftp is not None

    def connect(self, host: str, port: int, username: str, password: str) -> None:
        logger.debug("Connecting to %s@%s:%d", username, host, port)

        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            ssh.connect(
                host,
                port=port,
                username=username,
                password=password,
                timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            sftp = ssh.open_sftp()
        except paramiko.AuthenticationException as exc:
            ssh.close()
            raise TransferAuthError(f"SFTP authentication failed: {exc}") from exc
        except (paramiko.SSHException, OSError) as exc:
            ssh.close()
            raise TransferConnectError(f"SFTP connect error: {exc}") from exc

        self._ssh = ssh
        self._sftp = sftp

    def send_file(
        self,
        local_path: Union[str, Path],
        remote_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if self._sftp is None:
            raise UploadError("SFTP upload error: the session is not connected.")

        logger.debug("Uploading %s to %s", local_path, remote_path)
        try:
            self._sftp.put(str(local_path), remote_path, callback=on_progress)
        except (paramiko.SSHException, OSError) as exc:
            raise UploadError(f"SFTP upload error: {exc}") from exc

    def close(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
        if self._ssh is not None:
            self._ssh.close()
            logger.debug("SFTP session closed")

        self._sftp = None
        self._ssh = None
