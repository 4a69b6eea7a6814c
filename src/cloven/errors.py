"""
Exceptions raised by the cloven toolkit. Commands catch `CloveError` and turn it
into a red status line and a non-zero exit code.
"""


class CloveError(Exception):
    pass


class ConfigMissingError(CloveError):
    pass


class InvalidServerIdError(CloveError):
    pass


class NoServerIdError(InvalidServerIdError):
    pass


class UnauthenticatedError(CloveError):
    pass


class TransferConnectError(CloveError):
    pass


class TransferAuthError(TransferConnectError):
    pass


class ArchiveIOError(CloveError):
    pass


class UploadError(CloveError):
    pass


class RemoteOperationError(CloveError):
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
