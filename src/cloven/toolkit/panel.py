"""
Client for the panel's REST API (Pterodactyl client API).

Every call is authenticated with the API key from the CLI configuration.
Failed calls raise `RemoteOperationError`, or `UnauthenticatedError` when the
panel rejects the API key.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from cloven.cli_config import CliConfig
from cloven.errors import RemoteOperationError, UnauthenticatedError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class Limits:
    memory: int = 0
    swap: int = 0
    disk: int = 0
    io: int = 0
    cpu: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Limits":
        return cls(
            memory=data.get("memory") or 0,
            swap=data.get("swap") or 0,
            disk=data.get("disk") or 0,
            io=data.get("io") or 0,
            cpu=data.get("cpu") or 0,
        )


@dataclass
class SftpDetails:
    ip: str
    port: int


@dataclass
class ServerDetails:
    identifier: str
    name: str
    limits: Limits
    sftp_details: SftpDetails

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerDetails":
        sftp = data.get("sftp_details") or {}
        return cls(
            identifier=data["identifier"],
            name=data.get("name", ""),
            limits=Limits.from_dict(data.get("limits") or {}),
            sftp_details=SftpDetails(ip=sftp.get("ip", ""), port=int(sftp.get("port", 22))),
        )


@dataclass
class Resources:
    cpu_absolute: float = 0.0
    memory_bytes: int = 0
    disk_bytes: int = 0
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0


@dataclass
class ServerUsage:
    current_state: str
    resources: Resources

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerUsage":
        resources = data.get("resources") or {}
        return cls(
            current_state=data.get("current_state", "offline"),
            resources=Resources(
                cpu_absolute=resources.get("cpu_absolute") or 0.0,
                memory_bytes=resources.get("memory_bytes") or 0,
                disk_bytes=resources.get("disk_bytes") or 0,
                network_rx_bytes=resources.get("network_rx_bytes") or 0,
                network_tx_bytes=resources.get("network_tx_bytes") or 0,
            ),
        )


@dataclass
class AccountDetails:
    username: str


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    errors = (body.get("errors") or []) if isinstance(body, dict) else []

    details = [error.get("detail") for error in errors if error.get("detail")]
    if details:
        return "; ".join(details)

    return f"{response.status_code} {response.reason}"


def _attributes(data: Any, what: str) -> Dict[str, Any]:
    attributes = data.get("attributes") if isinstance(data, dict) else None
    if not isinstance(attributes, dict):
        raise RemoteOperationError(
            f"Unexpected response from the panel: {what} have no attributes"
        )

    return attributes


class PanelClient:
    def __init__(self, cli_config: CliConfig, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = cli_config.panel_url.rstrip("/") + "/api/client"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {cli_config.api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def __enter__(self) -> "PanelClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.session.close()

    def _request(
        self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = self.base_url + endpoint
        logger.debug("%s %s", method, url)

        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteOperationError(f"Could not reach the panel: {exc}") from exc

        if response.status_code in (401, 403):
            raise UnauthenticatedError(
                f"The panel rejected the API key: {_error_message(response)}"
            )
        if not response.ok:
            raise RemoteOperationError(
                _error_message(response), status_code=response.status_code
            )

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteOperationError(
                f"Unexpected response from the panel for {endpoint}: not JSON"
            ) from exc

    def get_server_details(self, server_id: str) -> ServerDetails:
        data = self._request("GET", f"/servers/{server_id}")
        attributes = _attributes(data, "server details")
        try:
            return ServerDetails.from_dict(attributes)
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteOperationError(
                f"Unexpected response from the panel: invalid server details ({exc})"
            ) from exc

    def get_server_usages(self, server_id: str) -> ServerUsage:
        data = self._request("GET", f"/servers/{server_id}/resources")
        return ServerUsage.from_dict(_attributes(data, "server resources"))

    def get_server_status(self, server_id: str) -> str:
        return self.get_server_usages(server_id).current_state

    def get_account_details(self) -> AccountDetails:
        data = self._request("GET", "/account")
        username = _attributes(data, "account details").get("username")
        if not username:
            raise RemoteOperationError(
                "Unexpected response from the panel: account details have no username"
            )
        return AccountDetails(username=username)

    def send_power_signal(self, server_id: str, signal: str) -> None:
        self._request("POST", f"/servers/{server_id}/power", json={"signal": signal})

    def start_server(self, server_id: str) -> None:
        self.send_power_signal(server_id, "start")

    def stop_server(self, server_id: str) -> None:
        self.send_power_signal(server_id, "stop")

    def restart_server(self, server_id: str) -> None:
        self.send_power_signal(server_id, "restart")

    def decompress_file(self, server_id: str, filename: str, root: str = "/") -> None:
        self._request(
            "POST",
            f"/servers/{server_id}/files/decompress",
            json={"root": root, "file": filename},
        )

    def delete_files(self, server_id: str, filenames: List[str], root: str = "/") -> None:
        self._request(
            "POST",
            f"/servers/{server_id}/files/delete",
            json={"root": root, "files": list(filenames)},
        )
