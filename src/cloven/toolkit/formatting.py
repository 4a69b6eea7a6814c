from typing import Union

from cloven.toolkit.panel import Limits, ServerUsage

Number = Union[int, float]

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")
SEPARATOR = "-" * 32


def format_bytes(num_bytes: Number, decimals: int = 2) -> str:
    if num_bytes == 0:
        return "0 Bytes"

    k = 1024
    decimals = max(decimals, 0)
    index = 0
    while abs(num_bytes) >= k ** (index + 1) and index < len(BYTE_UNITS) - 1:
        index += 1

    value = f"{num_bytes / k ** index:.{decimals}f}"
    if "." in value:
        value = value.rstrip("0").rstrip(".")

    return f"{value} {BYTE_UNITS[index]}"


def format_megabytes(megabytes: Number) -> str:
    if megabytes < 1024:
        return f"{megabytes} MB"

    return f"{megabytes / 1024:.2f} GB"


def format_cpu_absolute(cpu: Number, max_cpu: Number) -> str:
    # A limit of 0 means unlimited: show the raw value
    if not max_cpu:
        return f"{cpu:.3f}%"

    return f"{cpu / max_cpu * 100:.3f}%"


def render_usage(usage: ServerUsage, limits: Limits) -> str:
    resources = usage.resources
    lines = [
        SEPARATOR,
        f"Status: {usage.current_state}",
        f"CPU: {format_cpu_absolute(resources.cpu_absolute, limits.cpu)}",
        f"RAM: {format_bytes(resources.memory_bytes)} / {format_megabytes(limits.memory)}",
        f"Disk: {format_bytes(resources.disk_bytes)} / {format_megabytes(limits.disk)}",
        f"Network -> In: {format_bytes(resources.network_rx_bytes)} "
        f"Out: {format_bytes(resources.network_tx_bytes)}",
        SEPARATOR,
    ]
    return "\n".join(lines)


def render_status(state: str) -> str:
    """Rich markup for a server power state."""

    if state == "running":
        return "[bold cyan]Online[/bold cyan]"
    if state == "starting":
        return "[yellow]Starting[/yellow]"

    return "[red]Offline[/red]"
