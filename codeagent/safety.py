"""Shell command deny-list.

A coarse pre-filter, not a sandbox: case-insensitive substring matching
with no understanding of quoting, pipelines or subshells.
"""

from __future__ import annotations

DENY_LIST: tuple[str, ...] = (
    "rm -rf",
    "rm -fr",
    "mkfs",
    "fdisk",
    "format c:",
    "dd if=",
    "> /dev/sd",
    "shutdown",
    "reboot",
    "halt",
    "poweroff",
)


def is_safe(command: str) -> bool:
    return blocking_pattern(command) is None


def blocking_pattern(command: str) -> str | None:
    """Return the first deny-listed substring found in ``command``, if any."""
    lowered = command.lower()
    for pattern in DENY_LIST:
        if pattern in lowered:
            return pattern
    return None
