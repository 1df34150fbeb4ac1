"""Shared current-directory holder injected into file and process tools."""

from __future__ import annotations

from pathlib import Path


class Workspace:
    """The one mutable current directory. Providers read it, never copy it."""

    def __init__(self, root: str | Path | None = None, restrict: bool = False) -> None:
        self._cwd = Path(root).expanduser().resolve() if root else Path.cwd()
        self.restrict = restrict

    @property
    def cwd(self) -> Path:
        return self._cwd

    def resolve(self, path: str) -> Path:
        """Resolve ``path`` against the current directory.

        With ``restrict`` set, paths escaping the current directory raise
        PermissionError.
        """
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self._cwd / p
        p = p.resolve()
        if self.restrict and not p.is_relative_to(self._cwd):
            raise PermissionError(f"Access denied: {p} is outside {self._cwd}")
        return p

    def change(self, path: str) -> Path:
        target = Path(path).expanduser()
        if not target.is_absolute():
            target = self._cwd / target
        target = target.resolve()
        if not target.exists():
            raise FileNotFoundError(f"Directory not found: {path}")
        if not target.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")
        self._cwd = target
        return target
