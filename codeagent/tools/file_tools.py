"""File capability -- read, write, edit, list under the current directory."""

from __future__ import annotations

from datetime import datetime

from codeagent.types import FileEntry, Result
from codeagent.workspace import Workspace


class FileTools:
    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def current_directory(self) -> str:
        return str(self._workspace.cwd)

    async def read_file(self, file_path: str) -> Result:
        try:
            path = self._workspace.resolve(file_path)
            if not path.is_file():
                return Result.fail(f"File not found: {file_path}", f"File {file_path} does not exist")
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return Result.fail(str(e), f"Failed to read file: {file_path}")
        return Result.ok(f"Successfully read file: {file_path}", content)

    async def write_file(self, file_path: str, content: str) -> Result:
        try:
            path = self._workspace.resolve(file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            return Result.fail(str(e), f"Failed to write file: {file_path}")
        return Result.ok(f"Successfully wrote file: {file_path}", {"path": file_path, "size": len(content)})

    async def edit_file(self, file_path: str, new_content: str) -> Result:
        """Replace the whole content of an existing file."""
        try:
            path = self._workspace.resolve(file_path)
            if not path.is_file():
                return Result.fail(f"File not found: {file_path}", f"Cannot edit non-existent file: {file_path}")
            path.write_text(new_content, encoding="utf-8")
        except OSError as e:
            return Result.fail(str(e), f"Failed to edit file: {file_path}")
        return Result.ok(f"Successfully edited file: {file_path}", {"path": file_path, "size": len(new_content)})

    async def list_files(self, directory: str = ".") -> Result:
        try:
            path = self._workspace.resolve(directory)
            if not path.is_dir():
                return Result.fail(f"Directory not found: {directory}", f"Directory {directory} does not exist")
            entries = []
            for entry in sorted(path.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
                st = entry.stat()
                entries.append(FileEntry(
                    name=entry.name,
                    is_directory=entry.is_dir(),
                    size=st.st_size,
                    modified=datetime.fromtimestamp(st.st_mtime),
                ))
        except OSError as e:
            return Result.fail(str(e), f"Failed to list files in: {directory}")
        return Result.ok(f"Successfully listed files in: {directory}", entries)
