"""JSON file storage with Result-based error handling.

Provides a thin wrapper around file I/O operations for JSON data,
returning Result types instead of raising exceptions. Every write goes
through ``atomic_write`` so a reader never sees a half-written file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from taskledger.domain.shared.result import Err, Ok, Result


class JsonStorage:
    """Low-level JSON file I/O with Result-based error handling.

    This class wraps basic JSON operations (load/save) and returns
    Result types for explicit error handling. It does not contain
    any domain logic - just file I/O.

    Example:
        storage = JsonStorage()
        result = storage.load_json(Path(".claude/todo.json"))
        if isinstance(result, Ok):
            data = result.value
        else:
            print(f"Error: {result.error}")
    """

    def load_json(self, path: Path) -> Result[dict[str, Any], str]:
        """Load a JSON object from a file.

        Args:
            path: Path to the JSON file to read.

        Returns:
            Ok(dict) if successful, Err(str) with error message if failed.
        """
        try:
            if not path.exists():
                return Err(f"File not found: {path}")

            content = path.read_text(encoding="utf-8")
            data = json.loads(content)
            if not isinstance(data, dict):
                return Err(f"Expected a JSON object in {path}, got {type(data).__name__}")
            return Ok(data)

        except json.JSONDecodeError as e:
            return Err(f"Invalid JSON in {path}: {e}")
        except PermissionError:
            return Err(f"Permission denied reading {path}")
        except OSError as e:
            return Err(f"Error reading {path}: {e}")

    def save_json(
        self,
        path: Path,
        data: dict[str, Any],
        indent: int = 2,
    ) -> Result[None, str]:
        """Save JSON data to a file atomically.

        Args:
            path: Path to the JSON file to write.
            data: Dictionary to serialize as JSON.
            indent: JSON indentation level (default 2).

        Returns:
            Ok(None) if successful, Err(str) with error message if failed.
        """
        try:
            content = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
        except (TypeError, ValueError) as e:
            return Err(f"Data not JSON serializable: {e}")

        return self.atomic_write(path, content.encode("utf-8"))

    def atomic_write(self, path: Path, content: bytes) -> Result[None, str]:
        """Replace ``path`` with ``content`` in one rename.

        The bytes go to a temp file in the same directory, are flushed to
        disk, then renamed over the target.
        """
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
            return Ok(None)

        except PermissionError:
            return Err(f"Permission denied writing {path}")
        except OSError as e:
            return Err(f"Error writing {path}: {e}")
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
