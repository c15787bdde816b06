"""
Environment variable management with .env file support.

Loads ``.env`` files, reads typed values, and substitutes ``${VAR}``
references in YAML run configurations.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

_BRACED = re.compile(r"\$\{([^}:]+)(?::([?-])([^}]*))?\}")
_BARE = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def parse_bool(value: Any) -> bool | None:
    """
    Interpret a config or environment value as a boolean.

    Returns None when the value is not a recognised spelling.
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


class EnvManager:
    """
    Manages environment variables for migration runs.

    Example:
        >>> env = EnvManager()
        >>> env.load()  # Loads .env if exists
        >>> env.get("FILESTORE_CONNECTION_STRING")
    """

    def __init__(self, project_root: Path | str | None = None, auto_load: bool = True):
        """
        Initialize the environment manager.

        Args:
            project_root: Directory searched for ``.env`` (defaults to cwd)
            auto_load: Load the ``.env`` file immediately if found
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._loaded = False

        if auto_load:
            self.load()

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self, env_file: str | Path | None = None, override: bool = False) -> bool:
        """
        Load environment variables from a .env file.

        Returns:
            True if a file was loaded, False otherwise
        """
        env_path = Path(env_file) if env_file is not None else self.project_root / ".env"

        if not env_path.exists():
            return False

        load_dotenv(env_path, override=override)
        self._loaded = True
        return True

    def get(self, key: str, default: str | None = None, required: bool = False) -> str | None:
        """
        Get an environment variable value.

        Raises:
            ValueError: If required=True and the variable is not set
        """
        value = os.environ.get(key, default)

        if required and value is None:
            msg = f"Required environment variable not set: {key}"
            raise ValueError(msg)

        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get environment variable as boolean."""
        parsed = parse_bool(self.get(key, "") or "")
        return default if parsed is None else parsed

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get environment variable as float, falling back to default."""
        try:
            return float(self.get(key, str(default)))  # type: ignore[arg-type]
        except (ValueError, TypeError):
            return default

    def substitute(self, text: str) -> str:
        """
        Substitute environment variables in text.

        Supports ``${VAR}``, ``${VAR:-default}``, ``${VAR:?error}`` and ``$VAR``.

        Example:
            >>> os.environ["BUCKET"] = "uploads"
            >>> env.substitute("s3://${BUCKET}")
            's3://uploads'
        """

        def replace(match: re.Match) -> str:
            var_name, operator, operand = match.group(1), match.group(2), match.group(3)
            value = os.environ.get(var_name)

            if operator == "-":
                return value if value is not None else operand
            if operator == "?":
                if value is None:
                    raise ValueError(operand or f"Required variable not set: {var_name}")
                return value
            return value if value is not None else f"${{{var_name}}}"

        text = _BRACED.sub(replace, text)
        return _BARE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), text)

    def substitute_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """Recursively substitute environment variables in dictionary values."""
        result: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                result[key] = self.substitute(value)
            elif isinstance(value, dict):
                result[key] = self.substitute_dict(value)
            elif isinstance(value, list):
                result[key] = [
                    self.substitute(item) if isinstance(item, str)
                    else self.substitute_dict(item) if isinstance(item, dict)
                    else item
                    for item in value
                ]
            else:
                result[key] = value
        return result


# Global instance
_global_env: EnvManager | None = None


def get_env() -> EnvManager:
    """Get the global environment manager instance."""
    global _global_env
    if _global_env is None:
        _global_env = EnvManager()
    return _global_env
