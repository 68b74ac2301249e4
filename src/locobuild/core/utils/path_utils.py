# src/locobuild/core/utils/path_utils.py
import logging
import os
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed locobuild package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_default_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def get_default_commands_file() -> Path:
        return PathUtils.get_package_root() / "default_commands.json"

    # --- User specific paths ---

    @staticmethod
    def get_user_config_dir() -> Path:
        """
        Returns the path to the user's .locobuild config directory.
        (e.g., ~/.locobuild/)
        """
        return Path.home() / ".locobuild"

    @staticmethod
    def get_shell_history_file() -> Path:
        """
        Returns the path to the interactive shell history file.
        (e.g., ~/.locobuild_history)
        """
        return Path.home() / ".locobuild_history"

    # --- Helper methods ---

    @staticmethod
    def resolve(base: Union[str, Path], path: Union[str, Path]) -> Path:
        """Resolves ``path`` against ``base`` (absolute paths are kept)."""
        return (Path(base) / os.path.expanduser(str(path))).resolve()

    @staticmethod
    def resolve_origin(ref: str, base: Union[str, Path] = ".") -> str:
        """
        Resolves an origin reference:
        - http:, https:, ssh: and scp-style (user@host:path) references are
          returned as is;
        - a file: prefix is stripped;
        - anything else is a file path, made absolute against ``base``.
        """
        if PathUtils.is_remote_origin(ref):
            return ref
        if ref.startswith("file:"):
            ref = ref[len("file:"):]
        return str(PathUtils.resolve(base, ref))

    @staticmethod
    def is_remote_origin(ref: str) -> bool:
        return ref.startswith(("http:", "https:", "ssh:")) or ("@" in ref and ":" in ref)
