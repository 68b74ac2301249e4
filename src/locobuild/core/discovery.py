import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from locobuild.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

HANDLERS_PACKAGE = "locobuild.core.handlers"


def command_name_for(attr_name: str) -> str:
    """Maps a handler attribute to its command name: handle_git_clone -> git-clone."""
    return attr_name[len("handle_"):].replace("_", "-")


def discover_handlers(
        handlers_dir: Optional[Path] = None,
        base_module_path: str = HANDLERS_PACKAGE,
) -> Tuple[Dict[str, Callable[..., Any]], Dict[str, str]]:
    """
    Scans the handler directory, imports every ``*_handler.py`` module and
    returns two dictionaries:
    1. A map of command names to their handler function.
    2. A map of command names to their help text string.
    """
    handlers_dir = handlers_dir or PathUtils.get_package_root() / "core" / "handlers"
    discovered_handlers: Dict[str, Callable[..., Any]] = {}
    discovered_help_texts: Dict[str, str] = {}

    logger.debug("Scanning for handlers in: '%s'", handlers_dir)
    if not handlers_dir.is_dir():
        logger.warning("Handlers directory not found, skipping: %s", handlers_dir)
        return discovered_handlers, discovered_help_texts

    for file_path in sorted(handlers_dir.glob("**/*_handler.py")):
        relative_path = file_path.relative_to(handlers_dir)
        module_name_parts = list(relative_path.parts)
        module_name_parts[-1] = file_path.stem
        module_name = f"{base_module_path}.{'.'.join(module_name_parts)}"

        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            logger.error("Failed to load handler module %s: %s", file_path.name, e, exc_info=True)
            continue

        for attr_name in dir(module):
            value = getattr(module, attr_name)
            if attr_name.startswith("handle_") and callable(value):
                command_name = command_name_for(attr_name)
                discovered_handlers[command_name] = value
                logger.debug("Discovered command '%s'", command_name)
            elif attr_name.endswith("_help_text") and isinstance(value, str):
                command_name = attr_name[:-len("_help_text")].replace("_", "-")
                discovered_help_texts[command_name] = value

    return discovered_handlers, discovered_help_texts
