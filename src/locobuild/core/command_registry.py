# src/locobuild/core/command_registry.py
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from locobuild.core.compiler import Command, compile_command, compile_commands
from locobuild.exceptions import CompileError

logger = logging.getLogger(__name__)


class CommandRegistry:
    """
    Maps command names to compiled commands.

    Definition sources are merged in the order they are added; a later source
    overrides an earlier one on a name collision. The registry is built once
    at startup and handed to the engine explicitly.
    """

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}

    def register(self, name: str, definition: Any) -> None:
        """Compiles and adds a single command, replacing any previous one."""
        if name in self._commands:
            logger.debug("Overriding command '%s'", name)
        self._commands[name] = compile_command(name, definition)
        logger.debug("Registered command '%s'", name)

    def register_handlers(self, handlers: Mapping[str, Callable[..., Any]]) -> None:
        """Adds inline commands discovered from handler modules."""
        for name, handler in handlers.items():
            self.register(name, handler)

    def add_definitions(self, definitions: Mapping[str, Any]) -> None:
        """
        Merges a whole definition set. Every definition is compiled before any
        is registered, so a broken set leaves the registry untouched.
        """
        compiled = compile_commands(definitions)
        for name, command in compiled.items():
            if name in self._commands:
                logger.debug("Overriding command '%s'", name)
            self._commands[name] = command
        logger.debug("Merged %d command definition(s).", len(compiled))

    def load_file(self, file_path: Union[str, Path]) -> None:
        """Loads and merges a JSON command definitions file."""
        path = Path(file_path).resolve()
        try:
            definitions = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CompileError(str(path), f"Cannot load command definitions ({e})") from e
        if not isinstance(definitions, dict):
            raise CompileError(str(path), "Command definitions file must contain an object")
        self.add_definitions(definitions)
        logger.info("Loaded %d command(s) from %s", len(definitions), path)

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def names(self) -> List[str]:
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)
