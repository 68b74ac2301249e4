# src/locobuild/core/compiler.py
"""
Turns declarative command definitions into invocable command objects.

A definition is either a ready-made callable (an *inline* command, registered
as-is) or an object with ``args``, ``vars``, ``action``/``actions`` and
``silentFail``. Compilation validates the definition eagerly: a malformed
definition is a CompileError at load time, never a surprise at call time.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple, Union

from pydantic import ValidationError

from locobuild.exceptions import CompileError
from locobuild.model import CommandDefinition

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class PrimitiveCall:
    """An action that calls another command by name with templated arguments."""
    name: str
    arg_templates: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InlineOperation:
    """An action implemented directly by a callable taking the scope."""
    handler: Callable[..., Any]


Action = Union[PrimitiveCall, InlineOperation]


@dataclass(frozen=True)
class InlineCommand:
    """A command implemented by a callable: ``handler(args, scope[, ctx])``."""
    name: str
    handler: Callable[..., Any]


@dataclass(frozen=True)
class CompiledCommand:
    name: str
    positional_args: Tuple[str, ...]
    local_vars: Dict[str, str]
    actions: Tuple[Action, ...]
    silent_fail: bool = False
    description: str = ""


Command = Union[InlineCommand, CompiledCommand]


def split_action(action: str) -> List[str]:
    """Splits an action string on whitespace into ``[name, *args]``."""
    return [part for part in _WHITESPACE.split(action.strip()) if part]


def _compile_action(command: str, action: Any) -> Action:
    if callable(action):
        return InlineOperation(action)
    if isinstance(action, str):
        action = split_action(action)
    if not isinstance(action, (list, tuple)):
        raise CompileError(command, "Action must be a function, array or string")
    if not action or not all(isinstance(part, str) for part in action):
        raise CompileError(command, "Action must name a command followed by string arguments")
    name, *args = action
    return PrimitiveCall(name, tuple(args))


def compile_command(name: str, definition: Any) -> Command:
    """
    Compiles a single command definition.

    Args:
        name: The command name.
        definition: A callable, a CommandDefinition, or a mapping in the
            definition-file format.

    Returns:
        An InlineCommand for callables, otherwise a CompiledCommand.

    Raises:
        CompileError: If the definition is malformed or declares no actions.
    """
    if callable(definition) and not isinstance(definition, CommandDefinition):
        return InlineCommand(name, definition)

    if isinstance(definition, Mapping):
        if "actions" in definition and not isinstance(definition["actions"], list):
            raise CompileError(name, 'Command "actions" must be an array')
        try:
            definition = CommandDefinition.model_validate(dict(definition))
        except ValidationError as e:
            raise CompileError(name, f"Invalid command definition ({e.error_count()} errors)") from e
    elif not isinstance(definition, CommandDefinition):
        raise CompileError(name, "Command definition must be a function or an object")

    # The single 'action' is appended after the 'actions' list.
    specs = list(definition.actions)
    if definition.action:
        specs.append(definition.action)
    if not specs:
        raise CompileError(name, "Command must define an action or actions")

    actions = tuple(_compile_action(name, spec) for spec in specs)
    logger.debug("Compiled command '%s' with %d action(s)", name, len(actions))
    return CompiledCommand(
        name=name,
        positional_args=tuple(definition.args),
        local_vars=dict(definition.vars),
        actions=actions,
        silent_fail=definition.silent_fail,
        description=definition.description,
    )


def compile_commands(definitions: Mapping[str, Any]) -> Dict[str, Command]:
    """Compiles every definition in a definition set, preserving order."""
    return {name: compile_command(name, definition) for name, definition in definitions.items()}
