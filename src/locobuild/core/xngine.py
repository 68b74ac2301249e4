from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

from locobuild.core.command_registry import CommandRegistry
from locobuild.core.compiler import (
    Action,
    CompiledCommand,
    InlineCommand,
    InlineOperation,
)
from locobuild.core.context.scope import ARGS_KEY, Scope
from locobuild.core.template import evaluate
from locobuild.exceptions import ActionFailure, CommandNotFound, RepositoryStateError
from locobuild.model import CommandOutcome


class ExecuteEngine:
    """
    Core engine responsible for command execution: argument binding,
    scope derivation, nested invocation and failure suppression.

    Actions of one command always run in declared order on the calling
    thread; each one's effects on the scope are visible to the next.
    """

    def __init__(
            self,
            *,
            registry: CommandRegistry,
            context: Optional[Any] = None,
            logger: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry
        self.context = context
        self._log = logger or logging.getLogger(__name__)

    def run(self, name: str, scope: Scope, args: Sequence[str] = ()) -> CommandOutcome:
        """
        Runs a named command.

        Args:
            name: The command name.
            scope: The caller's scope. Compiled commands work on a derived
                copy; inline commands receive it directly.
            args: Already-evaluated positional arguments.

        Raises:
            CommandNotFound: If no command with that name is registered.
        """
        command = self.registry.get(name)
        if command is None:
            raise CommandNotFound(name)

        if isinstance(command, InlineCommand):
            self._call_handler(name, command.handler, list(args), scope)
            return CommandOutcome(command=name)
        return self._run_compiled(command, scope, list(args))

    def _run_compiled(self, command: CompiledCommand, parent: Scope, args: List[str]) -> CommandOutcome:
        self._log.info("Running %s...", command.name)
        child = self._derive_scope(command, parent, args)
        try:
            for action in command.actions:
                self._call_action(action, child)
        except RepositoryStateError:
            raise
        except Exception as e:
            if not command.silent_fail:
                raise
            self._log.warning("Command '%s' failed silently: %s", command.name, e)
            return CommandOutcome(command=command.name, status="suppressed", error=str(e))
        return CommandOutcome(command=command.name)

    def _derive_scope(self, command: CompiledCommand, parent: Scope, args: List[str]) -> Scope:
        # Local vars only see the caller's bindings, never each other.
        overlay = {name: evaluate(template, parent) for name, template in command.local_vars.items()}
        for idx, arg_name in enumerate(command.positional_args):
            if idx < len(args) and args[idx]:
                overlay[arg_name] = args[idx]
        overlay[ARGS_KEY] = " ".join(args)
        return parent.derive(overlay)

    def _call_action(self, action: Action, scope: Scope) -> None:
        if isinstance(action, InlineOperation):
            self._call_handler("<inline>", action.handler, [], scope)
            return
        # Evaluated against the scope as it is now, after earlier actions ran.
        cargs = [evaluate(template, scope) for template in action.arg_templates]
        self.run(action.name, scope, cargs)

    def _call_handler(self, name: str, handler: Callable[..., Any], args: List[str], scope: Scope) -> None:
        sig = inspect.signature(handler)
        if len(sig.parameters) >= 3:
            result = handler(args, scope, self)
        else:
            result = handler(args, scope)
        if isinstance(result, int) and not isinstance(result, bool) and result != 0:
            raise ActionFailure(f"Command '{name}' returned exit code {result}")

    def execute_sequence(
            self,
            commands: List[Tuple[str, List[str], Optional[str]]],
            scope: Scope,
    ) -> int:
        """
        Executes a parsed command line: a list of (name, args, op_before)
        segments joined by ';', '&&' or '||'. Arguments are evaluated against
        the scope right before each segment runs.
        """
        last_exit = 0
        for name, raw_args, op in commands:
            if op == "&&" and last_exit != 0:
                continue
            if op == "||" and last_exit == 0:
                continue
            try:
                args = [evaluate(a, scope) for a in raw_args]
            except ActionFailure as e:
                self._log.error("%s", e)
                last_exit = 1
                continue
            last_exit = self.run_top_level(name, scope, args)
            if last_exit == 130:
                return 130
        return last_exit

    def run_top_level(self, name: str, scope: Scope, args: Sequence[str] = ()) -> int:
        """
        Runs a command on behalf of the process entry point. Any failure is
        logged here and turned into a non-zero exit code; nothing is retried.
        """
        try:
            self.run(name, scope, args)
            return 0
        except KeyboardInterrupt:
            return 130
        except Exception as e:
            self._log.error("Executing command '%s' failed: %s", name, e)
            self._log.debug("Failure details", exc_info=True)
            return 1
