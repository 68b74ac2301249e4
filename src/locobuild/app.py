from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

from locobuild.core.context.scope import Scope
from locobuild.core.core import create_engine, initial_scope
from locobuild.core.managers.completion_manager import CompletionManager, PromptToolkitCompleter
from locobuild.core.managers.config_manager import ConfigManager
from locobuild.core.parser import parse_command_line
from locobuild.core.utils.configure_logging import configure_logger
from locobuild.core.utils.path_utils import PathUtils
from locobuild.core.xngine import ExecuteEngine
from locobuild.exceptions import LocobuildError
from locobuild.version import __version__

logger = logging.getLogger(__name__)

QUIT_COMMANDS = {"quit", "exit"}


def _env_pair(value: str) -> tuple:
    name, sep, val = value.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{value}'")
    return name.strip(), val


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="locobuild",
        description="Build static sites from a working tree or a git branch.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", help="Settings file layered over the defaults.")
    parser.add_argument(
        "-e", "--env", type=_env_pair, action="append", default=[], metavar="KEY=VALUE",
        help="Set a variable in the initial scope. May be repeated.",
    )
    parser.add_argument(
        "-s", "--set", dest="settings", type=_env_pair, action="append", default=[], metavar="KEY=VALUE",
        help="Override a setting, e.g. server.port=9000. May be repeated.",
    )
    parser.add_argument(
        "--commands", action="append", default=[], metavar="FILE",
        help="Load extra command definitions. May be repeated; later files override earlier ones.",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    for name, help_text in (
            ("build", "Build <source> (default .) into <target> (default _site)."),
            ("serve", "Build, watch <source> and serve <target> over HTTP."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("source", nargs="?")
        p.add_argument("target", nargs="?")

    p = sub.add_parser(
        "build-from-git", aliases=["deploy"],
        help="Build branch <source> of <origin> into branch <target> and push it.",
    )
    p.add_argument("origin", nargs="?")
    p.add_argument("source", nargs="?")
    p.add_argument("target", nargs="?")

    p = sub.add_parser("run", help="Run any registered command.")
    p.add_argument("name")
    p.add_argument("args", nargs=argparse.REMAINDER)

    sub.add_parser("shell", help="Start the interactive shell.")
    return parser


def _command_for(ns: argparse.Namespace) -> tuple:
    """Maps parsed CLI arguments to (command name, positional args)."""
    if ns.command == "run":
        return ns.name, list(ns.args)
    if ns.command in ("build-from-git", "deploy"):
        values = [ns.origin, ns.source, ns.target]
    else:
        values = [ns.source, ns.target]
    # Trailing omitted arguments are dropped; inner ones bind as empty and keep their defaults
    while values and values[-1] is None:
        values.pop()
    return ns.command, [v or "" for v in values]


def _wait_for_interrupt() -> int:
    logger.info("Background services running; press Ctrl+C to stop.")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    return 130


def start_shell(engine: ExecuteEngine, scope: Scope, history_path: Optional[Path] = None) -> int:
    """Starts the interactive REPL. The session scope persists across lines."""
    history_path = history_path or PathUtils.get_shell_history_file()
    history = FileHistory(str(history_path))
    completer = PromptToolkitCompleter(CompletionManager(engine.registry, scope))
    session = PromptSession(history=history, completer=completer, complete_while_typing=True)
    logger.debug("Shell startup; history file at: %s", history_path)

    print(f"locobuild {__version__} (type 'help' for commands, 'quit' to leave)")
    last_exit = 0
    try:
        while True:
            try:
                line = session.prompt("locobuild> ").strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not line:
                continue
            if line in QUIT_COMMANDS:
                break

            commands = parse_command_line(line)
            if not commands:
                continue
            last_exit = engine.execute_sequence(commands, scope)
    finally:
        print("Bye!")
    return last_exit


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for running locobuild from the command line."""
    ns = build_arg_parser().parse_args(argv)

    try:
        config = ConfigManager(ns.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"locobuild: {e}", file=sys.stderr)
        return 1
    for key_path, value in ns.settings:
        if not config.set_nested(key_path, value):
            print(f"locobuild: cannot set {key_path}", file=sys.stderr)
            return 1

    configure_logger(
        config.get_nested("debug.level", "INFO"),
        config.get_nested("logging.modules", {}),
        config.get_nested("logging.silenced", {}),
    )

    try:
        engine = create_engine(config, ns.commands)
    except LocobuildError as e:
        logger.error("%s", e)
        return 1

    overrides: Dict[str, str] = dict(ns.env)
    scope = initial_scope(config, overrides)
    try:
        if ns.command == "shell":
            history_file = config.get_nested("shell.history_file")
            return start_shell(engine, scope, Path(history_file) if history_file else None)

        name, args = _command_for(ns)
        # CLI arguments are taken literally; only command actions are templates.
        code = engine.run_top_level(name, scope, args)
        if code == 0 and engine.context.background:
            return _wait_for_interrupt()
        return code
    finally:
        engine.context.close()


if __name__ == "__main__":
    sys.exit(main())
