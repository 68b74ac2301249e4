# src/locobuild/core/handlers/exec_handler.py
import logging
import os
from pathlib import Path
from typing import List

from locobuild.core.context.scope import Scope
from locobuild.core.utils.handler_utils import arg, context_of, cwd_of, ensure, resolve_in
from locobuild.core.utils.path_utils import PathUtils
from locobuild.exceptions import ProcessFailure

logger = logging.getLogger(__name__)

exec_help_text = """
PROCESSES:
  exec <command> [args...]      Run an external command in the working directory.
                                Variables are passed on as LOCOBUILD_<NAME> environment variables.
  npx [args...]                 Run npx.
  npm-install <source> [origin] Install node modules in <source>, linking them from a local
                                [origin] that has the same branch checked out when possible.
""".strip()


def handle_exec(args: List[str], scope: Scope, engine) -> None:
    """Runs an external command, streaming stdout to INFO and stderr to ERROR."""
    command = ensure(arg(args, 0), "exec: command is required")
    env = dict(os.environ)
    env.update(scope.to_env())
    processes = context_of(engine).processes
    code = processes.run(cwd_of(scope), env, command, args[1:], logger.info, logger.error)
    if code != 0:
        raise ProcessFailure(" ".join(args), code)


def handle_npx(args: List[str], scope: Scope, engine) -> None:
    handle_exec(["npx", *args], scope, engine)


def handle_npm_install(args: List[str], scope: Scope, engine) -> None:
    source = ensure(arg(args, 0), "npm-install: source is required")
    origin_ref = arg(args, 1)
    source_path = resolve_in(scope, source)
    source_mods = source_path / "node_modules"

    if not source_mods.is_dir() and origin_ref and not PathUtils.is_remote_origin(origin_ref):
        origin = Path(PathUtils.resolve_origin(origin_ref))
        identity = context_of(engine).git.read_identity(origin)
        origin_mods = origin / "node_modules"
        if identity is not None and identity.branch == Path(source).name and origin_mods.is_dir():
            logger.info("Linking %s -> %s", origin_mods, source_mods)
            os.symlink(origin_mods, source_mods, target_is_directory=True)
            return

    logger.info("Running npm install...")
    handle_exec(["npm", "install"], scope.derive({"cwd": str(source_path)}), engine)
