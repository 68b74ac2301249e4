# src/locobuild/core/handlers/fs_handler.py
import logging
import shutil
import tempfile
from typing import List

from locobuild.core.context.scope import Scope
from locobuild.core.utils.handler_utils import arg, ensure, resolve_in
from locobuild.exceptions import ActionFailure

logger = logging.getLogger(__name__)

TEMP_PREFIX = "locobuild-build-"

fs_help_text = """
FILES:
  ensure-dir <path>   Create <path> and its parents if needed.
  mktemp              Create a temporary directory and make it the working directory.
  in-temp-dir <command> [args...]
                      Run <command> inside a new temporary directory, then remove it,
                      whether or not the command succeeded.
  rmdir <path>        Remove <path> and everything in it.
  cd <dir>            Change the working directory.
""".strip()


def handle_ensure_dir(args: List[str], scope: Scope) -> None:
    path = resolve_in(scope, ensure(arg(args, 0), "ensure-dir: path is required"))
    path.mkdir(parents=True, exist_ok=True)


def handle_mktemp(args: List[str], scope: Scope) -> None:
    path = tempfile.mkdtemp(prefix=TEMP_PREFIX)
    logger.debug("Created temporary directory %s", path)
    scope.set("cwd", path)


def handle_in_temp_dir(args: List[str], scope: Scope, engine) -> None:
    name = ensure(arg(args, 0), "in-temp-dir: command is required")
    path = tempfile.mkdtemp(prefix=TEMP_PREFIX)
    logger.debug("Created temporary directory %s", path)
    try:
        engine.run(name, scope.derive({"cwd": path}), args[1:])
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("Removed %s", path)


def handle_rmdir(args: List[str], scope: Scope) -> None:
    path = resolve_in(scope, ensure(arg(args, 0), "rmdir: path is required"))
    if path.exists():
        shutil.rmtree(path)
        logger.debug("Removed %s", path)


def handle_cd(args: List[str], scope: Scope) -> None:
    path = resolve_in(scope, ensure(arg(args, 0), "cd: directory is required"))
    if not path.is_dir():
        raise ActionFailure(f"cd: not a directory: {path}")
    scope.set("cwd", str(path))
