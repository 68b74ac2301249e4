# src/locobuild/core/handlers/git_handler.py
import logging
import socket
from typing import Any, List, Mapping

from locobuild.core.context.scope import Scope
from locobuild.core.utils.handler_utils import arg, context_of, ensure, resolve_in
from locobuild.core.utils.path_utils import PathUtils
from locobuild.exceptions import ActionFailure

logger = logging.getLogger(__name__)

# Seconds allowed for connecting to and writing to the updates listener.
NOTIFY_TIMEOUT = 10.0
_FALSE_VALUES = ("", "0", "false", "no", "off")

git_help_text = """
REPOSITORY:
  git-clone <origin> <branch> [dir]   Clone <origin> into [dir] (default: <branch>) with <branch> checked out.
                                      A working copy of another remote is replaced.
  git-push <branch> [dir]             Commit all changes in [dir] and push them to <branch>.
                                      With {sendUpdatesNotification} set, a push is announced
                                      to {updatesListenerHost}:{updatesListenerPort}.
  git-merge <source> <branch> [dir]   Merge <source> into <branch> in [dir].
""".strip()


def handle_git_clone(args: List[str], scope: Scope, engine) -> None:
    """
    Makes sure a working copy of the origin exists with the branch checked out.
    A branch the origin doesn't have yet is created as an orphan.
    """
    origin = ensure(arg(args, 0), "git-clone: origin is required")
    branch = ensure(arg(args, 1), "git-clone: branch is required")
    path = resolve_in(scope, arg(args, 2, branch))
    remote = PathUtils.resolve_origin(origin)
    context_of(engine).git.ensure_clone(path, remote, branch)


def _enabled(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_VALUES
    return bool(value)


def notify_update(scope: Mapping[str, Any], key: str) -> bool:
    """
    Writes ``key`` to the updates listener named in the scope, if the scope
    asks for notifications. Returns True if a notification was sent.
    """
    host = scope.get("updatesListenerHost")
    port = scope.get("updatesListenerPort")
    if not (_enabled(scope.get("sendUpdatesNotification", False)) and host and port):
        return False
    logger.info("Sending update notification to %s:%s", host, port)
    try:
        with socket.create_connection((str(host), int(port)), timeout=NOTIFY_TIMEOUT) as conn:
            conn.sendall(key.encode("utf-8"))
    except ValueError as e:
        raise ActionFailure(f"Invalid updates listener port: {port}") from e
    except OSError as e:
        raise ActionFailure(f"Unable to notify {host}:{port}: {e}") from e
    return True


def handle_git_push(args: List[str], scope: Scope, engine) -> None:
    """
    Commits and pushes everything in the working copy. After a push that
    carried a new commit, sends ``account/repo/branch`` to the updates
    listener when one is configured.
    """
    branch = ensure(arg(args, 0), "git-push: branch is required")
    path = resolve_in(scope, arg(args, 1, branch))
    git = context_of(engine).git
    if not git.commit_and_push(path, branch):
        logger.info("Nothing to push for %s", branch)
        return
    if _enabled(scope.get("sendUpdatesNotification", False)):
        identity = git.read_identity(path)
        notify_update(scope, f"{identity.account}/{identity.repo_name}/{branch}")


def handle_git_merge(args: List[str], scope: Scope, engine) -> None:
    source = ensure(arg(args, 0), "git-merge: source branch is required")
    branch = ensure(arg(args, 1), "git-merge: branch is required")
    path = resolve_in(scope, arg(args, 2, branch))
    git = context_of(engine).git
    git.checkout_branch(path, branch)
    logger.info("Merging %s into %s at %s", source, branch, path)
    git.merge(path, source)
