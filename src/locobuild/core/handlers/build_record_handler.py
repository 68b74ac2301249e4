# src/locobuild/core/handlers/build_record_handler.py
import logging
from typing import List

from locobuild.core.context.scope import Scope
from locobuild.core.utils.handler_utils import arg, context_of, ensure, resolve_in
from locobuild.exceptions import ActionFailure

logger = logging.getLogger(__name__)

build_record_help_text = """
BUILD RECORD:
  write-build-record <source> <target>        Record the commit checked out in <source> as built into <target>.
  read-build-record <source> <target> <name>  Set variable <name> to the commit of <source> last built into <target>.
""".strip()


def handle_write_build_record(args: List[str], scope: Scope, engine) -> None:
    source = resolve_in(scope, ensure(arg(args, 0), "write-build-record: source is required"))
    target = resolve_in(scope, ensure(arg(args, 1), "write-build-record: target is required"))
    ctx = context_of(engine)
    identity = ctx.git.read_identity(source)
    if identity is None:
        raise ActionFailure(f"write-build-record: {source} is not a working copy")
    ctx.records.write(target, identity)
    logger.info("Recorded %s @ %s in %s", identity.record_key, identity.commit.hash, target)


def handle_read_build_record(args: List[str], scope: Scope, engine) -> None:
    """
    Looks up the last commit of <source> built into <target> and stores it in
    the variable <name>. The variable is removed when there is no entry.
    """
    source = resolve_in(scope, ensure(arg(args, 0), "read-build-record: source is required"))
    target = resolve_in(scope, ensure(arg(args, 1), "read-build-record: target is required"))
    name = ensure(arg(args, 2), "read-build-record: variable name is required")
    ctx = context_of(engine)
    identity = ctx.git.read_identity(source)
    commit = ctx.records.read_for(identity, target) if identity is not None else None
    if commit is None:
        scope.unset(name)
    else:
        scope.set(name, commit)
    logger.debug("Build record %s -> %s", name, commit)
