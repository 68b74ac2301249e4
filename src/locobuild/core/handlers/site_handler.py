# src/locobuild/core/handlers/site_handler.py
import logging
from pathlib import Path
from typing import List

from locobuild.core.context.scope import Scope
from locobuild.core.managers.change_batcher import ChangeBatcher
from locobuild.core.utils.handler_utils import arg, context_of, ensure, resolve_in
from locobuild.exceptions import BuildError
from locobuild.model import ChangeBatch
from locobuild.server.app import run_server

logger = logging.getLogger(__name__)

site_help_text = """
SITE:
  build-site <source> <target>   Build the site in <source> into <target>.
  watch-site <source> <target>   Rebuild <target> incrementally whenever files in <source> change.
  start-server <target>          Serve <target> over HTTP until interrupted.
""".strip()


def _paths(args: List[str], scope: Scope, command: str):
    source = resolve_in(scope, ensure(arg(args, 0), f"{command}: source is required"))
    target = resolve_in(scope, ensure(arg(args, 1), f"{command}: target is required"))
    return source, target


def handle_build_site(args: List[str], scope: Scope, engine) -> None:
    source, target = _paths(args, scope, "build-site")
    if not source.is_dir():
        raise BuildError(f"build-site: source directory not found: {source}")
    result = context_of(engine).site.build(source, target)
    if not result.ok:
        raise BuildError(result.error)


def handle_watch_site(args: List[str], scope: Scope, engine) -> None:
    """
    Starts a background watcher over <source>. Each batch of changes triggers
    an incremental build; a failed rebuild is logged and watching goes on.
    """
    source, target = _paths(args, scope, "watch-site")
    ctx = context_of(engine)
    site = ctx.site
    options = site.options_for(source, target, incremental=True)

    def rebuild(batch: ChangeBatch) -> None:
        result = site.build(source, target, batch.added, batch.removed, options=options)
        if not result.ok:
            logger.error("Rebuild failed: %s", result.error)

    batcher = ChangeBatcher(
        source,
        rebuild,
        interval=float(ctx.config.get_nested("watch.interval", 1.0)),
        ignore=options["exclude"],
    )
    batcher.start()
    ctx.add_background(batcher)


def handle_start_server(args: List[str], scope: Scope, engine) -> None:
    target = resolve_in(scope, ensure(arg(args, 0), "start-server: target is required"))
    ctx = context_of(engine)
    run_server(
        Path(target),
        host=ctx.config.get_nested("server.host", "127.0.0.1"),
        port=int(ctx.config.get_nested("server.port", 8080)),
        records=ctx.records,
    )
