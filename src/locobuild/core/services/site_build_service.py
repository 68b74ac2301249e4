# src/locobuild/core/services/site_build_service.py
"""
Adapters for the static-site build tool.

Every builder honours the same contract::

    build(source, target, options, extensions, changed_files=None, removed_files=None) -> BuildResult

``options`` carries at least ``incremental`` and the site configuration.
``extensions`` is the tool's own plugin configuration (``build.extensions``),
passed through untouched. ``changed_files=None`` asks for a full build.
"""
import fnmatch
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from locobuild.core.services.process_service import ProcessService
from locobuild.core.template import evaluate
from locobuild.exceptions import BuildError
from locobuild.model import BuildResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Always kept out of a build, on top of the site's own excludes.
BASE_EXCLUDES = [".git", ".git/*", "node_modules", "node_modules/*", "package.json", "package-lock.json"]


def load_site_config(source: PathLike, config_file: str) -> Dict[str, Any]:
    """Reads the site's JSON configuration, or an empty config if it has none."""
    path = Path(source) / config_file
    if not path.exists():
        return {}
    try:
        config = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise BuildError(f"Invalid site configuration {path}: {e}") from e
    if not isinstance(config, dict):
        raise BuildError(f"Site configuration {path} must contain an object")
    return config


def build_excludes(source: PathLike, target: PathLike, config_file: str,
                   site_config: Dict[str, Any], extra: Iterable[str] = ()) -> List[str]:
    """
    Exclude patterns (relative to ``source``) for a build: the site's own
    ``exclude`` list, the configured extras, the site config file, and the
    target directory when it lives inside the source.
    """
    excludes: List[str] = []

    def xadd(pattern: Optional[str]) -> None:
        if pattern and pattern not in excludes:
            excludes.append(pattern)

    for pattern in list(site_config.get("exclude", [])) + BASE_EXCLUDES + list(extra):
        xadd(pattern)
    xadd(config_file)
    src, tgt = Path(source).resolve(), Path(target).resolve()
    try:
        rel_target = tgt.relative_to(src).as_posix()
    except ValueError:
        rel_target = None
    if rel_target and rel_target != ".":
        xadd(rel_target)
        xadd(f"{rel_target}/*")
    return excludes


def is_excluded(rel_path: str, excludes: Sequence[str]) -> bool:
    for pattern in excludes:
        prefix = pattern.rstrip("/*")
        if fnmatch.fnmatch(rel_path, pattern) or rel_path == prefix or rel_path.startswith(prefix + "/"):
            return True
    return False


class CopySiteBuilder:
    """
    Builds a site by copying the source tree into the target.

    Used when no external build command is configured. Incremental builds copy
    the changed files and delete the removed ones. A full build also deletes
    every target file the source no longer has, except excluded paths and the
    names listed in ``options["keep"]``.
    """

    def build(
            self,
            source: PathLike,
            target: PathLike,
            options: Dict[str, Any],
            extensions: Dict[str, Any],
            changed_files: Optional[Sequence[str]] = None,
            removed_files: Optional[Sequence[str]] = None,
    ) -> BuildResult:
        src, tgt = Path(source), Path(target)
        excludes = options.get("exclude", [])
        try:
            tgt.mkdir(parents=True, exist_ok=True)
            if changed_files is None:
                files = [
                    p.relative_to(src).as_posix()
                    for p in sorted(src.rglob("*"))
                    if p.is_file()
                ]
            else:
                files = list(changed_files)
            copied: Set[str] = set()
            for rel in files:
                if is_excluded(rel, excludes):
                    continue
                src_file = src / rel
                if not src_file.is_file():
                    continue
                dest = tgt / rel
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src_file, dest)
                copied.add(rel)
            if changed_files is None:
                self._prune(tgt, copied, excludes, options.get("keep", []))
            for rel in removed_files or []:
                dest = tgt / rel
                if dest.is_file() and not is_excluded(rel, excludes):
                    dest.unlink()
            logger.info("Copied %d file(s) from %s to %s", len(copied), src, tgt)
            return BuildResult()
        except OSError as e:
            return BuildResult(error=f"Copy build failed: {e}")

    @staticmethod
    def _prune(target: Path, built: Set[str], excludes: Sequence[str], keep: Sequence[str]) -> None:
        protected = list(excludes) + list(keep)
        stale = [
            p for p in target.rglob("*")
            if p.is_file() and p.relative_to(target).as_posix() not in built
            and not is_excluded(p.relative_to(target).as_posix(), protected)
        ]
        for path in stale:
            logger.debug("Removing stale %s", path)
            path.unlink()
        # Deepest first, so a directory emptied by its children goes too.
        for path in sorted(target.rglob("*"), key=lambda p: len(p.parts), reverse=True):
            rel = path.relative_to(target).as_posix()
            if path.is_dir() and not path.is_symlink() and not is_excluded(rel, protected) and not any(path.iterdir()):
                path.rmdir()


class CommandSiteBuilder:
    """
    Builds a site by running an external build tool.

    ``argv`` is a list of templates evaluated against ``source`` and
    ``target``. Build options reach the tool through the environment:
    ``LOCOBUILD_INCREMENTAL``, ``LOCOBUILD_SITE_CONFIG`` and
    ``LOCOBUILD_EXTENSIONS`` (both JSON) and, for
    incremental builds, ``LOCOBUILD_CHANGED_FILES`` / ``LOCOBUILD_REMOVED_FILES``
    (newline separated).
    """

    def __init__(self, argv: Sequence[str], processes: ProcessService):
        if not argv:
            raise ValueError("Build command must not be empty")
        self.argv = list(argv)
        self._processes = processes

    def build(
            self,
            source: PathLike,
            target: PathLike,
            options: Dict[str, Any],
            extensions: Dict[str, Any],
            changed_files: Optional[Sequence[str]] = None,
            removed_files: Optional[Sequence[str]] = None,
    ) -> BuildResult:
        values = {"source": str(source), "target": str(target)}
        command, *args = [evaluate(part, values) for part in self.argv]
        env = dict(os.environ)
        env["LOCOBUILD_INCREMENTAL"] = "1" if options.get("incremental") else "0"
        env["LOCOBUILD_SITE_CONFIG"] = json.dumps(options.get("config", {}))
        env["LOCOBUILD_EXTENSIONS"] = json.dumps(extensions)
        if changed_files is not None:
            env["LOCOBUILD_CHANGED_FILES"] = "\n".join(changed_files)
            env["LOCOBUILD_REMOVED_FILES"] = "\n".join(removed_files or [])

        errors: List[str] = []

        def on_stderr(line: str) -> None:
            errors.append(line)
            logger.error("%s", line)

        code = self._processes.run(source, env, command, args, logger.info, on_stderr)
        if code != 0:
            detail = errors[-1] if errors else "no output"
            return BuildResult(error=f"{command} exited with code {code}: {detail}")
        return BuildResult()


class SiteBuildService:
    """Prepares build options for a source/target pair and drives a builder."""

    def __init__(self, builder, site_config_file: str = "site.json", exclude: Iterable[str] = (),
                 keep: Iterable[str] = (), extensions: Optional[Dict[str, Any]] = None):
        self.builder = builder
        self.site_config_file = site_config_file
        self.exclude = list(exclude)
        self.keep = list(keep)
        self.extensions = dict(extensions or {})

    def options_for(self, source: PathLike, target: PathLike, incremental: bool) -> Dict[str, Any]:
        site_config = load_site_config(source, self.site_config_file)
        excludes = build_excludes(source, target, self.site_config_file, site_config, self.exclude)
        site_config = dict(site_config, exclude=excludes)
        return {
            "incremental": incremental,
            "config": site_config,
            "exclude": excludes,
            "keep": self.keep,
        }

    def build(
            self,
            source: PathLike,
            target: PathLike,
            changed_files: Optional[Sequence[str]] = None,
            removed_files: Optional[Sequence[str]] = None,
            options: Optional[Dict[str, Any]] = None,
    ) -> BuildResult:
        incremental = changed_files is not None
        opts = options or self.options_for(source, target, incremental)
        opts = dict(opts, incremental=incremental)
        logger.info("%s build %s -> %s", "Incremental" if incremental else "Full", source, target)
        return self.builder.build(source, target, opts, self.extensions, changed_files, removed_files)
