# src/locobuild/core/core.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from locobuild.core.command_registry import CommandRegistry
from locobuild.core.context.build_context import BuildContext
from locobuild.core.context.scope import Scope
from locobuild.core.discovery import discover_handlers
from locobuild.core.managers.config_manager import ConfigManager
from locobuild.core.utils.path_utils import PathUtils
from locobuild.core.xngine import ExecuteEngine

logger = logging.getLogger(__name__)


def build_registry(
        config: ConfigManager,
        extra_definition_files: Iterable[Union[str, Path]] = (),
) -> CommandRegistry:
    """
    Builds the command registry. Sources are merged in order, later ones
    overriding earlier ones: discovered handlers, the packaged default
    commands, the files listed under ``commands.files``, then the extra files.
    """
    registry = CommandRegistry()
    handlers, _ = discover_handlers()
    registry.register_handlers(handlers)
    registry.load_file(PathUtils.get_default_commands_file())
    for file_path in config.get_nested("commands.files", []):
        registry.load_file(file_path)
    for file_path in extra_definition_files:
        registry.load_file(file_path)
    logger.debug("Registry holds %d command(s).", len(registry))
    return registry


def create_engine(
        config: ConfigManager,
        extra_definition_files: Iterable[Union[str, Path]] = (),
) -> ExecuteEngine:
    """Creates an engine wired to a fresh BuildContext."""
    registry = build_registry(config, extra_definition_files)
    return ExecuteEngine(registry=registry, context=BuildContext(config))


def initial_scope(config: ConfigManager, overrides: Optional[Mapping[str, str]] = None) -> Scope:
    """
    The root scope of a run: the process working directory, the ``env``
    settings, then ``-e KEY=VALUE`` overrides.
    """
    values = {"cwd": os.getcwd()}
    values.update({k: str(v) for k, v in (config.get_nested("env", {}) or {}).items()})
    values.update(overrides or {})
    return Scope(values)
