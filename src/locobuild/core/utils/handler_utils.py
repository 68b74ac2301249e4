# src/locobuild/core/utils/handler_utils.py
import os
from pathlib import Path
from typing import Any, Mapping, Optional, TypeVar, Union

from locobuild.core.utils.path_utils import PathUtils
from locobuild.exceptions import ActionFailure

T = TypeVar("T")


def ensure(value: Optional[T], message: str) -> T:
    """Returns ``value``, or raises ActionFailure with ``message`` if it is empty."""
    if value is None or value == "":
        raise ActionFailure(message)
    return value


def arg(args: list, idx: int, default: Optional[str] = None) -> Optional[str]:
    """The positional argument at ``idx``, or ``default`` when missing or empty."""
    if idx < len(args) and args[idx]:
        return args[idx]
    return default


def cwd_of(scope: Mapping[str, Any]) -> Path:
    """The working directory of a scope; falls back to the process cwd."""
    return Path(scope.get("cwd") or os.getcwd())


def resolve_in(scope: Mapping[str, Any], path: Union[str, Path]) -> Path:
    """Resolves ``path`` against the scope's working directory."""
    return PathUtils.resolve(cwd_of(scope), path)


def context_of(engine: Any) -> Any:
    if engine is None or engine.context is None:
        raise ActionFailure("No build context attached to the engine")
    return engine.context
