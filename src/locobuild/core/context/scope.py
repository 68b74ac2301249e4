# src/locobuild/core/context/scope.py
import logging
from typing import Any, Dict, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

# Keys starting with this prefix are internal and never reach a child process.
RESERVED_PREFIX = "_"
# Holds the raw, space-joined argument string of the current invocation.
ARGS_KEY = "__args__"
# Environment variable prefix used when projecting a scope into a process env.
ENV_PREFIX = "LOCOBUILD_"


class Scope(Mapping[str, Any]):
    """
    The variables visible to template evaluation during one command invocation.

    A scope is owned by exactly one invocation. Invoking a compiled command
    never touches the caller's scope: it works on ``derive()``, a shallow copy
    with the callee's bindings laid over it. Inline operations run against the
    scope of the command that called them, so a value they ``set`` is visible
    to that command's later actions.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._vars: Dict[str, Any] = dict(values or {})

    def derive(self, overlay: Optional[Mapping[str, Any]] = None) -> "Scope":
        """Returns a child scope: a copy of this one plus ``overlay``."""
        child = Scope(self._vars)
        if overlay:
            child._vars.update(overlay)
        return child

    def set(self, key: str, value: Any) -> None:
        """Sets a variable in this scope only."""
        self._vars[key] = value

    def unset(self, key: str) -> None:
        self._vars.pop(key, None)

    def to_env(self) -> Dict[str, str]:
        """
        Projects the public variables into process environment entries,
        e.g. ``cwd`` becomes ``LOCOBUILD_CWD``.
        """
        env: Dict[str, str] = {}
        for key, value in self._vars.items():
            if key.startswith(RESERVED_PREFIX) or value is None:
                continue
            name = ENV_PREFIX + key.upper().replace("-", "_").replace(".", "_")
            env[name] = str(value)
        return env

    def __getitem__(self, key: str) -> Any:
        return self._vars[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        return f"<Scope vars_count={len(self._vars)}>"
