# src/locobuild/core/handlers/core/set_handler.py
from typing import List

from locobuild.core.context.scope import Scope


def handle_set(args: List[str], scope: Scope) -> int:
    """
    Handles the 'set' command.

    Assigns a string value to a variable of the calling scope, so later
    actions of the same command can reference it. Accepts both
    ``set name value...`` and ``set name=value``.

    Returns:
        int: Exit code (0 for success, 1 for usage error).
    """
    if not args:
        print("Usage: set <name> <value...>")
        return 1

    name, values = args[0], args[1:]
    if "=" in name and not values:
        name, value = name.split("=", 1)
    else:
        value = " ".join(values)

    name = name.strip()
    if not name:
        print("Usage: set <name> <value...>")
        return 1

    # Simple unquoting of the value if it starts and ends with double quotes
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]

    scope.set(name, value)
    return 0
