# src/locobuild/core/handlers/core/help_handler.py
from typing import List

from locobuild.core.compiler import CompiledCommand
from locobuild.core.context.scope import Scope
from locobuild.core.discovery import discover_handlers

core_help_text = """
CORE:
  set <name> <value...>   Set a variable in the current scope.
  echo <text...>          Print text (--code N returns exit code N).
  rem ...                 A remark; does nothing.
  help                    Show this help.
""".strip()


def handle_help(_args: List[str], _scope: Scope, engine) -> int:
    _, help_texts = discover_handlers()
    for topic in sorted(help_texts):
        print(help_texts[topic])
        print()

    described = [
        (name, engine.registry.get(name))
        for name in engine.registry.names()
    ]
    described = [(name, cmd) for name, cmd in described if isinstance(cmd, CompiledCommand)]
    if described:
        print("COMMANDS:")
        width = max(len(name) for name, _ in described)
        for name, cmd in described:
            usage = " ".join(f"[{a}]" for a in cmd.positional_args)
            print(f"  {name.ljust(width)}  {usage}  {cmd.description}".rstrip())
    return 0
