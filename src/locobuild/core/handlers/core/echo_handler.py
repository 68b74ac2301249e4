# src/locobuild/core/handlers/core/echo_handler.py
from typing import List

from locobuild.core.context.scope import Scope


def handle_echo(args: List[str], _scope: Scope) -> int:
    """
    Prints its arguments. ``--code N`` makes it return exit code N, which is
    handy for exercising ``&&`` and ``||`` in the shell.
    """
    text_to_print_args = []
    exit_code = 0
    i = 0

    while i < len(args):
        arg = args[i]
        if arg == "--code" and i + 1 < len(args):
            try:
                exit_code = int(args[i + 1])
                i += 1
            except ValueError:
                text_to_print_args.append(arg)
        else:
            text_to_print_args.append(arg)
        i += 1

    print(" ".join(text_to_print_args))
    return exit_code
