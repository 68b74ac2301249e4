# src/locobuild/core/handlers/config_handler.py
import json
import logging
from typing import List

from locobuild.core.context.scope import Scope
from locobuild.core.utils.handler_utils import context_of

logger = logging.getLogger(__name__)

config_help_text = """
CONFIG:
  config list                Show the current configuration as JSON.
  config get <key>           Show one setting (e.g. server.port).
  config set <key> <value>   Change a setting for this session.
  config reset               Reload the configuration from the settings files.
""".strip()


def handle_config(args: List[str], _scope: Scope, engine) -> int:
    """Handles the 'config' command for viewing and modifying session configuration."""
    if not args:
        print(config_help_text)
        return 1

    config = context_of(engine).config
    command = args[0]

    if command == "list":
        print(json.dumps(config.get_all(), indent=2))
        return 0

    if command == "get":
        if len(args) < 2:
            print("Usage: config get <key>")
            return 1
        print(json.dumps(config.get_nested(args[1])))
        return 0

    if command == "set":
        if len(args) < 3:
            print("Usage: config set <key> <value>")
            return 1
        key_path = args[1]
        if not config.set_nested(key_path, " ".join(args[2:])):
            print(f"Failed to set config value for key '{key_path}'.")
            return 1
        print(f"{key_path} = {json.dumps(config.get_nested(key_path))}")
        return 0

    if command == "reset":
        config.reset()
        print("Configuration reloaded.")
        return 0

    print(f"Unknown command: 'config {command}'.")
    return 1
