# tests/core/test_command_registry.py
import json

import pytest

from locobuild.core.command_registry import CommandRegistry
from locobuild.core.compiler import (
    CompiledCommand,
    InlineCommand,
    InlineOperation,
    PrimitiveCall,
    compile_command,
)
from locobuild.exceptions import CompileError
from locobuild.model import CommandDefinition


def noop(args, scope):
    return 0


# --- Compiler ---

def test_compile_callable_is_inline():
    command = compile_command("noop", noop)
    assert isinstance(command, InlineCommand)
    assert command.handler is noop


def test_compile_definition_with_string_and_list_actions():
    command = compile_command("publish", {
        "args": ["source", "target"],
        "vars": {"target": "gh-pages"},
        "actions": ["git-clone {origin}  {source} source", ["git-push", "{target}"], noop],
        "silentFail": True,
        "description": "Publish a branch.",
    })

    assert isinstance(command, CompiledCommand)
    assert command.positional_args == ("source", "target")
    assert command.local_vars == {"target": "gh-pages"}
    assert command.actions == (
        PrimitiveCall("git-clone", ("{origin}", "{source}", "source")),
        PrimitiveCall("git-push", ("{target}",)),
        InlineOperation(noop),
    )
    assert command.silent_fail is True
    assert command.description == "Publish a branch."


def test_compile_single_action_is_appended_after_actions():
    command = compile_command("c", {"actions": ["first"], "action": "last"})
    assert [a.name for a in command.actions] == ["first", "last"]


def test_compile_accepts_definition_models():
    command = compile_command("c", CommandDefinition(action="echo hi"))
    assert command.actions == (PrimitiveCall("echo", ("hi",)),)


def test_compile_without_actions_fails():
    with pytest.raises(CompileError, match="must define an action"):
        compile_command("empty", {"args": ["x"]})


def test_compile_non_list_actions_fails():
    with pytest.raises(CompileError, match="must be an array"):
        compile_command("bad", {"actions": "echo hi"})


@pytest.mark.parametrize("action", [42, [], ["echo", 1]])
def test_compile_invalid_action_entries_fail(action):
    with pytest.raises(CompileError):
        compile_command("bad", {"actions": [action]})


def test_compile_unknown_field_fails():
    with pytest.raises(CompileError, match="Invalid command definition"):
        compile_command("bad", {"action": "echo", "retries": 3})


def test_compile_non_object_definition_fails():
    with pytest.raises(CompileError):
        compile_command("bad", "echo hi")


def test_compile_is_idempotent():
    definition = {"args": ["a"], "actions": ["echo {a}"]}
    assert compile_command("c", definition) == compile_command("c", definition)


# --- Registry ---

def test_registry_later_definitions_override_earlier():
    registry = CommandRegistry()
    registry.add_definitions({"build": {"action": "echo one"}, "other": {"action": "echo"}})
    registry.add_definitions({"build": {"action": "echo two"}})

    assert registry.get("build").actions == (PrimitiveCall("echo", ("two",)),)
    assert "other" in registry
    assert registry.names() == ["build", "other"]
    assert len(registry) == 2


def test_registry_broken_set_leaves_registry_untouched():
    registry = CommandRegistry()
    registry.add_definitions({"build": {"action": "echo one"}})

    with pytest.raises(CompileError):
        registry.add_definitions({"build": {"action": "echo two"}, "broken": {}})

    assert registry.get("build").actions == (PrimitiveCall("echo", ("one",)),)
    assert "broken" not in registry


def test_registry_register_handlers():
    registry = CommandRegistry()
    registry.register_handlers({"noop": noop})
    assert isinstance(registry.get("noop"), InlineCommand)
    assert registry.get("missing") is None


def test_registry_load_file(tmp_path):
    path = tmp_path / "commands.json"
    path.write_text(json.dumps({"hello": {"args": ["who"], "action": "echo {who}"}}))

    registry = CommandRegistry()
    registry.load_file(path)

    assert registry.get("hello").positional_args == ("who",)


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_registry_load_file_rejects_bad_content(tmp_path, content):
    path = tmp_path / "commands.json"
    path.write_text(content)
    with pytest.raises(CompileError):
        CommandRegistry().load_file(path)


def test_registry_load_missing_file_fails(tmp_path):
    with pytest.raises(CompileError):
        CommandRegistry().load_file(tmp_path / "nope.json")
