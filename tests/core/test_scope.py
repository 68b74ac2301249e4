# tests/core/test_scope.py
from locobuild.core.context.scope import ARGS_KEY, Scope


def test_derive_does_not_touch_parent():
    parent = Scope({"a": "1"})
    child = parent.derive({"b": "2"})
    child.set("a", "changed")

    assert parent["a"] == "1"
    assert "b" not in parent
    assert child["a"] == "changed"
    assert child["b"] == "2"


def test_set_and_unset():
    scope = Scope()
    scope.set("cwd", "/tmp/x")
    assert scope.get("cwd") == "/tmp/x"
    scope.unset("cwd")
    scope.unset("cwd")
    assert "cwd" not in scope


def test_to_env_projects_public_variables():
    scope = Scope({
        "cwd": "/work",
        "build-dir": "out",
        "server.port": 8080,
        ARGS_KEY: "a b",
        "_private": "x",
        "empty": None,
    })
    env = scope.to_env()

    assert env == {
        "LOCOBUILD_CWD": "/work",
        "LOCOBUILD_BUILD_DIR": "out",
        "LOCOBUILD_SERVER_PORT": "8080",
    }
