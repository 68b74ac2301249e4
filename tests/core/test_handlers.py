# tests/core/test_handlers.py
import json
import logging
import socket
import sys
import tempfile
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from locobuild.core.context.scope import Scope
from locobuild.core.core import create_engine
from locobuild.core.discovery import command_name_for, discover_handlers
from locobuild.core.handlers import site_handler
from locobuild.core.handlers.git_handler import notify_update
from locobuild.core.managers.config_manager import ConfigManager
from locobuild.exceptions import ActionFailure, BuildError, ProcessFailure


@pytest.fixture
def config():
    return ConfigManager(use_user_config=False)


@pytest.fixture
def engine(config):
    engine = create_engine(config)
    yield engine
    engine.context.close()


@pytest.fixture
def scope(tmp_path):
    return Scope({"cwd": str(tmp_path)})


# --- Discovery ---

def test_command_name_for():
    assert command_name_for("handle_git_clone") == "git-clone"
    assert command_name_for("handle_cd") == "cd"


def test_discover_handlers_finds_builtins():
    handlers, help_texts = discover_handlers()
    for name in ("git-clone", "git-push", "git-merge", "write-build-record", "read-build-record",
                 "ensure-dir", "mktemp", "rmdir", "cd", "exec", "npx", "npm-install",
                 "set", "echo", "rem", "help", "config", "build-site", "watch-site", "start-server", "in-temp-dir"):
        assert name in handlers, name
    assert "REPOSITORY" in help_texts["git"]


def test_engine_registry_has_default_commands(engine):
    for name in ("build", "serve", "build-from-git", "publish-from-git", "deploy"):
        assert name in engine.registry


# --- Core ---

def test_set_and_echo(engine, scope, capsys):
    engine.run("set", scope, ["greeting", "hello", "world"])
    engine.run("set", scope, ["name=locobuild"])
    engine.run("echo", scope, [scope["greeting"], scope["name"]])
    assert scope["greeting"] == "hello world"
    assert capsys.readouterr().out == "hello world locobuild\n"


def test_set_without_args_is_a_failure(engine, scope, capsys):
    with pytest.raises(ActionFailure):
        engine.run("set", scope, [])
    assert "Usage" in capsys.readouterr().out


def test_echo_code(engine, scope):
    with pytest.raises(ActionFailure):
        engine.run("echo", scope, ["--code", "2", "boom"])


def test_rem_does_nothing(engine, scope):
    assert engine.run("rem", scope, ["anything", "goes"]).status == "completed"


def test_help_lists_commands(engine, scope, capsys):
    engine.run("help", scope, [])
    out = capsys.readouterr().out
    assert "git-clone" in out
    assert "build-from-git" in out


def test_config_get_set_reset(engine, scope, capsys):
    engine.run("config", scope, ["set", "watch.interval", "0.25"])
    assert engine.context.config.get_nested("watch.interval") == 0.25
    engine.run("config", scope, ["get", "watch.interval"])
    assert capsys.readouterr().out.splitlines()[-1] == "0.25"

    engine.run("config", scope, ["reset"])
    assert engine.context.config.get_nested("watch.interval") == 1.0


def test_config_usage_errors(engine, scope, capsys):
    for args in ([], ["get"], ["set", "server.port"], ["frobnicate"]):
        with pytest.raises(ActionFailure):
            engine.run("config", scope, args)
    assert "config set <key> <value>" in capsys.readouterr().out


# --- Files ---

def test_mktemp_rmdir(engine, scope):
    engine.run("mktemp", scope, [])
    temp = Path(scope["cwd"])
    assert temp.is_dir()
    assert temp.name.startswith("locobuild-build-")

    engine.run("rmdir", scope, [str(temp)])
    assert not temp.exists()


def test_in_temp_dir_runs_command_then_removes_directory(engine, scope, tmp_path):
    seen = {}

    def look(args, s):
        seen["cwd"] = s["cwd"]
        seen["args"] = args

    engine.registry.add_definitions({"look": look})
    engine.run("in-temp-dir", scope, ["look", "a", "b"])
    assert seen["args"] == ["a", "b"]
    temp = Path(seen["cwd"])
    assert temp.name.startswith("locobuild-build-")
    assert not temp.exists()
    assert scope["cwd"] == str(tmp_path)


def test_in_temp_dir_removes_directory_when_command_fails(engine, scope, tmp_path, monkeypatch):
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))
    engine.registry.add_definitions({"fails": {"actions": ["ensure-dir work", "echo --code 3 boom"]}})

    with pytest.raises(ActionFailure):
        engine.run("in-temp-dir", scope, ["fails"])
    assert list(temp_root.iterdir()) == []


def test_ensure_dir_and_cd(engine, scope, tmp_path):
    engine.run("ensure-dir", scope, ["a/b"])
    assert (tmp_path / "a" / "b").is_dir()

    engine.run("cd", scope, ["a"])
    assert scope["cwd"] == str((tmp_path / "a").resolve())

    with pytest.raises(ActionFailure, match="not a directory"):
        engine.run("cd", scope, ["missing"])


def test_missing_required_argument(engine, scope):
    with pytest.raises(ActionFailure, match="path is required"):
        engine.run("ensure-dir", scope, [])


def test_mktemp_is_visible_to_later_actions(engine, scope, tmp_path):
    engine.registry.add_definitions({
        "scratch": {"actions": ["mktemp", "ensure-dir out", "set made {cwd}", "rmdir {cwd}"]},
    })
    engine.run("scratch", scope, [])
    # The caller's scope keeps its own working directory
    assert scope["cwd"] == str(tmp_path)
    assert "made" not in scope


# --- Processes ---

def test_exec_projects_scope_into_env(engine, scope, caplog):
    scope.set("greeting", "hi")
    scope.set("_secret", "hidden")
    script = "import os; print(os.environ['LOCOBUILD_GREETING']); print(os.environ.get('LOCOBUILD__SECRET', 'none'))"

    with caplog.at_level(logging.INFO):
        engine.run("exec", scope, [sys.executable, "-c", script])

    messages = [r.getMessage() for r in caplog.records if r.name.endswith("exec_handler")]
    assert messages == ["hi", "none"]


def test_exec_non_zero_exit(engine, scope):
    with pytest.raises(ProcessFailure) as exc_info:
        engine.run("exec", scope, [sys.executable, "-c", "raise SystemExit(4)"])
    assert exc_info.value.code == 4


def test_npm_install_runs_npm_without_local_modules(engine, scope, tmp_path):
    engine.context.processes = MagicMock()
    engine.context.processes.run.return_value = 0
    (tmp_path / "master").mkdir()

    engine.run("npm-install", scope, ["master"])

    cwd, env, command, args = engine.context.processes.run.call_args.args[:4]
    assert (command, list(args)) == ("npm", ["install"])
    assert Path(cwd) == (tmp_path / "master").resolve()


def test_npm_install_links_modules_from_local_origin(engine, scope, tmp_path, remote_repo, run_git):
    origin = tmp_path / "origin"
    run_git(tmp_path, "clone", "-q", str(remote_repo), "origin")
    (origin / "node_modules" / "left-pad").mkdir(parents=True)
    (tmp_path / "master").mkdir()

    engine.run("npm-install", scope, ["master", str(origin)])

    link = tmp_path / "master" / "node_modules"
    assert link.is_symlink()
    assert (link / "left-pad").is_dir()


# --- Site ---

def test_build_site(engine, scope, tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "index.html").write_text("hi")
    engine.run("build-site", scope, ["src", "out"])
    assert (tmp_path / "out" / "index.html").read_text() == "hi"


def test_build_site_missing_source(engine, scope):
    with pytest.raises(BuildError):
        engine.run("build-site", scope, ["nope", "out"])


def test_build_site_reports_builder_errors(engine, scope, tmp_path):
    (tmp_path / "src").mkdir()
    engine.context.site.builder = MagicMock()
    engine.context.site.builder.build.return_value.ok = False
    engine.context.site.builder.build.return_value.error = "template error in index.html"
    with pytest.raises(BuildError, match="template error"):
        engine.run("build-site", scope, ["src", "out"])


def test_watch_site_registers_background_watcher(engine, scope, tmp_path):
    (tmp_path / "src").mkdir()
    engine.run("watch-site", scope, ["src", "out"])
    assert len(engine.context.background) == 1
    engine.context.close()
    assert engine.context.background == []


def test_start_server_uses_configured_address(engine, scope, tmp_path, monkeypatch):
    run_server = MagicMock()
    monkeypatch.setattr(site_handler, "run_server", run_server)
    engine.context.config.set_nested("server.port", "9090")

    engine.run("start-server", scope, ["out"])

    args, kwargs = run_server.call_args
    assert args[0] == (tmp_path / "out").resolve()
    assert kwargs["port"] == 9090
    assert kwargs["host"] == "127.0.0.1"


# --- Repository workflow ---

def test_build_from_git_publishes_target_branch(engine, tmp_path, remote_repo, run_git, monkeypatch):
    monkeypatch.chdir(tmp_path)
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))
    scope = Scope({"cwd": str(tmp_path)})

    code = engine.run_top_level("build-from-git", scope, [str(remote_repo), "master", "gh-pages"])
    assert code == 0

    check = tmp_path / "check"
    run_git(tmp_path, "clone", "-q", "-b", "gh-pages", str(remote_repo), "check")
    assert (check / "index.md").read_text() == "# Hello\n"
    assert not (check / "site.json").exists()
    record = json.loads((check / ".locobuild-build-record.json").read_text())
    master_head = run_git(remote_repo, "rev-parse", "--short", "master").strip()
    assert record == {"site#master": master_head}

    # Nothing changed upstream: a second run makes no new commit
    before = run_git(remote_repo, "rev-parse", "gh-pages")
    assert engine.run_top_level("deploy", Scope({"cwd": str(tmp_path)}), [str(remote_repo)]) == 0
    assert run_git(remote_repo, "rev-parse", "gh-pages") == before

    # Every run cleans up its temporary directory
    assert list(temp_root.iterdir()) == []


def test_build_from_git_cleans_up_after_a_failure(engine, tmp_path, git_env, monkeypatch):
    monkeypatch.chdir(tmp_path)
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))

    code = engine.run_top_level(
        "build-from-git", Scope({"cwd": str(tmp_path)}), [str(tmp_path / "no-such-repo.git"), "master", "gh-pages"],
    )

    assert code == 1
    assert list(temp_root.iterdir()) == []


def test_read_build_record(engine, tmp_path, remote_repo, run_git):
    scope = Scope({"cwd": str(tmp_path)})
    engine.run("git-clone", scope, [str(remote_repo), "master", "source"])
    engine.run("ensure-dir", scope, ["target"])

    engine.run("read-build-record", scope, ["source", "target", "last"])
    assert "last" not in scope

    engine.run("write-build-record", scope, ["source", "target"])
    engine.run("read-build-record", scope, ["source", "target", "last"])
    assert scope["last"] == run_git(tmp_path / "source", "rev-parse", "--short", "HEAD").strip()


def test_git_merge_handler(engine, tmp_path, remote_repo, run_git):
    scope = Scope({"cwd": str(tmp_path)})
    engine.run("git-clone", scope, [str(remote_repo), "master", "work"])
    work = tmp_path / "work"
    run_git(work, "checkout", "-q", "-b", "feature")
    (work / "feature.md").write_text("x")
    run_git(work, "add", "-A")
    run_git(work, "commit", "-q", "-m", "feature")

    engine.run("git-merge", scope, ["feature", "master", "work"])

    assert run_git(work, "rev-parse", "--abbrev-ref", "HEAD").strip() == "master"
    assert (work / "feature.md").exists()


@pytest.fixture
def updates_listener():
    """A local TCP listener collecting whatever each connection writes."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    server.settimeout(5)
    received = []

    def serve():
        try:
            conn, _ = server.accept()
        except OSError:
            return
        with conn:
            chunks = []
            while True:
                data = conn.recv(1024)
                if not data:
                    break
                chunks.append(data)
            received.append(b"".join(chunks).decode("utf-8"))

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield server.getsockname()[1], received, thread
    server.close()


def test_git_push_sends_update_notification(engine, tmp_path, remote_repo, updates_listener):
    port, received, thread = updates_listener
    scope = Scope({
        "cwd": str(tmp_path),
        "sendUpdatesNotification": "true",
        "updatesListenerHost": "127.0.0.1",
        "updatesListenerPort": str(port),
    })
    engine.run("git-clone", scope, [str(remote_repo), "gh-pages", "target"])
    (tmp_path / "target" / "index.html").write_text("<h1>Hello</h1>")

    engine.run("git-push", scope, ["gh-pages", "target"])

    thread.join(5)
    assert received == ["acme/site/gh-pages"]


def test_git_push_without_changes_sends_nothing(engine, tmp_path, remote_repo, updates_listener):
    port, received, thread = updates_listener
    scope = Scope({
        "cwd": str(tmp_path),
        "sendUpdatesNotification": "true",
        "updatesListenerHost": "127.0.0.1",
        "updatesListenerPort": str(port),
    })
    engine.run("git-clone", scope, [str(remote_repo), "master", "source"])

    engine.run("git-push", scope, ["master", "source"])

    assert received == []


@pytest.mark.parametrize("values", [
    {},
    {"sendUpdatesNotification": "false", "updatesListenerHost": "127.0.0.1", "updatesListenerPort": "1"},
    {"sendUpdatesNotification": "true", "updatesListenerHost": "127.0.0.1"},
])
def test_notify_update_needs_flag_host_and_port(values):
    assert notify_update(Scope(values), "acme/site/gh-pages") is False


def test_notify_update_unreachable_listener_is_an_action_failure():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    scope = Scope({
        "sendUpdatesNotification": "1",
        "updatesListenerHost": "127.0.0.1",
        "updatesListenerPort": str(port),
    })
    with pytest.raises(ActionFailure, match="Unable to notify"):
        notify_update(scope, "acme/site/gh-pages")
