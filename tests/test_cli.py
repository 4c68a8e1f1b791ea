"""
Tests for the uupass command line.
"""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest
import yaml
from click.testing import CliRunner

from uupass import __version__
from uupass.cli import main
from uupass.cli._common import AppContext, generate_password
from uupass.entry import load_entry


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def app(index, config, store) -> AppContext:
    return AppContext(config=config, store=store, index=index)


def invoke(runner: CliRunner, app: AppContext, *args: str, **kwargs):
    return runner.invoke(main, list(args), obj=app, **kwargs)


class TestBasics:
    """Tests for the group itself."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("ls", "get", "insert", "mv", "rm", "sync", "fix-index", "bulk-rename"):
            assert command in result.output

    def test_uupass_error_exits_1(self, runner, app):
        result = invoke(runner, app, "get", "no/such/entry")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "no/such/entry" in result.output

    def test_missing_selector_is_usage_error(self, runner, app):
        result = invoke(runner, app, "get")
        assert result.exit_code == 2


class TestEntryCommands:
    """Tests for ls, get, insert, mv, passwd, rm, edit."""

    def test_ls_tree(self, runner, app, add_entry):
        add_entry("web/github")
        add_entry("mail/personal")
        result = invoke(runner, app, "ls")
        assert result.exit_code == 0
        for label in ("web", "github", "mail", "personal"):
            assert label in result.output

    def test_ls_flat(self, runner, app, add_entry):
        add_entry("web/github")
        result = invoke(runner, app, "ls", "--flat")
        assert result.output.strip() == "web/github"

    def test_get_masks_password(self, runner, app, add_entry):
        add_entry("web/github", password="hunter2", username="alice")
        result = invoke(runner, app, "get", "web/github")
        assert result.exit_code == 0
        assert "alice" in result.output
        assert "hunter2" not in result.output

    def test_get_show(self, runner, app, add_entry):
        add_entry("web/github", password="hunter2")
        result = invoke(runner, app, "get", "web/github", "--show")
        assert "hunter2" in result.output

    def test_get_password_only_by_id(self, runner, app, add_entry):
        entry = add_entry("web/github", password="hunter2")
        result = invoke(runner, app, "get", "--id", str(entry.uuid), "-p")
        assert result.exit_code == 0
        assert result.output == "hunter2\n"

    def test_get_bad_id(self, runner, app):
        result = invoke(runner, app, "get", "--id", "not-a-uuid")
        assert result.exit_code == 1

    def test_insert_prompts_twice(self, runner, app, index, store, config):
        result = invoke(
            runner, app, "insert", "web/new", "-u", "bob", input="s3cret\ns3cret\n"
        )
        assert result.exit_code == 0, result.output
        ident = index.identifier_of("web/new")
        entry = load_entry(store, config, ident)
        assert entry.password == "s3cret"
        assert entry.username == "bob"

    def test_insert_generated(self, runner, app, index, store, config):
        result = invoke(runner, app, "insert", "web/gen", "--generate", "24")
        assert result.exit_code == 0, result.output
        entry = load_entry(store, config, index.identifier_of("web/gen"))
        assert len(entry.password) == 24

    def test_insert_existing_path_fails(self, runner, app, add_entry):
        add_entry("web/github")
        result = invoke(runner, app, "insert", "web/github", "-g", "8")
        assert result.exit_code == 1

    def test_mv(self, runner, app, add_entry, index):
        entry = add_entry("web/github")
        result = invoke(runner, app, "mv", "web/github", "code/github")
        assert result.exit_code == 0, result.output
        assert index.path_of(entry.uuid) == "code/github"

    def test_mv_by_id(self, runner, app, add_entry, index):
        entry = add_entry("web/github")
        result = invoke(runner, app, "mv", "--id", str(entry.uuid), "code/github")
        assert result.exit_code == 0, result.output
        assert index.path_of(entry.uuid) == "code/github"

    def test_passwd(self, runner, app, add_entry, store, config):
        entry = add_entry("web/github", password="old")
        result = invoke(runner, app, "passwd", "web/github", input="new\nnew\n")
        assert result.exit_code == 0, result.output
        assert load_entry(store, config, entry.uuid).password == "new"

    def test_rm_declined_is_interrupted(self, runner, app, add_entry, index):
        add_entry("web/github")
        result = invoke(runner, app, "rm", "web/github", input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert index.identifier_of("web/github") is not None

    def test_rm_force(self, runner, app, add_entry, index, store, config):
        entry = add_entry("web/github")
        result = invoke(runner, app, "rm", "web/github", "--force")
        assert result.exit_code == 0
        assert index.identifier_of("web/github") is None
        assert not store.exists(f"uuids/{entry.uuid}")

    def test_edit_cannot_change_path(self, runner, app, add_entry, store, config):
        entry = add_entry("web/github", password="pw")
        store.editor = lambda text: text.replace("pw\n", "edited\n", 1).replace(
            "path: web/github", "path: elsewhere"
        )
        result = invoke(runner, app, "edit", "web/github")
        assert result.exit_code == 0, result.output
        reloaded = load_entry(store, config, entry.uuid)
        assert reloaded.password == "edited"
        assert reloaded.path == "web/github"


class TestMaintenanceCommands:
    """Tests for init and fix-index."""

    def test_fix_index_consistent(self, runner, app, add_entry):
        add_entry("web/github")
        result = invoke(runner, app, "fix-index")
        assert result.exit_code == 0
        assert "consistent" in result.output

    def test_fix_index_repairs_dangling_item(self, runner, app, index):
        index.write([(uuid4(), "gone")])
        result = invoke(runner, app, "fix-index", "--yes")
        assert result.exit_code == 0, result.output
        assert index.get() == []

    def test_fix_index_dry_run(self, runner, app, index):
        index.write([(uuid4(), "gone")])
        result = invoke(runner, app, "fix-index", "--dry-run")
        assert result.exit_code == 0
        assert len(index.get()) == 1

    def test_init_migrates(self, runner, config, store):
        store.write("web/site", "pw\nuser: me\n")
        app = AppContext(config=config, store=store)
        result = invoke(runner, app, "init", "--yes")
        assert result.exit_code == 0, result.output
        assert app.get_index().identifier_of("web/site") is not None

    def test_init_empty_store(self, runner, config, store):
        app = AppContext(config=config, store=store)
        result = invoke(runner, app, "init")
        assert result.exit_code == 0, result.output
        assert app.get_index().get() == []


    def test_bulk_rename_confirmed(self, runner, app, add_entry, index, store):
        entry = add_entry("web/github")
        store.editor = lambda text: text.replace(" web/github\n", " code/github\n")
        result = invoke(runner, app, "bulk-rename", input="y\n")
        assert result.exit_code == 0, result.output
        assert "code/github" in result.output
        assert index.path_of(entry.uuid) == "code/github"

    def test_bulk_rename_declined(self, runner, app, add_entry, index, store):
        entry = add_entry("web/github")
        store.editor = lambda text: text.replace(" web/github\n", " code/github\n")
        result = invoke(runner, app, "bulk-rename", input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert index.path_of(entry.uuid) == "web/github"


class TestConfigCommands:
    """Tests for config init / show."""

    def test_config_init_and_show(self, runner, tmp_path: Path):
        target = tmp_path / "conf" / "config.yaml"
        result = runner.invoke(main, ["--config", str(target), "config", "init"])
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(target.read_text())
        assert data["store"]["uuid_folder"] == "uuids"

        shown = runner.invoke(main, ["--config", str(target), "config", "show"])
        assert yaml.safe_load(shown.output) == data

    def test_config_init_refuses_overwrite(self, runner, tmp_path: Path):
        target = tmp_path / "config.yaml"
        target.write_text("{}\n")
        result = runner.invoke(main, ["--config", str(target), "config", "init"])
        assert result.exit_code == 1


class TestSyncCommands:
    """Tests for the sync group against real git repositories."""

    def test_status_before_init(self, runner, app):
        result = invoke(runner, app, "sync", "status")
        assert result.exit_code == 0
        assert "not initialized" in result.output

    def test_repo_without_init_fails(self, runner, app):
        result = invoke(runner, app, "sync", "repo")
        assert result.exit_code == 1

    def test_init_then_sync(self, runner, git_index, git_add_entry, config, store):
        app = AppContext(config=config, store=store, index=git_index)
        git_add_entry("web/github")

        result = invoke(runner, app, "sync", "init")
        assert result.exit_code == 0, result.output
        assert (store.root / ".sync" / "web" / "github.gpg").is_file()

        git_add_entry("bank/main")
        dry = invoke(runner, app, "sync", "repo", "--dry-run")
        assert dry.exit_code == 0, dry.output
        assert "bank/main" in dry.output
        assert not (store.root / ".sync" / "bank" / "main.gpg").exists()

        applied = invoke(runner, app, "sync", "repo")
        assert applied.exit_code == 0, applied.output
        assert (store.root / ".sync" / "bank" / "main.gpg").is_file()

        status = invoke(runner, app, "sync", "status")
        assert status.exit_code == 0
        assert "in sync" in status.output


class TestGeneratePassword:
    """Tests for the password generator."""

    def test_length_and_alphabet(self):
        password = generate_password(32)
        assert len(password) == 32
        assert " " not in password
