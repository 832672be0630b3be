"""Tests for the host repositories."""

import os
from datetime import datetime, timedelta, timezone

import pytest

from lazyssh.errors import (
    AliasConflictError,
    ConfigIOError,
    HostNotFoundError,
    ParseError,
    PermissionDeniedError,
)
from lazyssh.store import InMemoryRepository, SSHConfigRepository
from lazyssh.store.atomic import ORIGINAL_BACKUP_SUFFIX
from lazyssh.types import Server

UTC = timezone.utc


class TestSSHConfigRepository:
    def test_missing_file_is_empty(self, repo):
        assert repo.list_servers() == []

    def test_add_then_list(self, repo, home):
        repo.add_server(
            Server(
                alias="web",
                host="10.0.0.1",
                user="ubuntu",
                identity_files=[f"{home}/.ssh/id_ed25519"],
                tags=["prod"],
            )
        )
        config = home / ".ssh" / "config"
        assert config.read_text() == (
            "Host web\n"
            "    HostName 10.0.0.1\n"
            "    User ubuntu\n"
            "    IdentityFile ~/.ssh/id_ed25519\n"
        )
        assert os.stat(config).st_mode & 0o777 == 0o600

        [web] = repo.list_servers()
        assert web.alias == "web"
        assert web.tags == ("prod",)

    def test_add_conflict(self, repo):
        repo.add_server(Server(alias="web", host="a"))
        with pytest.raises(AliasConflictError):
            repo.add_server(Server(alias="web", host="b"))

    def test_add_conflict_with_secondary_alias(self, repo, home):
        (home / ".ssh" / "config").write_text("Host web www\n    HostName a\n")
        with pytest.raises(AliasConflictError):
            repo.add_server(Server(alias="www", host="b"))

    def test_preserves_foreign_content(self, repo, home):
        original = (
            "# managed by hand\n"
            "Include config.d/*\n"
            "\n"
            "Match host *.corp exec \"true\"\n"
            "    ProxyJump bastion\n"
            "\n"
            "Host *\n"
            "    ServerAliveInterval 60\n"
        )
        (home / ".ssh" / "config").write_text(original)
        repo.add_server(Server(alias="web", host="10.0.0.1"))
        content = (home / ".ssh" / "config").read_text()
        assert content.startswith(original)
        assert content.endswith("\nHost web\n    HostName 10.0.0.1\n")

    def test_rename(self, repo, home):
        repo.add_server(Server(alias="web", host="10.0.0.1", tags=["prod"]))
        repo.record_ssh("web")
        [web] = repo.list_servers()

        repo.update_server(web, web.model_copy(update={"alias": "web-prod"}))

        content = (home / ".ssh" / "config").read_text()
        assert "Host web-prod\n" in content
        assert "Host web\n" not in content
        [renamed] = repo.list_servers()
        assert renamed.alias == "web-prod"
        assert renamed.tags == ("prod",)
        assert renamed.ssh_count == 1
        assert "web" not in repo.metadata.load_all()

    def test_update_conflict(self, repo):
        repo.add_server(Server(alias="a", host="x"))
        repo.add_server(Server(alias="b", host="y"))
        a = repo.list_servers("a")[0]
        with pytest.raises(AliasConflictError):
            repo.update_server(a, a.model_copy(update={"alias": "b"}))

    def test_update_missing(self, repo):
        with pytest.raises(HostNotFoundError):
            repo.update_server(Server(alias="x"), Server(alias="y"))

    def test_delete(self, repo, home):
        repo.add_server(Server(alias="a", host="x", tags=["t"]))
        repo.add_server(Server(alias="b", host="y"))
        repo.delete_server(Server(alias="a"))
        assert [s.alias for s in repo.list_servers()] == ["b"]
        assert "a" not in repo.metadata.load_all()

    def test_delete_missing(self, repo):
        with pytest.raises(HostNotFoundError):
            repo.delete_server(Server(alias="nope"))

    def test_query(self, repo):
        repo.add_server(Server(alias="web", host="web.example.com", tags=["Prod"]))
        repo.add_server(Server(alias="db", host="10.0.0.2", user="postgres"))
        assert [s.alias for s in repo.list_servers("prod")] == ["web"]
        assert [s.alias for s in repo.list_servers("POSTGRES")] == ["db"]
        assert [s.alias for s in repo.list_servers("")] == ["web", "db"]

    def test_original_backup_once(self, repo, home):
        config = home / ".ssh" / "config"
        config.write_text("Host first\n    HostName x\n")
        repo.add_server(Server(alias="b", host="y"))
        repo.add_server(Server(alias="c", host="z"))

        original = config.with_name(config.name + ORIGINAL_BACKUP_SUFFIX)
        assert original.read_text() == "Host first\n    HostName x\n"
        assert len(repo.backups.list_backups()) == 2

    def test_crash_before_rename(self, home, clock, flaky_fs):
        """A write that dies before the rename leaves the old records; the next write cleans up."""
        config = home / ".ssh" / "config"
        config.write_text("Host a\n    HostName x\n")
        metadata = home / ".lazyssh" / "metadata.json"

        crashing = SSHConfigRepository(config, metadata, fs=flaky_fs(fail_rename=True), clock=clock)
        with pytest.raises(ConfigIOError):
            crashing.add_server(Server(alias="b", host="y"))

        # Simulate a temp file left behind by a process that died outright
        stale = config.with_name("config.123.tmp")
        stale.write_text("partial")

        restarted = SSHConfigRepository(config, metadata, clock=clock)
        assert [s.alias for s in restarted.list_servers()] == ["a"]

        restarted.add_server(Server(alias="b", host="y"))
        assert [s.alias for s in restarted.list_servers()] == ["a", "b"]
        assert not stale.exists()

    def test_backup_failure_aborts_write(self, home, clock, flaky_fs):
        config = home / ".ssh" / "config"
        config.write_text("Host a\n    HostName x\n")
        repo = SSHConfigRepository(
            config, home / ".lazyssh" / "metadata.json", fs=flaky_fs(fail_backup=True), clock=clock
        )
        with pytest.raises(ConfigIOError):
            repo.add_server(Server(alias="b", host="y"))
        assert config.read_text() == "Host a\n    HostName x\n"

    def test_metadata_failure_keeps_config_write(self, repo, home):
        metadata = home / ".lazyssh" / "metadata.json"
        metadata.parent.mkdir()
        metadata.write_text("{broken")
        repo.add_server(Server(alias="web", host="x", tags=["t"]))
        assert "Host web" in (home / ".ssh" / "config").read_text()

    def test_invalid_utf8(self, repo, home):
        (home / ".ssh" / "config").write_bytes(b"Host \xff\n")
        with pytest.raises(ParseError):
            repo.list_servers()

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores file permissions")
    def test_unreadable_config(self, repo, home):
        config = home / ".ssh" / "config"
        config.write_text("Host a\n")
        config.chmod(0o000)
        try:
            with pytest.raises(PermissionDeniedError):
                repo.list_servers()
        finally:
            config.chmod(0o600)

    def test_warnings_for_bad_blocks(self, repo, home):
        (home / ".ssh" / "config").write_text("Host\n    HostName x\nHost ok\n    HostName y\n")
        assert [s.alias for s in repo.list_servers()] == ["ok"]
        assert len(repo.warnings) == 1

    def test_pin_and_record(self, repo, clock):
        repo.add_server(Server(alias="web", host="x"))
        repo.set_pinned("web", True)
        repo.record_ssh("web")
        [web] = repo.list_servers()
        assert web.pinned
        assert web.ssh_count == 1
        assert web.last_seen is not None


class TestInMemoryRepository:
    def test_crud(self):
        repo = InMemoryRepository([Server(alias="a", host="x")])
        repo.add_server(Server(alias="b", host="y"))
        a = repo.list_servers("x")[0]
        repo.update_server(a, a.model_copy(update={"alias": "c"}))
        repo.delete_server(Server(alias="b"))
        assert [s.alias for s in repo.list_servers()] == ["c"]

    def test_conflicts(self):
        repo = InMemoryRepository([Server(alias="a", aliases=["a2"], host="x")])
        with pytest.raises(AliasConflictError):
            repo.add_server(Server(alias="a2", host="y"))

    def test_missing(self):
        repo = InMemoryRepository()
        with pytest.raises(HostNotFoundError):
            repo.delete_server(Server(alias="a"))
        with pytest.raises(HostNotFoundError):
            repo.set_pinned("a", True)

    def test_update_keeps_metadata(self, clock):
        repo = InMemoryRepository([Server(alias="a", host="x")], clock=clock)
        repo.record_ssh("a")
        repo.set_pinned("a", True)
        a = repo.list_servers()[0]
        repo.update_server(a, Server(alias="a", host="z", tags=["new"]))
        [updated] = repo.list_servers()
        assert updated.host == "z"
        assert updated.tags == ("new",)
        assert updated.ssh_count == 1
        assert updated.pinned

    def test_record_ssh_monotonic(self):
        future = datetime.now(UTC) + timedelta(days=1)
        repo = InMemoryRepository([Server(alias="a", last_seen=future)])
        repo.record_ssh("a")
        [a] = repo.list_servers()
        assert a.last_seen == future
        assert a.ssh_count == 1

    def test_unpin(self, clock):
        repo = InMemoryRepository([Server(alias="a")], clock=clock)
        repo.set_pinned("a", True)
        repo.set_pinned("a", False)
        assert not repo.list_servers()[0].pinned
