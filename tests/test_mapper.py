"""Tests for mapping host blocks to records and back."""

import pytest

from lazyssh.errors import HostNotFoundError
from lazyssh.sshconfig import (
    ConfigDocument,
    append_server,
    find_block,
    parse_config,
    remove_server,
    servers_from_document,
    update_server,
)
from lazyssh.sshconfig.mapper import build_block, to_tilde_path
from lazyssh.types import Server


def render_after(text: str, mutate) -> str:
    doc = parse_config(text).document
    mutate(doc)
    return doc.render()


class TestBlockToServer:
    def test_basic_fields(self):
        doc = parse_config(
            "Host web web2\n"
            "    HostName 10.0.0.1\n"
            "    User deploy\n"
            "    Port 2222\n"
            "    IdentityFile ~/.ssh/a\n"
            "    IdentityFile ~/.ssh/b\n"
        ).document
        [server] = servers_from_document(doc)
        assert server.alias == "web"
        assert server.aliases == ("web2",)
        assert server.host == "10.0.0.1"
        assert server.user == "deploy"
        assert server.port == 2222
        assert server.identity_files == ("~/.ssh/a", "~/.ssh/b")

    def test_keys_are_case_insensitive(self):
        doc = parse_config("Host a\n  hostname x.example\n  STRICTHOSTKEYCHECKING no\n").document
        [server] = servers_from_document(doc)
        assert server.host == "x.example"
        assert server.strict_host_key_checking == "no"

    def test_first_value_wins(self):
        doc = parse_config("Host a\n  User first\n  User second\n").document
        assert servers_from_document(doc)[0].user == "first"

    def test_default_port(self):
        doc = parse_config("Host a\n  HostName x\n").document
        assert servers_from_document(doc)[0].port == 22

    def test_wildcards_and_match_skipped(self):
        doc = parse_config(
            "Host *\n  User all\nMatch host x\n  User m\nHost a\n  HostName x\n"
        ).document
        assert [s.alias for s in servers_from_document(doc)] == ["a"]

    def test_unknown_keys_ignored(self):
        doc = parse_config("Host a\n  HostName x\n  SomeFutureOption on\n").document
        assert servers_from_document(doc)[0].host == "x"


class TestAppend:
    def test_add_to_empty_file(self):
        """A new record in an empty registry writes a block without the default port."""
        doc = ConfigDocument()
        server = Server(
            alias="web",
            host="10.0.0.1",
            user="ubuntu",
            port=22,
            identity_files=["~/.ssh/id_ed25519"],
        )
        append_server(doc, server)
        assert doc.render() == (
            "Host web\n"
            "    HostName 10.0.0.1\n"
            "    User ubuntu\n"
            "    IdentityFile ~/.ssh/id_ed25519\n"
        )

    def test_separator_line_before_new_block(self):
        text = "Host a\n    HostName x"
        out = render_after(text, lambda d: append_server(d, Server(alias="b", host="y")))
        assert out == "Host a\n    HostName x\n\nHost b\n    HostName y\n"

    def test_no_double_blank_line(self):
        text = "Host a\n    HostName x\n\n"
        out = render_after(text, lambda d: append_server(d, Server(alias="b", host="y")))
        assert out == "Host a\n    HostName x\n\nHost b\n    HostName y\n"

    def test_category_order(self):
        server = Server(
            alias="a",
            host="x",
            log_level="DEBUG",
            local_forward=["8080:localhost:80"],
            proxy_jump="bastion",
            user="u",
        )
        keys = [line.key for line in build_block(server).lines]
        assert keys == ["HostName", "User", "ProxyJump", "LocalForward", "LogLevel"]

    def test_identity_files_rewritten_to_tilde(self):
        server = Server(alias="a", host="x", identity_files=["/home/me/.ssh/id", "/etc/key"])
        values = [line.value for line in build_block(server, home="/home/me").lines]
        assert values == ["x", "~/.ssh/id", "/etc/key"]


class TestUpdate:
    def test_rename_changes_header_only(self):
        text = "# mine\nHost web\n    HostName 10.0.0.1\n"
        old = Server(alias="web", host="10.0.0.1")
        new = Server(alias="web-prod", host="10.0.0.1")
        out = render_after(text, lambda d: update_server(d, old.alias, new))
        assert out == "# mine\nHost web-prod\n    HostName 10.0.0.1\n"

    def test_multi_value_replacement(self):
        text = (
            "Host web\n"
            "    HostName 10.0.0.1\n"
            "    LocalForward 8080:localhost:80\n"
            "    User deploy\n"
        )
        new = Server(
            alias="web",
            host="10.0.0.1",
            user="deploy",
            local_forward=["8081:localhost:81", "8082:localhost:82"],
        )
        out = render_after(text, lambda d: update_server(d, "web", new))
        assert out == (
            "Host web\n"
            "    HostName 10.0.0.1\n"
            "    LocalForward 8081:localhost:81\n"
            "    LocalForward 8082:localhost:82\n"
            "    User deploy\n"
        )
        assert "8080" not in out

    def test_untouched_lines_keep_formatting(self):
        text = (
            "Host web\n"
            "\thostname=10.0.0.1   \n"
            "\t# keep me\n"
            "\tUnknownThing yes\n"
            "\tUser deploy\n"
        )
        new = Server(alias="web", host="10.0.0.1", user="admin")
        out = render_after(text, lambda d: update_server(d, "web", new))
        assert out == (
            "Host web\n"
            "\thostname=10.0.0.1   \n"
            "\t# keep me\n"
            "\tUnknownThing yes\n"
            "\tUser admin\n"
        )

    def test_new_option_uses_block_indent(self):
        text = "Host web\n  HostName x\n\nHost other\n  HostName y\n"
        new = Server(alias="web", host="x", user="u")
        out = render_after(text, lambda d: update_server(d, "web", new))
        assert out == "Host web\n  HostName x\n  User u\n\nHost other\n  HostName y\n"

    def test_cleared_field_removes_line(self):
        text = "Host web\n    HostName x\n    User deploy\n"
        out = render_after(text, lambda d: update_server(d, "web", Server(alias="web", host="x")))
        assert out == "Host web\n    HostName x\n"

    def test_explicit_default_port_kept(self):
        text = "Host web\n    HostName x\n    Port 22\n"
        out = render_after(text, lambda d: update_server(d, "web", Server(alias="web", host="x")))
        assert out == text

    def test_wildcard_patterns_survive_rename(self):
        text = "Host web web-*\n    HostName x\n"
        new = Server(alias="site", host="x")
        out = render_after(text, lambda d: update_server(d, "web", new))
        assert out == "Host site web-*\n    HostName x\n"

    def test_unknown_alias(self):
        doc = parse_config("Host a\n  HostName x\n").document
        with pytest.raises(HostNotFoundError):
            update_server(doc, "missing", Server(alias="missing"))

    def test_round_trip_equal(self):
        server = Server(
            alias="db",
            aliases=["db.internal"],
            host="10.1.1.1",
            user="pg",
            port=5422,
            identity_files=["~/.ssh/db"],
            local_forward=["5432:localhost:5432"],
            send_env=["LANG", "LC_*"],
            compression="yes",
            server_alive_interval="30",
        )
        doc = ConfigDocument()
        append_server(doc, server)
        [decoded] = servers_from_document(parse_config(doc.render()).document)
        assert decoded == server


class TestRemove:
    def test_remove_block(self):
        text = "Host a\n  HostName x\nHost b\n  HostName y\n"
        out = render_after(text, lambda d: remove_server(d, "a"))
        assert out == "Host b\n  HostName y\n"

    def test_remove_unknown(self):
        doc = parse_config("Host a\n").document
        with pytest.raises(HostNotFoundError):
            remove_server(doc, "b")

    def test_find_by_secondary_alias(self):
        doc = parse_config("Host a b\n  HostName x\n").document
        assert find_block(doc, "b") is doc.blocks[0]


class TestTildePath:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/home/me/.ssh/id", "~/.ssh/id"),
            ("/home/me", "~"),
            ("/home/meadow/.ssh/id", "/home/meadow/.ssh/id"),
            ("~/.ssh/id", "~/.ssh/id"),
            ("", ""),
        ],
    )
    def test_rewrite(self, path, expected):
        assert to_tilde_path(path, home="/home/me") == expected
