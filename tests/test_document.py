"""Tests for the lossless config document."""

from lazyssh.sshconfig import Line, parse_config


class TestLine:
    def test_space_separated(self):
        line = Line.parse("    HostName example.com")
        assert line.key == "HostName"
        assert line.value == "example.com"

    def test_equals_separated(self):
        line = Line.parse("Port=2222")
        assert line.key == "Port"
        assert line.value == "2222"

    def test_equals_with_spaces(self):
        line = Line.parse("  User = alice  ")
        assert line.key == "User"
        assert line.value == "alice"

    def test_comment_and_blank(self):
        assert not Line.parse("# a comment").is_option
        assert not Line.parse("   ").is_option
        assert not Line.parse("").is_option

    def test_value_keeps_inner_spaces(self):
        line = Line.parse('ProxyCommand ssh -W %h:%p bastion')
        assert line.value == "ssh -W %h:%p bastion"

    def test_trailing_comment_dropped_from_value(self):
        line = Line.parse("    User bob # deploy account")
        assert line.value == "bob"
        assert line.raw == "    User bob # deploy account"

    def test_hash_inside_word_or_quotes_kept(self):
        assert Line.parse("ControlPath ~/.ssh/cm#%h").value == "~/.ssh/cm#%h"
        assert Line.parse('LocalCommand echo "a # b"').value == 'echo "a # b"'


class TestParseConfig:
    def test_empty(self):
        result = parse_config("")
        assert result.document.blocks == []
        assert result.document.render() == ""

    def test_round_trip_is_byte_exact(self):
        text = (
            "# global settings\n"
            "Include ~/.ssh/config.d/*\n"
            "\n"
            "Host web web-alt\n"
            "\tHostName web.example.com\n"
            "\tUser deploy  # trailing note\n"
            "\n"
            "Match host *.internal\n"
            "    ForwardAgent yes\n"
            "\n"
            "Host *\n"
            "    ServerAliveInterval 60\n"
        )
        assert parse_config(text).document.render() == text

    def test_missing_trailing_newline_preserved(self):
        text = "Host a\n    HostName a.example.com"
        assert parse_config(text).document.render() == text

    def test_blocks(self):
        text = "Host a b\n  HostName x\nMatch all\n  User y\nHost *\n  Port 22\n"
        doc = parse_config(text).document
        kinds = [b.kind for b in doc.blocks]
        assert kinds == ["host", "match", "host"]
        assert doc.blocks[0].patterns == ["a", "b"]
        assert doc.blocks[0].concrete_patterns == ["a", "b"]
        assert doc.blocks[2].concrete_patterns == []

    def test_match_block_has_no_concrete_patterns(self):
        doc = parse_config("Match host foo\n  User bar\n").document
        assert doc.blocks[0].concrete_patterns == []

    def test_host_without_patterns_warns(self):
        result = parse_config("Host\n  HostName x\nHost ok\n  HostName y\n")
        assert len(result.warnings) == 1
        assert "line 1" in result.warnings[0]
        assert [b.kind for b in result.document.blocks] == ["opaque", "host"]
        assert result.document.render() == "Host\n  HostName x\nHost ok\n  HostName y\n"

    def test_negated_and_wildcard_patterns(self):
        doc = parse_config("Host prod !prod-db db?\n  User x\n").document
        assert doc.blocks[0].concrete_patterns == ["prod"]

    def test_indent_detection(self):
        doc = parse_config("Host a\n\tHostName x\n").document
        assert doc.blocks[0].indent() == "\t"
        doc = parse_config("Host a\n").document
        assert doc.blocks[0].indent() == "    "

    def test_host_trailing_comment(self):
        text = "Host web # production box\n    User bob\n"
        result = parse_config(text)
        block = result.document.blocks[0]
        assert block.patterns == ["web"]
        assert result.document.render() == text
