"""Tests for the host record model."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from lazyssh.types import Server


class TestServer:
    def test_list_input_stored_as_tuple(self):
        server = Server(alias="web", aliases=["web2"], identity_files=["~/.ssh/k"], tags=["prod"])
        assert server.aliases == ("web2",)
        assert server.identity_files == ("~/.ssh/k",)
        assert server.tags == ("prod",)

    def test_multi_valued_fields_cannot_change_in_place(self):
        server = Server(alias="web", local_forward=["8080:localhost:80"], tags=["prod"])
        with pytest.raises(AttributeError):
            server.local_forward.append("9090:localhost:90")
        with pytest.raises(AttributeError):
            server.tags.append("eu")
        assert server.local_forward == ("8080:localhost:80",)

    def test_fields_cannot_be_reassigned(self):
        server = Server(alias="web")
        with pytest.raises(ValidationError):
            server.host = "10.0.0.1"

    def test_equality_ignores_metadata(self):
        plain = Server(alias="web", host="h")
        used = Server(
            alias="web",
            host="h",
            tags=["prod"],
            ssh_count=3,
            pinned_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert plain == used
        assert used.pinned
        assert plain != Server(alias="web", host="other")
