from __future__ import annotations

from datetime import datetime

import pytest

from parsekit import cloud
from parsekit.cloud import ParseConfig
from parsekit.errors import ObjectStateError
from parsekit.models.object import ParseObject


class TestCloudRun:
    """Tests for cloud.run()."""

    def test_run_posts_params_and_decodes_result(self, client, fake_http) -> None:
        fake_http.queue_json({"result": {"when": {"__type": "Date", "iso": "2015-01-02T00:00:00.000Z"}}})

        result = cloud.run("averageStars", {"movie": "The Matrix"})

        assert fake_http.last.method == "POST"
        assert fake_http.last.path == "/1/functions/averageStars"
        assert fake_http.last.json == {"movie": "The Matrix"}
        assert isinstance(result["when"], datetime)

    def test_run_without_params(self, client, fake_http) -> None:
        fake_http.queue_json({"result": "Hello world!"})
        assert cloud.run("hello") == "Hello world!"
        assert fake_http.last.body == b"{}"

    def test_objects_not_allowed_in_params(self, client) -> None:
        with pytest.raises(ObjectStateError):
            cloud.run("hello", {"obj": ParseObject("A", "abc")})


class TestParseConfig:
    """Tests for ParseConfig."""

    def test_fetch(self, client, fake_http) -> None:
        fake_http.queue_json({"params": {"welcomeMessage": "<b>Hi</b>", "winningNumber": 42}})

        config = ParseConfig.fetch()

        assert fake_http.last.method == "GET"
        assert fake_http.last.path == "/1/config"
        assert config.get("winningNumber") == 42
        assert config.get("missing", "default") == "default"
        assert config.escape("welcomeMessage") == "&lt;b&gt;Hi&lt;/b&gt;"
        assert sorted(config.keys()) == ["welcomeMessage", "winningNumber"]
