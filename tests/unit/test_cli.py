"""Unit tests for the bifrost command-line entrypoint."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from bifrost.cli import main
from bifrost.errors import NetworkError


class TestGetCommand:
    def test_prints_body_as_json(self) -> None:
        mock_get = AsyncMock(return_value={"query": {"results": {"LSD": {}}}})
        runner = CliRunner()

        with patch("bifrost.cli._get", mock_get):
            result = runner.invoke(main, ["get", "query=[[Name::LSD]]", "limit=5"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"query": {"results": {"LSD": {}}}}
        parameters = mock_get.await_args.args[1]
        assert parameters == {"query": "[[Name::LSD]]", "limit": "5"}

    def test_value_may_contain_equals_sign(self) -> None:
        mock_get = AsyncMock(return_value={})
        runner = CliRunner()

        with patch("bifrost.cli._get", mock_get):
            result = runner.invoke(main, ["get", "query=[[Dose::>=10]]"])

        assert result.exit_code == 0
        assert mock_get.await_args.args[1] == {"query": "[[Dose::>=10]]"}

    def test_compact_output(self) -> None:
        runner = CliRunner()

        with patch("bifrost.cli._get", AsyncMock(return_value={"a": 1})):
            result = runner.invoke(main, ["get", "--compact", "query=A"])

        assert result.output.strip() == '{"a": 1}'

    def test_malformed_parameter_is_usage_error(self) -> None:
        mock_get = AsyncMock()
        runner = CliRunner()

        with patch("bifrost.cli._get", mock_get):
            result = runner.invoke(main, ["get", "no-equals-sign"])

        assert result.exit_code == 2
        mock_get.assert_not_awaited()

    def test_fetch_error_exits_nonzero_with_envelope(self) -> None:
        mock_get = AsyncMock(side_effect=NetworkError("Connection refused"))
        runner = CliRunner()

        with patch("bifrost.cli._get", mock_get):
            result = runner.invoke(main, ["get", "query=A"])

        assert result.exit_code == 1
        assert "NETWORK_ERROR" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "bifrost" in result.output
