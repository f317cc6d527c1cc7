"""Tests for the command-line entry point."""

import json

import pytest

from jobquota.core.config import Settings
from main import cmd_quota, cmd_search, parse_args


def _settings(tmp_path) -> Settings:  # type: ignore[no-untyped-def]
    return Settings.model_validate({"database": {"path": str(tmp_path / "cli.db")}})


class TestParseArgs:
    def test_search_defaults(self) -> None:
        args = parse_args(["search", "--user", "u1", "--role", "python developer"])
        assert args.command == "search"
        assert args.job_type == ""
        assert args.config == "config/settings.yaml"
        assert args.verbose is False

    def test_serve_port(self) -> None:
        args = parse_args(["serve", "--port", "9000"])
        assert args.port == 9000
        assert args.host == "127.0.0.1"

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


class TestCommands:
    async def test_quota(self, tmp_path, capsys) -> None:  # type: ignore[no-untyped-def]
        code = await cmd_quota(parse_args(["quota", "--user", "u1"]), _settings(tmp_path))
        assert code == 0
        assert "0/3 searches used, 3 remaining" in capsys.readouterr().out

    async def test_search_without_key_fails(self, tmp_path, capsys, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.delenv("RAPIDAPI_KEY", raising=False)
        args = parse_args(["search", "--user", "u1", "--role", "python developer"])
        code = await cmd_search(args, _settings(tmp_path))
        assert code == 1
        payload = json.loads(capsys.readouterr().err)
        assert payload == {"error": "Job search failed", "message": "RapidAPI key not configured"}
