"""Tests for the console runner."""

from __future__ import annotations

from archipelago_client.__main__ import _build_parser, _merge_options, main
from archipelago_client.address import StartupOptions


class TestMergeOptions:
    def test_query_supplies_defaults(self):
        args = _build_parser().parse_args(
            ["--query", "server=archipelago.gg&player=Alice&hideui=1"]
        )
        assert _merge_options(args) == StartupOptions(
            server="archipelago.gg", player="Alice", password=None, hide_ui=True
        )

    def test_flags_override_query(self):
        args = _build_parser().parse_args(
            [
                "--query",
                "server=a.example&player=Alice&password=one",
                "--server",
                "b.example:1234",
                "--password",
                "",
            ]
        )
        options = _merge_options(args)
        assert options.server == "b.example:1234"
        assert options.player == "Alice"
        assert options.password == ""


def test_main_requires_server_and_player(capsys):
    assert main(["--player", "Alice"]) == 2
    assert "A server and player name are required to connect." in capsys.readouterr().out
