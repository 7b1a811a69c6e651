"""
Tests for the command-line interface.
"""

import argparse

import pytest

from .. import cli
from ..config import Settings
from ..errors import TransportError


class TestPlayCommand:
    """Tests for cmd_play exit codes."""

    def play_args(self):
        return argparse.Namespace(
            player1="Alice", player2="Bob", timeout=5.0, seed=None, ascii=True,
        )

    def test_transport_error_exits_with_status_1(self, monkeypatch, capsys):
        async def broken_game(args, settings):
            raise TransportError("terminal went away")

        monkeypatch.setattr(cli, "_play", broken_game)

        with pytest.raises(SystemExit) as excinfo:
            cli.cmd_play(self.play_args(), Settings())

        assert excinfo.value.code == 1
        assert "terminal went away" in capsys.readouterr().err

    def test_finished_game_exits_normally(self, monkeypatch):
        seen = {}

        async def quick_game(args, settings):
            seen["timeout"] = settings.move_timeout

        monkeypatch.setattr(cli, "_play", quick_game)

        cli.cmd_play(self.play_args(), Settings())
        assert seen["timeout"] == 5.0
