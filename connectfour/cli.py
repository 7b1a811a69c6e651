"""
ConnectFour CLI - Command-line interface for the engine.

Usage:
    connectfour serve [--host HOST] [--port PORT]   Run the HTTP API
    connectfour play <player1> <player2>            Hot-seat game in the terminal
"""

import argparse
import asyncio
import logging
import sys
import threading

from .config import Settings
from .errors import TransportError


def main(argv=None):
    """Main CLI entry point."""
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="ConnectFour - Two-player connection game engine",
        prog="connectfour",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a hot-seat game in the terminal")
    play_parser.add_argument("player1", help="Name of the first player")
    play_parser.add_argument("player2", help="Name of the second player")
    play_parser.add_argument(
        "--timeout", type=float, default=settings.move_timeout,
        help="Seconds each player has to move",
    )
    play_parser.add_argument("--seed", type=int, default=None, help="Seed for the first player pick")
    play_parser.add_argument("--ascii", action="store_true", help="Draw the board with ASCII")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "play":
        cmd_play(args, settings)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "connectfour.api.app:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


def cmd_play(args, settings):
    """Play a hot-seat game reading columns from stdin."""
    from dataclasses import replace

    settings = replace(settings, move_timeout=args.timeout)
    try:
        asyncio.run(_play(args, settings))
    except KeyboardInterrupt:
        print("\nGame abandoned.")
        sys.exit(130)
    except TransportError as e:
        print(f"Game interrupted: {e}", file=sys.stderr)
        sys.exit(1)


async def _play(args, settings):
    from .session import SessionManager, Player, ReactionCollector, StreamSink
    from .session.display import ASCII, EMOJIS

    loop = asyncio.get_running_loop()
    manager = SessionManager(settings=settings)
    collector = ReactionCollector(columns=settings.columns)
    session = manager.create_session(
        key="terminal",
        challenger=Player("player1", args.player1),
        challengee=Player("player2", args.player2),
        input_source=collector,
        sink=StreamSink(symbols=ASCII if args.ascii else EMOJIS),
        seed=args.seed,
    )

    def feed(line):
        # Both players share the keyboard: a line belongs to whoever is up
        actor = collector.waiting_for
        if actor is None:
            return
        if not collector.submit(actor, line):
            print(f"Pick a column between 1 and {settings.columns}.", file=sys.stderr)

    def read_stdin():
        for line in sys.stdin:
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(feed, line.strip())
        if not loop.is_closed():
            loop.call_soon_threadsafe(session.dispose, "input closed")

    print(f"Type a column number (1-{settings.columns}) and press Enter.")
    threading.Thread(target=read_stdin, name="stdin-reader", daemon=True).start()
    return await session.start()


if __name__ == "__main__":
    main()
