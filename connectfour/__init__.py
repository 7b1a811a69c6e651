"""
ConnectFour - Two-player connection game engine.

A small engine for running four-in-a-row games between two players
whose moves arrive asynchronously. It provides:
- Board state and incremental win detection
- Turn arbitration with a per-move timeout
- Session lifecycle with one running game per key
- An HTTP API and a terminal CLI around the sessions
"""

__version__ = "0.1.0"
