"""matchcast: live match and commentary backend.

HTTP endpoints for matches and time-stamped commentary, plus a WebSocket
broadcast hub that pushes newly created matches and commentary to
connected observers, keyed by match.
"""

__version__ = "0.1.0"
