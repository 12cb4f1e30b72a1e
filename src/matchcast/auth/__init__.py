"""Authentication for WebSocket observers.

Observers present a JWT as a ?token= query param; the handshake gate
verifies it before the socket is accepted.
"""
