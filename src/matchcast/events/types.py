"""Event type constants.

Centralizing event types as constants prevents typos and makes it easy
to discover every event the hub can push. The envelope type set is
closed: publishing anything else is a programming error.
"""

MATCH_CREATED = "match.created"
COMMENTARY_CREATED = "commentary.created"

EVENT_TYPES = frozenset({MATCH_CREATED, COMMENTARY_CREATED})

# Reserved topic for events every observer of the match list cares about.
GLOBAL_TOPIC = "global"
