"""Real-time infrastructure: in-process WebSocket broadcast hub.

Events flow one way:
1. HTTP write succeeds → route handler calls BroadcastHub.publish_*
2. Hub resolves the topic's subscribers and enqueues one frame per
   connection into its bounded outbox
3. A writer task per connection drains the outbox into the socket

Slow or dead consumers are dropped, never waited on.
"""
