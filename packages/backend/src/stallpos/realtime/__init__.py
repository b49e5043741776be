"""Real-time infrastructure — connections, rooms, broadcast, dataset cache.

Learn: Events flow one way:
1. A mutation (HTTP handler or WebSocket message) calls the EventNotifier
2. The notifier invalidates cached datasets and asks the BroadcastRouter
   to send the event
3. The router resolves recipients through the ConnectionRegistry and hands
   each frame to that connection's transport

All of it lives in one process and one event loop. Instances are built in
main.create_app() and reached through app.state, never through globals.
"""
