"""Dependencies that hand out the app's realtime components.

Learn: The registry, router, cache and notifier are built once in
create_app() and hung on app.state. Handlers receive them through these
Depends() providers, so tests can build an app with their own instances.
"""

from fastapi import Request

from stallpos.events.notifier import EventNotifier
from stallpos.realtime.cache import DatasetCache


def get_notifier(request: Request) -> EventNotifier:
    return request.app.state.notifier


def get_cache(request: Request) -> DatasetCache:
    return request.app.state.cache
