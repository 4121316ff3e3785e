import json
import logging
import queue
import threading

from django.apps import apps
from django.core.serializers.json import DjangoJSONEncoder


logger = logging.getLogger(__name__)

_CLOSED = object()


class BroadcastHub:
    """
    In-process fan-out of change events to connected listeners.

    Each subscriber owns a bounded queue; a full queue drops the event for that
    subscriber only. Publishing never raises.
    """

    def __init__(self, max_queue_size=100):
        self.max_queue_size = max_queue_size
        self._subscribers = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def subscribe(self):
        subscriber = queue.Queue(maxsize=self.max_queue_size)
        with self._lock:
            if self._closed:
                subscriber.put_nowait(_CLOSED)
            else:
                self._subscribers.add(subscriber)
        return subscriber

    def unsubscribe(self, subscriber):
        with self._lock:
            self._subscribers.discard(subscriber)

    def publish(self, event, payload):
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber.put_nowait((event, payload))
                delivered += 1
            except queue.Full:
                logger.warning('Dropping %s event for a slow subscriber', event)
            except Exception:
                logger.exception('Broadcast of %s failed', event)
        return delivered

    def close(self):
        with self._lock:
            self._closed = True
            subscribers = list(self._subscribers)
            self._subscribers.clear()

        for subscriber in subscribers:
            try:
                subscriber.put_nowait(_CLOSED)
            except queue.Full:
                # The stream notices the closed hub on its next heartbeat.
                pass

    @property
    def closed(self):
        return self._closed


def format_sse(event, payload):
    data = json.dumps(payload, cls=DjangoJSONEncoder)
    return f'event: {event}\ndata: {data}\n\n'


def event_stream(hub, subscriber, heartbeat_seconds=15):
    """Yield server-sent event frames until the hub closes or the client goes away."""
    try:
        yield ': connected\n\n'
        while True:
            try:
                item = subscriber.get(timeout=heartbeat_seconds)
            except queue.Empty:
                if hub.closed:
                    break
                yield ': keep-alive\n\n'
                continue

            if item is _CLOSED:
                break
            event, payload = item
            yield format_sse(event, payload)
    finally:
        hub.unsubscribe(subscriber)


def get_hub():
    return apps.get_app_config('attendance').hub
