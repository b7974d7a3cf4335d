import logging
import redis
from typing import Optional

from .events import Event

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "registration:announcements"


def connect(redis_url: str) -> Optional[redis.Redis]:
    """Create a Redis client, or None when no URL is configured."""
    if not redis_url:
        return None
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30
    )


class Announcer:
    """
    Publishes ledger events for live dashboards.

    Announcements happen after the ledger commit, so a Redis failure is
    logged and never changes the outcome of the operation that triggered it.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, channel: str = DEFAULT_CHANNEL):
        self.redis = redis_client
        self.channel = channel

    def publish(self, event: Event) -> bool:
        if self.redis is None:
            logger.debug(f"Local mode: {event.type.value} for {event.subject} not published")
            return False
        try:
            self.redis.publish(self.channel, event.to_json())
            return True
        except redis.exceptions.RedisError as e:
            logger.warning(f"Failed to publish {event.type.value} for {event.subject}: {e}")
            return False

    def listen(self, redis_url: str, timeout: int = 30):
        """
        Yield raw event payloads from the channel, or None on each idle timeout.

        Uses a dedicated connection without a socket timeout so long-lived
        streams survive quiet periods.
        """
        stream_redis = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=None,
            socket_connect_timeout=5
        )
        pubsub = stream_redis.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(self.channel)
        try:
            while True:
                message = pubsub.get_message(timeout=timeout)
                if message and message['type'] == 'message':
                    yield message['data']
                else:
                    yield None
        finally:
            pubsub.close()
