"""Push notifications to connected clients.

Delivery is best-effort: an event with no connected recipient, a full
subscriber queue, or a Redis failure is logged and dropped. There is no
outbox and no replay; clients that missed an event poll the status
endpoint.

With Redis configured, every process publishes to one channel and the API
process relays what it receives to its local subscribers, so events
emitted by Celery workers reach clients connected to the API. The relay
resubscribes with back-off when the connection drops.
"""

import asyncio
import enum
import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional, Set

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

CHANNEL = "notifications"
TARGET_TYPES = ("user", "company", "role", "broadcast")

RELAY_RETRY_INITIAL = 1.0
RELAY_RETRY_MAX = 30.0


class Delivery(str, enum.Enum):
    """Outcome of a send.

    ``PUBLISHED`` means the event reached Redis; the relays that received
    it decide locally whether anyone is connected, so recipients are unknown.
    """

    DELIVERED = "delivered"
    PUBLISHED = "published"
    DROPPED = "dropped"


class Subscription:
    """One connected client. Iterate to receive its events."""

    def __init__(self, user_id: str, company_id: Optional[str], role: Optional[str], maxsize: int = 100):
        self.user_id = user_id
        self.company_id = company_id
        self.role = role
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def matches(self, target_type: str, target: Optional[str], scope: Optional[str] = None) -> bool:
        """``scope`` limits any target to members of that company."""
        if scope is not None and self.company_id != scope:
            return False
        if target_type == "broadcast":
            return True
        if target_type == "user":
            return self.user_id == target
        if target_type == "company":
            return self.company_id is not None and self.company_id == target
        if target_type == "role":
            return self.role == target
        return False

    async def get(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Next event, or None when ``timeout`` elapses first."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        return self

    async def __anext__(self) -> Dict[str, Any]:
        return await self.queue.get()


class NotificationDispatcher:
    def __init__(self, redis_client: Optional[Redis] = None):
        self.redis_client = redis_client
        self._subscribers: Set[Subscription] = set()
        self._relay_task: Optional[asyncio.Task] = None
        self._relay_connected = False

    # ===== SUBSCRIBERS =====
    def subscribe(self, user_id: str, company_id: Optional[str] = None, role: Optional[str] = None) -> Subscription:
        subscription = Subscription(user_id, company_id, role)
        self._subscribers.add(subscription)
        logger.info(f"[notifications] Client connected: user {user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.discard(subscription)
        logger.info(f"[notifications] Client disconnected: user {subscription.user_id}")

    def connected_count(self) -> int:
        return len(self._subscribers)

    def _deliver_local(self, message: Dict[str, Any]) -> int:
        delivered = 0
        for subscription in list(self._subscribers):
            if not subscription.matches(message["type"], message.get("target"), message.get("scope")):
                continue
            try:
                subscription.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    f"[notifications] Queue full for user {subscription.user_id}, dropping {message['event']}"
                )
        return delivered

    # ===== SENDING =====
    async def send(
        self,
        target_type: str,
        target: Optional[str],
        event: str,
        data: Dict[str, Any],
        scope: Optional[str] = None,
    ) -> Delivery:
        """Send one event, optionally only to members of company ``scope``."""
        if target_type not in TARGET_TYPES:
            raise ValueError(f"Unknown notification target type: {target_type}")

        message = {
            "type": target_type,
            "target": target,
            "event": event,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if scope is not None:
            message["scope"] = scope

        if self.redis_client is None:
            if self._deliver_local(message):
                return Delivery.DELIVERED
            logger.debug(f"[notifications] No recipient for {event} ({target_type}:{target})")
            return Delivery.DROPPED

        try:
            await self.redis_client.publish(CHANNEL, json.dumps(message, default=str))
            return Delivery.PUBLISHED
        except Exception as e:
            logger.warning(f"[notifications] Publish failed, dropping {event}: {e}")
            return Delivery.DROPPED

    async def send_to_user(self, user_id: str, event: str, data: Dict[str, Any]) -> Delivery:
        return await self.send("user", user_id, event, data)

    async def send_to_company(self, company_id: str, event: str, data: Dict[str, Any]) -> Delivery:
        return await self.send("company", company_id, event, data)

    async def send_to_role(self, role: str, event: str, data: Dict[str, Any]) -> Delivery:
        return await self.send("role", role, event, data)

    async def broadcast(self, event: str, data: Dict[str, Any]) -> Delivery:
        return await self.send("broadcast", None, event, data)

    # ===== RELAY =====
    @property
    def relay_state(self) -> str:
        """One of ``off``, ``running``, ``reconnecting`` or ``stopped``."""
        if self._relay_task is None:
            return "off"
        if self._relay_task.done():
            return "stopped"
        return "running" if self._relay_connected else "reconnecting"

    async def start_relay(self) -> None:
        """Fan Redis channel messages out to local subscribers (API process only)."""
        if self.redis_client is None or self._relay_task is not None:
            return
        self._relay_task = asyncio.create_task(self._relay(), name="notification-relay")

    async def _relay(self) -> None:
        delay = RELAY_RETRY_INITIAL
        while True:
            pubsub = self.redis_client.pubsub()
            try:
                await pubsub.subscribe(CHANNEL)
                logger.info(f"[notifications] Relay subscribed to '{CHANNEL}'")
                self._relay_connected = True
                delay = RELAY_RETRY_INITIAL
                async for raw in pubsub.listen():
                    self._relay_message(raw)
                logger.warning("[notifications] Relay connection closed")
            except Exception as e:
                logger.warning(f"[notifications] Relay lost connection: {e}")
            finally:
                self._relay_connected = False
                try:
                    await pubsub.aclose()
                except Exception as e:
                    logger.debug(f"[notifications] Relay close failed: {e}")

            logger.info(f"[notifications] Relay reconnecting in {delay:.0f}s")
            await asyncio.sleep(delay)
            delay = min(delay * 2, RELAY_RETRY_MAX)

    def _relay_message(self, raw: Dict[str, Any]) -> None:
        if raw["type"] != "message":
            return
        data = raw["data"]
        if isinstance(data, bytes):
            data = data.decode()
        try:
            self._deliver_local(json.loads(data))
        except (ValueError, KeyError) as e:
            logger.warning(f"[notifications] Ignoring malformed message: {e}")

    async def stop_relay(self) -> None:
        if self._relay_task is None:
            return
        self._relay_task.cancel()
        try:
            await self._relay_task
        except asyncio.CancelledError:
            pass
        self._relay_task = None
        self._relay_connected = False


__all__ = [
    "NotificationDispatcher",
    "Subscription",
    "Delivery",
    "CHANNEL",
    "TARGET_TYPES",
]
