"""
Outbound Queue - per-role buffers between senders and their targets.

One photo lane (camera -> controller) and one command lane per device role
(controller -> camera, controller -> actuator). Lanes are FIFO and bounded;
when a lane is full the overflow policy decides whether the oldest item is
dropped or the new one is rejected.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, Generic, Iterable, List, TypeVar, TYPE_CHECKING

from device_hub.core.logging_utils import get_module_logger

from .connection import FrameKind
from .roles import DEVICE_ROLES, Role

if TYPE_CHECKING:
    from .connection import Connection

logger = get_module_logger("OutboundQueue")

T = TypeVar("T")

DEFAULT_PHOTO_QUEUE_LIMIT = 50
DEFAULT_COMMAND_QUEUE_LIMIT = 100


class OverflowPolicy(Enum):
    DROP_OLDEST = "drop_oldest"
    REJECT_NEW = "reject_new"

    @classmethod
    def parse(cls, value: str) -> "OverflowPolicy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown overflow policy '{value}' (expected one of: "
                f"{', '.join(policy.value for policy in cls)})"
            ) from None


class BoundedLane(Generic[T]):
    """A FIFO with a size limit (``limit <= 0`` means unbounded)."""

    def __init__(self, name: str, limit: int, policy: OverflowPolicy):
        self.name = name
        self.limit = limit
        self.policy = policy
        self.dropped = 0
        self._items: Deque[T] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def items(self) -> List[T]:
        return list(self._items)

    def _full(self) -> bool:
        return self.limit > 0 and len(self._items) >= self.limit

    def append(self, item: T) -> bool:
        """Append at the tail. Returns False if the item was rejected."""
        if self._full():
            self.dropped += 1
            if self.policy is OverflowPolicy.REJECT_NEW:
                logger.warning("%s queue full (%d), rejecting new item", self.name, self.limit)
                return False
            self._items.popleft()
            logger.warning("%s queue full (%d), dropped oldest item", self.name, self.limit)
        self._items.append(item)
        return True

    def popleft(self) -> T:
        return self._items.popleft()

    def push_front(self, items: Iterable[T]) -> None:
        """Put ``items`` back at the head, keeping their relative order."""
        for item in reversed(list(items)):
            self._items.appendleft(item)
        while self.limit > 0 and len(self._items) > self.limit:
            self.dropped += 1
            if self.policy is OverflowPolicy.REJECT_NEW:
                self._items.pop()
            else:
                self._items.popleft()
            logger.warning("%s queue over limit after requeue, dropped one item", self.name)

    def clear(self) -> None:
        self._items.clear()


class OutboundQueue:
    """Buffers photos for the controller and commands for each device.

    Every photo and device command passes through its lane, even when the
    target is connected, so delivery order is always lane order. A lane
    drains into its connection only as far as the connection's backlog
    room allows. A role can be held while an evicted predecessor still has
    a photo or command mid-write; nothing drains to the role until the
    predecessor is gone and its leftovers are back at the head.
    """

    def __init__(
        self,
        photo_limit: int = DEFAULT_PHOTO_QUEUE_LIMIT,
        command_limit: int = DEFAULT_COMMAND_QUEUE_LIMIT,
        policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
    ):
        self.photos: BoundedLane[bytes] = BoundedLane("photo", photo_limit, policy)
        self.commands: Dict[Role, BoundedLane[Dict[str, Any]]] = {
            role: BoundedLane(f"{role.value} command", command_limit, policy)
            for role in DEVICE_ROLES
        }
        self._holds: Dict[Role, str] = {}

    def _command_lane(self, role: Role) -> BoundedLane[Dict[str, Any]]:
        lane = self.commands.get(role)
        if lane is None:
            raise ValueError(f"No command queue for role {role.value}")
        return lane

    # ------------------------------------------------------------------
    # Enqueue

    def enqueue_photo(self, blob: bytes) -> bool:
        accepted = self.photos.append(bytes(blob))
        if accepted:
            logger.debug("Photo queued (%d bytes, queue: %d)", len(blob), len(self.photos))
        return accepted

    def enqueue_command(self, role: Role, envelope: Dict[str, Any]) -> bool:
        lane = self._command_lane(role)
        accepted = lane.append(envelope)
        if accepted:
            logger.debug("%s queued for %s (queue: %d)", envelope.get("type"), role.value, len(lane))
        return accepted

    def requeue_photos(self, blobs: Iterable[bytes]) -> None:
        blobs = list(blobs)
        if blobs:
            self.photos.push_front(blobs)
            logger.info("Requeued %d undelivered photo(s)", len(blobs))

    def requeue_commands(self, role: Role, envelopes: Iterable[Dict[str, Any]]) -> None:
        envelopes = list(envelopes)
        if envelopes:
            self._command_lane(role).push_front(envelopes)
            logger.info("Requeued %d undelivered %s command(s)", len(envelopes), role.value)

    # ------------------------------------------------------------------
    # Holds

    def hold(self, role: Role, owner_id: str) -> None:
        self._holds[role] = owner_id
        logger.info("Holding %s queue until %s settles", role.value, owner_id[:8])

    def release(self, role: Role, owner_id: str) -> bool:
        """Lift the hold on ``role`` if ``owner_id`` placed it."""
        if self._holds.get(role) != owner_id:
            return False
        del self._holds[role]
        return True

    def is_held(self, role: Role) -> bool:
        return role in self._holds

    # ------------------------------------------------------------------
    # Drain

    @staticmethod
    def _drain(lane: BoundedLane[T], connection: "Connection", send: Callable[[T], bool]) -> int:
        sent = 0
        while lane and connection.backlog_room > 0:
            item = lane.popleft()
            if not send(item):
                lane.push_front([item])
                break
            sent += 1
        if lane and connection.is_open:
            connection.request_refill()
        return sent

    def drain_photos_to(self, connection: "Connection") -> int:
        sent = self._drain(
            self.photos, connection, lambda blob: connection.send_bytes(blob, kind=FrameKind.PHOTO)
        )
        if sent:
            logger.debug("Delivered %d photo(s) to controller", sent)
        return sent

    def drain_commands_to(self, connection: "Connection") -> int:
        lane = self._command_lane(connection.role)
        sent = self._drain(
            lane, connection, lambda envelope: connection.send_json(envelope, kind=FrameKind.COMMAND)
        )
        if sent:
            logger.debug("Delivered %d command(s) to %s", sent, connection.role.value)
        return sent

    def drain_to(self, connection: "Connection") -> int:
        """Drain whatever is buffered for the connection's role."""
        if self.is_held(connection.role):
            return 0
        if connection.role is Role.CONTROLLER:
            return self.drain_photos_to(connection)
        if connection.role in self.commands:
            return self.drain_commands_to(connection)
        return 0

    # ------------------------------------------------------------------
    # Introspection

    def depths(self) -> Dict[str, int]:
        depths = {"photos": len(self.photos)}
        for role, lane in self.commands.items():
            depths[f"{role.value}_commands"] = len(lane)
        return depths

    @property
    def dropped(self) -> int:
        return self.photos.dropped + sum(lane.dropped for lane in self.commands.values())
