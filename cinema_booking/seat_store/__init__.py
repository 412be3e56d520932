from .base import FREE_SEAT, ConfirmOutcome, ReleasedHold, SeatState, SeatStatus, SeatStatusStore
from .memory import InMemorySeatStatusStore
from .redis_store import RedisSeatStatusStore

__all__ = [
    "FREE_SEAT",
    "ConfirmOutcome",
    "ReleasedHold",
    "SeatState",
    "SeatStatus",
    "SeatStatusStore",
    "InMemorySeatStatusStore",
    "RedisSeatStatusStore",
    "build_seat_store",
]


def build_seat_store(backend: str, redis=None) -> SeatStatusStore:
    if backend == "memory":
        return InMemorySeatStatusStore()
    if backend == "redis":
        if redis is None:
            from cinema_booking.redis import redis_client as redis
        return RedisSeatStatusStore(redis)
    raise ValueError(f"Unknown seat store backend {backend!r}")
