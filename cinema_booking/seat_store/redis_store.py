import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from redis.asyncio import Redis

from .base import FREE_SEAT, ConfirmOutcome, ReleasedHold, SeatState, SeatStatus, SeatStatusStore

logger = logging.getLogger(__name__)

# All keys of one show share the {show:<id>} hash tag, so every script below
# touches a single cluster slot.
# key = "prefix:{tag}:suffix"
#               ↑
#         Only {tag} part is hashed
#
# seats:{show:<id>}  hash   seat_id -> "H|<booking_id>|<expires_ms>" or "B|<booking_id>"
# holds:{show:<id>}  zset   seat_id scored by expires_ms, used by the reaper
SHOWS_KEY = "seat_store:shows"

PARSE_SEAT_LUA = """
local function parse(value)
    local kind, owner, expires = string.match(value, '^(%a)|([^|]+)|?(%d*)$')
    return kind, owner, tonumber(expires)
end
"""

HOLD_SEATS_SCRIPT = PARSE_SEAT_LUA + """
-- KEYS[1] = seat status hash
-- KEYS[2] = hold expiry zset
-- ARGV[1] = booking_id
-- ARGV[2] = expires_at (ms)
-- ARGV[3] = now (ms)
-- ARGV[4..N] = seat_ids to hold

local now = tonumber(ARGV[3])

-- Step 1: Check ALL seats first (atomic check)
local conflicts = {}
for i = 4, #ARGV do
    local value = redis.call('HGET', KEYS[1], ARGV[i])
    if value then
        local kind, owner, expires = parse(value)
        if kind == 'B' or expires > now then
            table.insert(conflicts, ARGV[i])
        end
    end
end
if #conflicts > 0 then
    return conflicts
end

-- Step 2: All seats free, hold them ALL
for i = 4, #ARGV do
    redis.call('HSET', KEYS[1], ARGV[i], 'H|' .. ARGV[1] .. '|' .. ARGV[2])
    redis.call('ZADD', KEYS[2], ARGV[2], ARGV[i])
end
return {}
"""

CONFIRM_SEATS_SCRIPT = PARSE_SEAT_LUA + """
-- KEYS[1] = seat status hash
-- KEYS[2] = hold expiry zset
-- ARGV[1] = booking_id
-- ARGV[2] = now (ms)
-- ARGV[3..N] = seat_ids to confirm

local now = tonumber(ARGV[2])
local expired = false
for i = 3, #ARGV do
    local value = redis.call('HGET', KEYS[1], ARGV[i])
    if not value then
        return 'NOT_HELD'
    end
    local kind, owner, expires = parse(value)
    if owner ~= ARGV[1] then
        return 'NOT_HELD'
    end
    if kind == 'H' and expires <= now then
        expired = true
    end
end
if expired then
    return 'EXPIRED'
end

for i = 3, #ARGV do
    redis.call('HSET', KEYS[1], ARGV[i], 'B|' .. ARGV[1])
    redis.call('ZREM', KEYS[2], ARGV[i])
end
return 'CONFIRMED'
"""

RELEASE_SEATS_SCRIPT = PARSE_SEAT_LUA + """
-- KEYS[1] = seat status hash
-- KEYS[2] = hold expiry zset
-- ARGV[1] = booking_id
-- ARGV[2] = expired_at (ms), or '' to release regardless of expiry
-- ARGV[3..N] = seat_ids to release

local expired_at = tonumber(ARGV[2])
local released = 0
for i = 3, #ARGV do
    local value = redis.call('HGET', KEYS[1], ARGV[i])
    if value then
        local kind, owner, expires = parse(value)
        local eligible = owner == ARGV[1]
        if eligible and expired_at then
            eligible = kind == 'H' and expires <= expired_at
        end
        if eligible then
            redis.call('HDEL', KEYS[1], ARGV[i])
            redis.call('ZREM', KEYS[2], ARGV[i])
            released = released + 1
        end
    end
end
return released
"""

RELEASE_EXPIRED_SCRIPT = PARSE_SEAT_LUA + """
-- KEYS[1] = seat status hash
-- KEYS[2] = hold expiry zset
-- ARGV[1] = now (ms)
-- returns {released "seat:owner" entries, holds left in the zset}

local now = tonumber(ARGV[1])
local released = {}
local candidates = redis.call('ZRANGEBYSCORE', KEYS[2], '-inf', ARGV[1])
for _, seat_id in ipairs(candidates) do
    local value = redis.call('HGET', KEYS[1], seat_id)
    if value then
        local kind, owner, expires = parse(value)
        if kind == 'H' and expires <= now then
            redis.call('HDEL', KEYS[1], seat_id)
            table.insert(released, seat_id .. ':' .. owner)
        end
    end
    redis.call('ZREM', KEYS[2], seat_id)
end
return {released, redis.call('ZCARD', KEYS[2])}
"""


def _to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _text(value) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def seat_key(show_id: int) -> str:
    return f"seats:{{show:{show_id}}}"


def hold_key(show_id: int) -> str:
    return f"holds:{{show:{show_id}}}"


def parse_status(raw) -> SeatStatus:
    kind, owner, *rest = _text(raw).split("|")
    if kind == "B":
        return SeatStatus(SeatState.BOOKED, int(owner))
    return SeatStatus(SeatState.HELD, int(owner), _from_ms(int(rest[0])))


class RedisSeatStatusStore(SeatStatusStore):
    def __init__(self, redis: Redis):
        self.redis = redis

    async def get_statuses(self, show_id: int, now: datetime) -> dict[int, SeatStatus]:
        raw = await self.redis.hgetall(seat_key(show_id))
        statuses = {int(_text(seat_id)): parse_status(value) for seat_id, value in raw.items()}
        return {seat_id: status for seat_id, status in statuses.items() if not status.is_free(now)}

    async def get_status(self, show_id: int, seat_id: int, now: datetime) -> SeatStatus:
        raw = await self.redis.hget(seat_key(show_id), str(seat_id))
        if raw is None:
            return FREE_SEAT
        status = parse_status(raw)
        return FREE_SEAT if status.is_free(now) else status

    async def hold_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                         expires_at: datetime, now: datetime) -> list[int]:
        # Prepare arguments: [booking_id, expires_at, now, ...seat_ids]
        args = [str(booking_id), str(_to_ms(expires_at)), str(_to_ms(now))] + [str(sid) for sid in seat_ids]
        conflicts = await self.redis.eval(
            HOLD_SEATS_SCRIPT,
            2,  # Number of keys
            seat_key(show_id),
            hold_key(show_id),
            *args
        )
        if conflicts:
            return sorted(int(_text(seat_id)) for seat_id in conflicts)
        await self.redis.sadd(SHOWS_KEY, show_id)
        return []

    async def confirm_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                            now: datetime) -> ConfirmOutcome:
        args = [str(booking_id), str(_to_ms(now))] + [str(sid) for sid in seat_ids]
        result = await self.redis.eval(CONFIRM_SEATS_SCRIPT, 2, seat_key(show_id), hold_key(show_id), *args)
        return ConfirmOutcome(_text(result))

    async def release_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                            expired_at: Optional[datetime] = None) -> int:
        expired_ms = "" if expired_at is None else str(_to_ms(expired_at))
        args = [str(booking_id), expired_ms] + [str(sid) for sid in seat_ids]
        return int(await self.redis.eval(RELEASE_SEATS_SCRIPT, 2, seat_key(show_id), hold_key(show_id), *args))

    async def release_expired(self, now: datetime) -> list[ReleasedHold]:
        released = []
        for raw_show_id in await self.redis.smembers(SHOWS_KEY):
            show_id = int(_text(raw_show_id))
            entries, remaining = await self.redis.eval(
                RELEASE_EXPIRED_SCRIPT, 2, seat_key(show_id), hold_key(show_id), str(_to_ms(now)))
            for entry in entries:
                seat_id, booking_id = _text(entry).split(":")
                released.append(ReleasedHold(show_id, int(seat_id), int(booking_id)))
            if int(remaining) == 0:
                await self._untrack_show(show_id)
        if released:
            logger.debug("Reaped %d expired holds from redis", len(released))
        return released

    async def _untrack_show(self, show_id: int) -> None:
        await self.redis.srem(SHOWS_KEY, show_id)
        # hold_seats adds the show after its script ran, so a hold that raced
        # the srem is either seen here or re-adds the show itself
        if await self.redis.zcard(hold_key(show_id)):
            await self.redis.sadd(SHOWS_KEY, show_id)

    async def clear_show(self, show_id: int) -> None:
        pipe = self.redis.pipeline()
        pipe.delete(seat_key(show_id), hold_key(show_id))
        pipe.srem(SHOWS_KEY, show_id)
        await pipe.execute()
