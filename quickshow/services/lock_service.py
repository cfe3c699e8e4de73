import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Check every seat first, then lock them all; one script run, so no other
# client can take a seat in between. Seats already held by `owner` are refreshed.
MULTI_LOCK_LUA = """
local owner = ARGV[1]
local ttl_ms = tonumber(ARGV[2])
local conflicts = {}

for i = 1, #KEYS do
    local current_owner = redis.call('GET', KEYS[i])
    if current_owner and current_owner ~= owner then
        table.insert(conflicts, {i, current_owner})
    end
end

if #conflicts > 0 then
    return {0, cjson.encode(conflicts)}
end

for i = 1, #KEYS do
    redis.call('SET', KEYS[i], owner, 'PX', ttl_ms)
end
return {1, ''}
"""

# Owner-checked delete
RELEASE_LUA_SCRIPT = """
local released = 0
for i = 1, #KEYS do
    if redis.call('GET', KEYS[i]) == ARGV[1] then
        redis.call('DEL', KEYS[i])
        released = released + 1
    end
end
return released
"""

LOCK_TIMEOUT_SECONDS = 1.0


def _key_for(prefix: str, show_id: str, seat: str) -> str:
    """Generate consistent Redis key for seat locks."""
    if prefix:
        if not prefix.endswith(":"):
            prefix = prefix + ":"
        return f"{prefix}seat_lock:{show_id}:{seat}"
    return f"seat_lock:{show_id}:{seat}"


async def acquire_seat_locks(
    redis,
    show_id: str,
    seats: List[str],
    owner: str,
    ttl_ms: int = 60_000,
    prefix: str = "",
) -> Dict[str, Any]:
    """
    Atomically lock every seat for `owner` or none of them.

    Seats already locked by the same owner count as locked. When any seat is
    held by someone else nothing is locked and the conflicting seats are
    reported with their current owner.
    """
    if not seats:
        return {"success": False, "locked": [], "conflicts": []}

    # If Redis is not available, treat all seats as lockable (graceful degradation)
    if redis is None:
        logger.warning("Redis unavailable - treating all seats as lockable")
        return {"success": True, "locked": list(seats), "conflicts": []}

    keys = [_key_for(prefix, show_id, seat) for seat in seats]
    try:
        result = await asyncio.wait_for(
            redis.eval(MULTI_LOCK_LUA, len(keys), *keys, owner, int(ttl_ms)),
            timeout=LOCK_TIMEOUT_SECONDS,
        )
    except Exception as e:
        logger.warning("⚠ Seat lock script failed for show %s, falling back to DB check: %s", show_id, e)
        return {"success": True, "locked": list(seats), "conflicts": []}

    if int(result[0]) == 1:
        logger.debug("Locked seats %s for show %s, owner %s", seats, show_id, owner)
        return {"success": True, "locked": list(seats), "conflicts": []}

    conflicts: List[Dict[str, Optional[str]]] = []
    for index, current_owner in json.loads(result[1]):
        if isinstance(current_owner, bytes):
            current_owner = current_owner.decode()
        conflicts.append({"seat": seats[int(index) - 1], "owner": current_owner})

    logger.info("Seat lock conflict for show %s: %s", show_id, [c["seat"] for c in conflicts])
    return {"success": False, "locked": [], "conflicts": conflicts}


async def release_seat_locks(
    redis,
    show_id: str,
    seats: List[str],
    owner: str,
    prefix: str = "",
) -> int:
    """Delete the locks `owner` still holds on `seats`. Returns the number released."""
    if redis is None or not seats:
        return 0

    keys = [_key_for(prefix, show_id, seat) for seat in seats]
    released = await redis.eval(RELEASE_LUA_SCRIPT, len(keys), *keys, owner)
    return int(released or 0)
