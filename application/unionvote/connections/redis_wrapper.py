import json
from urllib.parse import quote_plus

import redis

# Logger
from unionvote.logging.utils import get_app_logger
logger = get_app_logger("unionvote.redis_wrapper")

# Deletes KEYS[1] only while it still holds ARGV[1]
COMPARE_AND_DELETE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""

# Replaces KEYS[1] with ARGV[2] only while it still holds ARGV[1]; the TTL is kept
COMPARE_AND_SET_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    redis.call('set', KEYS[1], ARGV[2], 'KEEPTTL')
    return 1
end
return 0
"""


def safe_key_part(part) -> str:
    """Encode dynamic key segments so Redis keys contain only URL-safe chars."""
    return quote_plus(str(part), safe='')


class RedisJSONWrapper:
    """Thin JSON layer over a redis client.

    ``client`` may be injected (tests); otherwise one is built from the URI.
    Connection failures are reported through ``connected`` rather than raised.
    """

    def __init__(self, redis_uri: str = None, database=None, client=None):
        if client is not None:
            self.redis_client = client
            self.connected = True
            return
        if database is not None:
            redis_uri = f"{redis_uri}/{database}"
        try:
            self.redis_client = redis.from_url(redis_uri)
            self.redis_client.ping()
            self.connected = True
        except redis.exceptions.RedisError as e:
            logger.error(f"redis_connect_error | uri={redis_uri} error={e}")
            self.redis_client = None
            self.connected = False

    @staticmethod
    def dumps(data) -> str:
        return json.dumps(data, sort_keys=True, default=str)

    def set(self, key, data):
        self.redis_client.set(key, self.dumps(data))

    def set_with_ttl(self, key, data, ttl_seconds: int):
        """Set a key with a TTL (in seconds); falls back to a plain set when ttl <= 0."""
        value = self.dumps(data)
        if isinstance(ttl_seconds, int) and ttl_seconds > 0:
            # SETEX attaches the expiry atomically with the value
            self.redis_client.setex(key, ttl_seconds, value)
        else:
            self.redis_client.set(key, value)

    def set_if_not_exists(self, key, data, ttl_seconds: int | None = None) -> bool:
        """
        Atomically set a key only if it doesn't exist (SET NX).

        Returns:
            True if the key was written, False if it already existed
        """
        value = self.dumps(data)
        if ttl_seconds and ttl_seconds > 0:
            result = self.redis_client.set(key, value, nx=True, ex=ttl_seconds)
        else:
            result = self.redis_client.set(key, value, nx=True)
        return bool(result)

    def compare_and_delete(self, key, data) -> bool:
        """Delete ``key`` only if it still holds ``data``; atomic on the server."""
        deleted = self.redis_client.eval(COMPARE_AND_DELETE_SCRIPT, 1, key, self.dumps(data))
        return int(deleted or 0) > 0

    def compare_and_set(self, key, expected, data) -> bool:
        """Overwrite ``key`` with ``data`` only if it still holds ``expected``; keeps the TTL."""
        replaced = self.redis_client.eval(COMPARE_AND_SET_SCRIPT, 1, key, self.dumps(expected), self.dumps(data))
        return int(replaced or 0) > 0

    def get(self, key):
        data = self.redis_client.get(key)
        if data:
            return json.loads(data)
        return None

    def scan_keys(self, pattern='*'):
        keys = []
        for key in self.redis_client.scan_iter(match=pattern):
            keys.append(key.decode('utf-8') if isinstance(key, bytes) else key)
        return keys

    def ping(self) -> bool:
        return bool(self.redis_client.ping())

    def close(self):
        if self.redis_client is not None:
            self.redis_client.close()
