import redis
from shopcore.utils.retry import redis_retry
from shopcore.utils.settings import REDIS_URL
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL, wiec tu jest get + porownanie + del wszystko naraz


class LockService:
    """
    -blokada checkoutu per sesja koszyka (lock)
    -zwalnianie locka tylko przez wlasciciela (token)
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _checkout_key(session_id: str) -> str:
        return f"checkout:{session_id}:lock"

    @redis_retry()
    def acquire_checkout_lock(self, session_id: str, token: str, ttl: int) -> bool:
        key = self._checkout_key(session_id)
        logger.info(f"Acquire lock {key}")
        #SET checkout:abc:lock "<token>" NX EX 30
        return bool(self.redis.set(
            name=key,
            value=token,
            nx=True, #not eXists, jak klucz jest to nic nie rob i zwroc None
            ex=ttl, #wygasa sam jesli proces padnie w trakcie checkoutu
        ))

    @redis_retry()
    def release_checkout_lock(self, session_id: str, token: str) -> bool:
        key = self._checkout_key(session_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
