"""Form nonces: short HMAC tokens tied to an action and a time window"""
import hashlib
import hmac
import math
import time
from typing import Callable

NONCE_ACTION = "liaison_inquiry"
NONCE_FIELD_NAME = "liaison_inquiry_nonce"


class NonceService:
    """
    Issue and verify nonces.

    The lifetime is split into two ticks; a token is accepted during the
    tick it was issued in and the one after, so it lives between half and
    all of ``lifetime`` seconds.
    """

    def __init__(self, secret: str, lifetime: int = 86400, clock: Callable[[], float] = time.time):
        if not secret:
            raise ValueError("A nonce secret is required")
        self._secret = secret.encode("utf-8")
        self.lifetime = lifetime
        self._clock = clock

    def tick(self) -> int:
        return int(math.ceil(self._clock() / (self.lifetime / 2)))

    def _token(self, tick: int, action: str) -> str:
        digest = hmac.new(self._secret, f"{tick}|{action}".encode("utf-8"), hashlib.sha256).hexdigest()
        return digest[-12:-2]

    def create(self, action: str = NONCE_ACTION) -> str:
        return self._token(self.tick(), action)

    def verify(self, token: str, action: str = NONCE_ACTION) -> bool:
        if not token:
            return False
        token = str(token).encode("utf-8")
        tick = self.tick()
        for candidate_tick in (tick, tick - 1):
            if hmac.compare_digest(self._token(candidate_tick, action).encode("utf-8"), token):
                return True
        return False
