import secrets
import time
from typing import Callable, Collection

from ..exceptions import ConflictError

TOKEN_PREFIX = "T"


def generate_token(now_ms: Callable[[], int] = None) -> str:
    """Token of the form ``T<epoch millis><4 random digits>``."""
    millis = now_ms() if now_ms else int(time.time() * 1000)
    return f"{TOKEN_PREFIX}{millis}{secrets.randbelow(10000):04d}"


def unique_token(taken: Collection[str], max_attempts: int = 5, generator: Callable[[], str] = generate_token) -> str:
    """Draw tokens until one is not in ``taken``."""
    for _ in range(max(1, max_attempts)):
        token = generator()
        if token not in taken:
            return token
    raise ConflictError("Could not allocate a unique token number, please retry")
