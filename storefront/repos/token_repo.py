# storefront/repos/token_repo.py
import os
from pathlib import Path

import redis

from storefront.utils.logging import get_logger, token_preview
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, TOKEN_FILE, TOKEN_KEY, TOKEN_STORE

logger = get_logger(__name__)


class FileTokenRepo:
    """Auth token kept in a single file (the desktop equivalent of localStorage)."""

    def __init__(self, path: str | None = None):
        self.path = Path(path or TOKEN_FILE)

    def load(self) -> str | None:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        # token is a credential
        os.chmod(self.path, 0o600)
        logger.info(f"Token stored in {self.path}: {token_preview(token)}")

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.info(f"Token removed from {self.path}")


class RedisTokenRepo:
    """
    Auth token under a well-known redis key, for deployments where several
    BFF workers must share one session.
    """

    def __init__(self, url: str | None = None, key: str | None = None, client: redis.Redis | None = None):
        self.key = key or f"storefront:{TOKEN_KEY}"
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def load(self) -> str | None:
        return self.redis.get(self.key) or None

    @redis_retry()
    def save(self, token: str) -> None:
        self.redis.set(name=self.key, value=token)
        logger.info(f"Token stored under {self.key}: {token_preview(token)}")

    @redis_retry()
    def delete(self) -> None:
        self.redis.delete(self.key)
        logger.info(f"Token removed from {self.key}")


def build_token_repo(kind: str | None = None):
    kind = (kind or TOKEN_STORE).lower()
    if kind == "redis":
        return RedisTokenRepo()
    if kind == "file":
        return FileTokenRepo()
    raise ValueError(f"Unknown TOKEN_STORE: {kind}")
