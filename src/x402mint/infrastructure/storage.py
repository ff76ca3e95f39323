"""Storage abstractions and Redis implementation for repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional

import redis.asyncio as redis
from redis.exceptions import NoScriptError


class KeyValueStore(ABC):
    """Abstract key-value store with minimal operations used by repositories."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def set_if_absent(self, key: str, value: str) -> bool:
        """Set ``key`` only if it does not exist. True if the value was written."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> int:
        pass

    @abstractmethod
    async def register_script(self, name: str, script: str) -> str:
        """Register a Lua script under ``name``; returns its SHA1."""
        pass

    @abstractmethod
    async def run_script(self, name: str, keys: List[str], args: List[str]) -> Any:
        """Execute a previously registered script atomically."""
        pass


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed implementation of KeyValueStore.

    The async client is created on first use from a ``redis://host:port/db`` URL.
    """

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._redis: Optional[redis.Redis] = None
        self._script_shas: dict[str, str] = {}
        self._script_sources: dict[str, str] = {}

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self._database_url, decode_responses=True)
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(key, value)

    async def set_if_absent(self, key: str, value: str) -> bool:
        return bool(await self.redis.set(key, value, nx=True))

    async def delete(self, key: str) -> int:
        return await self.redis.delete(key)

    async def register_script(self, name: str, script: str) -> str:
        sha = await self.redis.script_load(script)
        self._script_shas[name] = sha
        self._script_sources[name] = script
        return sha

    async def run_script(self, name: str, keys: List[str], args: List[str]) -> Any:
        if name not in self._script_sources:
            raise ValueError(f"Script '{name}' not registered")
        try:
            return await self.redis.evalsha(self._script_shas[name], len(keys), *keys, *args)
        except NoScriptError:
            # Script cache flushed (e.g. Redis restart); reload and retry once
            sha = await self.redis.script_load(self._script_sources[name])
            self._script_shas[name] = sha
            return await self.redis.evalsha(sha, len(keys), *keys, *args)
