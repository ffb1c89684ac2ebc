"""Bounded LRU cache of GitHub user profiles fetched with httpx."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from psdevbot.config import GitHubApiConfig
from psdevbot.utils.logging import get_logger

log = get_logger(__name__)


class GitHubUser(BaseModel):
    login: str = ""
    html_url: str


class GitHubUserCache:
    """Resolve GitHub logins to profile metadata.

    Successful lookups are kept (least recently used evicted past
    ``capacity``). Failures return None and are not remembered, so the next
    call tries again. Concurrent lookups of the same uncached login share a
    single request.
    """

    def __init__(self, client: httpx.AsyncClient, capacity: int = 100) -> None:
        self._client = client
        self._capacity = capacity
        self._cache: OrderedDict[str, GitHubUser] = OrderedDict()
        self._pending: dict[str, asyncio.Future[GitHubUser | None]] = {}

    @classmethod
    def from_config(cls, config: GitHubApiConfig) -> GitHubUserCache:
        client = httpx.AsyncClient(
            base_url=config.api_url.rstrip("/"),
            timeout=config.timeout,
            auth=(config.user, config.password),
            headers={
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "psdevbot",
            },
        )
        return cls(client, capacity=config.cache_size)

    def __contains__(self, login: str) -> bool:
        return login in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def fetch(self, login: str) -> GitHubUser | None:
        user = self._cache.get(login)
        if user is not None:
            self._cache.move_to_end(login)
            return user

        future = self._pending.get(login)
        if future is None:
            future = asyncio.ensure_future(self._download(login))
            self._pending[login] = future
            future.add_done_callback(lambda _: self._pending.pop(login, None))
        return await asyncio.shield(future)

    async def close(self) -> None:
        await self._client.aclose()

    async def _download(self, login: str) -> GitHubUser | None:
        log.info("github_user_fetching", login=login)
        try:
            resp = await self._client.get(f"/users/{quote(login, safe='')}")
            resp.raise_for_status()
            user = GitHubUser.model_validate(resp.json())
        except httpx.HTTPError as e:
            log.warning("github_user_fetch_failed", login=login, error=str(e))
            return None
        except (ValidationError, ValueError) as e:
            log.warning("github_user_malformed", login=login, error=str(e))
            return None
        self._store(login, user)
        return user

    def _store(self, login: str, user: GitHubUser) -> None:
        self._cache[login] = user
        self._cache.move_to_end(login)
        while len(self._cache) > self._capacity:
            evicted, _ = self._cache.popitem(last=False)
            log.debug("github_user_evicted", login=evicted)
