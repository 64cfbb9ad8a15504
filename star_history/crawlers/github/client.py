"""GitHub REST client exposing stargazers as a paginated star source."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import logging
from typing import Any, Optional, Union

import httpx

from star_history.config.settings import settings
from star_history.crawlers.github.contracts import Event, RateLimitStatus, RepositoryPage
from star_history.errors import ConfigurationError, QuotaExhausted, SourceUnavailable, TargetNotFound
from star_history.models.targets import Account, Repository
from star_history.utils.redaction import sanitize_for_log, sanitize_log_extra

logger = logging.getLogger(__name__)

STAR_MEDIA_TYPE = "application/vnd.github.star+json"
DEFAULT_MEDIA_TYPE = "application/vnd.github+json"
RETRYABLE_STATUS_CODES = {500, 502, 503, 504}

# page_limit=None means unbounded, so "not given" needs its own marker
_FROM_SETTINGS = object()


class GitHubStarClient:
    """Single-attempt GitHub calls mapped onto the star-history error hierarchy.

    Retries and quota gating live above this layer; every response's rate-limit
    headers are recorded and exposed through ``rate_limit_status``.
    """

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout_seconds: Optional[float] = None,
        page_size: Optional[int] = None,
        page_limit: Union[int, None, object] = _FROM_SETTINGS,
    ) -> None:
        token = token if token is not None else settings.GITHUB_TOKEN
        if not token or not token.strip():
            raise ConfigurationError("GITHUB_TOKEN must be set to query the GitHub API")

        headers = {
            "Accept": DEFAULT_MEDIA_TYPE,
            "User-Agent": settings.USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
            "Authorization": f"Bearer {token.strip()}",
        }

        self.page_size = page_size or settings.STARGAZER_PAGE_SIZE
        self.page_limit = settings.STARGAZER_PAGE_LIMIT if page_limit is _FROM_SETTINGS else page_limit
        self._rate_limit: Optional[RateLimitStatus] = None
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.GITHUB_API_URL,
            headers=headers,
            timeout=timeout_seconds or settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubStarClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def rate_limit_status(self) -> Optional[RateLimitStatus]:
        return self._rate_limit

    async def total_count(self, repo: Repository) -> int:
        payload = await self._get_json(f"/repos/{repo.owner}/{repo.name}", target=repo.display_name)
        if not isinstance(payload, dict):
            raise SourceUnavailable("unexpected repository payload", target=repo.display_name, retryable=False)
        return int(payload.get("stargazers_count") or 0)

    async def page(self, repo: Repository, page_number: int, page_size: int) -> list[Event]:
        payload = await self._get_json(
            f"/repos/{repo.owner}/{repo.name}/stargazers",
            target=repo.display_name,
            params={"per_page": page_size, "page": page_number},
            accept=STAR_MEDIA_TYPE,
        )
        if not isinstance(payload, list):
            raise SourceUnavailable("unexpected stargazer payload", target=repo.display_name, retryable=False)

        first_index = (page_number - 1) * page_size + 1
        events: list[Event] = []
        for offset, item in enumerate(payload):
            starred_at = _parse_datetime(item.get("starred_at") if isinstance(item, dict) else None)
            if starred_at is None:
                raise SourceUnavailable(
                    f"stargazer page {page_number} has no starred_at timestamps",
                    target=repo.display_name,
                    retryable=False,
                )
            events.append(Event(index=first_index + offset, time=starred_at))

        logger.debug(
            "Fetched stargazer page",
            extra=sanitize_log_extra(repo=repo.display_name, page=page_number, events=len(events)),
        )
        return events

    async def list_owned_repositories(self, account: Account, page: int, per_page: int) -> RepositoryPage:
        response = await self._request(
            f"/users/{account.login}/repos",
            target=account.display_name,
            params={"type": "owner", "sort": "full_name", "per_page": per_page, "page": page},
        )
        payload = _decode(response, target=account.display_name)
        if not isinstance(payload, list):
            raise SourceUnavailable("unexpected repository list payload", target=account.display_name, retryable=False)

        repositories = [
            Repository(owner=str((item.get("owner") or {}).get("login") or account.login), name=str(item["name"]))
            for item in payload
            if isinstance(item, dict) and item.get("name") and not item.get("fork")
        ]
        return RepositoryPage(repositories=repositories, has_next="next" in response.links)

    async def _get_json(
        self,
        path: str,
        *,
        target: str,
        params: Optional[dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> Any:
        response = await self._request(path, target=target, params=params, accept=accept)
        return _decode(response, target=target)

    async def _request(
        self,
        path: str,
        *,
        target: str,
        params: Optional[dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> httpx.Response:
        headers = {"Accept": accept} if accept else None
        try:
            response = await self._client.get(path, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning(
                "GitHub request failed",
                extra=sanitize_log_extra(path=path, params=params, error=str(exc)),
            )
            raise SourceUnavailable(f"request to GitHub failed: {sanitize_for_log(str(exc))}", target=target) from exc

        self._observe_rate_limit(response)
        if response.status_code < 400:
            return response

        message = _error_message(response)
        logger.warning(
            "GitHub request failed",
            extra=sanitize_log_extra(path=path, params=params, status_code=response.status_code, error=message),
        )

        if response.status_code == 404:
            raise TargetNotFound("no such user or repository", target=target)
        if response.status_code in (403, 429) and self._is_rate_limited(response):
            reset_at = self._rate_limit_reset(response)
            raise QuotaExhausted(f"GitHub rate limit exceeded: {message}", target=target, reset_at=reset_at)
        raise SourceUnavailable(
            f"GitHub API error {response.status_code}: {message}",
            target=target,
            status_code=response.status_code,
            retryable=response.status_code in RETRYABLE_STATUS_CODES,
        )

    def _observe_rate_limit(self, response: httpx.Response) -> None:
        remaining = _int_header(response, "x-ratelimit-remaining")
        reset = _int_header(response, "x-ratelimit-reset")
        if remaining is None or reset is None:
            return
        self._rate_limit = RateLimitStatus(
            remaining=remaining,
            reset_at=datetime.fromtimestamp(reset, tz=UTC),
            limit=_int_header(response, "x-ratelimit-limit"),
        )

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if response.status_code == 429 or "retry-after" in response.headers:
            return True
        return _int_header(response, "x-ratelimit-remaining") == 0

    @staticmethod
    def _rate_limit_reset(response: httpx.Response) -> Optional[datetime]:
        retry_after = _int_header(response, "retry-after")
        if retry_after is not None:
            return datetime.now(UTC) + timedelta(seconds=retry_after)
        reset = _int_header(response, "x-ratelimit-reset")
        if reset is not None:
            return datetime.fromtimestamp(reset, tz=UTC)
        return None


def _decode(response: httpx.Response, *, target: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise SourceUnavailable("failed to decode response body", target=target) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "unknown error"
    if isinstance(payload, dict) and payload.get("message"):
        return str(sanitize_for_log(str(payload["message"])))
    return response.reason_phrase or "unknown error"


def _int_header(response: httpx.Response, name: str) -> Optional[int]:
    raw = response.headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw.strip():
        return None

    text = raw.strip().replace("Z", "+00:00")
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
