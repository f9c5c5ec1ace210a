"""
GitHub GraphQL client.

Fetches cursor-paginated record streams for a user and classifies every
failure into the FetchError taxonomy. Transport failures become
NetworkError and are not retried here; retrying is the engine's job.

Every query also selects the rateLimit object. Once the last observed
remaining quota falls below the configured floor, further calls fail with
RateLimitExceeded without touching the network until the reported reset
time has passed.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from .config import DEFAULT_API_URL, StatcrabConfig
from .errors import (
    GraphQLError,
    InvalidUsername,
    MissingToken,
    NetworkError,
    RateLimitExceeded,
    UserNotFound,
)
from .types import ContributionRecord, RepositoryRecord, Resource, UpstreamPage

logger = logging.getLogger(__name__)

# GitHub logins: alphanumerics and single hyphens, max 39 chars
USERNAME_RE = re.compile(r"^[A-Za-z0-9-]{1,39}$")

_PAGE_INFO = "pageInfo { hasNextPage endCursor }"
_RATE_LIMIT = "rateLimit { cost remaining resetAt }"

# contributionsCollection lists at most this many repositories and has no cursor
MAX_CONTRIBUTION_REPOSITORIES = 100

_QUERIES: Dict[Resource, str] = {
    Resource.REPOSITORIES: f"""
query UserRepositories($login: String!, $first: Int!, $after: String) {{
  user(login: $login) {{
    connection: repositories(first: $first, after: $after, ownerAffiliations: OWNER,
                             orderBy: {{field: STARGAZERS, direction: DESC}}) {{
      nodes {{
        id
        name
        isFork
        isPrivate
        stargazerCount
        forkCount
        owner {{ login }}
        languages(first: 100, orderBy: {{field: SIZE, direction: DESC}}) {{
          edges {{ size node {{ name color }} }}
        }}
      }}
      {_PAGE_INFO}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.COMMITS: f"""
query UserCommits($login: String!, $from: DateTime) {{
  user(login: $login) {{
    contributionsCollection(from: $from) {{
      repositoryTotal: totalRepositoriesWithContributedCommits
      connection: commitContributionsByRepository(maxRepositories: {MAX_CONTRIBUTION_REPOSITORIES}) {{
        repository {{ name }}
        contributions {{ totalCount }}
      }}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.REVIEWS: f"""
query UserReviews($login: String!) {{
  user(login: $login) {{
    contributionsCollection {{
      repositoryTotal: totalRepositoriesWithContributedPullRequestReviews
      connection: pullRequestReviewContributionsByRepository(maxRepositories: {MAX_CONTRIBUTION_REPOSITORIES}) {{
        repository {{ name }}
        contributions {{ totalCount }}
      }}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.ISSUES: f"""
query UserIssues($login: String!, $first: Int!, $after: String) {{
  user(login: $login) {{
    connection: issues(first: $first, after: $after) {{
      nodes {{ repository {{ name }} }}
      {_PAGE_INFO}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.PULL_REQUESTS: f"""
query UserPullRequests($login: String!, $first: Int!, $after: String) {{
  user(login: $login) {{
    connection: pullRequests(first: $first, after: $after) {{
      nodes {{ repository {{ name }} }}
      {_PAGE_INFO}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.MERGED_PULL_REQUESTS: f"""
query UserMergedPullRequests($login: String!, $first: Int!, $after: String) {{
  user(login: $login) {{
    connection: pullRequests(states: MERGED, first: $first, after: $after) {{
      nodes {{ repository {{ name }} }}
      {_PAGE_INFO}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.DISCUSSIONS_STARTED: f"""
query UserDiscussions($login: String!, $first: Int!, $after: String) {{
  user(login: $login) {{
    connection: repositoryDiscussions(first: $first, after: $after) {{
      nodes {{ repository {{ name }} }}
      {_PAGE_INFO}
    }}
  }}
  {_RATE_LIMIT}
}}""",
    Resource.DISCUSSIONS_ANSWERED: f"""
query UserDiscussionAnswers($login: String!, $first: Int!, $after: String) {{
  user(login: $login) {{
    connection: repositoryDiscussionComments(onlyAnswers: true, first: $first, after: $after) {{
      nodes {{ discussion {{ repository {{ name }} }} }}
      {_PAGE_INFO}
    }}
  }}
  {_RATE_LIMIT}
}}""",
}

# Streams served by contributionsCollection come back as a single list.
_UNPAGED = {Resource.COMMITS, Resource.REVIEWS}


def validate_username(username: str) -> None:
    """
    Check a GitHub login before it reaches the cache or the network.

    Raises:
        InvalidUsername: with a human readable reason
    """
    if not username or not username.strip():
        raise InvalidUsername("Username cannot be empty")
    if " " in username:
        raise InvalidUsername("Username cannot contain spaces")
    if len(username) > 39:
        raise InvalidUsername("Username too long")
    if not USERNAME_RE.match(username):
        raise InvalidUsername("Username contains invalid characters")
    if username.startswith("-") or username.endswith("-"):
        raise InvalidUsername("Username cannot start or end with hyphen")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_reset(reset_at: Optional[str]) -> Optional[datetime]:
    if not reset_at:
        return None
    try:
        return datetime.fromisoformat(reset_at.replace("Z", "+00:00"))
    except ValueError:
        return None


class GitHubClient:
    """
    Async GitHub GraphQL client.

    Usage:
        async with GitHubClient(token="ghp_...") as client:
            repos = await client.fetch_all(Resource.REPOSITORIES, "octocat")
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        page_size: int = 100,
        rate_limit_floor: int = 10,
        user_agent: str = "statcrab",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the client.

        Args:
            token: GitHub token; calls fail with MissingToken when absent
            api_url: GraphQL endpoint
            timeout: Deadline for each upstream call, in seconds
            page_size: Nodes requested per page (`first`)
            rate_limit_floor: Stop calling once remaining quota drops below this
            user_agent: User-Agent header value
            transport: Optional httpx transport (tests use httpx.MockTransport)
            clock: UTC time source used to decide whether the quota has reset
        """
        self._token = (token or "").strip()
        self._api_url = api_url
        self._timeout = timeout
        self._page_size = page_size
        self._rate_limit_floor = rate_limit_floor
        self._user_agent = user_agent
        self._transport = transport
        self._clock = clock
        self._http: Optional[httpx.AsyncClient] = None

        # Last observed upstream quota
        self._remaining: Optional[int] = None
        self._reset_at: Optional[str] = None

        self._request_count = 0

    @classmethod
    def from_config(
        cls,
        config: StatcrabConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GitHubClient":
        return cls(
            token=config.github_token,
            api_url=config.api_url,
            timeout=config.timeout,
            page_size=config.page_size,
            rate_limit_floor=config.rate_limit_floor,
            user_agent=config.user_agent,
            transport=transport,
        )

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    @property
    def request_count(self) -> int:
        """Number of HTTP requests actually sent."""
        return self._request_count

    @property
    def rate_limit(self) -> Tuple[Optional[int], Optional[str]]:
        """Last observed (remaining, reset_at)."""
        return self._remaining, self._reset_at

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._http

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "User-Agent": self._user_agent,
            "Accept": "application/json",
        }

    # === Quota tracking ===

    def _check_budget(self) -> None:
        if self._remaining is None or self._remaining >= self._rate_limit_floor:
            return
        reset = _parse_reset(self._reset_at)
        if reset is None or self._clock() >= reset:
            logger.debug("Rate limit window has reset, resuming upstream calls")
            self._remaining = None
            self._reset_at = None
            return
        raise RateLimitExceeded(self._reset_at)

    def _record_budget(self, data: Any) -> None:
        if not isinstance(data, dict):
            return
        rate_limit = data.get("rateLimit")
        if not isinstance(rate_limit, dict):
            return
        remaining = rate_limit.get("remaining")
        if isinstance(remaining, int):
            self._remaining = remaining
        reset_at = rate_limit.get("resetAt")
        if reset_at:
            self._reset_at = reset_at
        if self._remaining is not None and self._remaining < self._rate_limit_floor:
            logger.warning(
                f"GitHub quota low: {self._remaining} remaining, resets at {self._reset_at}"
            )

    # === Requests ===

    async def execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one GraphQL query and return its `data` object.

        Raises:
            MissingToken: no token configured (no request is sent) or token rejected
            RateLimitExceeded: quota below the floor or exhausted upstream
            NetworkError: transport failure, deadline expiry or 5xx
            UserNotFound: the login does not resolve to a user
            GraphQLError: any other upstream error, including partial data with errors
        """
        if not self._token:
            raise MissingToken()
        self._check_budget()

        self._request_count += 1
        try:
            resp = await asyncio.wait_for(
                self._get_http().post(
                    self._api_url,
                    json={"query": query, "variables": variables},
                    headers=self._headers(),
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise NetworkError(f"GitHub request timed out after {self._timeout}s") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"GitHub request failed: {exc}") from exc

        self._raise_for_status(resp)

        try:
            body = resp.json()
        except ValueError as exc:
            raise GraphQLError("Invalid JSON in GitHub response") from exc
        if not isinstance(body, dict):
            raise GraphQLError("Unexpected GitHub response shape")

        data = body.get("data")
        self._record_budget(data)

        errors = body.get("errors")
        if errors:
            if not isinstance(errors, list):
                errors = [errors]
            first = errors[0] if isinstance(errors[0], dict) else {"message": str(errors[0])}
            error_type = first.get("type")
            if error_type == "NOT_FOUND":
                raise UserNotFound(str(variables.get("login", "")))
            if error_type == "RATE_LIMITED":
                raise RateLimitExceeded(self._reset_at)
            raise GraphQLError(first.get("message") or "Unknown GraphQL error")

        if not isinstance(data, dict):
            raise GraphQLError("No data in response")
        return data

    def _raise_for_status(self, resp: httpx.Response) -> None:
        status = resp.status_code
        if status < 400:
            return
        if status == 401:
            raise MissingToken("GitHub rejected the token")
        if status == 429 or (status == 403 and resp.headers.get("X-RateLimit-Remaining") == "0"):
            raise RateLimitExceeded(resp.headers.get("X-RateLimit-Reset"))
        if status >= 500:
            raise NetworkError(f"GitHub server error {status}")
        raise GraphQLError(f"GitHub HTTP error {status}: {resp.text[:200]}")

    def _variables(self, resource: Resource, username: str, cursor: Optional[str]) -> Dict[str, Any]:
        if resource is Resource.COMMITS:
            now = self._clock()
            start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
            return {"login": username, "from": start.isoformat()}
        if resource in _UNPAGED:
            return {"login": username}
        return {"login": username, "first": self._page_size, "after": cursor}

    async def fetch_page(
        self,
        resource: Resource,
        username: str,
        cursor: Optional[str] = None,
    ) -> Optional[UpstreamPage]:
        """
        Fetch one page of a stream.

        Returns:
            The page, or None when GitHub reports no such connection for the user
        """
        data = await self.execute(_QUERIES[resource], self._variables(resource, username, cursor))

        user = data.get("user")
        if user is None:
            raise UserNotFound(username)

        if resource in _UNPAGED:
            collection = user.get("contributionsCollection") or {}
            connection = collection.get("connection")
            if connection is None:
                return None
            total = collection.get("repositoryTotal")
            if isinstance(total, int) and total > len(connection):
                raise GraphQLError(
                    f"{resource.value} span {total} repositories but GitHub listed only {len(connection)}"
                )
            items = tuple(_parse_contribution(resource, node) for node in connection)
            return self._page(items, {"hasNextPage": False, "endCursor": None})

        connection = user.get("connection")
        if connection is None:
            return None
        items = tuple(_parse_node(resource, node) for node in connection.get("nodes") or [])
        return self._page(items, connection.get("pageInfo") or {})

    def _page(self, items: Tuple[Any, ...], page_info: Dict[str, Any]) -> UpstreamPage:
        return UpstreamPage(
            items=items,
            end_cursor=page_info.get("endCursor"),
            has_next_page=bool(page_info.get("hasNextPage")),
            rate_limit_remaining=self._remaining,
            rate_limit_reset_at=self._reset_at,
        )

    async def fetch_all(self, resource: Resource, username: str) -> Optional[List[Any]]:
        """
        Exhaust a stream, following cursors until hasNextPage is false.

        Returns:
            All records, or None when the connection is absent for the user
        """
        items: List[Any] = []
        cursor: Optional[str] = None
        pages = 0
        while True:
            page = await self.fetch_page(resource, username, cursor)
            if page is None:
                if pages:
                    raise GraphQLError(f"{resource.value} disappeared mid-pagination")
                return None
            pages += 1
            items.extend(page.items)
            if not page.has_next_page:
                break
            if not page.end_cursor:
                raise GraphQLError(f"{resource.value} page is missing its end cursor")
            cursor = page.end_cursor

        logger.debug(f"Fetched {len(items)} {resource.value} for {username} in {pages} page(s)")
        return items


def _parse_node(resource: Resource, node: Dict[str, Any]) -> Any:
    if resource is Resource.REPOSITORIES:
        return _parse_repository(node)
    if resource is Resource.DISCUSSIONS_ANSWERED:
        node = node.get("discussion") or {}
    repository = node.get("repository") or {}
    return ContributionRecord(repository=repository.get("name", ""), count=1)


def _parse_contribution(resource: Resource, node: Dict[str, Any]) -> ContributionRecord:
    repository = node.get("repository") or {}
    contributions = node.get("contributions") or {}
    return ContributionRecord(
        repository=repository.get("name", ""),
        count=int(contributions.get("totalCount") or 0),
    )


def _parse_repository(node: Dict[str, Any]) -> RepositoryRecord:
    languages: Dict[str, int] = {}
    colors: Dict[str, str] = {}
    for edge in (node.get("languages") or {}).get("edges") or []:
        language = (edge or {}).get("node") or {}
        name = language.get("name") or ""
        if name:
            languages[name] = languages.get(name, 0) + int(edge.get("size") or 0)
            if language.get("color"):
                colors[name] = language["color"]
    return RepositoryRecord(
        id=node.get("id") or node.get("name", ""),
        owner=(node.get("owner") or {}).get("login", ""),
        name=node.get("name", ""),
        is_fork=bool(node.get("isFork")),
        is_private=bool(node.get("isPrivate")),
        stars=int(node.get("stargazerCount") or 0),
        forks=int(node.get("forkCount") or 0),
        languages=languages,
        language_colors=colors,
    )
