"""Async GitHub REST client for issue and pull request updates.

Wraps the endpoints the sync engine calls:
- Reading issues and pull requests when linking them to tasks
- Creating issues from tasks
- Patching issue title/body/state after commit-driven status changes

Transient failures are retried with exponential backoff and full jitter;
rate limit responses surface as RateLimitError.
"""

import asyncio
import logging
import random
import time
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """A GitHub request ended in an error response or ran out of retries.

    Attributes:
        message: What went wrong.
        status_code: Status of the final response, None for transport errors.
        response_body: Raw body of the final response.
        request_url: URL of the failed request.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """GitHub refused the request because the token's rate limit is spent.

    Attributes:
        reset_at: Epoch seconds of the x-ratelimit-reset header.
        retry_after: Seconds until requests may resume.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


def _int_header(headers: httpx.Headers, name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class GitHubClient:
    """Async GitHub API client with retry logic.

    Attributes:
        token: GitHub API token (installation or personal token).
        base_url: Base URL for GitHub API, GitHub Enterprise supported.
        max_retries: Retries allowed after the first attempt.
        base_delay: Backoff ceiling in seconds for the first retry.
        max_delay: Upper bound in seconds for any backoff.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, used by tests.

    Example:
        >>> async with GitHubClient(token="ghs_xxx") as client:
        ...     await client.update_issue("org", "repo", 7, state="closed")
    """

    RETRYABLE_STATUS_CODES = {408, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it on first use."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                    "User-Agent": "tasksync/1.0",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client, if one was opened."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _backoff(self, attempt: int) -> float:
        """Full-jitter exponential backoff for a 0-indexed attempt."""
        return random.uniform(0, min(self.base_delay * (2 ** attempt), self.max_delay))

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitError:
        reset_at = _int_header(response.headers, "x-ratelimit-reset")
        retry_after = _int_header(response.headers, "retry-after")
        if retry_after is None and reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        logger.warning(
            "GitHub rate limit hit",
            extra={"reset_at": reset_at, "retry_after": retry_after},
        )
        return RateLimitError(
            message="GitHub rate limit exhausted",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
            request_url=str(response.url),
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request, retrying timeouts, transport errors and 5xx.

        Raises:
            RateLimitError: If the rate limit is exhausted.
            GitHubAPIError: On any other 4xx/5xx, or once retries run out.
        """
        last_error: Optional[str] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(method, path, json=json_data)
            except (httpx.TimeoutException, httpx.RequestError) as e:
                last_error = str(e) or type(e).__name__
                if attempt < self.max_retries:
                    delay = self._backoff(attempt)
                    logger.warning(
                        "GitHub request failed, retrying",
                        extra={
                            "error": last_error,
                            "attempt": attempt + 1,
                            "delay": delay,
                            "path": path,
                        },
                    )
                    await asyncio.sleep(delay)
                continue

            if response.status_code == 429 or (
                response.status_code == 403
                and _int_header(response.headers, "x-ratelimit-remaining") == 0
            ):
                raise self._rate_limit_error(response)

            if response.status_code in self.RETRYABLE_STATUS_CODES:
                last_error = f"HTTP {response.status_code}"
                if attempt < self.max_retries:
                    delay = self._backoff(attempt)
                    logger.warning(
                        "GitHub returned a retryable status",
                        extra={
                            "status_code": response.status_code,
                            "attempt": attempt + 1,
                            "delay": delay,
                            "path": path,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

            if response.status_code >= 400:
                logger.error(
                    "GitHub API error",
                    extra={
                        "status_code": response.status_code,
                        "method": method,
                        "path": path,
                        "response_body": response.text[:500],
                    },
                )
                raise GitHubAPIError(
                    message=f"GitHub returned {response.status_code} for {method} {path}",
                    status_code=response.status_code,
                    response_body=response.text,
                    request_url=str(response.url),
                )

            return response

        logger.error(
            "GitHub request retries exhausted",
            extra={"method": method, "path": path, "last_error": last_error},
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_error}",
            request_url=f"{self.base_url}{path}",
        )

    async def get_issue(self, owner: str, repo: str, issue_number: int) -> Dict[str, Any]:
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/issues/{issue_number}"
        )
        return response.json()

    async def get_pull_request(
        self, owner: str, repo: str, pull_number: int
    ) -> Dict[str, Any]:
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/pulls/{pull_number}"
        )
        return response.json()

    async def create_issue(
        self, owner: str, repo: str, title: str, body: str = ""
    ) -> Dict[str, Any]:
        """Create an issue and return GitHub's issue representation."""
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues",
            json_data={"title": title, "body": body},
        )
        result = response.json()
        logger.info(
            "Issue created",
            extra={"owner": owner, "repo": repo, "issue_number": result.get("number")},
        )
        return result

    async def update_issue(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        title: Optional[str] = None,
        body: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Patch an issue or pull request.

        Pull requests share the issues endpoint for title, body and state.
        Only the fields that are not None are sent.
        """
        fields = {"title": title, "body": body, "state": state}
        response = await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/issues/{issue_number}",
            json_data={k: v for k, v in fields.items() if v is not None},
        )
        return response.json()

    async def health_check(self) -> bool:
        try:
            response = await self.client.get("/rate_limit")
            return response.status_code == 200
        except Exception as e:
            logger.warning(
                "GitHub unreachable during health check",
                extra={"error": str(e)},
            )
            return False
