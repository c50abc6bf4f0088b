# Entrius 2025
import base64
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import bittensor as bt
import requests

from hachiko.classes import CommitMeta, PRState
from hachiko.constants import BASE_GITHUB_API_URL, COMMIT_SCAN_LIMIT, PR_PAGE_SIZE

# =============================================================================
# Rate Limit Configuration
# =============================================================================
RATE_LIMIT_BUFFER_SECONDS = 5  # Extra buffer time when waiting for rate limit reset
RATE_LIMIT_MIN_REMAINING = 10  # Minimum remaining requests before preemptive wait
RATE_LIMIT_MAX_WAIT_SECONDS = 900  # Maximum time to wait for rate limit reset (15 min)

MAX_REQUEST_ATTEMPTS = 3
REQUEST_TIMEOUT_SECONDS = 30
RETRYABLE_STATUS_CODES = (500, 502, 503, 504)


@dataclass
class RateLimitInfo:
    """Represents GitHub API rate limit information extracted from response headers."""

    limit: int  # Maximum requests allowed per hour
    remaining: int  # Requests remaining in current window
    reset_timestamp: int  # Unix timestamp when the rate limit resets
    used: int  # Requests used in current window

    @property
    def is_exceeded(self) -> bool:
        """Check if rate limit has been exceeded."""
        return self.remaining == 0

    @property
    def seconds_until_reset(self) -> int:
        """Calculate seconds until rate limit resets."""
        current_time = int(time.time())
        return max(0, self.reset_timestamp - current_time)

    def __str__(self) -> str:
        return f"RateLimit(remaining={self.remaining}/{self.limit}, resets_in={self.seconds_until_reset}s)"


def parse_rate_limit_headers(response: requests.Response) -> Optional[RateLimitInfo]:
    """
    Parse GitHub API rate limit information from response headers.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        RateLimitInfo object if headers are present, None otherwise
    """
    headers = response.headers

    try:
        limit = int(headers.get('X-RateLimit-Limit', 0))
        remaining = int(headers.get('X-RateLimit-Remaining', 0))
        reset_timestamp = int(headers.get('X-RateLimit-Reset', 0))
        used = int(headers.get('X-RateLimit-Used', 0))

        if limit == 0 and reset_timestamp == 0:
            return None

        return RateLimitInfo(limit=limit, remaining=remaining, reset_timestamp=reset_timestamp, used=used)
    except (ValueError, TypeError) as e:
        bt.logging.debug(f"Could not parse rate limit headers: {e}")
        return None


def is_rate_limited(response: requests.Response) -> Tuple[bool, Optional[int]]:
    """
    Check if a response indicates rate limiting and calculate wait time.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        Tuple of (is_rate_limited, seconds_to_wait)
    """
    if response.status_code not in (403, 429):
        return (False, None)

    rate_limit_info = parse_rate_limit_headers(response)

    if rate_limit_info and rate_limit_info.is_exceeded:
        wait_seconds = min(
            rate_limit_info.seconds_until_reset + RATE_LIMIT_BUFFER_SECONDS,
            RATE_LIMIT_MAX_WAIT_SECONDS,
        )
        return (True, wait_seconds)

    response_text = response.text.lower()
    if 'rate limit' in response_text:
        retry_after = response.headers.get('Retry-After')
        if retry_after:
            try:
                return (True, min(int(retry_after) + RATE_LIMIT_BUFFER_SECONDS, RATE_LIMIT_MAX_WAIT_SECONDS))
            except ValueError:
                pass
        return (True, 60)

    return (False, None)


def check_preemptive_rate_limit(response: requests.Response) -> None:
    """Log a warning when we are close to exhausting the rate limit window."""
    rate_limit_info = parse_rate_limit_headers(response)

    if rate_limit_info:
        if rate_limit_info.remaining <= RATE_LIMIT_MIN_REMAINING:
            bt.logging.warning(
                f"Approaching GitHub API rate limit: {rate_limit_info.remaining} requests remaining, "
                f"resets in {rate_limit_info.seconds_until_reset}s"
            )
        elif rate_limit_info.remaining <= rate_limit_info.limit * 0.1:
            bt.logging.info(
                f"GitHub API rate limit status: {rate_limit_info.remaining}/{rate_limit_info.limit} remaining"
            )


def wait_for_rate_limit_reset(wait_seconds: int, context: str = "") -> None:
    """
    Wait for rate limit to reset with progress logging.

    Args:
        wait_seconds: Number of seconds to wait
        context: Optional context string for logging (e.g., "pulls list")
    """
    context_str = f" for {context}" if context else ""
    bt.logging.warning(f"GitHub API rate limit exceeded{context_str}. Waiting {wait_seconds}s for reset...")

    if wait_seconds <= 60:
        time.sleep(wait_seconds)
    else:
        intervals = wait_seconds // 60
        remaining = wait_seconds % 60

        for i in range(intervals):
            time.sleep(60)
            elapsed = (i + 1) * 60
            bt.logging.info(f"Rate limit wait: {elapsed}s elapsed, {wait_seconds - elapsed}s remaining")

        if remaining > 0:
            time.sleep(remaining)

    bt.logging.info("Rate limit wait complete, resuming API requests")


def make_headers(token: str) -> Dict[str, str]:
    """Build standard GitHub HTTP headers for a PAT.

    Args:
        token (str): Github pat
    Returns:
        Dict[str, str]: Mapping of HTTP header names to values.
    """
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3+json",
    }


def github_get(url: str, token: str, params: Optional[Dict[str, Any]] = None, context: str = "") -> requests.Response:
    """
    GET a GitHub REST endpoint with rate limit handling and retries on transient failures.

    404 responses are returned to the caller untouched. Any other non-200 response that is
    still failing after the last attempt is raised as requests.HTTPError; connection errors
    on the last attempt propagate as requests.RequestException.

    Args:
        url (str): Fully qualified endpoint URL
        token (str): Github pat
        params (Optional[Dict[str, Any]]): Query string parameters
        context (str): Short description used in log lines

    Returns:
        requests.Response: The 200 or 404 response
    """
    headers = make_headers(token)

    for attempt in range(MAX_REQUEST_ATTEMPTS):
        is_last_attempt = attempt == MAX_REQUEST_ATTEMPTS - 1
        try:
            response = requests.get(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        except requests.exceptions.RequestException as e:
            if is_last_attempt:
                bt.logging.error(f"GitHub request for {context} failed after {MAX_REQUEST_ATTEMPTS} attempts: {e}")
                raise
            backoff_delay = 2 * (2**attempt)
            bt.logging.warning(
                f"GitHub request connection error for {context} (attempt {attempt + 1}/{MAX_REQUEST_ATTEMPTS}): {e}, "
                f"retrying in {backoff_delay}s..."
            )
            time.sleep(backoff_delay)
            continue

        rate_limited, wait_seconds = is_rate_limited(response)
        if rate_limited and wait_seconds:
            if is_last_attempt:
                bt.logging.error(f"Rate limit exceeded on final attempt for {context}")
                response.raise_for_status()
            wait_for_rate_limit_reset(wait_seconds, context=context)
            continue

        if response.status_code in (200, 404):
            check_preemptive_rate_limit(response)
            return response

        if response.status_code in RETRYABLE_STATUS_CODES and not is_last_attempt:
            backoff_delay = 2 * (2**attempt)
            bt.logging.warning(
                f"GitHub request for {context} failed with status {response.status_code} "
                f"(attempt {attempt + 1}/{MAX_REQUEST_ATTEMPTS}), retrying in {backoff_delay}s..."
            )
            time.sleep(backoff_delay)
            continue

        bt.logging.error(f"GitHub request for {context} failed with status {response.status_code}")
        response.raise_for_status()
        # raise_for_status is a no-op for 1xx/3xx; treat those as failures too
        raise requests.HTTPError(f"Unexpected status {response.status_code} for {context}", response=response)

    raise requests.HTTPError(f"GitHub request for {context} exhausted retries")


class GitHubRepository:
    """Read-only query capability over one GitHub repository.

    Every inference function takes one of these explicitly; nothing is cached between calls.
    """

    def __init__(self, owner: str, name: str, token: str):
        self.owner = owner
        self.name = name
        self.token = token

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def _url(self, path: str) -> str:
        return f"{BASE_GITHUB_API_URL}/repos/{self.owner}/{self.name}/{path}"

    def list_pull_requests(self, state: PRState = PRState.OPEN, per_page: int = PR_PAGE_SIZE) -> List[Dict[str, Any]]:
        """Fetch the first page of pull requests in the given state (bounded at 100)."""
        state_value = state.value if isinstance(state, PRState) else str(state)
        response = github_get(
            self._url("pulls"),
            self.token,
            params={"state": state_value, "per_page": min(per_page, PR_PAGE_SIZE)},
            context=f"{self.full_name} {state_value} pulls",
        )
        if response.status_code == 404:
            response.raise_for_status()
        return response.json()

    def list_pull_request_commits(self, pr_number: int, per_page: int = COMMIT_SCAN_LIMIT) -> List[Dict[str, Any]]:
        response = github_get(
            self._url(f"pulls/{pr_number}/commits"),
            self.token,
            params={"per_page": per_page},
            context=f"PR #{pr_number} commits",
        )
        if response.status_code == 404:
            return []
        return response.json()

    def get_file_content(self, path: str, ref: str) -> Optional[str]:
        """
        Read a file at a ref via the contents API.

        Returns:
            Optional[str]: Decoded UTF-8 content, or None if the path does not exist or is not a file
        """
        response = github_get(
            self._url(f"contents/{path}"),
            self.token,
            params={"ref": ref},
            context=f"{path}@{ref}",
        )
        if response.status_code == 404:
            return None

        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get('content'), str):
            bt.logging.warning(f"{path}@{ref} is not a file, ignoring")
            return None
        return base64.b64decode(data['content']).decode('utf-8', errors='replace')

    def list_commits(self, path: str, ref: str, limit: int = 1) -> List[CommitMeta]:
        response = github_get(
            self._url("commits"),
            self.token,
            params={"path": path, "sha": ref, "per_page": limit},
            context=f"commits for {path}@{ref}",
        )
        if response.status_code == 404:
            return []
        return [CommitMeta.from_github_response(commit) for commit in response.json()]

    def __repr__(self) -> str:
        return f"GitHubRepository({self.full_name})"
