# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared pytest fixtures.

Provides an in-memory stand-in for GitHubRepository and a builder for raw GitHub
pull request payloads, so services can be tested without HTTP.

Usage:
    def test_something(fake_repo, pr_factory):
        fake_repo.pulls = [pr_factory.merged('hachiko/foo-step-1')]
        ...
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest
import requests

from hachiko.classes import CommitMeta, PRState, PullRequestSignal


# ============================================================================
# Raw PR Builder
# ============================================================================


@dataclass
class PRBuilder:
    """
    Builder for raw GitHub REST pull request payloads with sensible defaults.

    Usage:
        pr = pr_factory.open('hachiko/foo-step-1')
        pr = pr_factory.merged('hachiko/foo-step-2', number=7)
        pr = pr_factory.closed('hachiko/foo-step-3', labels=['hachiko:migration'])
    """

    _counter: int = 0

    def _next_number(self) -> int:
        self._counter += 1
        return self._counter

    def create(
        self,
        branch: str,
        state: str = 'open',
        merged: bool = False,
        number: Optional[int] = None,
        title: str = 'Migration step',
        labels: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        number = number if number is not None else self._next_number()
        return {
            'number': number,
            'title': title,
            'state': state,
            'head': {'ref': branch},
            'labels': [{'name': name} for name in (labels or [])],
            'html_url': f'https://github.com/owner/repo/pull/{number}',
            'merged_at': '2025-06-01T12:00:00Z' if merged else None,
        }

    def open(self, branch: str, **kwargs) -> Dict[str, Any]:
        return self.create(branch, state='open', merged=False, **kwargs)

    def merged(self, branch: str, **kwargs) -> Dict[str, Any]:
        return self.create(branch, state='closed', merged=True, **kwargs)

    def closed(self, branch: str, **kwargs) -> Dict[str, Any]:
        return self.create(branch, state='closed', merged=False, **kwargs)

    def signal(self, branch: str, state: str = 'open', merged: bool = False, **kwargs) -> PullRequestSignal:
        return PullRequestSignal.from_github_response(self.create(branch, state=state, merged=merged, **kwargs))


@pytest.fixture
def pr_factory() -> PRBuilder:
    return PRBuilder()


# ============================================================================
# Fake Repository
# ============================================================================


@dataclass
class FakeGitHubRepository:
    """In-memory GitHubRepository. Set `*_error` attributes to simulate upstream failures."""

    owner: str = 'owner'
    name: str = 'repo'
    pulls: List[Dict[str, Any]] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)
    pr_commits: Dict[int, List[Dict[str, Any]]] = field(default_factory=dict)
    commits: Dict[str, List[CommitMeta]] = field(default_factory=dict)
    list_error: Optional[Exception] = None
    file_errors: Dict[str, Exception] = field(default_factory=dict)
    commit_errors: Dict[int, Exception] = field(default_factory=dict)
    list_calls: List[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f'{self.owner}/{self.name}'

    def list_pull_requests(self, state: PRState = PRState.OPEN, per_page: int = 100) -> List[Dict[str, Any]]:
        self.list_calls.append(state.value)
        if self.list_error:
            raise self.list_error
        if state == PRState.ALL:
            matching = self.pulls
        else:
            matching = [pr for pr in self.pulls if pr['state'] == state.value]
        return list(matching[:per_page])

    def list_pull_request_commits(self, pr_number: int, per_page: int = 10) -> List[Dict[str, Any]]:
        if pr_number in self.commit_errors:
            raise self.commit_errors[pr_number]
        return list(self.pr_commits.get(pr_number, [])[:per_page])

    def get_file_content(self, path: str, ref: str) -> Optional[str]:
        if path in self.file_errors:
            raise self.file_errors[path]
        return self.files.get(path)

    def list_commits(self, path: str, ref: str, limit: int = 1) -> List[CommitMeta]:
        if path in self.file_errors:
            raise self.file_errors[path]
        return list(self.commits.get(path, [])[:limit])


@pytest.fixture
def fake_repo() -> FakeGitHubRepository:
    return FakeGitHubRepository()


@pytest.fixture
def upstream_error() -> requests.HTTPError:
    """A transient upstream failure as raised by the real transport."""
    return requests.HTTPError('502 Server Error: Bad Gateway')
