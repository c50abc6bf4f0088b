# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Detection and lookup of Hachiko PRs.

A PR belongs to a migration when its branch (`hachiko/{migration-id}[-description]`) or its
title (`[{migration-id}]`) names one. The `hachiko:migration` label only corroborates.
"""

import re
from typing import Any, Dict, List, Optional, Union

import bittensor as bt
import requests

from hachiko.classes import PRState, PRValidationResult, PullRequestSignal
from hachiko.constants import (
    DESCRIPTIVE_SUFFIX_WORDS,
    HACHIKO_BRANCH_PREFIX,
    HACHIKO_LABEL,
    MIN_IDENTIFICATION_METHODS,
    TRACKING_TOKEN_PREFIX,
)
from hachiko.utils.github_api_tools import GitHubRepository

BRANCH_PATTERN = re.compile(r'^hachiko/(.+)$')
TITLE_PATTERN = re.compile(r'\[([^\]]+)\]')
COMMIT_TRACKING_PATTERN = re.compile(rf'^{re.escape(TRACKING_TOKEN_PREFIX)}([^:\s]+)', re.MULTILINE)

PRLike = Union[PullRequestSignal, Dict[str, Any]]


def _as_signal(pr: PRLike) -> PullRequestSignal:
    if isinstance(pr, PullRequestSignal):
        return pr
    return PullRequestSignal.from_github_response(pr)


def extract_migration_id_from_branch(branch: str) -> Optional[str]:
    """Migration id from a `hachiko/...` branch, with trailing description words stripped.

    `hachiko/add-jsdoc-comments-utility-functions` -> `add-jsdoc-comments`
    `hachiko/react-v16-to-v18-hooks-migration` -> `react-v16-to-v18-hooks-migration`
    """
    match = BRANCH_PATTERN.match(branch or '')
    if not match:
        return None

    full_id = match.group(1)
    parts = full_id.split('-')
    if len(parts) > 1:
        descriptive_count = 0
        for part in reversed(parts):
            if part.lower() not in DESCRIPTIVE_SUFFIX_WORDS:
                break
            descriptive_count += 1

        if descriptive_count > 0:
            return '-'.join(parts[:-descriptive_count]) or None

    return full_id


def extract_migration_id_from_title(title: str) -> Optional[str]:
    match = TITLE_PATTERN.search(title or '')
    return match.group(1) if match else None


def extract_migration_id(pr: PRLike) -> Optional[str]:
    """Migration id for a PR: branch convention first, then the first `[...]` token in the title."""
    signal = _as_signal(pr)
    return extract_migration_id_from_branch(signal.branch) or extract_migration_id_from_title(signal.title)


def detect_hachiko_pr(pr_raw: Dict[str, Any]) -> Optional[PullRequestSignal]:
    """Build a PullRequestSignal for a raw GitHub PR if it belongs to any migration."""
    signal = PullRequestSignal.from_github_response(pr_raw)
    migration_id = extract_migration_id(signal)
    if not migration_id:
        return None
    return PullRequestSignal.from_github_response(pr_raw, migration_id=migration_id)


def has_hachiko_label(pr: PRLike) -> bool:
    return HACHIKO_LABEL in _as_signal(pr).labels


def validate_hachiko_pr(pr: PRLike) -> PRValidationResult:
    """
    Check how many of the three identification conventions a PR follows.

    At least two are needed for the PR to be considered reliably identified. Missing
    conventions are reported as recommendations; this never blocks inference.
    """
    signal = _as_signal(pr)
    identification_methods = []
    recommendations = []
    migration_id = None

    branch_id = extract_migration_id_from_branch(signal.branch)
    if branch_id:
        migration_id = branch_id
        identification_methods.append('branch')
    else:
        recommendations.append(
            "Branch should be named 'hachiko/{migration-id}' or 'hachiko/{migration-id}-description'"
        )

    if has_hachiko_label(signal):
        identification_methods.append('label')
    else:
        recommendations.append(f"Add label '{HACHIKO_LABEL}' to the PR")

    title_id = extract_migration_id_from_title(signal.title)
    if title_id:
        identification_methods.append('title')
        migration_id = migration_id or title_id
    else:
        recommendations.append("Include '[{migration-id}]' somewhere in the PR title")

    is_valid = len(identification_methods) >= MIN_IDENTIFICATION_METHODS
    return PRValidationResult(
        is_valid=is_valid,
        migration_id=migration_id,
        identification_methods=tuple(identification_methods),
        recommendations=() if is_valid else tuple(recommendations),
    )


def _find_tracking_token_match(client: GitHubRepository, pr_raw: Dict[str, Any], migration_id: str) -> bool:
    """Check a PR's first commits for a `hachiko-track:{id}` line (cloud agents put it there)."""
    try:
        commits = client.list_pull_request_commits(pr_raw['number'])
    except requests.exceptions.RequestException as e:
        bt.logging.warning(f"Failed to fetch commits for PR #{pr_raw['number']}, skipping commit-based detection: {e}")
        return False

    for commit in commits:
        message = (commit.get('commit') or {}).get('message', '')
        match = COMMIT_TRACKING_PATTERN.search(message)
        if match and match.group(1) == migration_id:
            bt.logging.debug(
                f"Found Hachiko PR #{pr_raw['number']} for {migration_id} via commit {commit.get('sha', '')[:7]}"
            )
            return True
    return False


def get_hachiko_prs(
    client: GitHubRepository, migration_id: str, state: PRState, scan_commits: bool = False
) -> List[PullRequestSignal]:
    """
    Get the Hachiko PRs of one migration in the given state.

    Looks at the first page (100) of PRs and keeps those whose branch starts with
    `hachiko/{migration_id}` or that carry the Hachiko label, provided the id extracted from the PR
    matches. PRs identified by title alone are not found here.

    Args:
        client (GitHubRepository): Repository to query
        migration_id (str): Migration to look up
        state (PRState): OPEN, CLOSED or ALL
        scan_commits (bool): Also match labelled PRs by a tracking token in their commit messages

    Returns:
        List[PullRequestSignal]: Matching PRs, deduplicated by number, in API order
    """
    try:
        pulls = client.list_pull_requests(state)
    except requests.exceptions.RequestException as e:
        bt.logging.error(f"Failed to get Hachiko PRs for {migration_id} ({state.value}): {e}")
        raise

    branch_prefix = f"{HACHIKO_BRANCH_PREFIX}{migration_id}"
    found: Dict[int, PullRequestSignal] = {}
    unmatched_labelled = []

    for pr_raw in pulls:
        branch = (pr_raw.get('head') or {}).get('ref') or ''
        labelled = has_hachiko_label(pr_raw)
        if not (branch.startswith(branch_prefix) or labelled):
            continue

        signal = detect_hachiko_pr(pr_raw)
        if signal and signal.migration_id == migration_id:
            found.setdefault(signal.number, signal)
        elif labelled:
            unmatched_labelled.append(pr_raw)

    if scan_commits:
        for pr_raw in unmatched_labelled:
            if _find_tracking_token_match(client, pr_raw, migration_id):
                found.setdefault(pr_raw['number'], PullRequestSignal.from_github_response(pr_raw, migration_id))

    # keep API order even when commit scanning added PRs late
    order = {pr_raw['number']: index for index, pr_raw in enumerate(pulls)}
    results = sorted(found.values(), key=lambda pr: order[pr.number])

    bt.logging.info(f"Found {len(results)} {state.value} Hachiko PRs for migration {migration_id}")
    return results


def get_open_hachiko_prs(
    client: GitHubRepository, migration_id: str, scan_commits: bool = False
) -> List[PullRequestSignal]:
    return get_hachiko_prs(client, migration_id, PRState.OPEN, scan_commits=scan_commits)


def get_closed_hachiko_prs(
    client: GitHubRepository, migration_id: str, scan_commits: bool = False
) -> List[PullRequestSignal]:
    return get_hachiko_prs(client, migration_id, PRState.CLOSED, scan_commits=scan_commits)


def get_all_open_hachiko_prs(client: GitHubRepository) -> List[PullRequestSignal]:
    """Every open PR that belongs to some migration, regardless of which one."""
    try:
        pulls = client.list_pull_requests(PRState.OPEN)
    except requests.exceptions.RequestException as e:
        bt.logging.error(f"Failed to get all open Hachiko PRs: {e}")
        raise

    hachiko_prs = [signal for signal in (detect_hachiko_pr(pr_raw) for pr_raw in pulls) if signal]
    bt.logging.info(f"Found {len(hachiko_prs)} open Hachiko PRs out of {len(pulls)} open PRs")
    return hachiko_prs
