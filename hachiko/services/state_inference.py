# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Migration state inference from PR activity and task completion.

Nothing is stored: every call re-reads the PRs and the migration document from GitHub
and derives the state from scratch.

State rules, in order:
    - completed: every checklist task in the migration document is ticked (and there is at least one)
    - active:    at least one open Hachiko PR
    - active:    no open PRs, and the most recent closed PR was merged (between steps)
    - paused:    no open PRs, and the most recent closed PR was closed without merging (agent gave up)
    - pending:   no Hachiko PR has ever been opened
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import bittensor as bt

from hachiko.classes import MigrationStateInfo, MigrationStatus, PRState, PullRequestSignal, TaskCompletionInfo
from hachiko.constants import DEFAULT_MIGRATIONS_DIR, DEFAULT_REF
from hachiko.services.pr_detection import get_closed_hachiko_prs, get_hachiko_prs, get_open_hachiko_prs
from hachiko.services.step_calculation import calculate_current_step
from hachiko.services.task_completion import get_task_completion_info
from hachiko.utils.github_api_tools import GitHubRepository
from hachiko.utils.logging import log_batch_results, log_migration_state


def migration_document_path(migration_id: str, migrations_dir: str = DEFAULT_MIGRATIONS_DIR) -> str:
    return f"{migrations_dir}/{migration_id}.md"


def infer_status(
    open_prs: Sequence[PullRequestSignal], closed_prs: Sequence[PullRequestSignal], task_info: TaskCompletionInfo
) -> MigrationStatus:
    if task_info.all_tasks_complete and task_info.total_tasks > 0:
        return MigrationStatus.COMPLETED

    if open_prs:
        return MigrationStatus.ACTIVE

    if closed_prs:
        # PR numbers are assigned in creation order, so the highest one is the most recent attempt
        most_recent_pr = max(closed_prs, key=lambda pr: pr.number)
        return MigrationStatus.ACTIVE if most_recent_pr.merged else MigrationStatus.PAUSED

    return MigrationStatus.PENDING


def build_migration_state(
    migration_id: str,
    open_prs: Sequence[PullRequestSignal],
    closed_prs: Sequence[PullRequestSignal],
    document_content: Optional[str] = None,
) -> MigrationStateInfo:
    """Combine already-fetched signals into a MigrationStateInfo. Pure apart from the timestamp."""
    task_info = get_task_completion_info(document_content)

    return MigrationStateInfo(
        migration_id=migration_id,
        status=infer_status(open_prs, closed_prs, task_info),
        open_prs=tuple(open_prs),
        closed_prs=tuple(closed_prs),
        all_tasks_complete=task_info.all_tasks_complete,
        total_tasks=task_info.total_tasks,
        completed_tasks=task_info.completed_tasks,
        current_step=calculate_current_step(open_prs, closed_prs),
        last_updated=datetime.now(timezone.utc),
    )


async def _fetch_migration_prs(
    client: GitHubRepository, migration_id: str, single_snapshot: bool = False, scan_commits: bool = False
) -> Tuple[List[PullRequestSignal], List[PullRequestSignal]]:
    """Fetch (open, closed) PRs for a migration.

    The default issues two independent queries, so a PR that closes between them can be seen
    twice or not at all. single_snapshot=True reads everything in one query and splits it locally.
    """
    if single_snapshot:
        all_prs = await asyncio.to_thread(get_hachiko_prs, client, migration_id, PRState.ALL, scan_commits)
        return [pr for pr in all_prs if pr.is_open], [pr for pr in all_prs if not pr.is_open]

    open_prs, closed_prs = await asyncio.gather(
        asyncio.to_thread(get_open_hachiko_prs, client, migration_id, scan_commits),
        asyncio.to_thread(get_closed_hachiko_prs, client, migration_id, scan_commits),
    )
    return open_prs, closed_prs


async def get_migration_state(
    client: GitHubRepository,
    migration_id: str,
    document_content: Optional[str] = None,
    single_snapshot: bool = False,
    scan_commits: bool = False,
) -> MigrationStateInfo:
    """
    Infer the state of a migration from its PRs and, if given, its document content.

    Args:
        client (GitHubRepository): Repository to query
        migration_id (str): Migration to inspect
        document_content (Optional[str]): Migration document markdown; None means no document
        single_snapshot (bool): Read open and closed PRs in one query instead of two
        scan_commits (bool): Also match labelled PRs by commit tracking tokens

    Returns:
        MigrationStateInfo: Freshly computed state

    Raises:
        requests.RequestException: When GitHub cannot be queried
    """
    try:
        open_prs, closed_prs = await _fetch_migration_prs(client, migration_id, single_snapshot, scan_commits)
    except Exception as e:
        bt.logging.error(f"Failed to get migration state for {migration_id}: {e}")
        raise

    state_info = build_migration_state(migration_id, open_prs, closed_prs, document_content)
    log_migration_state(state_info)
    return state_info


async def get_migration_document_content(
    client: GitHubRepository,
    migration_id: str,
    ref: str = DEFAULT_REF,
    migrations_dir: str = DEFAULT_MIGRATIONS_DIR,
) -> Optional[str]:
    """Migration document markdown at `ref`, or None if it does not exist there."""
    file_path = migration_document_path(migration_id, migrations_dir)
    try:
        content = await asyncio.to_thread(client.get_file_content, file_path, ref)
    except Exception as e:
        bt.logging.error(f"Failed to get migration document {file_path}@{ref}: {e}")
        raise

    if content is None:
        bt.logging.info(f"Migration document not found: {file_path}@{ref}")
    return content


async def get_migration_state_with_document(
    client: GitHubRepository,
    migration_id: str,
    ref: str = DEFAULT_REF,
    migrations_dir: str = DEFAULT_MIGRATIONS_DIR,
    single_snapshot: bool = False,
    scan_commits: bool = False,
) -> MigrationStateInfo:
    """Fetch the migration document and the PRs concurrently, then infer the state."""
    try:
        document_content, (open_prs, closed_prs) = await asyncio.gather(
            get_migration_document_content(client, migration_id, ref, migrations_dir),
            _fetch_migration_prs(client, migration_id, single_snapshot, scan_commits),
        )
    except Exception as e:
        bt.logging.error(f"Failed to get migration state with document for {migration_id}@{ref}: {e}")
        raise

    state_info = build_migration_state(migration_id, open_prs, closed_prs, document_content)
    log_migration_state(state_info)
    return state_info


async def _get_state_with_fallback(
    client: GitHubRepository,
    migration_id: str,
    ref: str,
    migrations_dir: str,
    single_snapshot: bool,
    scan_commits: bool,
) -> MigrationStateInfo:
    try:
        return await get_migration_state_with_document(
            client, migration_id, ref, migrations_dir, single_snapshot, scan_commits
        )
    except Exception as e:
        bt.logging.warning(
            f"Failed to get migration state with document for {migration_id}, falling back to PR-only inference: {e}"
        )

    try:
        return await get_migration_state(
            client, migration_id, single_snapshot=single_snapshot, scan_commits=scan_commits
        )
    except Exception as e:
        bt.logging.error(f"Failed to get state for {migration_id} even without document, using default: {e}")

    return MigrationStateInfo.default(migration_id)


async def get_multiple_migration_states(
    client: GitHubRepository,
    migration_ids: Iterable[str],
    ref: str = DEFAULT_REF,
    migrations_dir: str = DEFAULT_MIGRATIONS_DIR,
    single_snapshot: bool = False,
    scan_commits: bool = False,
) -> Dict[str, MigrationStateInfo]:
    """
    Infer the states of several migrations concurrently.

    A failure for one migration never affects the others: it falls back to PR-only inference,
    then to a default pending record.

    Returns:
        Dict[str, MigrationStateInfo]: State per migration id, in input order
    """
    ids = list(dict.fromkeys(migration_ids))

    results = await asyncio.gather(
        *[
            _get_state_with_fallback(client, migration_id, ref, migrations_dir, single_snapshot, scan_commits)
            for migration_id in ids
        ],
        return_exceptions=True,
    )

    states: Dict[str, MigrationStateInfo] = {}
    for migration_id, result in zip(ids, results):
        if isinstance(result, BaseException):
            bt.logging.error(f"Unexpected failure inferring state for {migration_id}: {result}")
            states[migration_id] = MigrationStateInfo.default(migration_id)
        else:
            states[migration_id] = result

    log_batch_results(states)
    return states


async def get_migration_document_last_updated(
    client: GitHubRepository,
    migration_id: str,
    ref: str = DEFAULT_REF,
    migrations_dir: str = DEFAULT_MIGRATIONS_DIR,
) -> Optional[datetime]:
    """Commit date of the latest change to the migration document, or None if unknown."""
    file_path = migration_document_path(migration_id, migrations_dir)
    try:
        commits = await asyncio.to_thread(client.list_commits, file_path, ref, 1)
    except Exception as e:
        bt.logging.error(f"Failed to get last update of {file_path}@{ref}: {e}")
        return None

    if commits and commits[0].committed_at:
        return commits[0].committed_at
    return None


def _plural(count: int, noun: str) -> str:
    return f"1 {noun}" if count == 1 else f"{count} {noun}s"


def get_migration_state_summary(state_info: MigrationStateInfo) -> str:
    """One-line human readable summary, e.g. 'Active (2 open PRs • 3/7 tasks complete)'."""
    total = state_info.total_tasks
    task_summary = f" • {state_info.completed_tasks}/{total} tasks complete" if total > 0 else ""

    if state_info.status == MigrationStatus.PENDING:
        return f"Pending ({total} tasks planned, none started)" if total > 0 else "Pending (no PRs opened yet)"

    if state_info.status == MigrationStatus.ACTIVE:
        return f"Active ({_plural(len(state_info.open_prs), 'open PR')}{task_summary})"

    if state_info.status == MigrationStatus.PAUSED:
        return f"Paused ({_plural(len(state_info.closed_prs), 'closed PR')}, no open PRs{task_summary})"

    return f"Completed (all {total} tasks finished)"


def format_state_outputs(state_info: MigrationStateInfo) -> str:
    """`key=value` lines for automation (GitHub Actions step outputs)."""
    outputs = [
        ('migration_id', state_info.migration_id),
        ('status', state_info.status.value),
        ('current_step', state_info.current_step),
        ('total_tasks', state_info.total_tasks),
        ('completed_tasks', state_info.completed_tasks),
        ('open_prs', len(state_info.open_prs)),
        ('closed_prs', len(state_info.closed_prs)),
        ('last_updated', state_info.last_updated.isoformat()),
    ]
    return '\n'.join(f"{key}={value}" for key, value in outputs)
