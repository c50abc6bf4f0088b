# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Current-step calculation from the branch names of a migration's PRs.

Branches encode the step either as `hachiko/{migration-id}-step-{N}` or, for older
agents, as `hachi/{plan-id}/{step-id}[/{chunk}]` where the step id carries the number.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

import bittensor as bt

from hachiko.classes import PullRequestSignal
from hachiko.constants import DEFAULT_STEP

STEP_PATTERN = re.compile(r'-step-(\d+)(?:-|$)')
LEGACY_BRANCH_PATTERN = re.compile(r'^hachi/([^/]+)/([^/]+)(?:/(.+))?$')
DIGITS_PATTERN = re.compile(r'(\d+)')


@dataclass(frozen=True)
class LegacyBranch:
    plan_id: str
    step_id: str
    chunk: Optional[str] = None


def parse_migration_branch_name(branch_name: str) -> Optional[LegacyBranch]:
    match = LEGACY_BRANCH_PATTERN.match(branch_name or '')
    if not match:
        return None
    return LegacyBranch(plan_id=match.group(1), step_id=match.group(2), chunk=match.group(3))


def get_step_number(pr: PullRequestSignal) -> Optional[int]:
    """Step number encoded in a PR's branch, or None if the branch carries none."""
    step_match = STEP_PATTERN.search(pr.branch)
    if step_match:
        return int(step_match.group(1))

    legacy = parse_migration_branch_name(pr.branch)
    if legacy:
        digits = DIGITS_PATTERN.search(legacy.step_id)
        if digits:
            return int(digits.group(1))

    return None


def calculate_current_step(open_prs: Sequence[PullRequestSignal], closed_prs: Sequence[PullRequestSignal]) -> int:
    """
    Derive the step the migration is currently on.

    Rules, first match wins:
        1. Highest merged step + 1. Merged work outranks anything still open.
        2. Lowest open step.
        3. Step of the most recent (highest PR number) closed-unmerged PR, i.e. the retry target.
        4. Step 1.

    Args:
        open_prs (Sequence[PullRequestSignal]): Open PRs for the migration
        closed_prs (Sequence[PullRequestSignal]): Closed PRs (merged or not) for the migration

    Returns:
        int: Current step, always >= 1
    """
    merged_steps = [step for step in (get_step_number(pr) for pr in closed_prs if pr.merged) if step is not None]
    if merged_steps:
        highest_merged_step = max(merged_steps)
        bt.logging.debug(
            f"Next step after merged PRs: {highest_merged_step + 1} (merged steps: {sorted(merged_steps, reverse=True)})"
        )
        return max(highest_merged_step + 1, DEFAULT_STEP)

    open_steps = [step for step in (get_step_number(pr) for pr in open_prs) if step is not None]
    if open_steps:
        current_step = min(open_steps)
        bt.logging.debug(f"Current step from open PRs: {current_step} (open steps: {sorted(open_steps)})")
        return max(current_step, DEFAULT_STEP)

    failed_attempts = [(pr.number, get_step_number(pr)) for pr in closed_prs if not pr.merged]
    failed_attempts = [(number, step) for number, step in failed_attempts if step is not None]
    if failed_attempts:
        pr_number, failed_step = max(failed_attempts)
        bt.logging.debug(f"Current step from most recent failed attempt: {failed_step} (PR #{pr_number})")
        return max(failed_step, DEFAULT_STEP)

    bt.logging.debug("Defaulting to step 1 (no PR activity or step info)")
    return DEFAULT_STEP
