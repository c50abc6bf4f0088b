from typing import TYPE_CHECKING, Mapping

import bittensor as bt

if TYPE_CHECKING:
    from hachiko.classes import MigrationStateInfo


def log_migration_state(state_info: 'MigrationStateInfo') -> None:
    """Log an inferred migration state as a small tree."""
    merged = len(state_info.merged_prs)
    abandoned = len(state_info.abandoned_prs)

    bt.logging.info(
        f"Inferred state for {state_info.migration_id}: {state_info.status.value} "
        f"(step {state_info.current_step})"
    )
    bt.logging.debug(f'  ├─ Open PRs: {len(state_info.open_prs)}')
    for pr in state_info.open_prs:
        bt.logging.debug(f'  │   #{pr.number:<6} {pr.branch}')
    bt.logging.debug(f'  ├─ Closed PRs: {len(state_info.closed_prs)} (merged: {merged}, not merged: {abandoned})')
    for pr in state_info.closed_prs:
        merged_mark = ' [merged]' if pr.merged else ''
        bt.logging.debug(f'  │   #{pr.number:<6} {pr.branch}{merged_mark}')
    bt.logging.debug(f'  └─ Tasks: {state_info.completed_tasks}/{state_info.total_tasks} complete')


def log_batch_results(states: Mapping[str, 'MigrationStateInfo']) -> None:
    """Log a one-line-per-migration overview after a batch run."""
    bt.logging.info(f"Processed {len(states)} migration states")
    if not states:
        return

    max_id_len = max(len(migration_id) for migration_id in states)
    for migration_id, state_info in states.items():
        bt.logging.info(
            f'  │   {migration_id:<{max_id_len}}  {state_info.status.value:<9}  step {state_info.current_step}'
        )
