from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from hachiko.constants import DEFAULT_STEP


class PRState(Enum):
    """Lifecycle filter accepted by the GitHub pulls endpoint"""

    OPEN = "open"
    CLOSED = "closed"
    ALL = "all"


class MigrationStatus(Enum):
    """Inferred lifecycle status of a migration"""

    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PullRequestSignal:
    """Read-only view of a pull request, fetched fresh on every inference call."""

    number: int
    title: str
    branch: str
    state: str  # "open" or "closed"
    merged: bool
    url: str
    labels: FrozenSet[str] = field(default_factory=frozenset)
    migration_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state == PRState.OPEN.value

    @classmethod
    def from_github_response(cls, pr_raw: Dict[str, Any], migration_id: Optional[str] = None) -> 'PullRequestSignal':
        """Create PullRequestSignal from a GitHub REST pull request object"""
        labels = frozenset(
            label['name'] if isinstance(label, dict) else str(label) for label in pr_raw.get('labels') or []
        )
        return cls(
            number=pr_raw['number'],
            title=pr_raw.get('title') or '',
            branch=(pr_raw.get('head') or {}).get('ref') or '',
            state=pr_raw.get('state') or PRState.OPEN.value,
            merged=pr_raw.get('merged_at') is not None,
            url=pr_raw.get('html_url') or '',
            labels=labels,
            migration_id=migration_id,
        )


@dataclass(frozen=True)
class Task:
    """One markdown checklist line"""

    completed: bool
    text: str


@dataclass(frozen=True)
class TaskCompletionInfo:
    all_tasks_complete: bool
    total_tasks: int
    completed_tasks: int
    tasks: Tuple[Task, ...] = ()


@dataclass(frozen=True)
class PRValidationResult:
    """Advisory result of checking a PR against the branch/label/title conventions"""

    is_valid: bool
    migration_id: Optional[str]
    identification_methods: Tuple[str, ...]
    recommendations: Tuple[str, ...]


@dataclass(frozen=True)
class CommitMeta:
    sha: str
    message: str
    committed_at: Optional[datetime] = None

    @classmethod
    def from_github_response(cls, commit_raw: Dict[str, Any]) -> 'CommitMeta':
        commit = commit_raw.get('commit') or {}
        committer = commit.get('committer') or {}
        date = committer.get('date')
        committed_at = None
        if date:
            committed_at = datetime.fromisoformat(date.rstrip("Z")).replace(tzinfo=timezone.utc)
        return cls(sha=commit_raw.get('sha', ''), message=commit.get('message', ''), committed_at=committed_at)


@dataclass(frozen=True)
class MigrationStateInfo:
    """Snapshot of a migration's inferred state.

    Rebuilt from scratch on every call. `last_updated` is the time the snapshot was computed,
    not the time of the underlying PR or document activity.
    """

    migration_id: str
    status: MigrationStatus
    open_prs: Tuple[PullRequestSignal, ...] = ()
    closed_prs: Tuple[PullRequestSignal, ...] = ()
    all_tasks_complete: bool = False
    total_tasks: int = 0
    completed_tasks: int = 0
    current_step: int = DEFAULT_STEP
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.current_step < 1:
            raise ValueError(f"current_step must be >= 1 (got {self.current_step})")
        if self.total_tasks < 0 or self.completed_tasks < 0:
            raise ValueError("task counts must be non-negative")
        if self.completed_tasks > self.total_tasks:
            raise ValueError(
                f"completed_tasks ({self.completed_tasks}) cannot exceed total_tasks ({self.total_tasks})"
            )
        if self.all_tasks_complete != (self.total_tasks > 0 and self.completed_tasks == self.total_tasks):
            raise ValueError(
                f"all_tasks_complete={self.all_tasks_complete} does not match {self.completed_tasks}/{self.total_tasks}"
            )
        if any(not pr.is_open for pr in self.open_prs):
            raise ValueError("open_prs may only contain open PRs")
        if any(pr.is_open for pr in self.closed_prs):
            raise ValueError("closed_prs may not contain open PRs")
        if self.status == MigrationStatus.COMPLETED and not (
            self.total_tasks > 0 and self.completed_tasks == self.total_tasks
        ):
            raise ValueError("completed status requires every task (and at least one) to be complete")

    @property
    def merged_prs(self) -> Tuple[PullRequestSignal, ...]:
        return tuple(pr for pr in self.closed_prs if pr.merged)

    @property
    def abandoned_prs(self) -> Tuple[PullRequestSignal, ...]:
        return tuple(pr for pr in self.closed_prs if not pr.merged)

    def comparable(self) -> 'MigrationStateInfo':
        """Return a copy with `last_updated` pinned, for comparing two snapshots."""
        return replace(self, last_updated=datetime.fromtimestamp(0, timezone.utc))

    @classmethod
    def default(cls, migration_id: str) -> 'MigrationStateInfo':
        """Fallback record used when nothing at all could be inferred."""
        return cls(migration_id=migration_id, status=MigrationStatus.PENDING)
