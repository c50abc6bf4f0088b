# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Tests for the data model: GitHub payload parsing and MigrationStateInfo invariants.
"""

from datetime import datetime, timezone

import pytest

from hachiko.classes import CommitMeta, MigrationStateInfo, MigrationStatus, PullRequestSignal


class TestPullRequestSignal:
    def test_from_github_response(self):
        pr = PullRequestSignal.from_github_response(
            {
                'number': 42,
                'title': '[foo] Step 1',
                'state': 'closed',
                'head': {'ref': 'hachiko/foo-step-1'},
                'labels': [{'name': 'hachiko:migration'}, {'name': 'docs'}],
                'html_url': 'https://github.com/owner/repo/pull/42',
                'merged_at': '2025-06-01T12:00:00Z',
            }
        )

        assert pr.number == 42
        assert pr.branch == 'hachiko/foo-step-1'
        assert pr.labels == frozenset({'hachiko:migration', 'docs'})
        assert pr.merged is True
        assert pr.is_open is False
        assert pr.migration_id is None

    def test_unmerged_and_missing_fields(self):
        pr = PullRequestSignal.from_github_response({'number': 1, 'state': 'open', 'merged_at': None})

        assert pr.merged is False
        assert pr.branch == ''
        assert pr.labels == frozenset()
        assert pr.is_open is True


class TestCommitMeta:
    def test_parses_committer_date(self):
        commit = CommitMeta.from_github_response(
            {'sha': 'abc123', 'commit': {'message': 'Tick', 'committer': {'date': '2025-06-01T12:00:00Z'}}}
        )

        assert commit.committed_at == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_missing_date(self):
        assert CommitMeta.from_github_response({'sha': 'abc', 'commit': {}}).committed_at is None


class TestMigrationStateInfoInvariants:
    def test_default_record(self):
        state = MigrationStateInfo.default('foo')

        assert state.status == MigrationStatus.PENDING
        assert state.current_step == 1
        assert state.open_prs == ()
        assert state.closed_prs == ()
        assert state.total_tasks == 0

    def test_step_must_be_positive(self):
        with pytest.raises(ValueError):
            MigrationStateInfo(migration_id='foo', status=MigrationStatus.PENDING, current_step=0)

    def test_completed_tasks_cannot_exceed_total(self):
        with pytest.raises(ValueError):
            MigrationStateInfo(migration_id='foo', status=MigrationStatus.ACTIVE, total_tasks=1, completed_tasks=2)

    def test_completed_requires_all_tasks(self):
        with pytest.raises(ValueError):
            MigrationStateInfo(migration_id='foo', status=MigrationStatus.COMPLETED, total_tasks=2, completed_tasks=1)

    def test_completed_requires_at_least_one_task(self):
        with pytest.raises(ValueError):
            MigrationStateInfo(migration_id='foo', status=MigrationStatus.COMPLETED)

    def test_is_immutable(self):
        state = MigrationStateInfo.default('foo')

        with pytest.raises(AttributeError):
            state.current_step = 5

    def test_comparable_ignores_last_updated(self):
        first = MigrationStateInfo(
            migration_id='foo', status=MigrationStatus.PENDING, last_updated=datetime(2025, 1, 1, tzinfo=timezone.utc)
        )
        second = MigrationStateInfo(
            migration_id='foo', status=MigrationStatus.PENDING, last_updated=datetime(2025, 2, 1, tzinfo=timezone.utc)
        )

        assert first != second
        assert first.comparable() == second.comparable()

    def test_merged_and_abandoned_views(self, pr_factory):
        merged = pr_factory.signal('hachiko/foo-step-1', state='closed', merged=True)
        abandoned = pr_factory.signal('hachiko/foo-step-2', state='closed')
        state = MigrationStateInfo(
            migration_id='foo', status=MigrationStatus.PAUSED, closed_prs=(merged, abandoned), current_step=2
        )

        assert state.merged_prs == (merged,)
        assert state.abandoned_prs == (abandoned,)

    def test_all_tasks_complete_must_match_counts(self):
        with pytest.raises(ValueError):
            MigrationStateInfo(
                migration_id='foo',
                status=MigrationStatus.ACTIVE,
                all_tasks_complete=True,
                total_tasks=3,
                completed_tasks=1,
            )
        with pytest.raises(ValueError):
            MigrationStateInfo(migration_id='foo', status=MigrationStatus.ACTIVE, total_tasks=2, completed_tasks=2)

    def test_open_prs_must_be_open(self, pr_factory):
        with pytest.raises(ValueError):
            MigrationStateInfo(
                migration_id='foo',
                status=MigrationStatus.ACTIVE,
                open_prs=(pr_factory.signal('hachiko/foo-step-1', state='closed', merged=True),),
            )

    def test_closed_prs_must_not_be_open(self, pr_factory):
        with pytest.raises(ValueError):
            MigrationStateInfo(
                migration_id='foo', status=MigrationStatus.PAUSED, closed_prs=(pr_factory.signal('hachiko/foo-step-1'),)
            )
