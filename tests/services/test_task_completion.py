# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Tests for markdown checklist analysis of migration documents.
"""

from hachiko.classes import Task
from hachiko.services.task_completion import get_task_completion_info

MIGRATION_DOCUMENT = """---
id: add-jsdoc-comments
title: Add JSDoc comments
---

# Add JSDoc comments

## Steps

- [x] Document utility functions
- [X] Document hooks
- [ ] Document components

Notes:
* [x] not a task (wrong bullet)
  - [x] not a task (indented)
- [] not a task (empty marker)
"""


class TestGetTaskCompletionInfo:
    def test_partially_complete(self):
        info = get_task_completion_info("- [x] a\n- [ ] b\n")

        assert info.total_tasks == 2
        assert info.completed_tasks == 1
        assert info.all_tasks_complete is False

    def test_single_completed_task(self):
        info = get_task_completion_info("- [x] only\n")

        assert info.total_tasks == 1
        assert info.completed_tasks == 1
        assert info.all_tasks_complete is True
        assert info.tasks == (Task(completed=True, text='only'),)

    def test_empty_document_is_never_complete(self):
        info = get_task_completion_info('')

        assert info.total_tasks == 0
        assert info.all_tasks_complete is False

    def test_none_document(self):
        info = get_task_completion_info(None)

        assert info.total_tasks == 0
        assert info.tasks == ()

    def test_document_without_checklist(self):
        info = get_task_completion_info('# Plan\n\nJust prose, no tasks.\n')

        assert info.total_tasks == 0
        assert info.all_tasks_complete is False

    def test_uppercase_marker_counts_as_complete(self):
        info = get_task_completion_info('- [X] shouted\n')

        assert info.completed_tasks == 1

    def test_full_document_ignores_malformed_lines(self):
        info = get_task_completion_info(MIGRATION_DOCUMENT)

        assert info.total_tasks == 3
        assert info.completed_tasks == 2
        assert [task.text for task in info.tasks] == [
            'Document utility functions',
            'Document hooks',
            'Document components',
        ]

    def test_crlf_line_endings(self):
        info = get_task_completion_info('- [x] a\r\n- [ ] b\r\n')

        assert info.total_tasks == 2
        assert info.completed_tasks == 1
        assert [task.text for task in info.tasks] == ['a', 'b']
