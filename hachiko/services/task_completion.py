# The MIT License (MIT)
# Copyright © 2025 Entrius

import re
from typing import Optional

from hachiko.classes import Task, TaskCompletionInfo

TASK_PATTERN = re.compile(r'^- \[([ xX])\] (.+?)\r?$', re.MULTILINE)


def get_task_completion_info(document_content: Optional[str]) -> TaskCompletionInfo:
    """Count markdown checklist items (`- [ ] text` / `- [x] text`) in a migration document.

    A document with no checklist lines is never complete.
    """
    tasks = tuple(
        Task(completed=match.group(1) != ' ', text=match.group(2))
        for match in TASK_PATTERN.finditer(document_content or '')
    )

    total_tasks = len(tasks)
    completed_tasks = sum(1 for task in tasks if task.completed)

    return TaskCompletionInfo(
        all_tasks_complete=total_tasks > 0 and completed_tasks == total_tasks,
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        tasks=tasks,
    )
