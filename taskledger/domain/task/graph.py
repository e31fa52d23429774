"""Pure graph queries over the task collection.

Tasks form two independent structures: a parent tree (``parent_id``) and a
dependency graph (``depends``). All functions in this module are pure - no
I/O, no side effects. They take the in-memory task list and return data.
"""

from collections import deque
from collections.abc import Callable, Iterable, Sequence

from .models import Task, TaskStatus

# =============================================================================
# Lookup
# =============================================================================


def index_by_id(tasks: Sequence[Task]) -> dict[str, Task]:
    """Map task id -> task. Later duplicates win; uniqueness is checked elsewhere."""
    return {task.id: task for task in tasks}


def filter_tasks(
    tasks: Sequence[Task],
    predicate: Callable[[Task], bool],
) -> list[Task]:
    """Return the tasks matching a predicate, in store order."""
    return [task for task in tasks if predicate(task)]


def has_status(*statuses: TaskStatus) -> Callable[[Task], bool]:
    """Return a predicate that checks for any of the given statuses."""

    def predicate(task: Task) -> bool:
        return task.status in statuses

    return predicate


def count_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, int]:
    """Count tasks by status. Every status is present in the result."""
    counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] += 1
    return counts


# =============================================================================
# Parent tree
# =============================================================================


def children(tasks: Sequence[Task], task_id: str) -> list[Task]:
    """Direct children of a task, in store order."""
    return [task for task in tasks if task.parent_id == task_id]


def descendants(tasks: Sequence[Task], task_id: str) -> list[Task]:
    """All tasks below ``task_id`` in the parent tree, breadth-first.

    The starting task is never part of the result. Visited ids are tracked,
    so a corrupted (cyclic) tree still terminates.

    Args:
        tasks: The task collection
        task_id: Root of the subtree

    Returns:
        Every descendant exactly once
    """
    by_parent: dict[str, list[Task]] = {}
    for task in tasks:
        if task.parent_id is not None:
            by_parent.setdefault(task.parent_id, []).append(task)

    found: list[Task] = []
    visited = {task_id}
    queue = deque([task_id])
    while queue:
        current = queue.popleft()
        for child in by_parent.get(current, []):
            if child.id in visited:
                continue
            visited.add(child.id)
            found.append(child)
            queue.append(child.id)
    return found


def is_leaf(tasks: Sequence[Task], task_id: str) -> bool:
    return not any(task.parent_id == task_id for task in tasks)


def find_parent_cycle(tasks: Sequence[Task]) -> list[str] | None:
    """Return the ids forming a cycle in the parent tree, or None.

    Follows each task's parent chain; a chain that revisits one of its own
    ids is a cycle. Chains ending at a missing parent are not cycles.
    """
    by_id = index_by_id(tasks)
    cleared: set[str] = set()
    for task in tasks:
        chain: list[str] = []
        on_chain: set[str] = set()
        current: Task | None = task
        while current is not None and current.id not in cleared:
            if current.id in on_chain:
                return chain[chain.index(current.id):]
            chain.append(current.id)
            on_chain.add(current.id)
            current = by_id.get(current.parent_id) if current.parent_id else None
        cleared.update(chain)
    return None


# =============================================================================
# Dependency graph
# =============================================================================


def dependents(tasks: Sequence[Task], ids: Iterable[str]) -> list[Task]:
    """Tasks outside ``ids`` whose ``depends`` references a task inside it."""
    targets = set(ids)
    return [
        task
        for task in tasks
        if task.id not in targets and any(dep in targets for dep in task.depends)
    ]


def find_dependency_cycle(tasks: Sequence[Task]) -> list[str] | None:
    """Return the ids forming a cycle in the dependency graph, or None.

    Iterative depth-first search with white/grey/black colouring. Edges to
    ids that are not in the collection are ignored here; dangling
    references are reported by the invariant checker.
    """
    by_id = index_by_id(tasks)
    done: set[str] = set()

    for root in tasks:
        if root.id in done:
            continue
        path: list[str] = [root.id]
        on_path = {root.id}
        stack = [iter(root.depends)]
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                finished = path.pop()
                on_path.discard(finished)
                done.add(finished)
                continue
            if dep not in by_id or dep in done:
                continue
            if dep in on_path:
                return path[path.index(dep):]
            path.append(dep)
            on_path.add(dep)
            stack.append(iter(by_id[dep].depends))
    return None
