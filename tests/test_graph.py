# tests/test_graph.py

from taskledger.domain.task import (
    Task,
    TaskStatus,
    TaskStore,
    check_invariants,
    children,
    count_by_status,
    dependents,
    descendants,
    filter_tasks,
    find_dependency_cycle,
    find_parent_cycle,
    has_status,
    is_leaf,
)


def _task(task_id: str, **fields) -> Task:
    return Task(id=task_id, title=f"Task {task_id}", **fields)


def test_children_are_direct_only_and_in_store_order(store: TaskStore) -> None:
    assert [t.id for t in children(store.tasks, "T002")] == ["T003", "T004"]
    assert [t.id for t in children(store.tasks, "T020")] == ["T021"]
    assert children(store.tasks, "T001") == []


def test_descendants_walk_the_whole_subtree_breadth_first(store: TaskStore) -> None:
    assert [t.id for t in descendants(store.tasks, "T020")] == ["T021", "T022", "T023"]
    assert descendants(store.tasks, "T001") == []


def test_descendants_terminate_on_a_corrupted_cyclic_tree() -> None:
    tasks = [
        _task("T001", parent_id="T003"),
        _task("T002", parent_id="T001"),
        _task("T003", parent_id="T002"),
    ]

    found = [t.id for t in descendants(tasks, "T001")]

    assert sorted(found) == ["T002", "T003"]


def test_is_leaf(store: TaskStore) -> None:
    assert is_leaf(store.tasks, "T003")
    assert not is_leaf(store.tasks, "T010")


def test_dependents_exclude_members_of_the_set(store: TaskStore) -> None:
    assert [t.id for t in dependents(store.tasks, ["T002"])] == ["T005"]
    assert [t.id for t in dependents(store.tasks, ["T010", "T011", "T012"])] == ["T013"]
    # T022 depends on T003 but is itself in the set
    assert dependents(store.tasks, ["T003", "T022"]) == []


def test_filter_and_count_by_status(store: TaskStore) -> None:
    open_tasks = filter_tasks(store.tasks, has_status(TaskStatus.ACTIVE, TaskStatus.BLOCKED))
    counts = count_by_status(store.tasks)

    assert [t.id for t in open_tasks] == ["T004", "T012"]
    assert counts[TaskStatus.DONE] == 2
    assert counts[TaskStatus.CANCELLED] == 1
    assert sum(counts.values()) == len(store.tasks)


def test_cycle_detection() -> None:
    tree = [_task("T001", parent_id="T002"), _task("T002", parent_id="T001")]
    graph = [_task("T001", depends=["T002"]), _task("T002", depends=["T003"]),
             _task("T003", depends=["T001"])]

    assert sorted(find_parent_cycle(tree)) == ["T001", "T002"]
    assert sorted(find_dependency_cycle(graph)) == ["T001", "T002", "T003"]
    assert find_parent_cycle([_task("T001"), _task("T002", parent_id="T001")]) is None
    assert find_dependency_cycle([_task("T001"), _task("T002", depends=["T001"])]) is None


def test_sample_store_satisfies_all_invariants(store: TaskStore) -> None:
    assert check_invariants(store) == []


def test_invariant_violations_name_the_rule_and_tasks() -> None:
    store = TaskStore(
        tasks=[
            _task("T001", status=TaskStatus.ACTIVE),
            _task("T002", status=TaskStatus.ACTIVE, parent_id="T999"),
            _task("T003", depends=["T404"]),
            _task("T004", status=TaskStatus.CANCELLED),
        ]
    )

    rules = {v.rule: v.task_ids for v in check_invariants(store)}

    assert rules["single_active"] == ["T001", "T002"]
    assert rules["parent_exists"] == ["T002"]
    assert rules["depends_exist"] == ["T003"]
    assert rules["cancel_metadata"] == ["T004"]
    assert "unique_ids" not in rules
