"""
Tests for WbsSelector: tree read model, aggregate counts and per-assignee
statistics.

Tree used by these tests (clock at 2025-01-01)::

    root
    ├── A        (bob)
    │   ├── A1   100%  2025-01-02..2025-01-10   (alice)
    │   └── A2    40%  2025-01-05..2025-01-20   (alice, bob)
    ├── B        10%   ends 2024-12-31
    └── C         0%
"""

from datetime import date
from uuid import uuid4

import pytest

from wbs_kernel.exceptions import NodeNotFoundError, ProjectNotFoundError

ALICE = uuid4()
BOB = uuid4()


@pytest.fixture
def tree(add_node):
    a = add_node("A", assignee_ids=[BOB])
    a1 = add_node(
        "A1",
        parent=a,
        progress=100,
        start_date=date(2025, 1, 2),
        end_date=date(2025, 1, 10),
        assignee_ids=[ALICE],
    )
    a2 = add_node(
        "A2",
        parent=a,
        progress=40,
        start_date=date(2025, 1, 5),
        end_date=date(2025, 1, 20),
        assignee_ids=[ALICE, BOB],
    )
    b = add_node("B", progress=10, end_date=date(2024, 12, 31))
    c = add_node("C")
    return {"A": a, "A1": a1, "A2": a2, "B": b, "C": c}


class TestTree:

    def test_nested_structure_in_sibling_order(self, wbs_engine, tree, project):
        root = wbs_engine.get_tree(project.id)

        assert root.node.id == project.root_node_id
        assert [c.node.name for c in root.children] == ["A", "B", "C"]
        assert [c.node.name for c in root.children[0].children] == ["A1", "A2"]
        assert root.children[1].is_leaf
        assert len(list(root.walk())) == 6

    def test_parent_dates_derived_from_children(self, wbs_engine, tree, project):
        root = wbs_engine.get_tree(project.id)
        a = root.children[0]

        assert a.derived_start_date == date(2025, 1, 2)
        assert a.derived_end_date == date(2025, 1, 20)
        assert root.derived_start_date == date(2025, 1, 2)
        assert root.derived_end_date == date(2025, 1, 20)

    def test_leaf_without_dates(self, wbs_engine, tree, project):
        c = wbs_engine.get_tree(project.id).children[2]
        assert c.derived_start_date is None
        assert c.derived_end_date is None

    def test_unknown_project(self, wbs_engine):
        with pytest.raises(ProjectNotFoundError):
            wbs_engine.get_tree(uuid4())

    def test_unknown_node(self, wbs_engine):
        with pytest.raises(NodeNotFoundError):
            wbs_engine.selector.get_node(uuid4())


class TestAggregateCounts:

    def test_counts_over_leaves(self, wbs_engine, tree, project):
        counts = wbs_engine.get_aggregate_counts(project.id)

        assert counts.total == 4
        assert counts.completed == 1
        assert counts.in_progress == 1
        assert counts.delayed == 1
        assert counts.not_started == 1
        assert counts.internal == 1

    def test_counts_as_of_later_date(self, wbs_engine, tree, project):
        counts = wbs_engine.get_aggregate_counts(project.id, date(2025, 1, 25))

        assert counts.delayed == 2
        assert counts.in_progress == 0
        assert counts.total == (
            counts.completed + counts.in_progress + counts.delayed + counts.not_started
        )

    def test_empty_project(self, wbs_engine, project):
        counts = wbs_engine.get_aggregate_counts(project.id)
        assert counts.total == 0
        assert counts.internal == 0


class TestAssigneeStats:

    def test_per_assignee(self, wbs_engine, tree, project):
        report = wbs_engine.get_assignee_stats(project.id)
        by_id = {s.assignee_id: s for s in report.assignees}

        assert set(by_id) == {ALICE, BOB}
        alice = by_id[ALICE]
        assert (alice.total, alice.completed, alice.in_progress) == (2, 1, 1)
        assert alice.average_progress == 70

        bob = by_id[BOB]
        assert bob.total == 2
        assert bob.in_progress == 2
        assert bob.average_progress == 55

    def test_unassigned_leaves(self, wbs_engine, tree, project):
        unassigned = wbs_engine.get_assignee_stats(project.id).unassigned

        assert unassigned.assignee_id is None
        assert unassigned.total == 2
        assert unassigned.delayed == 1
        assert unassigned.not_started == 1
        assert unassigned.average_progress == 5
