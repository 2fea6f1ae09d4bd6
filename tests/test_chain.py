"""Prerequisite chain construction."""
from __future__ import annotations

import logging

import pytest

from implications_planner.compiler.parser import ImplicationCatalog, parse_implication
from implications_planner.engine.chain import NOT_IN_REGISTRY, ChainBuilder, mark_complete
from implications_planner.engine.graph import build_graph
from implications_planner.engine.readiness import analyze_readiness, is_ready
from implications_planner.engine.report import format_chain
from implications_planner.store.registry import StateRegistry
from implications_planner.types import ChainStep

# ─── Helpers ───

def _impl(impl_id, status, previous=None, **extra):
    body = {"id": impl_id, "status": status, "setup": [{"actionName": f"goTo_{status}"}], **extra}
    if previous:
        body.setdefault("requires", {})["previousStatus"] = previous
    return parse_implication(body)


def _builder(impls, transitions=()):
    catalog = ImplicationCatalog(impls)
    registry = StateRegistry.from_catalog(catalog)
    return ChainBuilder(registry, catalog, build_graph(list(transitions), registry))


LIFECYCLE = [
    _impl("Draft", "draft"),
    _impl("Submitted", "submitted", "draft"),
    _impl("Accepted", "accepted", "submitted"),
    _impl("Completed", "completed", "accepted"),
]


def _by_id(impl_id):
    return next(i for i in LIFECYCLE if i.id == impl_id)


class TestChainShape:
    def test_ready_when_one_step_away(self):
        """draft(complete), submitted(complete), accepted(target) at 'submitted' → ready."""
        chain = _builder(LIFECYCLE).build(_by_id("Accepted"), "submitted")
        assert [s.status for s in chain] == ["draft", "submitted", "accepted"]
        assert [s.complete for s in chain] == [True, True, False]
        assert chain[1].is_current
        assert is_ready(chain, "submitted")

    def test_from_scratch_every_step_pending(self):
        chain = _builder(LIFECYCLE).build(_by_id("Accepted"), "initial")
        assert [s.complete for s in chain] == [False, False, False]
        assert not is_ready(chain, "initial")

    def test_at_target_everything_complete(self):
        chain = _builder(LIFECYCLE).build(_by_id("Accepted"), "accepted")
        assert all(s.complete for s in chain)
        assert is_ready(chain, "accepted")

    def test_exactly_one_target(self):
        chain = _builder(LIFECYCLE).build(_by_id("Completed"), "initial")
        assert [s.is_target for s in chain] == [False, False, False, True]

    @pytest.mark.parametrize("current", ["initial", "draft", "submitted", "accepted", "completed"])
    def test_completeness_is_a_prefix(self, current):
        chain = _builder(LIFECYCLE).build(_by_id("Completed"), current)
        flags = [s.complete for s in chain]
        assert flags == sorted(flags, reverse=True)

    def test_step_carries_setup_details(self):
        impl = parse_implication({
            "id": "Accepted", "status": "accepted", "platform": "web", "entity": None,
            "setup": [{"actionName": "acceptBooking", "testFile": "tests/Accept.spec.js", "platform": "cms"}],
        })
        step = _builder([impl]).build(impl, "initial")[0]
        assert step.action_name == "acceptBooking"
        assert step.test_file == "tests/Accept.spec.js"
        assert step.platform == "cms"
        assert step.implementation_id == "Accepted"


class TestDirectTransition:
    def test_shortcut_for_original_target(self):
        builder = _builder(LIFECYCLE, [{"from": "submitted", "to": "accepted", "event": "ACCEPT"}])
        chain = builder.build(_by_id("Accepted"), "submitted")
        assert len(chain) == 1
        assert chain[0].is_target
        assert chain[0].transition_event == "ACCEPT"
        assert chain[0].transition_from == "submitted"
        assert is_ready(chain, "submitted")
        assert not chain[0].is_current

    def test_self_loop_marks_target_current(self):
        builder = _builder(LIFECYCLE, [{"from": "accepted", "to": "accepted", "event": "AMEND"}])
        chain = builder.build(_by_id("Accepted"), "accepted")
        assert len(chain) == 1
        assert chain[0].is_current and chain[0].complete
        assert format_chain(chain).lstrip().startswith("1. [CURRENT]")

    def test_not_used_for_intermediate_steps(self):
        """draft→submitted exists, but from 'initial' the full chain is walked."""
        builder = _builder(LIFECYCLE, [{"from": "draft", "to": "submitted", "event": "SUBMIT"}])
        chain = builder.build(_by_id("Accepted"), "initial")
        assert [s.status for s in chain] == ["draft", "submitted", "accepted"]
        assert all(s.transition_event is None for s in chain)

    def test_direct_target_requires_matching_source(self):
        step = ChainStep(status="accepted", is_target=True, transition_from="submitted")
        assert is_ready([step], "submitted")
        assert not is_ready([step], "draft")


class TestBrokenChains:
    def test_cycle_dropped_with_warning(self, caplog):
        impls = [_impl("A", "a", "b"), _impl("B", "b", "a")]
        with caplog.at_level(logging.WARNING):
            chain = _builder(impls).build(impls[0], "initial")
        assert [s.status for s in chain] == ["b", "a"]
        assert any("Cycle" in r.message for r in caplog.records)

    def test_long_cycle_terminates(self):
        impls = [_impl(f"S{i}", f"s{i}", f"s{(i + 1) % 6}") for i in range(6)]
        chain = _builder(impls).build(impls[0], "initial")
        assert len(chain) == 6
        assert sum(s.is_target for s in chain) == 1

    def test_unregistered_previous_status(self):
        impl = _impl("Lonely", "lonely", "ghost")
        chain = _builder([impl]).build(impl, "initial")
        assert chain[0].error == NOT_IN_REGISTRY
        assert chain[0].status == "ghost"
        assert not is_ready(chain, "initial")

    def test_depth_limit(self, caplog):
        impls = [_impl(f"S{i}", f"s{i}", f"s{i - 1}" if i else None) for i in range(10)]
        builder = _builder(impls)
        builder.max_depth = 4
        with caplog.at_level(logging.WARNING):
            chain = builder.build(impls[-1], "initial")
        assert len(chain) == 4
        assert any("depth limit" in r.message for r in caplog.records)


class TestEntityChains:
    """Entity statuses (data[entity].status) advance separately from data.status."""

    IMPLS = [
        _impl("LoggedIn", "logged_in"),
        _impl("Pending", "pending", "logged_in", entity="booking"),
        _impl("Confirmed", "confirmed", "pending", entity="booking"),
    ]

    def test_global_steps_completed_from_global_status(self):
        data = {"status": "logged_in", "booking": {"status": "initial"}}
        chain = _builder(self.IMPLS).build(self.IMPLS[2], "initial", data=data)
        assert [s.status for s in chain] == ["logged_in", "pending", "confirmed"]
        assert [s.complete for s in chain] == [True, False, False]
        assert chain[1].entity == "booking"

    def test_global_status_requirement_prepends_global_chain(self):
        impls = [
            _impl("LoggedIn", "logged_in"),
            _impl("Pending", "pending", entity="booking", requires={"status": "logged_in"}),
            _impl("Confirmed", "confirmed", "pending", entity="booking"),
        ]
        data = {"status": "initial", "booking": {"status": "initial"}}
        chain = _builder(impls).build(impls[2], "initial", data=data)
        assert [s.status for s in chain] == ["logged_in", "pending", "confirmed"]
        assert not any(s.complete for s in chain)

        data["status"] = "logged_in"
        chain = _builder(impls).build(impls[2], "initial", data=data)
        assert [s.status for s in chain] == ["pending", "confirmed"]

    def test_global_status_requirement_without_entity(self):
        """requires.status on a plain implication still chains through the registry."""
        impls = [_impl("Draft", "draft"), _impl("Pub", "published", requires={"status": "draft"})]
        builder = _builder(impls)
        analysis = analyze_readiness(impls[1], {"status": "initial"}, builder)
        assert not analysis.ready
        assert [(s.status, s.complete) for s in analysis.chain] == [("draft", False), ("published", False)]
        assert analysis.next_step.status == "draft"
        assert analysis.missing_fields == []

        assert analyze_readiness(impls[1], {"status": "draft"}, builder).ready


class TestSetupSelection:
    IMPL = parse_implication({
        "id": "Accepted",
        "status": "accepted",
        "setup": [
            {"actionName": "adminAccept", "testFile": "tests/AdminAccept.spec.js", "requires": {"role": "admin"}},
            {"actionName": "accept", "testFile": "tests/Accept.spec.js"},
            {"actionName": "bulkAccept", "testFile": "tests/BulkAccept.spec.js", "previousStatus": "draft"},
        ],
    })

    def test_requires_match_wins(self):
        builder = _builder([self.IMPL])
        assert builder.select_setup(self.IMPL, {"role": "admin"}).action_name == "adminAccept"

    def test_unconditional_entry_otherwise(self):
        builder = _builder([self.IMPL])
        assert builder.select_setup(self.IMPL, {"role": "guest"}).action_name == "accept"

    def test_current_test_file_wins(self):
        builder = _builder([self.IMPL])
        entry = builder.select_setup(self.IMPL, {"role": "admin"}, "/abs/path/BulkAccept.spec.js")
        assert entry.action_name == "bulkAccept"

    def test_setup_previous_status_drives_chain(self):
        impls = [_impl("Draft", "draft"), self.IMPL]
        chain = _builder(impls).build(self.IMPL, "initial", current_test_file="BulkAccept.spec.js")
        assert [s.status for s in chain] == ["draft", "accepted"]


class TestMarkComplete:
    def test_prefix_closed_over_entity_marks(self):
        chain = [
            ChainStep(status="a", entity="booking"),
            ChainStep(status="b"),
            ChainStep(status="c", entity="booking", is_target=True),
        ]
        mark_complete(chain, "initial", "booking", {"status": "b"})
        assert [s.complete for s in chain] == [True, True, False]
