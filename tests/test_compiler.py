"""Implication parsing, discovery loading, validation and Mermaid output."""
from __future__ import annotations

import logging

import pytest

from implications_planner.compiler import (
    ImplicationCatalog,
    format_errors,
    generate_mermaid,
    load_discovery,
    parse_implication,
    parse_implication_yaml,
    parse_transitions,
    validate_planner,
)
from implications_planner.engine.graph import build_graph, find_all_paths
from implications_planner.store.cache import FileCache
from implications_planner.store.registry import StateRegistry

# ─── Helpers ───

def _validate(impls, transitions=()):
    catalog = ImplicationCatalog([parse_implication(i) for i in impls])
    registry = StateRegistry.from_catalog(catalog)
    return validate_planner(registry, catalog, parse_transitions(list(transitions)))


def _messages(errors, level):
    return [e.message for e in errors if e.level == level]


class TestParser:
    def test_snake_case_keys_normalized(self):
        impl = parse_implication_yaml("""
id: AcceptedBookingImplications
status: accepted
required_fields: [bookingId]
setup:
  - action_name: acceptBooking
    test_file: tests/Accept.spec.js
""")
        assert impl.required_fields == ["bookingId"]
        assert impl.setup[0].action_name == "acceptBooking"
        assert impl.setup[0].test_file == "tests/Accept.spec.js"

    def test_meta_wrapper_merged(self):
        impl = parse_implication({
            "meta": {"status": "pending", "entity": "booking", "platform": "dancer"},
            "setup": {"actionName": "requestBooking"},
        }, default_id="PendingBookingImplications")
        assert impl.id == "PendingBookingImplications"
        assert impl.entity == "booking"
        assert impl.setup[0].platform == "dancer"

    def test_xstate_on_mapping(self):
        impl = parse_implication({
            "status": "draft",
            "on": {"SUBMIT": "submitted", "ARCHIVE": {"target": "archived", "platforms": "cms"}},
        })
        assert [(t.from_status, t.to, t.event, t.platforms) for t in impl.transitions] == [
            ("draft", "submitted", "SUBMIT", []),
            ("draft", "archived", "ARCHIVE", ["cms"]),
        ]

    def test_transitions_list(self):
        impl = parse_implication({"status": "draft", "transitions": [{"to": "submitted", "event": "SUBMIT"}]})
        assert impl.transitions[0].from_status == "draft"

    @pytest.mark.parametrize(("raw", "message"), [
        ({"id": "X"}, "missing \"status\""),
        ({"status": "x", "requires": ["a"]}, "must be a mapping"),
        ({"status": "x", "setup": [{"testFile": "a.js"}]}, "actionName"),
        ({"status": "x", "setup": "createX"}, "setup"),
    ])
    def test_invalid_definitions(self, raw, message):
        with pytest.raises(ValueError, match=message):
            parse_implication(raw)

    def test_yaml_must_be_mapping(self):
        with pytest.raises(ValueError, match="expected a mapping"):
            parse_implication_yaml("- a\n- b\n")


class TestCatalog:
    def test_load_fixture_directory(self, booking):
        catalog = booking.catalog()
        assert len(catalog) == 4
        assert catalog.by_status("submitted").id == "SubmittedBookingImplications"
        assert "DraftBookingImplications" in catalog
        assert catalog.get("Nope") is None

    def test_nested_directories_and_yml(self, harness_factory):
        h = harness_factory(booking=False)
        nested = h.implications_dir / "booking"
        nested.mkdir()
        (nested / "Paid.yml").write_text("status: paid\n")
        assert h.catalog().get("Paid").status == "paid"

    def test_duplicate_ids_rejected(self):
        impl = parse_implication({"id": "A", "status": "a"})
        with pytest.raises(ValueError, match="Duplicate"):
            ImplicationCatalog([impl, impl])

    def test_parse_error_names_file(self, harness_factory):
        h = harness_factory(booking=False)
        (h.implications_dir / "Broken.yaml").write_text("id: Broken\n")
        with pytest.raises(ValueError, match="Broken.yaml"):
            h.catalog()

    def test_missing_directory_is_empty(self, tmp_path):
        assert len(ImplicationCatalog.load_directory(tmp_path / "nowhere")) == 0


class TestDiscovery:
    def test_load_fixture(self, booking):
        transitions = load_discovery(booking.discovery_file, FileCache())
        assert [t.event for t in transitions] == ["CREATE", "SUBMIT", "ACCEPT", "COMPLETE"]
        assert transitions[1].from_status == "DraftBookingImplications"

    def test_missing_file(self, tmp_path):
        assert load_discovery(tmp_path / "discovery-result.json", FileCache()) == []

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "discovery-result.json"
        path.write_text("[]")
        with pytest.raises(ValueError, match="expected a JSON object"):
            load_discovery(path, FileCache())

    def test_malformed_entries_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            transitions = parse_transitions([{"from": "a", "to": "b"}, {"from": "a"}, 3])
        assert len(transitions) == 1
        assert sum("malformed" in r.message for r in caplog.records) == 2


class TestValidator:
    def test_fixture_is_clean(self, booking):
        planner = booking.planner()
        assert validate_planner(planner.registry, planner.catalog, planner.transitions) == []

    def test_empty_catalog(self):
        errors = validate_planner(StateRegistry(), ImplicationCatalog(), [])
        assert _messages(errors, "error") == ["No implications found"]

    def test_unregistered_previous_status(self):
        errors = _validate([
            {"status": "accepted", "requires": {"previousStatus": "submitted"}, "setup": {"actionName": "a"}},
        ])
        assert "previousStatus 'submitted' is not registered" in _messages(errors, "error")

    def test_prerequisite_cycle_reported_once(self):
        errors = _validate([
            {"status": "a", "requires": {"previousStatus": "b"}, "setup": {"actionName": "x"}},
            {"status": "b", "requires": {"previousStatus": "a"}, "setup": {"actionName": "y"}},
        ])
        cycles = [m for m in _messages(errors, "error") if m.startswith("Prerequisite cycle")]
        assert cycles == ["Prerequisite cycle: a → b → a"]

    def test_unknown_transition_target(self):
        errors = _validate(
            [{"status": "a", "setup": {"actionName": "x"}}],
            [{"from": "a", "to": "ghost", "event": "BOO"}],
        )
        assert "Transition target not found: 'ghost' (event BOO)" in _messages(errors, "error")

    def test_warnings(self):
        errors = _validate([{"status": "lonely"}])
        warnings = _messages(errors, "warning")
        assert "Status is isolated (no transitions or prerequisites)" in warnings
        assert "No setup action; cannot be run as a prerequisite" in warnings
        assert not _messages(errors, "error")

    def test_stale_registry_entry(self):
        catalog = ImplicationCatalog([parse_implication({"status": "a", "setup": {"actionName": "x"}})])
        registry = StateRegistry({"a": "a", "b": "RemovedImplications"})
        errors = validate_planner(registry, catalog, [])
        assert "Registry points at unknown implication 'RemovedImplications'" in _messages(errors, "warning")

    def test_format_errors(self):
        errors = _validate([{"status": "lonely", "requires": {"previousStatus": "ghost"}}])
        text = format_errors(errors)
        assert "1 error(s):" in text
        assert "✗ ERROR: [lonely] previousStatus 'ghost' is not registered" in text
        assert "⚠ WARNING: [lonely] No setup action" in text
        assert format_errors([]) == ""


class TestMermaid:
    TRANSITIONS = [
        {"from": "draft", "to": "submitted", "event": "SUBMIT", "platforms": ["web"]},
        {"from": "submitted", "to": "accepted", "event": "ACCEPT", "platforms": ["dancer"]},
        {"from": "draft", "to": "archived", "event": ""},
    ]

    def test_plain_graph(self):
        text = generate_mermaid(build_graph(self.TRANSITIONS))
        assert text.startswith("graph TD")
        assert '    s1_draft["draft"]' in text
        assert '    s1_draft -->|"SUBMIT"| s2_submitted' in text
        assert '    s2_submitted -->|"ACCEPT (mobile)"| s4_accepted' in text
        assert "    s1_draft --> s3_archived" in text
        assert "classDef" not in text

    def test_highlighted_path(self):
        graph = build_graph(self.TRANSITIONS)
        path = find_all_paths("draft", "accepted", graph)[0]
        text = generate_mermaid(graph, path)
        assert '    s1_draft(["draft"])' in text
        assert '    s4_accepted(("accepted"))' in text
        assert '    s1_draft ==>|"SUBMIT"| s2_submitted' in text
        assert "    s1_draft --> s3_archived" in text
        assert "    class s1_draft,s2_submitted,s4_accepted onPath" in text
