"""Tests for push-event decoding and the store reducer."""

import json

from core.events import (
    EVENT_CREATED,
    EVENT_UPDATED,
    StreamEvent,
    apply_event,
    decode_frame,
    unwrap_payload,
)
from core.models import IncidentStatus, Severity
from tests.conftest import make_record


class TestUnwrapPayload:
    def test_envelope_is_unwrapped(self):
        record = make_record("A")
        assert unwrap_payload({"type": EVENT_CREATED, "data": record}) == record

    def test_bare_record_passes_through(self):
        record = make_record("A")
        assert unwrap_payload(record) is record

    def test_non_mapping_data_is_not_unwrapped(self):
        payload = {"id": "A", "data": "free text"}
        assert unwrap_payload(payload) is payload


class TestDecodeFrame:
    def test_array_frame(self):
        ev = decode_frame(json.dumps([EVENT_CREATED, make_record("A")]))
        assert ev.kind == EVENT_CREATED
        assert ev.payload["id"] == "A"

    def test_object_frame(self):
        ev = decode_frame(json.dumps({"event": EVENT_UPDATED, "payload": {"data": make_record("A")}}))
        assert ev.kind == EVENT_UPDATED

    def test_unknown_kind_ignored(self):
        assert decode_frame(json.dumps(["incident:deleted", {"id": "A"}])) is None

    def test_garbage_ignored(self):
        assert decode_frame("not json") is None
        assert decode_frame(json.dumps({"foo": 1})) is None
        assert decode_frame(json.dumps([1, 2, 3])) is None


class TestApplyEvent:
    def test_created_twice_yields_one_record(self, store):
        ev = StreamEvent(EVENT_CREATED, make_record("A"))
        apply_event(store, ev)
        apply_event(store, ev)
        assert len(store) == 1

    def test_update_for_unknown_id_inserts(self, store):
        apply_event(store, StreamEvent(EVENT_UPDATED, {"data": make_record("Z")}))
        assert "Z" in store

    def test_update_replaces_in_place(self, store):
        apply_event(store, StreamEvent(EVENT_CREATED, make_record("A")))
        apply_event(store, StreamEvent(EVENT_CREATED, make_record("B")))
        apply_event(store, StreamEvent(EVENT_UPDATED, {"data": make_record("A", severity="LOW")}))
        assert [i.incident_id for i in store.snapshot()] == ["B", "A"]
        assert store.get("A").severity == Severity.LOW

    def test_payload_without_id_dropped(self, store):
        result = apply_event(store, StreamEvent(EVENT_CREATED, {"data": make_record(None)}))
        assert result is store
        assert len(store) == 0

    def test_record_without_coordinates_still_stored(self, store):
        apply_event(store, StreamEvent(EVENT_CREATED, make_record("A", latitude=None, longitude=None)))
        assert "A" in store
        assert store.get("A").has_coordinates is False

    def test_update_without_severity_still_replaces(self, store):
        apply_event(store, StreamEvent(EVENT_CREATED, make_record("A")))
        record = make_record("A", status="RESOLVED")
        del record["severity"]
        apply_event(store, StreamEvent(EVENT_UPDATED, {"data": record}))
        assert len(store) == 1
        assert store.get("A").status == IncidentStatus.RESOLVED
        assert store.get("A").severity is None
