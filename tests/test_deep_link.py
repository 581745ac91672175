"""Tests for the deep-link resolver state machine."""

from core.models import Severity
from sync.deep_link import IDLE, PENDING, RESOLVED, DeepLinkResolver
from tests.conftest import make_incident


class TestDeepLinkResolver:
    def test_starts_idle(self, store):
        r = DeepLinkResolver()
        assert r.state == IDLE
        assert r.observe(store) is None

    def test_pending_until_record_arrives(self, store):
        r = DeepLinkResolver()
        r.set_target("X")
        assert r.state == PENDING
        assert r.observe(store) is None
        store.upsert(make_incident("X", lat=1.0, lng=2.0))
        cmd = r.observe(store)
        assert r.state == RESOLVED
        assert cmd.mode == "highlight"
        assert cmd.zoom == 16
        assert (cmd.center.lat, cmd.center.lng) == (1.0, 2.0)

    def test_waits_for_coordinates(self, store):
        r = DeepLinkResolver()
        r.set_target("X")
        store.upsert(make_incident("X", lat=None, lng=None))
        assert r.observe(store) is None
        assert r.state == PENDING
        store.upsert(make_incident("X", lat=1.0, lng=2.0))
        assert r.observe(store) is not None

    def test_fires_once_per_id(self, store):
        r = DeepLinkResolver()
        r.set_target("X")
        store.upsert(make_incident("X"))
        fired = [r.observe(store)]
        for i in range(3):
            store.upsert(make_incident("X", severity=Severity.LOW))
            store.upsert(make_incident(f"other-{i}"))
            fired.append(r.observe(store))
        assert sum(1 for c in fired if c is not None) == 1

    def test_same_id_again_is_noop(self, store):
        r = DeepLinkResolver()
        r.set_target("X")
        store.upsert(make_incident("X"))
        r.observe(store)
        r.set_target("X")
        assert r.state == RESOLVED
        assert r.observe(store) is None

    def test_new_id_resets_to_pending(self, store):
        r = DeepLinkResolver()
        store.upsert(make_incident("X"))
        store.upsert(make_incident("Y", lat=5.0, lng=6.0))
        r.set_target("X")
        r.observe(store)
        r.set_target("Y")
        assert r.state == PENDING
        cmd = r.observe(store)
        assert cmd.center.lat == 5.0

    def test_clearing_target_returns_to_idle(self):
        r = DeepLinkResolver()
        r.set_target("X")
        r.set_target(None)
        assert r.state == IDLE
        r.set_target("  ")
        assert r.state == IDLE

    def test_unchanged_store_is_not_looked_up_again(self, store):
        lookups = []
        original_get = store.get
        store.get = lambda iid: lookups.append(iid) or original_get(iid)
        r = DeepLinkResolver()
        r.set_target("X")
        r.observe(store)
        r.observe(store)
        assert lookups == ["X"]
        store.upsert(make_incident("X"))
        assert r.observe(store) is not None
        assert lookups == ["X", "X"]
