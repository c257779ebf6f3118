from services.nearby_cache import NearbySearchCache


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_miss_then_hit():
    cache = NearbySearchCache(ttl_seconds=60, clock=FakeClock())
    assert cache.get_place_ids(24.71, 46.67, 100) is None

    cache.put_place_ids(24.71, 46.67, 100, ["a", "b"])

    assert cache.get_place_ids(24.71, 46.67, 100) == ["a", "b"]
    assert len(cache) == 1


def test_same_cell_shares_entry_and_radius_does_not():
    cache = NearbySearchCache(ttl_seconds=60, clock=FakeClock())
    cache.put_place_ids(24.71361, 46.67531, 100, ["a"])

    assert cache.get_place_ids(24.71351, 46.67549, 100) == ["a"]
    assert cache.get_place_ids(24.71361, 46.67531, 500) is None


def test_expired_entries_are_evicted():
    clock = FakeClock()
    cache = NearbySearchCache(ttl_seconds=60, clock=clock)
    cache.put_place_ids(24.71, 46.67, 100, ["a"])

    clock.now = 60
    assert cache.get_place_ids(24.71, 46.67, 100) == ["a"]
    clock.now = 61
    assert cache.get_place_ids(24.71, 46.67, 100) is None
    assert len(cache) == 0


def test_put_overwrites_and_returns_copies():
    cache = NearbySearchCache(ttl_seconds=60, clock=FakeClock())
    cache.put_place_ids(24.71, 46.67, 100, ["a"])
    cache.put_place_ids(24.71, 46.67, 100, ["b", "c"])

    ids = cache.get_place_ids(24.71, 46.67, 100)
    ids.append("mutated")

    assert cache.get_place_ids(24.71, 46.67, 100) == ["b", "c"]


def test_empty_id_list_is_a_hit():
    cache = NearbySearchCache(ttl_seconds=60, clock=FakeClock())
    cache.put_place_ids(24.71, 46.67, 100, [])
    assert cache.get_place_ids(24.71, 46.67, 100) == []
