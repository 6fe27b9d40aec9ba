# tests/test_local_cache.py
from cartflow.domain.entities import Identity
from cartflow.services.local_cache import LocalCartCache
from fakes import make_item


def test_save_and_load_per_identity(fake_redis):
    cache = LocalCartCache(client=fake_redis)
    buyer = Identity(buyer_id="b1")

    assert not cache.save(buyer, [make_item("sofa", quantity=2)]).failed_write

    assert cache.load(buyer)[0].quantity == 2
    assert cache.load(Identity.guest()) == []


def test_corrupt_entry_loads_empty(fake_redis):
    fake_redis.data["cart:guest"] = "{not json"

    assert LocalCartCache(client=fake_redis).load(Identity.guest()) == []


def test_unreachable_redis(fake_redis):
    cache = LocalCartCache(client=fake_redis)
    fake_redis.fail = True

    assert cache.load(Identity.guest()) == []
    assert cache.save(Identity.guest(), []).failed_write


def test_guest_sessions_use_separate_keys(fake_redis):
    cache = LocalCartCache(client=fake_redis)
    first, second = Identity.guest("s-1"), Identity.guest("s-2")

    cache.save(first, [make_item("lamp")])

    assert first.cache_key == "cart:guest:s-1"
    assert [i.product_id for i in cache.load(first)] == ["lamp"]
    assert cache.load(second) == []
    assert Identity.for_session("b1", "s-1") == Identity(buyer_id="b1")
