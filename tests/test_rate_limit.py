import threading

from preptalk import runtime
from preptalk.services import rate_limit_service


class _Clock:
    def __init__(self, now):
        self.now = now

    def time(self):
        return self.now


class _Request:
    def __init__(self, headers=None, remote_addr=""):
        self.headers = headers or {}
        self.remote_addr = remote_addr


def _check(store, lock, clock, limit=2, window=60):
    return rate_limit_service.check_rate_limit(
        "newspaper:1.2.3.4",
        limit,
        window,
        firestore_enabled=False,
        db=None,
        firestore_module=None,
        counter_collection="rate_limit_counters",
        in_memory_store=store,
        in_memory_lock=lock,
        time_module=clock,
    )


def test_in_memory_limiter_blocks_after_limit_and_resets_after_window():
    store, lock, clock = {}, threading.Lock(), _Clock(1000.0)

    assert _check(store, lock, clock) == (True, 0)
    assert _check(store, lock, clock) == (True, 0)
    allowed, retry_after = _check(store, lock, clock)
    assert allowed is False
    assert retry_after == 60

    clock.now = 1030.5
    assert _check(store, lock, clock) == (False, 30)

    clock.now = 1060.0
    assert _check(store, lock, clock) == (True, 0)


def test_client_identifier_prefers_forwarded_for_first_hop():
    request = _Request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "X-Real-IP": "10.0.0.2"}, "127.0.0.1")
    assert rate_limit_service.client_identifier(request) == "203.0.113.9"
    assert rate_limit_service.client_identifier(_Request({"X-Real-IP": "10.0.0.2"}, "127.0.0.1")) == "10.0.0.2"
    assert rate_limit_service.client_identifier(_Request({}, "")) == "unknown"


def test_normalize_rate_limit_key_part_strips_unsafe_characters():
    assert rate_limit_service.normalize_rate_limit_key_part(" User/ID#1 ") == "user_id_1"
    assert rate_limit_service.normalize_rate_limit_key_part("", fallback="anon_uid") == "anon_uid"


def test_newspaper_endpoint_returns_429_with_retry_after(client, login, monkeypatch):
    login()
    monkeypatch.setattr(runtime, "NEWSPAPER_RATE_LIMIT_MAX_REQUESTS", 1)
    headers = {"X-Forwarded-For": "198.51.100.7"}

    first = client.post("/api/newspaper-analysis", json={"articleText": "too short"}, headers=headers)
    second = client.post("/api/newspaper-analysis", json={"articleText": "too short"}, headers=headers)

    assert first.status_code == 400
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) >= 1
    assert second.get_json()["retry_after_seconds"] >= 1


def test_rate_limit_is_tracked_per_client(client, login, monkeypatch):
    login()
    monkeypatch.setattr(runtime, "NEWSPAPER_RATE_LIMIT_MAX_REQUESTS", 1)

    client.post("/api/newspaper-analysis", json={}, headers={"X-Forwarded-For": "198.51.100.7"})
    other = client.post("/api/newspaper-analysis", json={}, headers={"X-Forwarded-For": "198.51.100.8"})

    assert other.status_code == 400


class _Transaction:
    def set(self, ref, data):
        ref.set(data)


class _TransactionalFirestore:
    @staticmethod
    def transactional(fn):
        return fn


def test_firestore_counter_shares_one_window_per_key(fake_db):
    fake_db.transaction = _Transaction
    clock = _Clock(500.0)

    def check():
        return rate_limit_service.check_rate_limit(
            "checkout:user-1",
            1,
            120,
            firestore_enabled=True,
            db=fake_db,
            firestore_module=_TransactionalFirestore,
            counter_collection="rate_limit_counters",
            in_memory_store={},
            in_memory_lock=threading.Lock(),
            time_module=clock,
        )

    assert check() == (True, 0)
    clock.now = 550.0
    assert check() == (False, 70)
    counters = list(fake_db.docs("rate_limit_counters").values())
    assert len(counters) == 1
    assert counters[0]["key"] == "checkout:user-1"
    assert counters[0]["reset_time"] == 620.0
