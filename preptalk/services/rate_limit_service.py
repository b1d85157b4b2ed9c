"""Fixed-window rate limiting with Firestore-first fallback strategy.

A window opens on the first request for a key and lasts ``window_seconds``;
requests are rejected once ``limit`` have been counted in the open window.
"""

import logging
import math
import re

from preptalk.repositories import rate_limit_repo

logger = logging.getLogger('preptalk')


def advance_window(entry, limit, window_seconds, now_ts):
    """Return ``(allowed, retry_after, new_entry)`` for a ``{count, reset_time}`` entry."""
    if not entry or now_ts >= float(entry.get('reset_time', 0) or 0):
        return True, 0, {'count': 1, 'reset_time': now_ts + window_seconds}
    count = int(entry.get('count', 0) or 0)
    reset_time = float(entry['reset_time'])
    if count >= limit:
        return False, max(1, int(math.ceil(reset_time - now_ts))), None
    return True, 0, {'count': count + 1, 'reset_time': reset_time}


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    raw = str(value or '').strip().lower()
    if not raw:
        return fallback
    safe = re.sub(r'[^a-z0-9_.:@-]+', '_', raw)
    return safe[:max_len] if safe else fallback


def client_identifier(request):
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket address."""
    forwarded_for = str(request.headers.get('X-Forwarded-For', '') or '').strip()
    if forwarded_for:
        first_hop = forwarded_for.split(',')[0].strip()
        if first_hop:
            return first_hop
    real_ip = str(request.headers.get('X-Real-IP', '') or '').strip()
    if real_ip:
        return real_ip
    return str(getattr(request, 'remote_addr', '') or '').strip() or 'unknown'


def check_rate_limit_firestore(
    key,
    limit,
    window_seconds,
    now_ts,
    *,
    firestore_enabled,
    db,
    firestore_module,
    counter_collection,
):
    """Shared counter across workers; ``None`` means fall back to process memory."""
    if not firestore_enabled or db is None:
        return None
    counter_ref = rate_limit_repo.counter_doc_ref(db, counter_collection, key)
    try:
        @firestore_module.transactional
        def _count_in_window(txn):
            snapshot = counter_ref.get(transaction=txn)
            entry = snapshot.to_dict() if snapshot.exists else None
            allowed, retry_after, new_entry = advance_window(entry, limit, window_seconds, now_ts)
            if new_entry is not None:
                new_entry.update({'key': key, 'updated_at': now_ts, 'expires_at': new_entry['reset_time'] + window_seconds})
                txn.set(counter_ref, new_entry)
            return allowed, retry_after

        return _count_in_window(db.transaction())
    except Exception as e:
        logger.warning(f"Firestore rate limit check failed for {key}; using in-memory counter: {e}")
        return None


def check_rate_limit_in_memory(key, limit, window_seconds, now_ts, *, store, lock):
    with lock:
        allowed, retry_after, new_entry = advance_window(store.get(key), limit, window_seconds, now_ts)
        if new_entry is not None:
            store[key] = new_entry
        return allowed, retry_after


def check_rate_limit(
    key,
    limit,
    window_seconds,
    *,
    firestore_enabled,
    db,
    firestore_module,
    counter_collection,
    in_memory_store,
    in_memory_lock,
    time_module,
):
    now_ts = time_module.time()
    firestore_result = check_rate_limit_firestore(
        key,
        limit,
        window_seconds,
        now_ts,
        firestore_enabled=firestore_enabled,
        db=db,
        firestore_module=firestore_module,
        counter_collection=counter_collection,
    )
    if firestore_result is not None:
        return firestore_result
    return check_rate_limit_in_memory(
        key,
        limit,
        window_seconds,
        now_ts,
        store=in_memory_store,
        lock=in_memory_lock,
    )
