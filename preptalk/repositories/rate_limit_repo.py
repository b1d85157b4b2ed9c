"""Firestore accessors for per-key fixed-window rate limit counters."""

import hashlib


def counter_doc_ref(db, collection_name, key):
    counter_id = hashlib.sha256(str(key).encode('utf-8')).hexdigest()
    return db.collection(collection_name).document(counter_id)
