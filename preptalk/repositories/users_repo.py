"""Firestore accessors for user profile and per-user aggregate documents."""


def doc_ref(db, uid):
    return db.collection('users').document(uid)


def get_doc(db, uid):
    return doc_ref(db, uid).get()


def set_doc(db, uid, data, merge=False):
    return doc_ref(db, uid).set(data, merge=merge)


def user_stats_doc_ref(db, uid):
    return db.collection('userStats').document(uid)


def recommendations_doc_ref(db, uid):
    return db.collection('recommendations').document(uid)
