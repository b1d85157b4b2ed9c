"""Firestore accessors for writing evaluations and practice sessions."""

from .query_utils import apply_where


def evaluation_doc_ref(db, evaluation_id):
    return db.collection('writingEvaluations').document(evaluation_id)


def add_session(db, data):
    return db.collection('writingSessions').add(data)


def list_sessions_by_uid(db, uid, since_ts=None):
    query = apply_where(db.collection('writingSessions'), 'userId', '==', uid)
    if since_ts is not None:
        query = apply_where(query, 'createdAt', '>=', since_ts)
    return list(query.stream())
