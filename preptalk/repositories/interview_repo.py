"""Firestore accessors for mock interview sessions."""


def session_doc_ref(db, session_id):
    return db.collection('interviewSessions').document(session_id)


def create_session_doc_ref(db):
    return db.collection('interviewSessions').document()
