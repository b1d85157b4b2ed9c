"""Firestore accessors for daily quiz sessions, results and question pools."""

from .query_utils import apply_where


def session_doc_ref(db, session_id):
    return db.collection('quizSessions').document(session_id)


def create_session_doc_ref(db):
    return db.collection('quizSessions').document()


def result_doc_ref(db, session_id):
    return db.collection('quizResults').document(session_id)


def list_results_by_uid(db, uid):
    return list(apply_where(db.collection('quizResults'), 'userId', '==', uid).stream())


def add_submission(db, data):
    return db.collection('quizSubmissions').add(data)


def list_submissions_by_session(db, session_id):
    return list(apply_where(db.collection('quizSubmissions'), 'sessionId', '==', session_id).stream())


def add_analytics_event(db, data):
    return db.collection('quizAnalytics').add(data)


def add_progress_log(db, data):
    return db.collection('progressLogs').add(data)


def query_question_pool(db, pool_name, difficulty, subject, limit):
    query = apply_where(db.collection(pool_name), 'difficulty', '==', difficulty)
    if subject:
        query = apply_where(query, 'subject', '==', subject)
    return list(query.limit(limit).stream())
