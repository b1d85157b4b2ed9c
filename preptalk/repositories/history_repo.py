"""Firestore accessors for analysis history, saved questions and quiz attempts."""

from .query_utils import apply_where, chunked

HISTORY_COLLECTION = 'userHistory'
SAVED_QUESTIONS_COLLECTION = 'savedQuestions'
QUIZ_ATTEMPTS_COLLECTION = 'quizAttempts'
GET_ALL_BATCH_SIZE = 30


def history_doc_ref(db, history_id):
    return db.collection(HISTORY_COLLECTION).document(history_id)


def create_history_doc_ref(db):
    return db.collection(HISTORY_COLLECTION).document()


def list_history_by_uid(db, uid):
    return list(apply_where(db.collection(HISTORY_COLLECTION), 'userId', '==', uid).stream())


def saved_question_doc_ref(db, saved_id):
    return db.collection(SAVED_QUESTIONS_COLLECTION).document(saved_id)


def list_saved_questions_by_uid(db, uid):
    return list(apply_where(db.collection(SAVED_QUESTIONS_COLLECTION), 'userId', '==', uid).stream())


def get_saved_questions_by_ids(db, saved_ids):
    snapshots = []
    for batch in chunked(saved_ids, GET_ALL_BATCH_SIZE):
        refs = [saved_question_doc_ref(db, saved_id) for saved_id in batch]
        snapshots.extend(db.get_all(refs))
    return snapshots


def quiz_attempt_doc_ref(db, attempt_id):
    return db.collection(QUIZ_ATTEMPTS_COLLECTION).document(attempt_id)


def list_quiz_attempts_by_uid(db, uid, history_id=None):
    query = apply_where(db.collection(QUIZ_ATTEMPTS_COLLECTION), 'userId', '==', uid)
    if history_id:
        query = apply_where(query, 'historyId', '==', history_id)
    return list(query.stream())
