"""Firestore accessors for the Prelims/Mains question bank and upload batches."""

from .query_utils import apply_where

QUESTION_COLLECTIONS = {
    'Prelims': 'prelims_questions',
    'Mains': 'mains_questions',
}


def question_collection(db, exam_type):
    return db.collection(QUESTION_COLLECTIONS[exam_type])


def question_doc_ref(db, exam_type, question_id):
    return question_collection(db, exam_type).document(question_id)


def create_question_doc_ref(db, exam_type):
    return question_collection(db, exam_type).document()


def find_question(db, question_id):
    """Look the id up in both collections; returns (exam_type, snapshot) or (None, None)."""
    for exam_type in QUESTION_COLLECTIONS:
        snapshot = question_doc_ref(db, exam_type, question_id).get()
        if snapshot.exists:
            return exam_type, snapshot
    return None, None


def list_active_questions(db, exam_type):
    return list(apply_where(question_collection(db, exam_type), 'isActive', '==', True).stream())


def new_batch_writer(db):
    return db.batch()


def upload_batch_doc_ref(db, batch_id):
    return db.collection('upload_batches').document(batch_id)
