"""Firestore accessors for smart notes."""

from .query_utils import apply_where


def note_doc_ref(db, note_id):
    return db.collection('smartNotes').document(note_id)


def create_note_doc_ref(db):
    return db.collection('smartNotes').document()


def list_notes_by_uid(db, uid):
    return list(apply_where(db.collection('smartNotes'), 'userId', '==', uid).stream())
