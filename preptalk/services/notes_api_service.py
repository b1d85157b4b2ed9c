"""Business logic handlers for smart notes and their review schedule."""

from preptalk.repositories import notes_repo
from preptalk.schemas import NoteCreateRequest, NoteReviewRequest, NoteUpdateRequest
from preptalk.services import notes_service

MAX_REVIEW_QUEUE_LIMIT = 100


def load_user_notes(app_ctx, uid):
    notes = []
    for doc in notes_repo.list_notes_by_uid(app_ctx.db, uid):
        data = doc.to_dict() or {}
        data['id'] = doc.id
        notes.append(data)
    return notes


def _load_owned_note(app_ctx, uid, note_id):
    note_ref = notes_repo.note_doc_ref(app_ctx.db, note_id)
    snapshot = note_ref.get()
    if not snapshot.exists:
        return None, None, (app_ctx.jsonify({'error': 'Note not found'}), 404)
    note = snapshot.to_dict() or {}
    if note.get('userId', '') != uid:
        return None, None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    note['id'] = snapshot.id
    return note_ref, note, None


def list_notes(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    topic = (request.args.get('topic', '') or '').strip()
    try:
        notes = load_user_notes(app_ctx, uid)
        if topic:
            notes = [note for note in notes if note.get('topic') == topic]
        notes.sort(key=lambda note: float(note.get('updated', 0) or 0), reverse=True)
        return app_ctx.jsonify({'notes': notes})
    except Exception as e:
        app_ctx.logger.error(f"Error listing notes for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load notes'}), 500


def create_note(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(NoteCreateRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        now_ts = app_ctx.time.time()
        note = payload.model_dump()
        note.update({
            'userId': uid,
            'masteryLevel': 0,
            'reviewCount': 0,
            'lastReviewed': None,
            'revision': notes_service.initial_revision(now_ts),
            'created': now_ts,
            'updated': now_ts,
        })
        note_ref = notes_repo.create_note_doc_ref(app_ctx.db)
        note_ref.set(note)
        note['id'] = note_ref.id
        return app_ctx.jsonify(note), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating note for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not create note'}), 500


def get_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    try:
        _note_ref, note, error_response = _load_owned_note(app_ctx, decoded_token['uid'], note_id)
        if error_response:
            return error_response
        return app_ctx.jsonify(note)
    except Exception as e:
        app_ctx.logger.error(f"Error loading note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load note'}), 500


def update_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    payload, error_response = app_ctx.validate_payload(NoteUpdateRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        note_ref, note, error_response = _load_owned_note(app_ctx, decoded_token['uid'], note_id)
        if error_response:
            return error_response
        updates = payload.model_dump(exclude_none=True)
        if not updates:
            return app_ctx.jsonify({'error': 'No fields to update'}), 400
        updates['updated'] = app_ctx.time.time()
        note_ref.update(updates)
        note.update(updates)
        return app_ctx.jsonify(note)
    except Exception as e:
        app_ctx.logger.error(f"Error updating note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update note'}), 500


def delete_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    try:
        note_ref, _note, error_response = _load_owned_note(app_ctx, decoded_token['uid'], note_id)
        if error_response:
            return error_response
        note_ref.delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete note'}), 500


def review_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    payload, error_response = app_ctx.validate_payload(NoteReviewRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        note_ref, note, error_response = _load_owned_note(app_ctx, decoded_token['uid'], note_id)
        if error_response:
            return error_response
        updates = notes_service.apply_review(note, payload.quality, app_ctx.time.time())
        note_ref.update(updates)
        note.update(updates)
        return app_ctx.jsonify(note)
    except Exception as e:
        app_ctx.logger.error(f"Error reviewing note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not record review'}), 500


def get_review_queue(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        limit = int(request.args.get('limit', 20))
    except (TypeError, ValueError):
        return app_ctx.jsonify({'error': 'limit must be an integer'}), 400
    limit = min(max(limit, 1), MAX_REVIEW_QUEUE_LIMIT)
    try:
        notes = load_user_notes(app_ctx, uid)
        return app_ctx.jsonify(notes_service.build_review_queue(notes, app_ctx.time.time(), limit))
    except Exception as e:
        app_ctx.logger.error(f"Error building review queue for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load review queue'}), 500
