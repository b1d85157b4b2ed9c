from flask import Blueprint, request

from preptalk.services import notes_api_service

notes_bp = Blueprint('notes_api', __name__)


@notes_bp.route('/api/notes', methods=['GET'])
def list_notes():
    from preptalk import runtime

    return notes_api_service.list_notes(runtime, request)


@notes_bp.route('/api/notes', methods=['POST'])
def create_note():
    from preptalk import runtime

    return notes_api_service.create_note(runtime, request)


@notes_bp.route('/api/notes/review-queue', methods=['GET'])
def get_review_queue():
    from preptalk import runtime

    return notes_api_service.get_review_queue(runtime, request)


@notes_bp.route('/api/notes/<note_id>', methods=['GET'])
def get_note(note_id):
    from preptalk import runtime

    return notes_api_service.get_note(runtime, request, note_id)


@notes_bp.route('/api/notes/<note_id>', methods=['PATCH'])
def update_note(note_id):
    from preptalk import runtime

    return notes_api_service.update_note(runtime, request, note_id)


@notes_bp.route('/api/notes/<note_id>', methods=['DELETE'])
def delete_note(note_id):
    from preptalk import runtime

    return notes_api_service.delete_note(runtime, request, note_id)


@notes_bp.route('/api/notes/<note_id>/review', methods=['POST'])
def review_note(note_id):
    from preptalk import runtime

    return notes_api_service.review_note(runtime, request, note_id)
