from flask import Blueprint, request

from preptalk.services import history_api_service

history_bp = Blueprint('history_api', __name__)


@history_bp.route('/api/history', methods=['GET'])
def list_history():
    from preptalk import runtime

    return history_api_service.list_history(runtime, request)


@history_bp.route('/api/history/prelims-questions', methods=['GET'])
def list_prelims_questions():
    from preptalk import runtime

    return history_api_service.list_prelims_questions(runtime, request)


@history_bp.route('/api/history/mains-questions', methods=['GET'])
def list_mains_questions():
    from preptalk import runtime

    return history_api_service.list_mains_questions(runtime, request)


@history_bp.route('/api/history/question-stats', methods=['GET'])
def get_question_stats():
    from preptalk import runtime

    return history_api_service.get_question_stats(runtime, request)


@history_bp.route('/api/history/<history_id>', methods=['GET'])
def get_history_entry(history_id):
    from preptalk import runtime

    return history_api_service.get_history_entry(runtime, request, history_id)


@history_bp.route('/api/history/<history_id>', methods=['DELETE'])
def delete_history_entry(history_id):
    from preptalk import runtime

    return history_api_service.delete_history_entry(runtime, request, history_id)


@history_bp.route('/api/history/<history_id>/export-docx', methods=['GET'])
def export_history_docx(history_id):
    from preptalk import runtime

    return history_api_service.export_history_docx(runtime, request, history_id)


@history_bp.route('/api/saved-questions', methods=['GET'])
def list_saved_questions():
    from preptalk import runtime

    return history_api_service.list_saved_questions(runtime, request)


@history_bp.route('/api/saved-questions', methods=['POST'])
def save_question():
    from preptalk import runtime

    return history_api_service.save_question(runtime, request)


@history_bp.route('/api/saved-questions/status', methods=['POST'])
def get_saved_status():
    from preptalk import runtime

    return history_api_service.get_saved_status(runtime, request)


@history_bp.route('/api/saved-questions/<saved_id>', methods=['DELETE'])
def unsave_question(saved_id):
    from preptalk import runtime

    return history_api_service.unsave_question(runtime, request, saved_id)


@history_bp.route('/api/quiz-attempts', methods=['POST'])
def record_quiz_attempt():
    from preptalk import runtime

    return history_api_service.record_quiz_attempt(runtime, request)


@history_bp.route('/api/quiz-attempts', methods=['GET'])
def list_quiz_attempts():
    from preptalk import runtime

    return history_api_service.list_quiz_attempts(runtime, request)


@history_bp.route('/api/quiz-attempts/stats', methods=['GET'])
def get_quiz_attempt_stats():
    from preptalk import runtime

    return history_api_service.get_quiz_attempt_stats(runtime, request)
