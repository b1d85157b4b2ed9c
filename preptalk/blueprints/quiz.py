from flask import Blueprint, request

from preptalk.services import quiz_api_service

quiz_bp = Blueprint('quiz_api', __name__)


@quiz_bp.route('/api/daily-quiz/types', methods=['GET'])
def get_quiz_types():
    from preptalk import runtime

    return quiz_api_service.get_quiz_types(runtime, request)


@quiz_bp.route('/api/daily-quiz/generate', methods=['POST'])
def generate_quiz():
    from preptalk import runtime

    return quiz_api_service.generate_quiz(runtime, request)


@quiz_bp.route('/api/daily-quiz/submit', methods=['POST'])
def submit_answer():
    from preptalk import runtime

    return quiz_api_service.submit_answer(runtime, request)


@quiz_bp.route('/api/daily-quiz/submissions', methods=['GET'])
def list_submissions():
    from preptalk import runtime

    return quiz_api_service.list_submissions(runtime, request)


@quiz_bp.route('/api/daily-quiz/save-progress', methods=['POST'])
def save_progress():
    from preptalk import runtime

    return quiz_api_service.save_progress(runtime, request)


@quiz_bp.route('/api/daily-quiz/complete', methods=['POST'])
def complete_quiz():
    from preptalk import runtime

    return quiz_api_service.complete_quiz(runtime, request)
