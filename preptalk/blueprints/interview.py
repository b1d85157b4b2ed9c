from flask import Blueprint, request

from preptalk.services import interview_api_service

interview_bp = Blueprint('interview_api', __name__)


@interview_bp.route('/api/mock-interview', methods=['POST'])
def start_interview():
    from preptalk import runtime

    return interview_api_service.start_interview(runtime, request)


@interview_bp.route('/api/mock-interview/<session_id>/answer', methods=['POST'])
def answer_question(session_id):
    from preptalk import runtime

    return interview_api_service.answer_question(runtime, request, session_id)


@interview_bp.route('/api/mock-interview/<session_id>', methods=['GET'])
def get_interview(session_id):
    from preptalk import runtime

    return interview_api_service.get_interview(runtime, request, session_id)
