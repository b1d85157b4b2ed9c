from flask import Blueprint, request

from preptalk.services import question_bank_api_service

questions_bp = Blueprint('questions_api', __name__)


@questions_bp.route('/api/questions', methods=['GET'])
def search_questions():
    from preptalk import runtime

    return question_bank_api_service.search_questions(runtime, request)


@questions_bp.route('/api/questions', methods=['POST'])
def create_question():
    from preptalk import runtime

    return question_bank_api_service.create_question(runtime, request)


@questions_bp.route('/api/questions/<question_id>', methods=['GET'])
def get_question(question_id):
    from preptalk import runtime

    return question_bank_api_service.get_question(runtime, request, question_id)


@questions_bp.route('/api/questions/<question_id>', methods=['PUT'])
def update_question(question_id):
    from preptalk import runtime

    return question_bank_api_service.update_question(runtime, request, question_id)


@questions_bp.route('/api/questions/<question_id>', methods=['DELETE'])
def delete_question(question_id):
    from preptalk import runtime

    return question_bank_api_service.delete_question(runtime, request, question_id)


@questions_bp.route('/api/admin/question-upload', methods=['POST'])
def upload_questions():
    from preptalk import runtime

    return question_bank_api_service.upload_questions(runtime, request)


@questions_bp.route('/api/admin/question-upload', methods=['GET'])
def get_upload_status():
    from preptalk import runtime

    return question_bank_api_service.get_upload_status(runtime, request)
