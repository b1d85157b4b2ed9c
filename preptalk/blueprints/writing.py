from flask import Blueprint, request

from preptalk.services import writing_api_service

writing_bp = Blueprint('writing_api', __name__)


@writing_bp.route('/api/writing-evaluation', methods=['POST'])
def evaluate_writing():
    from preptalk import runtime

    return writing_api_service.evaluate_writing(runtime, request)


@writing_bp.route('/api/writing-evaluation', methods=['GET'])
def get_writing_info():
    from preptalk import runtime

    return writing_api_service.get_writing_info(runtime)


@writing_bp.route('/api/writing-evaluation/upload', methods=['POST'])
def upload_answer_sheet():
    from preptalk import runtime

    return writing_api_service.upload_answer_sheet(runtime, request)


@writing_bp.route('/api/writing-evaluation/progress', methods=['GET'])
def get_writing_progress():
    from preptalk import runtime

    return writing_api_service.get_writing_progress(runtime, request)


@writing_bp.route('/api/writing-evaluation/progress', methods=['POST'])
def record_writing_session():
    from preptalk import runtime

    return writing_api_service.record_writing_session(runtime, request)


@writing_bp.route('/api/writing-practice/generate-prompt', methods=['POST'])
def generate_practice_prompt():
    from preptalk import runtime

    return writing_api_service.generate_practice_prompt(runtime, request)


@writing_bp.route('/api/pdf-to-quiz', methods=['POST'])
def pdf_to_quiz():
    from preptalk import runtime

    return writing_api_service.pdf_to_quiz(runtime, request)
