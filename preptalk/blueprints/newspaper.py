from flask import Blueprint, request

from preptalk.services import newspaper_api_service

newspaper_bp = Blueprint('newspaper_api', __name__)


@newspaper_bp.route('/api/newspaper-analysis', methods=['POST'])
def analyze_article():
    from preptalk import runtime

    return newspaper_api_service.analyze_article(runtime, request)
