from flask import Blueprint, request

from preptalk.services import account_api_service

account_bp = Blueprint('account_api', __name__)


@account_bp.route('/api/onboarding', methods=['GET'])
def get_onboarding():
    from preptalk import runtime

    return account_api_service.get_onboarding(runtime, request)


@account_bp.route('/api/onboarding', methods=['POST'])
def save_onboarding():
    from preptalk import runtime

    return account_api_service.save_onboarding(runtime, request)


@account_bp.route('/api/dashboard/summary', methods=['GET'])
def get_dashboard_summary():
    from preptalk import runtime

    return account_api_service.get_dashboard_summary(runtime, request)


@account_bp.route('/api/recommendations', methods=['GET'])
def get_recommendations():
    from preptalk import runtime

    return account_api_service.get_recommendations(runtime, request)
