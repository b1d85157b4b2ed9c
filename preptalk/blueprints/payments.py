from flask import Blueprint, request

from preptalk.services import subscription_api_service

payments_bp = Blueprint('payments_api', __name__)


@payments_bp.route('/api/subscription/plans', methods=['GET'])
def get_plans():
    from preptalk import runtime

    return subscription_api_service.get_plans(runtime)


@payments_bp.route('/api/subscription/current', methods=['GET'])
def get_current_subscription():
    from preptalk import runtime

    return subscription_api_service.get_current_subscription(runtime, request)


@payments_bp.route('/api/subscription/check-access', methods=['POST'])
def check_access():
    from preptalk import runtime

    return subscription_api_service.check_access(runtime, request)


@payments_bp.route('/api/subscription/usage', methods=['GET'])
def get_usage():
    from preptalk import runtime

    return subscription_api_service.get_usage(runtime, request)


@payments_bp.route('/api/subscription/checkout', methods=['POST'])
def create_checkout_session():
    from preptalk import runtime

    return subscription_api_service.create_checkout_session(runtime, request)


@payments_bp.route('/api/stripe-webhook', methods=['POST'])
def stripe_webhook():
    from preptalk import runtime

    return subscription_api_service.stripe_webhook(runtime, request)
