"""Business logic handlers for subscription, usage and payment APIs."""

import logging

from preptalk.repositories import subscription_repo
from preptalk.schemas import CheckAccessRequest, CheckoutRequest
from preptalk.services import quiz_service, subscription_service

BILLING_PERIOD_SECONDS = {
    'monthly': 30 * 24 * 60 * 60,
    'yearly': 365 * 24 * 60 * 60,
}


def load_effective_subscription(app_ctx, uid):
    snapshot = subscription_repo.subscription_doc_ref(app_ctx.db, uid).get()
    data = snapshot.to_dict() if snapshot.exists else {}
    return subscription_service.resolve_effective_subscription(data, app_ctx.time.time())


def load_daily_usage(app_ctx, uid):
    date_key = app_ctx.today_key()
    snapshot = subscription_repo.daily_usage_doc_ref(app_ctx.db, uid, date_key).get()
    data = snapshot.to_dict() if snapshot.exists else {}
    return {
        'date': date_key,
        'quizzesStarted': int(data.get('quizzesStarted', 0) or 0),
        'quizzesCompleted': int(data.get('quizzesCompleted', 0) or 0),
        'questionsAnswered': int(data.get('questionsAnswered', 0) or 0),
    }


def increment_daily_usage(app_ctx, uid, **increments):
    usage = load_daily_usage(app_ctx, uid)
    updates = {'userId': uid, 'date': usage['date'], 'updatedAt': app_ctx.time.time()}
    for field, amount in increments.items():
        updates[field] = usage.get(field, 0) + int(amount)
    subscription_repo.daily_usage_doc_ref(app_ctx.db, uid, usage['date']).set(updates, merge=True)
    return updates


def build_usage_report(tier, usage):
    limit = subscription_service.daily_quiz_limit(tier)
    return {
        'date': usage['date'],
        'tier': tier,
        'quizzes': {
            'used': usage['quizzesStarted'],
            'completed': usage['quizzesCompleted'],
            'limit': limit,
            'remaining': subscription_service.remaining_quota(limit, usage['quizzesStarted']),
        },
        'questionsAnswered': usage['questionsAnswered'],
    }


def get_plans(app_ctx):
    return app_ctx.jsonify({
        'plans': subscription_service.public_plan_catalogue(),
        'stripe_publishable_key': app_ctx.STRIPE_PUBLISHABLE_KEY,
    })


def get_current_subscription(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        subscription = load_effective_subscription(app_ctx, uid)
        plan = subscription_service.SUBSCRIPTION_PLANS[subscription['tier']]
        subscription['plan'] = {'name': plan['name'], 'features': plan['features'], 'limits': plan['limits']}
        return app_ctx.jsonify(subscription)
    except Exception as e:
        app_ctx.logger.error(f"Error loading subscription for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load subscription'}), 500


def check_access(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(CheckAccessRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        subscription = load_effective_subscription(app_ctx, uid)
        tier = subscription['tier']
        has_access = True
        reasons = []
        if payload.requiredTier and not subscription_service.tier_at_least(tier, payload.requiredTier):
            has_access = False
            reasons.append(f"Requires the {payload.requiredTier} plan or higher")
        if payload.feature and not subscription_service.has_feature(tier, payload.feature):
            has_access = False
            reasons.append(f"Feature '{payload.feature}' is not included in your plan")
        if payload.quizType and not quiz_service.can_access_quiz(payload.quizType, tier):
            has_access = False
            reasons.append(f"Quiz type '{payload.quizType}' is not included in your plan")
        usage = build_usage_report(tier, load_daily_usage(app_ctx, uid))
        return app_ctx.jsonify({
            'hasAccess': has_access,
            'currentTier': tier,
            'reasons': reasons,
            'usage': usage,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error checking access for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not check access'}), 500


def get_usage(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        subscription = load_effective_subscription(app_ctx, uid)
        return app_ctx.jsonify(build_usage_report(subscription['tier'], load_daily_usage(app_ctx, uid)))
    except Exception as e:
        app_ctx.logger.error(f"Error loading usage for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load usage'}), 500


def create_checkout_session(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Please sign in to continue'}), 401

    uid = decoded_token['uid']
    email = decoded_token.get('email', '')
    allowed_checkout, retry_after = app_ctx.check_rate_limit(
        key=f"checkout:{app_ctx.normalize_rate_limit_key_part(uid, fallback='anon_uid')}",
        limit=app_ctx.CHECKOUT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.CHECKOUT_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed_checkout:
        app_ctx.log_rate_limit_hit('checkout', retry_after)
        return app_ctx.build_rate_limited_response(
            'Too many checkout attempts. Please wait before starting another checkout.',
            retry_after,
        )

    payload, error_response = app_ctx.validate_payload(CheckoutRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    plan = subscription_service.SUBSCRIPTION_PLANS[payload.tier]
    amount = int(plan['price'][payload.billingCycle]) * 100

    try:
        checkout_session = app_ctx.stripe.checkout.Session.create(
            payment_method_types=['card'],
            line_items=[{
                'price_data': {
                    'currency': app_ctx.STRIPE_CURRENCY,
                    'product_data': {
                        'name': f"PrepTalk {plan['name']} ({payload.billingCycle})",
                        'description': plan['description'],
                    },
                    'unit_amount': amount,
                },
                'quantity': 1,
            }],
            mode='payment',
            success_url=request.host_url.rstrip('/') + '/subscription?payment=success&session_id={CHECKOUT_SESSION_ID}',
            cancel_url=request.host_url.rstrip('/') + '/subscription?payment=cancelled',
            customer_email=email or None,
            metadata={
                'uid': uid,
                'tier': payload.tier,
                'billingCycle': payload.billingCycle,
            },
        )
        return app_ctx.jsonify({'checkout_url': checkout_session.url})
    except Exception as e:
        app_ctx.logger.error(f"Stripe checkout error: {e}")
        return app_ctx.jsonify({'error': 'Could not create checkout session. Please try again.'}), 500


def activate_subscription_from_session(app_ctx, stripe_session):
    """Return ``(ok, status)``; idempotent per Stripe checkout session."""
    metadata = stripe_session.get('metadata', {}) or {}
    uid = metadata.get('uid', '')
    tier = metadata.get('tier', '')
    billing_cycle = metadata.get('billingCycle', 'monthly')
    stripe_session_id = stripe_session.get('id', '')
    payment_status = (stripe_session.get('payment_status') or '').lower()
    session_status = (stripe_session.get('status') or '').lower()

    if not uid or not tier:
        return False, 'Missing checkout metadata.'
    if tier not in subscription_service.SUBSCRIPTION_PLANS or tier == 'free':
        return False, 'Unknown subscription tier.'
    if billing_cycle not in BILLING_PERIOD_SECONDS:
        return False, 'Unknown billing cycle.'
    if payment_status != 'paid' and session_status != 'complete':
        return False, 'Checkout session is not paid yet.'

    purchase_ref = subscription_repo.purchase_doc_ref(app_ctx.db, stripe_session_id)
    if purchase_ref.get().exists:
        return True, 'already_processed'

    now_ts = app_ctx.time.time()
    current = load_effective_subscription(app_ctx, uid)
    starts_at = now_ts
    if current['tier'] == tier and current.get('expiresAt') and float(current['expiresAt']) > now_ts:
        starts_at = float(current['expiresAt'])
    expires_at = starts_at + BILLING_PERIOD_SECONDS[billing_cycle]
    subscription_repo.subscription_doc_ref(app_ctx.db, uid).set({
        'userId': uid,
        'tier': tier,
        'status': 'active',
        'billingCycle': billing_cycle,
        'startedAt': now_ts,
        'expiresAt': expires_at,
        'lastPaymentSessionId': stripe_session_id,
        'updatedAt': now_ts,
    }, merge=True)
    purchase_ref.set({
        'userId': uid,
        'tier': tier,
        'billingCycle': billing_cycle,
        'amount': stripe_session.get('amount_total', 0),
        'currency': stripe_session.get('currency', app_ctx.STRIPE_CURRENCY),
        'createdAt': now_ts,
    })
    app_ctx.log_event(logging.INFO, 'subscription_activated', uid=uid, tier=tier, billing_cycle=billing_cycle)
    return True, 'activated'


def stripe_webhook(app_ctx, request):
    payload = request.data
    sig_header = request.headers.get('Stripe-Signature', '')

    if app_ctx.STRIPE_WEBHOOK_SECRET:
        try:
            event = app_ctx.stripe.Webhook.construct_event(
                payload, sig_header, app_ctx.STRIPE_WEBHOOK_SECRET
            )
        except ValueError:
            app_ctx.logger.warning("Stripe webhook: Invalid payload")
            return 'Invalid payload', 400
        except app_ctx.stripe.error.SignatureVerificationError as e:
            app_ctx.logger.warning(f"Stripe webhook signature verification failed: {e}")
            return 'Invalid signature', 400
        except Exception as e:
            app_ctx.logger.error(f"Stripe webhook unexpected error: {e}")
            return 'Webhook processing error', 500
    else:
        app_ctx.logger.warning("Stripe webhook rejected: STRIPE_WEBHOOK_SECRET is not configured")
        return app_ctx.jsonify({'error': 'Webhook not configured'}), 500

    if event.get('type') == 'checkout.session.completed':
        session = event['data']['object']
        try:
            ok, status = activate_subscription_from_session(app_ctx, session)
        except Exception as e:
            app_ctx.logger.error(f"Stripe webhook could not activate session {session.get('id', '')}: {e}")
            return 'Webhook processing error', 500
        if ok and status == 'already_processed':
            app_ctx.logger.info(f"Checkout session {session.get('id', '')} already processed.")
        elif not ok:
            app_ctx.logger.warning(f"Webhook checkout session {session.get('id', '')} not processed: {status}")

    return '', 200
