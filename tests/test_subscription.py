import time
from types import SimpleNamespace

from preptalk import runtime
from preptalk.services import subscription_api_service, subscription_service


def _paid_session(session_id="cs_test_1", tier="practice", billing_cycle="monthly", uid="user-1"):
    return {
        "id": session_id,
        "payment_status": "paid",
        "status": "complete",
        "amount_total": 19900,
        "currency": "inr",
        "metadata": {"uid": uid, "tier": tier, "billingCycle": billing_cycle},
    }


def test_tier_ordering_and_feature_lookup():
    assert subscription_service.tier_at_least("mains", "practice")
    assert not subscription_service.tier_at_least("foundation", "practice")
    assert subscription_service.normalize_tier("PLATINUM") == "free"
    assert subscription_service.has_feature("mains", "aiEvaluation")
    assert not subscription_service.has_feature("free", "aiEvaluation")
    assert subscription_service.remaining_quota(subscription_service.UNLIMITED, 999) == subscription_service.UNLIMITED
    assert subscription_service.remaining_quota(5, 7) == 0


def test_expired_subscription_resolves_to_free():
    now_ts = time.time()

    expired = subscription_service.resolve_effective_subscription({"tier": "mains", "expiresAt": now_ts - 10}, now_ts)
    active = subscription_service.resolve_effective_subscription({"tier": "mains", "expiresAt": now_ts + 10}, now_ts)

    assert expired["tier"] == "free"
    assert expired["status"] == "expired"
    assert expired["originalTier"] == "mains"
    assert active["tier"] == "mains"


def test_plans_endpoint_lists_tiers_in_order(client, monkeypatch):
    monkeypatch.setattr(runtime, "STRIPE_PUBLISHABLE_KEY", "pk_test_123")

    body = client.get("/api/subscription/plans").get_json()

    assert [plan["id"] for plan in body["plans"]] == subscription_service.TIER_ORDER
    assert body["stripe_publishable_key"] == "pk_test_123"


def test_current_subscription_defaults_to_free(client, login):
    login("user-1")

    body = client.get("/api/subscription/current").get_json()

    assert body["tier"] == "free"
    assert body["plan"]["name"] == "Free Starter"


def test_check_access_reports_reasons_and_usage(client, login, fake_db):
    login("user-1")
    fake_db.collection("dailyUsage").document(f"user-1_{runtime.today_key()}").set({"quizzesStarted": 2})

    denied = client.post("/api/subscription/check-access", json={"requiredTier": "mains", "feature": "aiEvaluation", "quizType": "past-year"})
    allowed = client.post("/api/subscription/check-access", json={"quizType": "free-daily"})

    denied_body = denied.get_json()
    assert denied_body["hasAccess"] is False
    assert len(denied_body["reasons"]) == 3
    assert denied_body["usage"]["quizzes"] == {"used": 2, "completed": 0, "limit": 5, "remaining": 3}
    assert allowed.get_json()["hasAccess"] is True


def test_check_access_rejects_unknown_tier(client, login):
    login("user-1")

    response = client.post("/api/subscription/check-access", json={"requiredTier": "platinum"})

    assert response.status_code == 400
    assert response.get_json()["details"][0]["field"] == "requiredTier"


def test_usage_requires_auth(client):
    assert client.get("/api/subscription/usage").status_code == 401


def test_checkout_creates_stripe_session_with_metadata(client, login, monkeypatch):
    login("user-1", "aspirant@example.com")
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(url="https://checkout.stripe.test/session")

    monkeypatch.setattr(runtime.stripe.checkout.Session, "create", fake_create)

    response = client.post("/api/subscription/checkout", json={"tier": "mains", "billingCycle": "yearly"})

    assert response.status_code == 200
    assert response.get_json() == {"checkout_url": "https://checkout.stripe.test/session"}
    assert captured["mode"] == "payment"
    assert captured["line_items"][0]["price_data"]["unit_amount"] == 4999 * 100
    assert captured["metadata"] == {"uid": "user-1", "tier": "mains", "billingCycle": "yearly"}
    assert captured["customer_email"] == "aspirant@example.com"


def test_checkout_rejects_free_tier(client, login):
    login("user-1")

    response = client.post("/api/subscription/checkout", json={"tier": "free"})

    assert response.status_code == 400


def test_activation_is_idempotent_per_checkout_session(fake_db):
    first = subscription_api_service.activate_subscription_from_session(runtime, _paid_session())
    expires_at = fake_db.docs("userSubscriptions")["user-1"]["expiresAt"]
    second = subscription_api_service.activate_subscription_from_session(runtime, _paid_session())

    assert first == (True, "activated")
    assert second == (True, "already_processed")
    assert fake_db.docs("userSubscriptions")["user-1"]["expiresAt"] == expires_at
    assert fake_db.docs("subscriptionPurchases")["cs_test_1"]["tier"] == "practice"


def test_renewal_of_same_tier_extends_from_current_expiry(fake_db):
    subscription_api_service.activate_subscription_from_session(runtime, _paid_session("cs_a"))
    first_expiry = fake_db.docs("userSubscriptions")["user-1"]["expiresAt"]

    subscription_api_service.activate_subscription_from_session(runtime, _paid_session("cs_b"))

    second_expiry = fake_db.docs("userSubscriptions")["user-1"]["expiresAt"]
    assert second_expiry == first_expiry + subscription_api_service.BILLING_PERIOD_SECONDS["monthly"]


def test_activation_rejects_unpaid_or_incomplete_sessions(fake_db):
    unpaid = _paid_session()
    unpaid["payment_status"] = "unpaid"
    unpaid["status"] = "open"
    missing = _paid_session()
    missing["metadata"] = {}

    assert subscription_api_service.activate_subscription_from_session(runtime, unpaid) == (False, "Checkout session is not paid yet.")
    assert subscription_api_service.activate_subscription_from_session(runtime, missing) == (False, "Missing checkout metadata.")
    assert fake_db.docs("userSubscriptions") == {}


def test_webhook_without_secret_is_rejected(client, monkeypatch):
    monkeypatch.setattr(runtime, "STRIPE_WEBHOOK_SECRET", "")

    response = client.post("/api/stripe-webhook", data=b"{}")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Webhook not configured"}


def test_webhook_activates_completed_checkout(client, monkeypatch, fake_db):
    monkeypatch.setattr(runtime, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    event = {"type": "checkout.session.completed", "data": {"object": _paid_session("cs_hook", tier="interview")}}
    monkeypatch.setattr(runtime.stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

    response = client.post("/api/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})

    assert response.status_code == 200
    assert fake_db.docs("userSubscriptions")["user-1"]["tier"] == "interview"


def test_webhook_rejects_bad_payload(client, monkeypatch):
    monkeypatch.setattr(runtime, "STRIPE_WEBHOOK_SECRET", "whsec_test")

    def raise_value_error(payload, sig, secret):
        raise ValueError("bad json")

    monkeypatch.setattr(runtime.stripe.Webhook, "construct_event", raise_value_error)

    assert client.post("/api/stripe-webhook", data=b"nope").status_code == 400
