"""Firestore accessors for subscriptions, daily usage and purchases."""


def subscription_doc_ref(db, uid):
    return db.collection('userSubscriptions').document(uid)


def daily_usage_doc_ref(db, uid, date_key):
    return db.collection('dailyUsage').document(f"{uid}_{date_key}")


def purchase_doc_ref(db, stripe_session_id):
    return db.collection('subscriptionPurchases').document(stripe_session_id)
