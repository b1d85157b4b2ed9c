"""Authentication utility helpers."""


def verify_firebase_token(request, auth_module, logger):
    """Return decoded Firebase token dict, or None when invalid/missing."""
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    token = auth_header.split('Bearer ', 1)[1].strip()
    if not token or auth_module is None:
        return None
    try:
        return auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def parse_identity_set(raw, lowercase=False):
    values = set()
    for part in str(raw or '').split(','):
        value = part.strip()
        if not value:
            continue
        values.add(value.lower() if lowercase else value)
    return values


def is_admin_user(decoded_token, *, admin_uids, admin_emails):
    if not decoded_token:
        return False
    uid = decoded_token.get('uid', '')
    email = str(decoded_token.get('email', '') or '').lower()
    return uid in admin_uids or (bool(email) and email in admin_emails)
