"""Process-wide runtime context passed to API handlers as ``app_ctx``.

Holds the Firebase, Gemini and Stripe clients, tunable limits read from the
environment, and thin wrappers that bind those clients to the service helpers.
"""

import json
import logging
import os
import threading
import time
import uuid
from datetime import datetime, timezone

import firebase_admin
import stripe
from dotenv import load_dotenv
from firebase_admin import auth, credentials, firestore, storage
from flask import jsonify, send_file
from google import genai
from pydantic import ValidationError

from preptalk.logging_config import log_event as _log_event
from preptalk.services import auth_service, llm_service, rate_limit_service

load_dotenv()
logger = logging.getLogger('preptalk')

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
KNOWLEDGE_DIR = os.path.join(PACKAGE_DIR, 'knowledge')


def log_event(level, event, **fields):
    _log_event(logger, level, event, **fields)


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except Exception:
        value = int(default)
    return min(max(value, minimum), maximum)


def env_flag(name, default='0'):
    return str(os.getenv(name, default)).strip().lower() in {'1', 'true', 'yes', 'on'}


MAX_QUESTION_UPLOAD_BYTES = 50 * 1024 * 1024
MAX_WRITING_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_PDF_QUIZ_UPLOAD_BYTES = 20 * 1024 * 1024
MAX_CONTENT_LENGTH = MAX_QUESTION_UPLOAD_BYTES + (5 * 1024 * 1024)
MAX_HISTORY_ENTRIES = 20
MAX_INTERVIEW_QUESTIONS = 5

NEWSPAPER_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('NEWSPAPER_RATE_LIMIT_WINDOW_SECONDS', 60, minimum=10, maximum=86400)
NEWSPAPER_RATE_LIMIT_MAX_REQUESTS = safe_int_env('NEWSPAPER_RATE_LIMIT_MAX_REQUESTS', 5, minimum=1, maximum=1000)
WRITING_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('WRITING_RATE_LIMIT_WINDOW_SECONDS', 60, minimum=10, maximum=86400)
WRITING_RATE_LIMIT_MAX_REQUESTS = safe_int_env('WRITING_RATE_LIMIT_MAX_REQUESTS', 10, minimum=1, maximum=1000)
PDF_QUIZ_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('PDF_QUIZ_RATE_LIMIT_WINDOW_SECONDS', 300, minimum=10, maximum=86400)
PDF_QUIZ_RATE_LIMIT_MAX_REQUESTS = safe_int_env('PDF_QUIZ_RATE_LIMIT_MAX_REQUESTS', 5, minimum=1, maximum=1000)
INTERVIEW_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('INTERVIEW_RATE_LIMIT_WINDOW_SECONDS', 600, minimum=10, maximum=86400)
INTERVIEW_RATE_LIMIT_MAX_REQUESTS = safe_int_env('INTERVIEW_RATE_LIMIT_MAX_REQUESTS', 20, minimum=1, maximum=1000)
CHECKOUT_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('CHECKOUT_RATE_LIMIT_WINDOW_SECONDS', 600, minimum=10, maximum=86400)
CHECKOUT_RATE_LIMIT_MAX_REQUESTS = safe_int_env('CHECKOUT_RATE_LIMIT_MAX_REQUESTS', 6, minimum=1, maximum=100)

RATE_LIMIT_STATE = {}
RATE_LIMIT_LOCK = threading.Lock()
RATE_LIMIT_COUNTER_COLLECTION = 'rate_limit_counters'
RATE_LIMIT_FIRESTORE_ENABLED = env_flag('RATE_LIMIT_FIRESTORE_ENABLED', '1')

# --- Gemini Setup ---
GEMINI_MODEL = (os.getenv('GEMINI_MODEL', 'gemini-2.5-flash') or 'gemini-2.5-flash').strip()
GEMINI_PRO_MODEL = (os.getenv('GEMINI_PRO_MODEL', 'gemini-2.5-pro') or 'gemini-2.5-pro').strip()
GEMINI_API_KEY = (os.getenv('GEMINI_API_KEY', '') or '').strip()
if GEMINI_API_KEY:
    try:
        client = genai.Client(api_key=GEMINI_API_KEY)
    except Exception as e:
        client = None
        logger.info(f"Gemini client disabled: {e}")
else:
    client = None
    logger.info("GEMINI_API_KEY not set; AI features are disabled.")

# --- Firebase Setup ---
db = None
storage_bucket = None
firebase_init_error = ''
FIREBASE_STORAGE_BUCKET = (os.getenv('FIREBASE_STORAGE_BUCKET', '') or '').strip()
try:
    if os.path.exists('firebase-credentials.json'):
        cred = credentials.Certificate('firebase-credentials.json')
    else:
        firebase_creds_raw = (os.getenv('FIREBASE_CREDENTIALS', '') or '').strip()
        if not firebase_creds_raw:
            raise ValueError("FIREBASE_CREDENTIALS is not set and firebase-credentials.json was not found.")
        cred = credentials.Certificate(json.loads(firebase_creds_raw))
    if not firebase_admin._apps:
        options = {'storageBucket': FIREBASE_STORAGE_BUCKET} if FIREBASE_STORAGE_BUCKET else None
        firebase_admin.initialize_app(cred, options)
    db = firestore.client()
    if FIREBASE_STORAGE_BUCKET:
        storage_bucket = storage.bucket()
except Exception as e:
    firebase_init_error = str(e)
    logger.info(f"Firebase initialization skipped: {firebase_init_error}")

# --- Stripe Setup ---
stripe.api_key = os.getenv('STRIPE_SECRET_KEY')
STRIPE_PUBLISHABLE_KEY = os.getenv('STRIPE_PUBLISHABLE_KEY', '')
STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET', '')
STRIPE_CURRENCY = (os.getenv('STRIPE_CURRENCY', 'inr') or 'inr').strip().lower()

ADMIN_EMAILS = auth_service.parse_identity_set(os.getenv('ADMIN_EMAILS', ''), lowercase=True)
ADMIN_EMAILS |= auth_service.parse_identity_set(os.getenv('DEV_MODE_EMAILS', ''), lowercase=True)
ADMIN_UIDS = auth_service.parse_identity_set(os.getenv('ADMIN_UIDS', ''))

_KNOWLEDGE_CACHE = {}


def load_knowledge_file(name):
    if name not in _KNOWLEDGE_CACHE:
        with open(os.path.join(KNOWLEDGE_DIR, name), 'r', encoding='utf-8') as handle:
            _KNOWLEDGE_CACHE[name] = handle.read()
    return _KNOWLEDGE_CACHE[name]


def today_key():
    return datetime.now(timezone.utc).strftime('%Y-%m-%d')


def new_id():
    return uuid.uuid4().hex


# =============================================
# HELPER FUNCTIONS
# =============================================

def verify_firebase_token(request):
    return auth_service.verify_firebase_token(request, auth_module=auth, logger=logger)


def is_admin_user(decoded_token):
    return auth_service.is_admin_user(decoded_token, admin_uids=ADMIN_UIDS, admin_emails=ADMIN_EMAILS)


def check_rate_limit(key, limit, window_seconds):
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window_seconds,
        firestore_enabled=RATE_LIMIT_FIRESTORE_ENABLED,
        db=db,
        firestore_module=firestore,
        counter_collection=RATE_LIMIT_COUNTER_COLLECTION,
        in_memory_store=RATE_LIMIT_STATE,
        in_memory_lock=RATE_LIMIT_LOCK,
        time_module=time,
    )


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    return rate_limit_service.normalize_rate_limit_key_part(value, fallback=fallback, max_len=max_len)


def client_rate_limit_key(scope, request):
    identifier = rate_limit_service.client_identifier(request)
    return f"{scope}:{normalize_rate_limit_key_part(identifier, fallback='unknown')}"


def build_rate_limited_response(message, retry_after):
    response = jsonify({
        'error': message,
        'retry_after_seconds': int(max(1, retry_after)),
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(int(max(1, retry_after)))
    return response


def log_rate_limit_hit(limit_name, retry_after):
    log_event(logging.WARNING, 'rate_limit_hit', limit=limit_name, retry_after=int(max(1, retry_after)))


def validation_error_response(exc):
    details = []
    for error in exc.errors():
        details.append({
            'field': '.'.join(str(part) for part in error.get('loc', ())),
            'message': error.get('msg', 'Invalid value'),
        })
    return jsonify({'error': 'Invalid request data', 'details': details}), 400


def validate_payload(schema_cls, payload):
    """Return ``(model, None)`` or ``(None, error_response)``."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None, (jsonify({'error': 'Invalid payload'}), 400)
    try:
        return schema_cls.model_validate(payload), None
    except ValidationError as exc:
        return None, validation_error_response(exc)


def generate_json(prompt_text, *, model=None, temperature=None, max_output_tokens=8192, parts=None):
    return llm_service.generate_json(
        client,
        model or GEMINI_MODEL,
        prompt_text,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        parts=parts,
        logger=logger,
    )


def generate_text(prompt_text, *, model=None, temperature=None, max_output_tokens=8192, parts=None):
    return llm_service.generate_text(
        client,
        model or GEMINI_MODEL,
        prompt_text,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        parts=parts,
        logger=logger,
    )


def llm_error_response(exc):
    if isinstance(exc, llm_service.LLMUnavailableError):
        return jsonify({'error': str(exc) or 'AI service is temporarily unavailable.'}), 503
    return jsonify({'error': str(exc) or 'AI service failed to generate a response.'}), 500


LLMError = llm_service.LLMError
LLMUnavailableError = llm_service.LLMUnavailableError
LLMResponseError = llm_service.LLMResponseError
