"""Flask extension wiring: Sentry, CORS, request ids and shared error handlers."""

import os
import uuid

import sentry_sdk
from flask import g, jsonify, request
from sentry_sdk.integrations.flask import FlaskIntegration
from werkzeug.exceptions import RequestEntityTooLarge

DEFAULT_CORS_ORIGINS = {
    'http://127.0.0.1:3000',
    'http://localhost:3000',
    'http://127.0.0.1:5000',
    'http://localhost:5000',
}


def parse_cors_allowed_origins(raw=None):
    raw = (os.getenv('CORS_ALLOWED_ORIGINS', '') if raw is None else raw) or ''
    raw = raw.strip()
    if raw:
        return {part.strip().lower() for part in raw.split(',') if part.strip()}
    return set(DEFAULT_CORS_ORIGINS)


def init_sentry(config) -> bool:
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    return True


def init_extensions(app, config) -> None:
    if app is None:
        return
    state = app.extensions.setdefault('preptalk', {})
    state['sentry_enabled'] = init_sentry(config)
    state['cors_allowed_origins'] = parse_cors_allowed_origins()

    def apply_cors_headers(response):
        origin = str(request.headers.get('Origin', '') or '').strip()
        if not origin or not request.path.startswith('/api/'):
            return response
        if origin.lower() not in state['cors_allowed_origins']:
            return response
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Vary'] = 'Origin'
        response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, X-Request-ID'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
        return response

    @app.before_request
    def handle_api_options_preflight():
        if request.method == 'OPTIONS' and request.path.startswith('/api/'):
            return apply_cors_headers(app.make_default_options_response())

    @app.before_request
    def attach_request_context():
        request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
        g.request_id = request_id
        if not state['sentry_enabled']:
            return
        sentry_sdk.set_tag('request.id', request_id)
        sentry_sdk.set_tag('route.path', request.path)
        sentry_sdk.set_tag('route.method', request.method)
        sentry_sdk.set_tag('route.endpoint', request.endpoint or '')

    @app.after_request
    def attach_response_context(response):
        request_id = str(getattr(g, 'request_id', '') or '').strip()
        if request_id:
            response.headers['X-Request-ID'] = request_id
        if state['sentry_enabled']:
            sentry_sdk.set_tag('route.status_code', str(response.status_code))
        return apply_cors_headers(response)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_request_entity_too_large(_error):
        max_mb = int((app.config.get('MAX_CONTENT_LENGTH') or 0) / (1024 * 1024))
        return jsonify({'error': f'Upload too large. Maximum request size is {max_mb}MB.'}), 413

    @app.errorhandler(404)
    def handle_not_found(_error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_error):
        return jsonify({'error': 'Method not allowed'}), 405
