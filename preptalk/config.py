import os
from dataclasses import dataclass

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}


@dataclass(frozen=True)
class AppConfig:
    """Central config object for the app factory."""

    flask_secret_key: str = ''
    log_level: str = 'INFO'
    sentry_dsn: str = ''
    sentry_environment: str = 'production'
    sentry_release: str = 'preptalk'
    sentry_traces_sample_rate: float = 0.0


def resolve_runtime_env() -> str:
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


def _safe_sample_rate(raw):
    try:
        value = float(str(raw or '0').strip())
    except ValueError:
        return 0.0
    return min(max(value, 0.0), 1.0)


def load_config() -> AppConfig:
    config = AppConfig(
        flask_secret_key=os.getenv('FLASK_SECRET_KEY', ''),
        log_level=(os.getenv('LOG_LEVEL', 'INFO') or 'INFO').strip().upper(),
        sentry_dsn=(os.getenv('SENTRY_DSN_BACKEND', '') or '').strip(),
        sentry_environment=(os.getenv('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production')) or 'production').strip(),
        sentry_release=(os.getenv('SENTRY_RELEASE', 'preptalk') or 'preptalk').strip(),
        sentry_traces_sample_rate=_safe_sample_rate(os.getenv('SENTRY_TRACES_SAMPLE_RATE', '0')),
    )
    is_dev_like = resolve_runtime_env() in DEV_ENV_NAMES
    if not is_dev_like and not config.flask_secret_key.strip():
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    return config
