from .newspaper import newspaper_bp
from .history import history_bp
from .quiz import quiz_bp
from .interview import interview_bp
from .writing import writing_bp
from .questions import questions_bp
from .notes import notes_bp
from .account import account_bp
from .payments import payments_bp

ALL_BLUEPRINTS = [
    newspaper_bp,
    history_bp,
    quiz_bp,
    interview_bp,
    writing_bp,
    questions_bp,
    notes_bp,
    account_bp,
    payments_bp,
]

__all__ = [
    'newspaper_bp',
    'history_bp',
    'quiz_bp',
    'interview_bp',
    'writing_bp',
    'questions_bp',
    'notes_bp',
    'account_bp',
    'payments_bp',
    'ALL_BLUEPRINTS',
]
