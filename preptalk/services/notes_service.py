"""Spaced-repetition scheduling for smart notes."""

DAY_SECONDS = 24 * 60 * 60
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
MINUTES_PER_REVIEW = 3

QUALITY_SCORES = {
    'poor': 1,
    'average': 3,
    'good': 4,
    'excellent': 5,
}
MASTERY_GAINS = {
    'poor': 0,
    'average': 5,
    'good': 10,
    'excellent': 15,
}


def initial_revision(now_ts):
    return {
        'nextReview': now_ts + DAY_SECONDS,
        'interval': 1,
        'easeFactor': DEFAULT_EASE_FACTOR,
        'consecutiveCorrect': 0,
    }


def next_revision(revision, quality, now_ts):
    """SM-2 style update. ``quality`` is one of QUALITY_SCORES."""
    q = QUALITY_SCORES[quality]
    interval = int(revision.get('interval', 1) or 1)
    ease_factor = float(revision.get('easeFactor', DEFAULT_EASE_FACTOR) or DEFAULT_EASE_FACTOR)
    consecutive = int(revision.get('consecutiveCorrect', 0) or 0)

    if q >= 3:
        consecutive += 1
        interval = max(1, round(interval * ease_factor))
    else:
        consecutive = 0
        interval = 1

    ease_factor = max(MIN_EASE_FACTOR, ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)))
    return {
        'nextReview': now_ts + interval * DAY_SECONDS,
        'interval': interval,
        'easeFactor': round(ease_factor, 4),
        'consecutiveCorrect': consecutive,
    }


def apply_review(note, quality, now_ts):
    revision = next_revision(note.get('revision') or initial_revision(now_ts), quality, now_ts)
    mastery = min(100, int(note.get('masteryLevel', 0) or 0) + MASTERY_GAINS[quality])
    return {
        'revision': revision,
        'masteryLevel': mastery,
        'reviewCount': int(note.get('reviewCount', 0) or 0) + 1,
        'lastReviewed': now_ts,
        'updated': now_ts,
    }


def is_due(note, now_ts):
    revision = note.get('revision') or {}
    return float(revision.get('nextReview', 0) or 0) <= now_ts


def build_review_queue(notes, now_ts, limit):
    per_bucket = max(1, limit // 3)
    urgent, overdue, scheduled = [], [], []
    for note in notes:
        if not is_due(note, now_ts):
            continue
        next_review = float((note.get('revision') or {}).get('nextReview', 0) or 0)
        if int(note.get('importance', 0) or 0) >= 8:
            urgent.append(note)
        elif now_ts - next_review > DAY_SECONDS:
            overdue.append(note)
        else:
            scheduled.append(note)

    def by_importance(note):
        return -int(note.get('importance', 0) or 0)

    def by_next_review(note):
        return float((note.get('revision') or {}).get('nextReview', 0) or 0)

    if len(overdue) > 10:
        priority = 'high'
    elif len(urgent) > 5:
        priority = 'medium'
    else:
        priority = 'low'

    urgent = sorted(urgent, key=by_next_review)[:per_bucket]
    overdue = sorted(overdue, key=by_next_review)[:per_bucket]
    scheduled = sorted(scheduled, key=by_importance)[:per_bucket]
    total = len(urgent) + len(overdue) + len(scheduled)

    return {
        'urgent': urgent,
        'overdue': overdue,
        'scheduled': scheduled,
        'summary': {
            'totalReviews': total,
            'estimatedTime': total * MINUTES_PER_REVIEW,
            'priority': priority,
        },
    }
