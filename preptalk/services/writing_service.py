"""Scoring and progress analytics for writing evaluation."""

import re

SCORE_WEIGHTS = {
    'content': 0.40,
    'structure': 0.25,
    'language': 0.20,
    'presentation': 0.10,
    'timeManagement': 0.05,
}
TIMEFRAME_SECONDS = {
    '7d': 7 * 24 * 60 * 60,
    '30d': 30 * 24 * 60 * 60,
    '90d': 90 * 24 * 60 * 60,
    'all': None,
}
PRACTICE_TIME_LIMITS = {'precis': 30, 'essay': 90}
PRACTICE_WORD_LIMITS = {'precis': 150, 'essay': 1200}
DEFAULT_PRACTICE_TIME_LIMIT = 60
DEFAULT_PRACTICE_WORD_LIMIT = 800
AVERAGE_SCORE_BASELINE = 62


def clamp_score(value, default=0):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return int(round(min(max(number, 0), 100)))


def weighted_overall_score(scores):
    total = 0.0
    for dimension, weight in SCORE_WEIGHTS.items():
        total += clamp_score(scores.get(dimension, 0)) * weight
    return clamp_score(total)


def count_words(text):
    return len(re.findall(r"\b[\w'-]+\b", str(text or '')))


def estimate_time_management(word_count, time_spent_seconds, target_words_per_minute=20):
    """Heuristic used when the examiner gives no time score: UPSC pace is ~20 words a minute."""
    if not time_spent_seconds:
        return 70
    words_per_minute = word_count / max(time_spent_seconds / 60.0, 1e-6)
    ratio = words_per_minute / target_words_per_minute
    if ratio >= 1:
        return clamp_score(100 - (ratio - 1) * 10, default=70)
    return clamp_score(ratio * 100, default=70)


def _string_list(value, limit=5):
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item or '').strip()][:limit]


def _merge_lists(*lists, limit=5):
    merged = []
    for items in lists:
        for item in items:
            if item not in merged:
                merged.append(item)
    return merged[:limit]


def build_evaluation_result(evaluation_id, content_review, structure_review, language_review, synthesis, *, word_count, time_spent, created_at, processing_ms):
    time_score = synthesis.get('timeManagement')
    scores = {
        'content': clamp_score(content_review.get('score')),
        'structure': clamp_score(structure_review.get('score')),
        'language': clamp_score(language_review.get('score')),
        'presentation': clamp_score(structure_review.get('presentation'), default=clamp_score(structure_review.get('score'))),
        'timeManagement': clamp_score(time_score) if time_score is not None else estimate_time_management(word_count, time_spent),
    }
    overall = weighted_overall_score(scores)
    strengths = _string_list(synthesis.get('strengths')) or _merge_lists(
        _string_list(content_review.get('strengths')),
        _string_list(structure_review.get('strengths')),
        _string_list(language_review.get('strengths')),
    )
    improvements = _string_list(synthesis.get('improvements')) or _merge_lists(
        _string_list(content_review.get('improvements')),
        _string_list(structure_review.get('improvements')),
        _string_list(language_review.get('improvements')),
    )
    peer_percentile = synthesis.get('peerPercentile')
    return {
        'id': evaluation_id,
        'overallScore': overall,
        'scores': scores,
        'feedback': {
            'strengths': strengths,
            'improvements': improvements,
            'suggestions': _string_list(synthesis.get('suggestions')),
            'missingKeywords': _string_list(content_review.get('missingKeywords'), limit=10),
        },
        'analytics': {
            'wordCount': word_count,
            'readabilityScore': clamp_score(language_review.get('readabilityScore'), default=60),
            'vocabularyLevel': str(language_review.get('vocabularyLevel', 'intermediate') or 'intermediate'),
            'sentenceComplexity': str(language_review.get('sentenceComplexity', 'moderate') or 'moderate'),
            'paragraphStructure': str(structure_review.get('paragraphStructure', '') or ''),
        },
        'comparison': {
            'peerPercentile': clamp_score(peer_percentile, default=overall) if peer_percentile is not None else overall,
            'averageScore': AVERAGE_SCORE_BASELINE,
            'topPerformerGap': max(0, 90 - overall),
        },
        'processingTime': int(processing_ms),
        'createdAt': created_at,
    }


def practice_prompt_defaults(prompt_type):
    return (
        PRACTICE_TIME_LIMITS.get(prompt_type, DEFAULT_PRACTICE_TIME_LIMIT),
        PRACTICE_WORD_LIMITS.get(prompt_type, DEFAULT_PRACTICE_WORD_LIMIT),
    )


def shape_practice_prompt(raw, prompt_type, difficulty, topic, exam_type):
    time_limit, word_limit = practice_prompt_defaults(prompt_type)
    raw = raw if isinstance(raw, dict) else {}
    content = str(raw.get('content', '') or '').strip()
    if not content:
        subject = topic or 'a contemporary issue of national importance'
        content = f"Write a {prompt_type} on {subject}."
    try:
        time_limit = int(raw.get('timeLimit') or time_limit)
        word_limit = int(raw.get('wordLimit') or word_limit)
    except (TypeError, ValueError):
        pass
    return {
        'title': str(raw.get('title', '') or '').strip() or f"{prompt_type.title()} Practice",
        'content': content,
        'guidelines': _string_list(raw.get('guidelines'), limit=8),
        'timeLimit': time_limit,
        'wordLimit': word_limit,
        'tags': _string_list(raw.get('tags'), limit=8) or [prompt_type, difficulty],
        'type': prompt_type,
        'difficulty': difficulty,
        'examType': exam_type,
    }


def assess_extraction_quality(extracted_text, confidence, legibility):
    word_count = count_words(extracted_text)
    issues = []
    if word_count < 50:
        issues.append('Very little text was extracted. Check the image quality.')
    if confidence < 0.6:
        issues.append('Low recognition confidence. Review the extracted text before submitting.')
    if legibility == 'poor':
        issues.append('Handwriting is hard to read.')
    return {
        'wordCount': word_count,
        'isAcceptable': word_count >= 50 and confidence >= 0.6,
        'issues': issues,
    }


def summarize_progress(sessions, timeframe):
    """Aggregate stored writing sessions (sorted oldest first) into a progress report."""
    sessions = sorted(sessions, key=lambda item: float(item.get('createdAt', 0) or 0))
    scores = [clamp_score(item.get('score')) for item in sessions]
    dimension_totals = {dimension: [] for dimension in SCORE_WEIGHTS}
    subjects = {}
    for item in sessions:
        detailed = item.get('detailedScores') or {}
        for dimension in SCORE_WEIGHTS:
            if dimension in detailed:
                dimension_totals[dimension].append(clamp_score(detailed[dimension]))
        subject = item.get('subject') or 'General Studies'
        subjects.setdefault(subject, []).append(clamp_score(item.get('score')))

    def average(values):
        return round(sum(values) / len(values), 1) if values else 0

    half = len(scores) // 2
    if half:
        first_half = average(scores[:half])
        second_half = average(scores[half:])
        change = round(second_half - first_half, 1)
    else:
        change = 0
    if change > 2:
        direction = 'improving'
    elif change < -2:
        direction = 'declining'
    else:
        direction = 'stable'

    return {
        'timeframe': timeframe,
        'totalSessions': len(sessions),
        'averageScore': average(scores),
        'bestScore': max(scores) if scores else 0,
        'dimensionAverages': {dimension: average(values) for dimension, values in dimension_totals.items()},
        'subjectBreakdown': {
            subject: {'sessions': len(values), 'averageScore': average(values)}
            for subject, values in subjects.items()
        },
        'trend': {'direction': direction, 'change': change},
        'totalWords': sum(int(item.get('wordCount', 0) or 0) for item in sessions),
        'recentScores': scores[-10:],
    }
