"""Daily quiz catalogue, question shaping and result scoring."""

import random

from preptalk.services import subscription_service

ANSWER_LETTERS = ['A', 'B', 'C', 'D']
MAX_RECOMMENDATIONS = 5
DEFAULT_SUBJECT = 'General Studies'

_ALL_TIERS = list(subscription_service.TIER_ORDER)

QUIZ_CONFIGS = {
    'free-daily': {
        'name': 'Free Daily Quiz',
        'questionPool': 'daily-questions',
        'timeLimit': 15 * 60,
        'allowedTiers': _ALL_TIERS,
    },
    'ncert-foundation': {
        'name': 'NCERT Foundation',
        'questionPool': 'ncert-questions',
        'timeLimit': 20 * 60,
        'allowedTiers': ['foundation', 'practice', 'mains', 'interview', 'elite'],
    },
    'past-year': {
        'name': 'Previous Year Questions',
        'questionPool': 'past-year-questions',
        'timeLimit': 25 * 60,
        'allowedTiers': ['practice', 'mains', 'interview', 'elite'],
    },
    'subject-wise': {
        'name': 'Subject-wise Practice',
        'questionPool': 'subject-questions',
        'timeLimit': 30 * 60,
        'allowedTiers': ['practice', 'mains', 'interview', 'elite'],
    },
    'current-affairs-basic': {
        'name': 'Current Affairs Basics',
        'questionPool': 'current-affairs',
        'timeLimit': 20 * 60,
        'allowedTiers': ['foundation', 'practice', 'mains', 'interview', 'elite'],
    },
    'current-affairs-advanced': {
        'name': 'Current Affairs Advanced',
        'questionPool': 'current-affairs',
        'timeLimit': 30 * 60,
        'allowedTiers': ['practice', 'mains', 'interview', 'elite'],
    },
    'mock-prelims': {
        'name': 'Mock Prelims',
        'questionPool': 'prelims-questions',
        'timeLimit': 120 * 60,
        'allowedTiers': ['mains', 'interview', 'elite'],
    },
    'adaptive': {
        'name': 'Adaptive Practice',
        'questionPool': 'adaptive-questions',
        'timeLimit': 45 * 60,
        'allowedTiers': ['interview', 'elite'],
    },
    'topper-bank': {
        'name': 'Topper Question Bank',
        'questionPool': 'topper-questions',
        'timeLimit': 60 * 60,
        'allowedTiers': ['elite'],
    },
    'final-revision': {
        'name': 'Final Revision',
        'questionPool': 'revision-questions',
        'timeLimit': 30 * 60,
        'allowedTiers': ['elite'],
    },
}


def can_access_quiz(quiz_type, tier):
    config = QUIZ_CONFIGS.get(quiz_type)
    if not config:
        return False
    return subscription_service.normalize_tier(tier) in config['allowedTiers']


def quiz_catalogue(tier):
    return [
        {
            'quizType': quiz_type,
            'name': config['name'],
            'timeLimit': config['timeLimit'],
            'allowedTiers': config['allowedTiers'],
            'hasAccess': can_access_quiz(quiz_type, tier),
        }
        for quiz_type, config in QUIZ_CONFIGS.items()
    ]


def pool_subject_filter(subject):
    subject = str(subject or '').strip()
    if not subject or subject == DEFAULT_SUBJECT:
        return None
    return subject


def normalize_pool_question(question_id, data):
    """Shape a pool document into ``{id, question, options, correctAnswer, ...}`` or None."""
    question = str(data.get('question', '') or '').strip()
    options = data.get('options', [])
    if isinstance(options, dict):
        options = [options.get(letter, '') for letter in ANSWER_LETTERS]
    if not question or not isinstance(options, list) or len(options) != 4:
        return None
    options = [str(option or '').strip() for option in options]
    if any(not option for option in options):
        return None
    correct = str(data.get('correctAnswer', '') or '').strip().upper()
    if correct not in ANSWER_LETTERS:
        answer_text = str(data.get('answer', '') or '').strip()
        if answer_text not in options:
            return None
        correct = ANSWER_LETTERS[options.index(answer_text)]
    return {
        'id': question_id,
        'question': question,
        'options': options,
        'correctAnswer': correct,
        'explanation': str(data.get('explanation', '') or '').strip(),
        'subject': str(data.get('subject', '') or '').strip() or DEFAULT_SUBJECT,
        'difficulty': data.get('difficulty', ''),
    }


def mcq_to_quiz_question(mcq, question_id, difficulty):
    """Convert a sanitized MCQ (answer given as option text) into a quiz question."""
    return {
        'id': question_id,
        'question': mcq['question'],
        'options': mcq['options'],
        'correctAnswer': ANSWER_LETTERS[mcq['options'].index(mcq['answer'])],
        'explanation': mcq.get('explanation', ''),
        'subject': mcq.get('subject') or DEFAULT_SUBJECT,
        'difficulty': difficulty,
        'generated': True,
    }


def select_questions(candidates, max_questions, rng=None):
    rng = rng or random
    pool = list(candidates)
    rng.shuffle(pool)
    return pool[:max_questions]


def public_question(question):
    return {
        'id': question['id'],
        'question': question['question'],
        'options': question['options'],
        'subject': question.get('subject', DEFAULT_SUBJECT),
        'difficulty': question.get('difficulty', ''),
    }


def submission_feedback(question, selected_answer):
    correct = question.get('correctAnswer', '')
    is_correct = selected_answer == correct
    explanation = question.get('explanation', '') or ''
    if not is_correct:
        explanation = f"The correct answer is {correct}. {explanation}".strip()
    return {
        'isCorrect': is_correct,
        'correctAnswer': correct,
        'explanation': explanation,
    }


def calculate_results(questions, answers, time_spent, quiz_type, time_taken):
    correct_answers = 0
    subject_results = {}
    detailed_results = []
    answers = list(answers or [])
    time_spent = list(time_spent or [])

    for index, question in enumerate(questions):
        user_answer = answers[index] if index < len(answers) else None
        is_correct = user_answer is not None and user_answer == question.get('correctAnswer')
        if is_correct:
            correct_answers += 1
        subject = question.get('subject') or DEFAULT_SUBJECT
        bucket = subject_results.setdefault(subject, {'correct': 0, 'total': 0})
        bucket['total'] += 1
        if is_correct:
            bucket['correct'] += 1
        detailed_results.append({
            'questionId': question.get('id', str(index)),
            'isCorrect': is_correct,
            'selectedAnswer': user_answer or 'Not answered',
            'correctAnswer': question.get('correctAnswer'),
            'timeSpent': time_spent[index] if index < len(time_spent) else 0,
        })

    total_questions = len(questions)
    answered = len([answer for answer in answers[:total_questions] if answer is not None])
    score = round(correct_answers / total_questions * 100) if total_questions else 0
    accuracy = round(correct_answers / answered * 100) if answered else 0
    return {
        'score': score,
        'accuracy': accuracy,
        'totalQuestions': total_questions,
        'answeredQuestions': answered,
        'correctAnswers': correct_answers,
        'timeTaken': int(max(0, time_taken)),
        'subjectWiseResults': subject_results,
        'recommendations': build_recommendations(score, subject_results, quiz_type, time_taken, total_questions),
        'detailedResults': detailed_results,
    }


def weak_subjects(subject_results, threshold=0.6):
    return [
        subject for subject, result in subject_results.items()
        if result['total'] and (result['correct'] / result['total']) < threshold
    ]


def build_recommendations(score, subject_results, quiz_type, time_taken, total_questions):
    recommendations = []
    if score >= 80:
        recommendations.append("Excellent performance! You're well-prepared for this topic.")
        recommendations.append('Consider attempting harder difficulty levels to further challenge yourself.')
    elif score >= 60:
        recommendations.append('Good work! Focus on areas where you scored lower to improve further.')
        recommendations.append('Review explanations for incorrect answers to strengthen your understanding.')
    else:
        recommendations.append('Focus on understanding fundamental concepts in your weak areas.')
        recommendations.append('Consider taking more practice quizzes to build confidence.')

    weak = weak_subjects(subject_results)
    if weak:
        recommendations.append(f"Pay special attention to: {', '.join(weak)}")

    if total_questions:
        average_time = time_taken / total_questions
        if average_time > 120:
            recommendations.append('Practice time management. Try to spend less time per question.')
        elif average_time < 30:
            recommendations.append('Take more time to carefully read and analyze each question.')

    if quiz_type == 'free-daily':
        recommendations.append('Keep up the daily practice routine for consistent improvement.')
    elif quiz_type == 'mock-prelims':
        recommendations.append('Focus on speed and accuracy for the actual Prelims exam.')
    elif quiz_type in {'current-affairs-basic', 'current-affairs-advanced'}:
        recommendations.append('Stay updated with recent developments and practice connecting current events to static knowledge.')

    return recommendations[:MAX_RECOMMENDATIONS]


def merge_user_stats(existing, results):
    existing = dict(existing or {})
    total_quizzes = int(existing.get('totalQuizzes', 0) or 0) + 1
    previous_average = float(existing.get('averageScore', 0) or 0)
    return {
        'totalQuizzes': total_quizzes,
        'totalQuestions': int(existing.get('totalQuestions', 0) or 0) + results['totalQuestions'],
        'totalCorrect': int(existing.get('totalCorrect', 0) or 0) + results['correctAnswers'],
        'averageScore': round(previous_average + (results['score'] - previous_average) / total_quizzes, 2),
    }
