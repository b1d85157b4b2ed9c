"""Rule-based study recommendations from quiz, writing and revision activity."""

PRIORITY_ORDER = {'critical': 0, 'high': 1, 'medium': 2, 'low': 3}
WEAK_SUBJECT_THRESHOLD = 0.6
MAX_RECOMMENDATIONS = 8


def aggregate_subject_accuracy(quiz_results):
    totals = {}
    for result in quiz_results:
        for subject, bucket in (result.get('subjectWiseResults') or {}).items():
            entry = totals.setdefault(subject, {'correct': 0, 'total': 0})
            entry['correct'] += int(bucket.get('correct', 0) or 0)
            entry['total'] += int(bucket.get('total', 0) or 0)
    return {
        subject: round(entry['correct'] / entry['total'], 3)
        for subject, entry in totals.items() if entry['total']
    }


def _recommendation(rec_id, rec_type, priority, title, description, action_items, minutes):
    return {
        'id': rec_id,
        'type': rec_type,
        'priority': priority,
        'title': title,
        'description': description,
        'actionItems': action_items,
        'estimatedMinutes': int(minutes),
    }


def build_recommendations(quiz_results, user_stats, writing_progress, review_summary, study_hours_per_day=4):
    recommendations = []
    accuracy = aggregate_subject_accuracy(quiz_results)
    weak = sorted(
        (subject for subject, value in accuracy.items() if value < WEAK_SUBJECT_THRESHOLD),
        key=lambda subject: accuracy[subject],
    )

    for subject in weak[:3]:
        percent = int(round(accuracy[subject] * 100))
        recommendations.append(_recommendation(
            f"study_{subject.lower().replace(' ', '_')}",
            'study_topic',
            'critical' if accuracy[subject] < 0.4 else 'high',
            f"Strengthen {subject}",
            f"Your accuracy in {subject} is {percent}%. Revisit the fundamentals before attempting more questions.",
            [
                f"Re-read the NCERT chapters covering {subject}",
                f"Make short notes on the {subject} topics you missed",
                f"Attempt a subject-wise quiz on {subject}",
            ],
            120,
        ))
    if weak:
        recommendations.append(_recommendation(
            'practice_weak_subjects',
            'practice_question',
            'high',
            'Targeted practice on weak areas',
            f"Practise questions from {', '.join(weak[:3])} and review every explanation.",
            ['Attempt 20 questions per weak subject', 'Review explanations for every wrong answer'],
            60,
        ))

    total_quizzes = int((user_stats or {}).get('totalQuizzes', 0) or 0)
    average_score = float((user_stats or {}).get('averageScore', 0) or 0)
    if total_quizzes == 0:
        recommendations.append(_recommendation(
            'start_daily_quiz',
            'strategy',
            'high',
            'Build a daily quiz habit',
            'Take the free daily quiz to establish a baseline across subjects.',
            ['Complete one daily quiz today', 'Note the subjects where you hesitated'],
            15,
        ))
    elif average_score >= 75:
        recommendations.append(_recommendation(
            'raise_difficulty',
            'strategy',
            'medium',
            'Raise the difficulty',
            f"Your average quiz score is {int(average_score)}%. Move to hard questions and full mock tests.",
            ['Attempt a hard difficulty quiz', 'Take a full-length mock prelims test this week'],
            120,
        ))

    writing_sessions = int((writing_progress or {}).get('totalSessions', 0) or 0)
    writing_average = float((writing_progress or {}).get('averageScore', 0) or 0)
    if writing_sessions == 0:
        recommendations.append(_recommendation(
            'start_answer_writing',
            'practice_question',
            'medium',
            'Start answer writing practice',
            'Mains rewards structured answers. Write and evaluate at least one answer this week.',
            ['Generate a practice prompt', 'Write a 250-word answer within 15 minutes'],
            30,
        ))
    elif writing_average < 50:
        recommendations.append(_recommendation(
            'improve_answer_structure',
            'practice_question',
            'high',
            'Improve answer structure',
            f"Your average writing score is {int(writing_average)}. Focus on introduction, body and conclusion.",
            ['Use headings or points in the body', 'End every answer with a forward-looking conclusion'],
            45,
        ))

    total_reviews = int((review_summary or {}).get('totalReviews', 0) or 0)
    if total_reviews:
        review_priority = (review_summary or {}).get('priority', 'low')
        recommendations.append(_recommendation(
            'due_revisions',
            'revision',
            'high' if review_priority == 'high' else 'medium',
            'Clear your revision queue',
            f"{total_reviews} notes are due for review.",
            ['Open the review queue', 'Rate each note honestly to schedule the next revision'],
            (review_summary or {}).get('estimatedTime', total_reviews * 3),
        ))

    recommendations.append(_recommendation(
        'weekly_plan',
        'timing',
        'low',
        'Plan your week',
        f"Split your {study_hours_per_day:g} daily hours between static subjects, current affairs and practice.",
        ['Reserve one hour daily for current affairs', 'Keep one day a week for revision and mocks'],
        30,
    ))

    recommendations.sort(key=lambda item: PRIORITY_ORDER[item['priority']])
    return recommendations[:MAX_RECOMMENDATIONS]
