import random

from preptalk.services import quiz_service


def _question(qid, subject, correct="A"):
    return {"id": qid, "question": qid, "options": ["a", "b", "c", "d"], "correctAnswer": correct, "subject": subject}


def test_calculate_results_scores_against_total_and_accuracy_against_answered():
    questions = [_question("q1", "Polity"), _question("q2", "Polity"), _question("q3", "Economy"), _question("q4", "Economy")]

    results = quiz_service.calculate_results(questions, ["A", "B", "A", None], [30, 40, 50], "free-daily", 200)

    assert results["score"] == 50
    assert results["accuracy"] == 67
    assert results["answeredQuestions"] == 3
    assert results["subjectWiseResults"]["Economy"] == {"correct": 1, "total": 2}
    assert results["detailedResults"][3]["selectedAnswer"] == "Not answered"
    assert results["detailedResults"][3]["timeSpent"] == 0
    assert len(results["recommendations"]) <= quiz_service.MAX_RECOMMENDATIONS


def test_recommendations_name_weak_subjects_and_time_management():
    recommendations = quiz_service.build_recommendations(
        40,
        {"History": {"correct": 1, "total": 4}, "Polity": {"correct": 3, "total": 3}},
        "free-daily",
        1000,
        7,
    )

    assert "Pay special attention to: History" in recommendations
    assert any("time management" in item.lower() for item in recommendations)


def test_normalize_pool_question_accepts_answer_text_and_option_maps():
    shaped = quiz_service.normalize_pool_question("p1", {
        "question": "Q?",
        "options": {"A": "w", "B": "x", "C": "y", "D": "z"},
        "answer": "y",
    })

    assert shaped["correctAnswer"] == "C"
    assert shaped["subject"] == quiz_service.DEFAULT_SUBJECT
    assert quiz_service.normalize_pool_question("p2", {"question": "Q?", "options": ["w", "x"]}) is None


def test_select_questions_truncates_after_shuffle():
    selected = quiz_service.select_questions(range(10), 4, rng=random.Random(7))

    assert len(selected) == 4
    assert len(set(selected)) == 4


def test_merge_user_stats_keeps_running_average():
    merged = quiz_service.merge_user_stats(
        {"totalQuizzes": 1, "totalQuestions": 10, "totalCorrect": 8, "averageScore": 80},
        {"totalQuestions": 10, "correctAnswers": 4, "score": 40},
    )

    assert merged == {"totalQuizzes": 2, "totalQuestions": 20, "totalCorrect": 12, "averageScore": 60.0}


def test_pool_subject_filter_ignores_default_subject():
    assert quiz_service.pool_subject_filter("General Studies") is None
    assert quiz_service.pool_subject_filter(" Economy ") == "Economy"
