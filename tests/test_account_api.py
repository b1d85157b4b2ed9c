import time

from preptalk.services import recommendation_service


def _seed_activity(fake_db, uid="user-1"):
    now_ts = time.time()
    results = fake_db.collection("quizResults")
    results.document("s1").set({"userId": uid, "results": {"score": 40, "subjectWiseResults": {"Polity": {"correct": 1, "total": 4}, "History": {"correct": 9, "total": 10}}}})
    results.document("s2").set({"userId": uid, "results": {"score": 60, "subjectWiseResults": {"Polity": {"correct": 0, "total": 0}}}})
    results.document("s3").set({"userId": "user-2", "results": {"score": 100}})
    fake_db.collection("userStats").document(uid).set({"totalQuizzes": 2, "averageScore": 50})
    sessions = fake_db.collection("writingSessions")
    sessions.document("w1").set({"userId": uid, "score": 40, "createdAt": now_ts - 100})
    sessions.document("w2").set({"userId": uid, "score": 40, "createdAt": now_ts - 50})
    notes = fake_db.collection("smartNotes")
    notes.document("n1").set({"userId": uid, "title": "DPSP", "importance": 5, "revision": {"nextReview": now_ts - 60}})
    notes.document("n2").set({"userId": uid, "title": "Monsoon", "importance": 5, "revision": {"nextReview": now_ts + 86400}})


def test_onboarding_round_trip(client, login, fake_db):
    login("user-1", "aspirant@example.com")

    before = client.get("/api/onboarding").get_json()
    saved = client.post("/api/onboarding", json={"name": "Asha", "targetYear": 2027, "stage": "prelims", "studyHoursPerDay": 6})
    after = client.get("/api/onboarding").get_json()

    assert before == {"onboardingCompleted": False, "profile": {}}
    assert saved.status_code == 200
    assert after["onboardingCompleted"] is True
    assert after["profile"]["targetYear"] == 2027
    assert fake_db.docs("users")["user-1"]["email"] == "aspirant@example.com"


def test_onboarding_validates_target_year(client, login):
    login("user-1")

    response = client.post("/api/onboarding", json={"name": "Asha", "targetYear": 2001})

    assert response.status_code == 400
    assert response.get_json()["details"][0]["field"] == "targetYear"


def test_dashboard_summarises_only_own_activity(client, login, fake_db):
    _seed_activity(fake_db)
    login("user-1")

    body = client.get("/api/dashboard/summary").get_json()

    assert body["quizStats"]["recentQuizzes"] == 2
    assert body["quizStats"]["recentAverageScore"] == 50
    assert body["quizStats"]["subjectAccuracy"] == {"Polity": 0.25, "History": 0.9}
    assert body["writing"]["totalSessions"] == 2
    assert body["notes"] == {"total": 2, "due": 1, "reviewPriority": "low"}
    assert body["historyCount"] == 0


def test_recommendations_are_prioritised_and_stored(client, login, fake_db):
    _seed_activity(fake_db)
    login("user-1")

    body = client.get("/api/recommendations").get_json()

    ids = [item["id"] for item in body["recommendations"]]
    assert ids == ["study_polity", "practice_weak_subjects", "improve_answer_structure", "due_revisions", "weekly_plan"]
    assert body["recommendations"][0]["priority"] == "critical"
    assert fake_db.docs("recommendations")["user-1"]["recommendations"] == body["recommendations"]


def test_new_user_recommendations_start_with_habits():
    recommendations = recommendation_service.build_recommendations([], {}, {}, {})

    ids = [item["id"] for item in recommendations]
    assert ids == ["start_daily_quiz", "start_answer_writing", "weekly_plan"]


def test_strong_user_is_pushed_to_harder_material():
    recommendations = recommendation_service.build_recommendations(
        [{"subjectWiseResults": {"Economy": {"correct": 9, "total": 10}}}],
        {"totalQuizzes": 12, "averageScore": 82},
        {"totalSessions": 4, "averageScore": 70},
        {"totalReviews": 0},
        study_hours_per_day=6,
    )

    assert [item["id"] for item in recommendations] == ["raise_difficulty", "weekly_plan"]
    assert "6 daily hours" in recommendations[-1]["description"]


def test_dashboard_requires_auth(client):
    assert client.get("/api/dashboard/summary").status_code == 401
    assert client.get("/api/recommendations").status_code == 401


def test_dashboard_uses_most_recently_completed_quizzes(client, login, fake_db):
    results = fake_db.collection("quizResults")
    for index in range(5):
        results.document(f"new{index}").set({"userId": "user-1", "completedAt": 5000 + index, "results": {"score": 100}})
    for index in range(20):
        results.document(f"old{index}").set({"userId": "user-1", "completedAt": 1000 + index, "results": {"score": 0}})
    login("user-1")

    quiz_stats = client.get("/api/dashboard/summary").get_json()["quizStats"]

    assert quiz_stats["recentQuizzes"] == 20
    assert quiz_stats["recentAverageScore"] == 25
