from preptalk import runtime


def _seed_pool(fake_db, count, difficulty="medium", subject="Polity"):
    pool = fake_db.collection("daily-questions")
    for index in range(count):
        pool.document(f"pq{index}").set({
            "question": f"Pool question {index}?",
            "options": ["Alpha", "Beta", "Gamma", "Delta"],
            "correctAnswer": "B",
            "explanation": "Beta is right.",
            "subject": subject,
            "difficulty": difficulty,
        })


def _generate(client, **overrides):
    payload = {"quizType": "free-daily", "difficulty": "medium", "maxQuestions": 3}
    payload.update(overrides)
    return client.post("/api/daily-quiz/generate", json=payload)


def test_quiz_types_flag_access_for_free_tier(client, login):
    login("u1")

    body = client.get("/api/daily-quiz/types").get_json()

    access = {item["quizType"]: item["hasAccess"] for item in body["quizTypes"]}
    assert body["tier"] == "free"
    assert access["free-daily"] is True
    assert access["mock-prelims"] is False


def test_generate_requires_auth(client):
    assert _generate(client).status_code == 401


def test_generate_forbidden_for_higher_tier_quiz(client, login):
    login("u1")

    response = _generate(client, quizType="topper-bank")

    assert response.status_code == 403
    assert response.get_json()["currentTier"] == "free"


def test_generate_blocks_when_daily_quota_used(client, login, fake_db):
    login("u1")
    fake_db.collection("dailyUsage").document(f"u1_{runtime.today_key()}").set({"quizzesStarted": 5})

    response = _generate(client)

    assert response.status_code == 429


def test_generate_from_pool_hides_answers_and_records_session(client, login, fake_db, fake_llm):
    login("u1")
    _seed_pool(fake_db, 4)

    response = _generate(client)

    body = response.get_json()
    assert response.status_code == 200
    assert len(body["questions"]) == 3
    assert all("correctAnswer" not in question and "explanation" not in question for question in body["questions"])
    assert fake_llm.calls == []
    session = fake_db.docs("quizSessions")[body["sessionId"]]
    assert session["userId"] == "u1"
    assert session["answers"] == [None, None, None]
    assert len(fake_db.docs("quizAnalytics")) == 1
    assert fake_db.docs("dailyUsage")[f"u1_{runtime.today_key()}"]["quizzesStarted"] == 1


def test_generate_tops_up_shortfall_with_generated_questions(client, login, fake_db, fake_llm):
    login("u1")
    _seed_pool(fake_db, 1)
    fake_llm.queue({"questions": [
        {"question": "Generated one?", "options": ["w", "x", "y", "z"], "answer": "y", "explanation": "y."},
        {"question": "Generated two?", "options": ["w", "x", "y", "z"], "answer": "w", "explanation": "w."},
    ]})

    body = _generate(client).get_json()

    session = fake_db.docs("quizSessions")[body["sessionId"]]
    assert len(body["questions"]) == 3
    assert [question["correctAnswer"] for question in session["questions"][1:]] == ["C", "A"]


def test_generate_serves_pool_when_llm_unavailable(client, login, fake_db, fake_llm):
    login("u1")
    _seed_pool(fake_db, 2)
    fake_llm.queue(runtime.LLMUnavailableError("down"))

    body = _generate(client).get_json()

    assert len(body["questions"]) == 2


def test_generate_returns_404_without_any_questions(client, login, fake_llm):
    login("u1")
    fake_llm.queue(runtime.LLMUnavailableError("down"))

    assert _generate(client).status_code == 404


def test_submit_complete_flow_is_idempotent(client, login, fake_db):
    login("u1")
    _seed_pool(fake_db, 2)
    session_id = _generate(client, maxQuestions=2).get_json()["sessionId"]

    right = client.post("/api/daily-quiz/submit", json={"sessionId": session_id, "questionIndex": 0, "selectedAnswer": "B", "timeSpent": 40})
    wrong = client.post("/api/daily-quiz/submit", json={"sessionId": session_id, "questionIndex": 1, "selectedAnswer": "D", "timeSpent": 50})
    bad_index = client.post("/api/daily-quiz/submit", json={"sessionId": session_id, "questionIndex": 5, "selectedAnswer": "A"})

    assert right.get_json() == {"isCorrect": True, "correctAnswer": "B", "explanation": "Beta is right."}
    assert wrong.get_json()["explanation"].startswith("The correct answer is B.")
    assert bad_index.status_code == 400

    submissions = client.get(f"/api/daily-quiz/submissions?sessionId={session_id}").get_json()["submissions"]
    assert [item["questionIndex"] for item in submissions] == [0, 1]

    first = client.post("/api/daily-quiz/complete", json={"sessionId": session_id})
    second = client.post("/api/daily-quiz/complete", json={"sessionId": session_id})

    results = first.get_json()
    assert results["score"] == 50
    assert results["accuracy"] == 50
    assert results["subjectWiseResults"] == {"Polity": {"correct": 1, "total": 2}}
    assert second.get_json() == results
    assert fake_db.docs("userStats")["u1"]["totalQuizzes"] == 1
    assert fake_db.docs("dailyUsage")[f"u1_{runtime.today_key()}"]["quizzesCompleted"] == 1

    late = client.post("/api/daily-quiz/submit", json={"sessionId": session_id, "questionIndex": 0, "selectedAnswer": "A"})
    assert late.status_code == 409


def test_other_users_session_is_forbidden(client, login, fake_db):
    fake_db.collection("quizSessions").document("s1").set({"userId": "u2", "questions": [], "status": "in_progress"})
    login("u1")

    response = client.post("/api/daily-quiz/save-progress", json={"sessionId": "s1", "currentQuestionIndex": 0})

    assert response.status_code == 403
    assert client.post("/api/daily-quiz/complete", json={"sessionId": "missing"}).status_code == 404


def test_save_progress_pads_answers(client, login, fake_db):
    login("u1")
    _seed_pool(fake_db, 3)
    session_id = _generate(client).get_json()["sessionId"]

    response = client.post("/api/daily-quiz/save-progress", json={
        "sessionId": session_id,
        "currentQuestionIndex": 1,
        "answers": ["A"],
        "timeRemaining": 600,
    })

    assert response.status_code == 200
    session = fake_db.docs("quizSessions")[session_id]
    assert session["answers"] == ["A", None, None]
    assert session["timeRemaining"] == 600
