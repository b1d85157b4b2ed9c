from preptalk import runtime


def _start(client, fake_llm, question="Why do you want to join the civil services?"):
    fake_llm.queue({"question": question, "isComplete": False})
    return client.post("/api/mock-interview", json={"interviewType": "UPSC Personality Test", "difficulty": "medium"})


def test_start_requires_sign_in(client):
    response = client.post("/api/mock-interview", json={})

    assert response.status_code == 401


def test_start_records_first_question(client, login, fake_llm, fake_db):
    login("user-1")

    response = _start(client, fake_llm)

    body = response.get_json()
    assert response.status_code == 200
    assert body["report"] == {"firstQuestion": "Why do you want to join the civil services?", "status": "in_progress"}
    session = fake_db.docs("interviewSessions")[body["sessionId"]]
    assert session["questionCount"] == 1
    assert session["transcript"][0]["role"] == "interviewer"
    assert "UPSC Personality Test" in fake_llm.calls[0]["prompt"]


def test_blank_model_question_uses_fallback(client, login, fake_llm):
    login("user-1")
    session_id = _start(client, fake_llm).get_json()["sessionId"]
    fake_llm.queue({"question": "   ", "isComplete": False})

    body = client.post(f"/api/mock-interview/{session_id}/answer", json={"answer": "To serve the public."}).get_json()

    assert body["nextQuestion"] == "I seem to have lost my train of thought. Could you please summarize your last point?"
    assert body["questionNumber"] == 2


def test_interview_completes_after_question_cap(client, login, fake_llm, fake_db):
    login("user-1")
    session_id = _start(client, fake_llm).get_json()["sessionId"]

    for number in range(2, runtime.MAX_INTERVIEW_QUESTIONS + 1):
        fake_llm.queue({"question": f"Question {number}?", "isComplete": False})
        body = client.post(f"/api/mock-interview/{session_id}/answer", json={"answer": f"Answer {number - 1}"}).get_json()
        assert body["questionNumber"] == number

    fake_llm.queue({"question": "One more?", "isComplete": False, "feedback": "Composed and well informed."})
    final = client.post(f"/api/mock-interview/{session_id}/answer", json={"answer": "Final answer"}).get_json()

    assert final["isComplete"] is True
    assert final["status"] == "completed"
    assert final["feedback"] == "Composed and well informed."
    session = fake_db.docs("interviewSessions")[session_id]
    assert session["status"] == "completed"
    assert [entry["role"] for entry in session["transcript"]].count("candidate") == runtime.MAX_INTERVIEW_QUESTIONS

    again = client.post(f"/api/mock-interview/{session_id}/answer", json={"answer": "Hello?"})
    assert again.status_code == 409


def test_model_can_end_interview_early_with_default_feedback(client, login, fake_llm):
    login("user-1")
    session_id = _start(client, fake_llm).get_json()["sessionId"]
    fake_llm.queue({"isComplete": True})

    body = client.post(f"/api/mock-interview/{session_id}/answer", json={"answer": "I have nothing to add."}).get_json()

    assert body["isComplete"] is True
    assert body["feedback"] == "Thank you for your time. The interview is complete."


def test_other_users_cannot_read_or_answer(client, login, fake_llm):
    login("user-1")
    session_id = _start(client, fake_llm).get_json()["sessionId"]
    login("user-2")

    assert client.get(f"/api/mock-interview/{session_id}").status_code == 403
    assert client.post(f"/api/mock-interview/{session_id}/answer", json={"answer": "Hi"}).status_code == 403
    assert client.get("/api/mock-interview/missing").status_code == 404


def test_llm_outage_returns_503(client, login, fake_llm):
    login("user-1")
    fake_llm.queue(runtime.LLMUnavailableError("model overloaded"))

    response = client.post("/api/mock-interview", json={})

    assert response.status_code == 503
