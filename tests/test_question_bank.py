import io
import json

import openpyxl
import pytest

from preptalk import runtime
from preptalk.services import question_import_service

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PRELIMS_HEADERS = ["Question", "Option A", "Option B", "Option C", "Option D", "Correct Answer", "Subject", "Difficulty Level"]


def _csv_bytes(rows):
    lines = [",".join(PRELIMS_HEADERS)] + [",".join(row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture()
def admin(login, monkeypatch):
    monkeypatch.setattr(runtime, "ADMIN_UIDS", {"admin-1"})
    login("admin-1", "admin@example.com")


def test_map_row_builds_nested_options_and_lists():
    mapped = question_import_service.map_row({
        "Question": "Which article?",
        "Option A": "14",
        "Option B": "19",
        "Option C": "21",
        "Option D": "32",
        "Correct Answer": "b, c",
        "Subtopics": "Rights, Freedoms",
    }, "Prelims")
    question = question_import_service.transform_question(mapped, "Prelims", {"year": 2023, "paper": "GS1"})

    assert question["options"] == {"A": "14", "B": "19", "C": "21", "D": "32"}
    assert question["correctAnswer"] == ["B", "C"]
    assert question["subtopics"] == ["Rights", "Freedoms"]
    assert question["year"] == 2023
    assert question["isActive"] is True
    assert question["version"] == 1


def test_validate_questions_reports_row_numbers():
    questions = [
        {"question": "", "year": 2023, "paper": "GS1", "options": {"A": "a", "B": "b", "C": "c", "D": "d"}, "correctAnswer": ["A"]},
        {"question": "Q", "year": 2023, "paper": "GS1", "options": {"A": "a"}, "correctAnswer": []},
    ]

    errors = question_import_service.validate_questions(questions, "Prelims")

    assert "Row 1: Question text is required" in errors
    assert "Row 2: All four options (A, B, C, D) are required" in errors
    assert "Row 2: Correct answer is required" in errors


def test_read_excel_rows_skips_blank_rows():
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.append(PRELIMS_HEADERS)
    sheet.append(["Q1", "a", "b", "c", "d", "A", "Polity", "easy"])
    sheet.append([None] * len(PRELIMS_HEADERS))
    sheet.append(["Q2", "a", "b", "c", "d", "D", "History", "hard"])
    buffer = io.BytesIO()
    workbook.save(buffer)

    rows = question_import_service.read_excel_rows(buffer.getvalue())

    assert [row["Question"] for row in rows] == ["Q1", "Q2"]


def test_parse_upload_rejects_invalid_json():
    with pytest.raises(question_import_service.QuestionImportError):
        question_import_service.parse_upload(b"{not json", "json", "Prelims", {})


def test_upload_requires_admin(client, login):
    login("user-1")

    response = client.post("/api/admin/question-upload", data={"examType": "Prelims", "year": "2023"})

    assert response.status_code == 403


def test_upload_rejects_unsupported_extension(client, admin):
    response = client.post(
        "/api/admin/question-upload",
        data={"examType": "Prelims", "year": "2023", "file": (io.BytesIO(b"x"), "questions.xls", "application/vnd.ms-excel")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400


def test_upload_validates_year_range(client, admin):
    response = client.post(
        "/api/admin/question-upload",
        data={"examType": "Prelims", "year": "1999", "file": (io.BytesIO(b"x"), "questions.csv", "text/csv")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert response.get_json()["details"][0]["field"] == "year"


def test_upload_csv_imports_questions_and_records_batch(client, admin, fake_db):
    data = _csv_bytes([
        ["Which article abolishes untouchability?", "14", "15", "17", "21", "C", "Polity", "easy"],
        ["Who wrote Gita Rahasya?", "Tilak", "Gokhale", "Gandhi", "Nehru", "A", "History", "medium"],
    ])

    response = client.post(
        "/api/admin/question-upload",
        data={"examType": "Prelims", "year": "2023", "paper": "GS1", "file": (io.BytesIO(data), "questions.csv", "text/csv")},
        content_type="multipart/form-data",
    )

    body = response.get_json()
    assert response.status_code == 201
    assert body["stats"] == {"total": 2, "imported": 2, "failed": 0}
    stored = list(fake_db.docs("prelims_questions").values())
    assert {question["paper"] for question in stored} == {"GS1"}
    assert all(question["uploadBatchId"] == body["batchId"] for question in stored)
    batch = client.get(f"/api/admin/question-upload?batchId={body['batchId']}").get_json()
    assert batch["status"] == "Completed"


def test_upload_with_row_errors_fails_whole_batch(client, admin, fake_db):
    data = _csv_bytes([
        ["Valid question?", "a", "b", "c", "d", "A", "Polity", "easy"],
        ["Missing option?", "a", "b", "", "d", "A", "Polity", "easy"],
    ])

    response = client.post(
        "/api/admin/question-upload",
        data={"examType": "Prelims", "year": "2023", "paper": "GS1", "file": (io.BytesIO(data), "questions.csv", "text/csv")},
        content_type="multipart/form-data",
    )

    body = response.get_json()
    assert response.status_code == 400
    assert body["errors"] == ["Row 2: All four options (A, B, C, D) are required"]
    assert fake_db.docs("prelims_questions") == {}
    assert fake_db.docs("upload_batches")[body["batchId"]]["status"] == "Failed"


def _seed_questions(fake_db):
    collection = fake_db.collection("prelims_questions")
    collection.document("q1").set({"question": "Q1", "year": 2021, "subject": ["Polity"], "difficultyLevel": "easy", "verified": True, "isActive": True})
    collection.document("q2").set({"question": "Q2", "year": 2023, "subject": ["Polity"], "difficultyLevel": "hard", "verified": False, "isActive": True})
    collection.document("q3").set({"question": "Q3", "year": 2022, "subject": ["History"], "difficultyLevel": "medium", "verified": True, "isActive": True})
    collection.document("q4").set({"question": "Q4", "year": 2024, "subject": ["Polity"], "isActive": False})


def test_search_filters_sorts_and_paginates(client, login, fake_db):
    _seed_questions(fake_db)
    login("user-1")

    body = client.get("/api/questions?examType=Prelims&subjects=Polity&sortBy=year&sortOrder=desc&limit=1").get_json()
    verified = client.get("/api/questions?examType=Prelims&verified=true&sortBy=difficulty&sortOrder=asc").get_json()
    years = client.get("/api/questions?examType=Prelims&years=2021,2022").get_json()

    assert [question["id"] for question in body["questions"]] == ["q2"]
    assert body["total"] == 2
    assert body["hasMore"] is True
    assert [question["id"] for question in verified["questions"]] == ["q1", "q3"]
    assert years["total"] == 2


def test_search_caps_limit_and_requires_exam_type(client, login):
    login("user-1")

    assert client.get("/api/questions?examType=Prelims&limit=500").get_json()["limit"] == 100
    assert client.get("/api/questions").status_code == 400


def test_admin_crud_bumps_version_and_soft_deletes(client, admin, fake_db):
    created = client.post("/api/questions", json={
        "examType": "Mains",
        "questionData": {"question": "Discuss federalism.", "year": 2022, "paper": "GS2", "totalMarks": 15},
    })
    question_id = created.get_json()["id"]

    updated = client.put(f"/api/questions/{question_id}", json={"questionData": {"totalMarks": 10, "version": 99}})
    deleted = client.delete(f"/api/questions/{question_id}")

    assert created.status_code == 201
    assert updated.get_json()["version"] == 2
    assert updated.get_json()["totalMarks"] == 10
    assert deleted.status_code == 200
    assert fake_db.docs("mains_questions")[question_id]["isActive"] is False


def test_create_question_rejects_incomplete_data(client, admin):
    response = client.post("/api/questions", json={"examType": "Prelims", "questionData": {"question": "Q?"}})

    assert response.status_code == 400
    assert "Paper is required" in json.dumps(response.get_json())


def _upload(client, filename, data, mimetype, **form):
    fields = {"examType": "Prelims", "year": "2023", "paper": "GS1"}
    fields.update(form)
    fields["file"] = (io.BytesIO(data), filename, mimetype)
    return client.post("/api/admin/question-upload", data=fields, content_type="multipart/form-data")


def test_upload_rejects_unsupported_content_type(client, admin, fake_db):
    response = _upload(client, "questions.csv", _csv_bytes([]), "image/png")

    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid file content type"
    assert fake_db.docs("upload_batches") == {}


def test_upload_rejects_oversized_file(client, admin, monkeypatch, fake_db):
    monkeypatch.setattr(runtime, "MAX_QUESTION_UPLOAD_BYTES", 16)

    response = _upload(client, "questions.csv", _csv_bytes([["Q", "a", "b", "c", "d", "A", "Polity", "easy"]]), "text/csv")

    assert response.status_code == 400
    assert "limit" in response.get_json()["error"]
    assert fake_db.docs("upload_batches") == {}


def test_upload_xlsx_imports_questions(client, admin, fake_db):
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.append(PRELIMS_HEADERS + ["Subtopics"])
    sheet.append(["Which river is called Dakshin Ganga?", "Krishna", "Godavari", "Kaveri", "Narmada", "B", "Geography", "easy", "Rivers, Peninsular India"])
    buffer = io.BytesIO()
    workbook.save(buffer)

    response = _upload(client, "questions.xlsx", buffer.getvalue(), XLSX_MIME)

    assert response.status_code == 201
    assert response.get_json()["stats"]["imported"] == 1
    stored = list(fake_db.docs("prelims_questions").values())[0]
    assert stored["options"]["B"] == "Godavari"
    assert stored["correctAnswer"] == ["B"]
    assert stored["subtopics"] == ["Rivers", "Peninsular India"]
    assert stored["year"] == 2023


def test_upload_json_imports_mains_questions(client, admin, fake_db):
    payload = {"questions": [{"question": "Discuss the role of the Finance Commission.", "totalMarks": 15, "subject": "Polity, Economy"}]}

    response = _upload(client, "mains.json", json.dumps(payload).encode("utf-8"), "application/json", examType="Mains", year="2022", paper="GS2")

    assert response.status_code == 201
    stored = list(fake_db.docs("mains_questions").values())[0]
    assert stored["paper"] == "GS2"
    assert stored["totalMarks"] == 15
    assert stored["subject"] == ["Polity", "Economy"]


def test_upload_status_requires_batch_id_and_reports_missing_batches(client, admin):
    assert client.get("/api/admin/question-upload").status_code == 400
    assert client.get("/api/admin/question-upload?batchId=unknown").status_code == 404


def test_upload_status_is_admin_only(client, login, fake_db):
    fake_db.collection("upload_batches").document("b1").set({"status": "Completed"})
    login("user-1")

    assert client.get("/api/admin/question-upload?batchId=b1").status_code == 403
