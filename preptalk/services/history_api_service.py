"""Business logic handlers for analysis history, saved questions and quiz attempts."""

from preptalk.repositories import history_repo
from preptalk.schemas import QuizAttemptRequest, SavedStatusRequest, SaveQuestionRequest
from preptalk.services import export_service, mcq_service


def _timestamp(data, field='timestamp'):
    try:
        return float(data.get(field, 0) or 0)
    except (TypeError, ValueError):
        return 0.0


def load_user_history(app_ctx, uid):
    entries = []
    for doc in history_repo.list_history_by_uid(app_ctx.db, uid):
        data = doc.to_dict() or {}
        data['id'] = doc.id
        entries.append(data)
    entries.sort(key=_timestamp, reverse=True)
    return entries


def _load_owned_entry(app_ctx, uid, history_id):
    """Return ``(entry, None)`` or ``(None, error_response)``."""
    snapshot = history_repo.history_doc_ref(app_ctx.db, history_id).get()
    if not snapshot.exists:
        return None, (app_ctx.jsonify({'error': 'History entry not found'}), 404)
    entry = snapshot.to_dict() or {}
    if entry.get('userId', '') != uid:
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    entry['id'] = snapshot.id
    return entry, None


def list_history(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        entries = load_user_history(app_ctx, uid)[:app_ctx.MAX_HISTORY_ENTRIES]
        return app_ctx.jsonify({'history': entries})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching history for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load history'}), 500


def get_history_entry(app_ctx, request, history_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        entry, error_response = _load_owned_entry(app_ctx, uid, history_id)
        if error_response:
            return error_response
        return app_ctx.jsonify(entry)
    except Exception as e:
        app_ctx.logger.error(f"Error fetching history entry {history_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load history entry'}), 500


def delete_history_entry(app_ctx, request, history_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        _entry, error_response = _load_owned_entry(app_ctx, uid, history_id)
        if error_response:
            return error_response
        history_repo.history_doc_ref(app_ctx.db, history_id).delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting history entry {history_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete history entry'}), 500


def export_history_docx(app_ctx, request, history_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        entry, error_response = _load_owned_entry(app_ctx, uid, history_id)
        if error_response:
            return error_response
        docx_io = export_service.build_analysis_docx(entry)
    except Exception as e:
        app_ctx.logger.error(f"Error exporting history entry {history_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not export analysis'}), 500
    return app_ctx.send_file(
        docx_io,
        mimetype=export_service.DOCX_MIME_TYPE,
        as_attachment=True,
        download_name=f"preptalk-analysis-{history_id}.docx",
    )


def collect_questions(entries, kind):
    """Flatten MCQs (``prelims``) or Mains questions (``mains``) across history entries."""
    collected = []
    for entry in entries:
        analysis = entry.get('analysis') or {}
        if kind == 'prelims':
            items = (analysis.get('prelims') or {}).get('mcqs', [])
        else:
            items = (analysis.get('mains') or {}).get('questions', [])
        for item in items or []:
            if not isinstance(item, dict):
                continue
            question = dict(item)
            question['historyId'] = entry.get('id', '')
            question['timestamp'] = entry.get('timestamp', 0)
            question['articleUrl'] = entry.get('articleUrl', '')
            collected.append(question)
    return collected


def _list_questions(app_ctx, request, kind):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        questions = collect_questions(load_user_history(app_ctx, uid), kind)
        return app_ctx.jsonify({'questions': questions, 'count': len(questions)})
    except Exception as e:
        app_ctx.logger.error(f"Error collecting {kind} questions for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load questions'}), 500


def list_prelims_questions(app_ctx, request):
    return _list_questions(app_ctx, request, 'prelims')


def list_mains_questions(app_ctx, request):
    return _list_questions(app_ctx, request, 'mains')


def get_question_stats(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        entries = load_user_history(app_ctx, uid)
        return app_ctx.jsonify({
            'prelimsCount': len(collect_questions(entries, 'prelims')),
            'mainsCount': len(collect_questions(entries, 'mains')),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error computing question stats for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load question stats'}), 500


# --- Saved questions ---

def save_question(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(SaveQuestionRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    question = payload.question
    saved_id = mcq_service.saved_question_id(uid, question.historyId, question.question)
    record = {
        'userId': uid,
        'historyId': question.historyId,
        'question': question.question,
        'options': question.options,
        'answer': question.answer,
        'explanation': question.explanation,
        'subject': question.subject,
        'savedAt': app_ctx.time.time(),
    }
    try:
        history_repo.saved_question_doc_ref(app_ctx.db, saved_id).set(record)
        return app_ctx.jsonify({'ok': True, 'id': saved_id, 'savedAt': record['savedAt']})
    except Exception as e:
        app_ctx.logger.error(f"Error saving question for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not save question'}), 500


def unsave_question(app_ctx, request, saved_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    if not str(saved_id or '').startswith(f"{uid}_"):
        return app_ctx.jsonify({'error': 'Forbidden'}), 403
    try:
        saved_ref = history_repo.saved_question_doc_ref(app_ctx.db, saved_id)
        snapshot = saved_ref.get()
        if not snapshot.exists:
            return app_ctx.jsonify({'error': 'Saved question not found'}), 404
        if (snapshot.to_dict() or {}).get('userId', '') != uid:
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        saved_ref.delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error removing saved question {saved_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not remove saved question'}), 500


def list_saved_questions(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        saved = []
        for doc in history_repo.list_saved_questions_by_uid(app_ctx.db, uid):
            data = doc.to_dict() or {}
            data['id'] = doc.id
            saved.append(data)
        saved.sort(key=lambda item: _timestamp(item, 'savedAt'), reverse=True)
        return app_ctx.jsonify({'questions': saved})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching saved questions for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load saved questions'}), 500


def get_saved_status(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(SavedStatusRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    own_ids = [saved_id for saved_id in dict.fromkeys(payload.questionIds) if saved_id.startswith(f"{uid}_")]
    try:
        snapshots = history_repo.get_saved_questions_by_ids(app_ctx.db, own_ids)
        return app_ctx.jsonify({'savedIds': [
            snapshot.id for snapshot in snapshots
            if snapshot.exists and (snapshot.to_dict() or {}).get('userId', '') == uid
        ]})
    except Exception as e:
        app_ctx.logger.error(f"Error checking saved status for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not check saved questions'}), 500


# --- Quiz attempts ---

def record_quiz_attempt(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(QuizAttemptRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    attempt_id = mcq_service.quiz_attempt_id(uid, payload.historyId, payload.question)
    record = {
        'userId': uid,
        'historyId': payload.historyId,
        'question': payload.question,
        'selectedOption': payload.selectedOption,
        'isCorrect': payload.isCorrect,
        'subject': payload.subject,
        'difficulty': payload.difficulty,
        'timestamp': app_ctx.time.time(),
    }
    try:
        history_repo.quiz_attempt_doc_ref(app_ctx.db, attempt_id).set(record, merge=True)
        return app_ctx.jsonify({'ok': True, 'id': attempt_id})
    except Exception as e:
        app_ctx.logger.error(f"Error recording quiz attempt for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not record quiz attempt'}), 500


def latest_attempts(attempt_records):
    """Most recent attempt per question text."""
    latest = {}
    for record in attempt_records:
        question = record.get('question', '')
        if question not in latest or _timestamp(record) > _timestamp(latest[question]):
            latest[question] = record
    return latest


def compute_attempt_stats(attempt_records):
    latest = latest_attempts(attempt_records)
    total_attempted = len(latest)
    total_correct = len([record for record in latest.values() if record.get('isCorrect')])
    accuracy = round(total_correct / total_attempted * 100) if total_attempted else 0
    return {'totalAttempted': total_attempted, 'totalCorrect': total_correct, 'accuracy': accuracy}


def _load_attempts(app_ctx, uid, history_id=None):
    return [doc.to_dict() or {} for doc in history_repo.list_quiz_attempts_by_uid(app_ctx.db, uid, history_id)]


def list_quiz_attempts(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    history_id = str(request.args.get('historyId', '') or '').strip()
    try:
        records = _load_attempts(app_ctx, uid, history_id or None)
        latest = latest_attempts(records)
        if history_id:
            return app_ctx.jsonify({'attempts': {question: record.get('selectedOption') for question, record in latest.items()}})
        attempts = sorted(latest.values(), key=_timestamp, reverse=True)
        return app_ctx.jsonify({'attempts': attempts})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching quiz attempts for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load quiz attempts'}), 500


def get_quiz_attempt_stats(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        return app_ctx.jsonify(compute_attempt_stats(_load_attempts(app_ctx, uid)))
    except Exception as e:
        app_ctx.logger.error(f"Error computing quiz stats for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load quiz stats'}), 500
