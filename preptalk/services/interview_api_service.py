"""Business logic handlers for mock interview APIs."""

import json
import logging

from preptalk.repositories import interview_repo
from preptalk.schemas import MockInterviewAnswerRequest, MockInterviewStartRequest
from preptalk.services import prompt_registry

FALLBACK_QUESTION = "I seem to have lost my train of thought. Could you please summarize your last point?"
DEFAULT_FINAL_FEEDBACK = "Thank you for your time. The interview is complete."


def run_interview_turn(app_ctx, session):
    """Ask the model for the next turn; returns ``{question, feedback, isComplete}``."""
    question_count = int(session.get('questionCount', 0) or 0)
    raw = app_ctx.generate_json(
        prompt_registry.render_prompt(
            'interview_turn',
            interview_type=session.get('interviewType', ''),
            difficulty=session.get('difficulty', ''),
            transcript=json.dumps(session.get('transcript', []), ensure_ascii=False),
            question_count=question_count,
            role_profile=session.get('roleProfile') or 'not provided',
            max_questions=app_ctx.MAX_INTERVIEW_QUESTIONS,
        ),
        temperature=0.6,
        max_output_tokens=1024,
    )
    is_complete = bool(raw.get('isComplete')) or question_count >= app_ctx.MAX_INTERVIEW_QUESTIONS
    if is_complete:
        feedback = str(raw.get('feedback', '') or '').strip() or DEFAULT_FINAL_FEEDBACK
        return {'question': None, 'feedback': feedback, 'isComplete': True}
    question = str(raw.get('question', '') or '').strip() or FALLBACK_QUESTION
    return {'question': question, 'feedback': None, 'isComplete': False}


def _check_interview_rate_limit(app_ctx, request):
    allowed, retry_after = app_ctx.check_rate_limit(
        key=app_ctx.client_rate_limit_key('interview', request),
        limit=app_ctx.INTERVIEW_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.INTERVIEW_RATE_LIMIT_WINDOW_SECONDS,
    )
    if allowed:
        return None
    app_ctx.log_rate_limit_hit('mock_interview', retry_after)
    return app_ctx.build_rate_limited_response(
        'Too many interview requests. Please slow down and try again shortly.',
        retry_after,
    )


def _load_owned_session(app_ctx, uid, session_id):
    session_ref = interview_repo.session_doc_ref(app_ctx.db, session_id)
    snapshot = session_ref.get()
    if not snapshot.exists:
        return None, None, (app_ctx.jsonify({'error': 'Interview session not found'}), 404)
    session = snapshot.to_dict() or {}
    if session.get('userId', '') != uid:
        return None, None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    return session_ref, session, None


def start_interview(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Please sign in to start an interview'}), 401
    uid = decoded_token['uid']

    rate_limited = _check_interview_rate_limit(app_ctx, request)
    if rate_limited:
        return rate_limited

    payload, error_response = app_ctx.validate_payload(MockInterviewStartRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    now_ts = app_ctx.time.time()
    session = {
        'userId': uid,
        'interviewType': payload.interviewType,
        'difficulty': payload.difficulty,
        'roleProfile': payload.roleProfile or '',
        'transcript': [],
        'questionCount': 0,
        'status': 'in_progress',
        'feedback': None,
        'createdAt': now_ts,
        'updatedAt': now_ts,
    }
    try:
        turn = run_interview_turn(app_ctx, session)
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"Mock interview start failed for user {uid}: {e}")
        return app_ctx.llm_error_response(e)

    try:
        first_question = turn['question'] or FALLBACK_QUESTION
        session['transcript'].append({'role': 'interviewer', 'text': first_question, 'timestamp': now_ts})
        session['questionCount'] = 1
        session_ref = interview_repo.create_session_doc_ref(app_ctx.db)
        session_ref.set(session)
    except Exception as e:
        app_ctx.logger.error(f"Could not create interview session for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not start interview'}), 500

    app_ctx.log_event(logging.INFO, 'mock_interview_started', uid=uid, interview_type=payload.interviewType)
    return app_ctx.jsonify({
        'sessionId': session_ref.id,
        'report': {
            'firstQuestion': first_question,
            'status': session['status'],
        },
    })


def answer_question(app_ctx, request, session_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']

    rate_limited = _check_interview_rate_limit(app_ctx, request)
    if rate_limited:
        return rate_limited

    payload, error_response = app_ctx.validate_payload(MockInterviewAnswerRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    try:
        session_ref, session, error_response = _load_owned_session(app_ctx, uid, session_id)
    except Exception as e:
        app_ctx.logger.error(f"Error loading interview session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load interview session'}), 500
    if error_response:
        return error_response
    if session.get('status') == 'completed':
        return app_ctx.jsonify({'error': 'Interview already completed'}), 409

    now_ts = app_ctx.time.time()
    transcript = list(session.get('transcript', []))
    transcript.append({'role': 'candidate', 'text': payload.answer, 'timestamp': now_ts})
    session['transcript'] = transcript

    try:
        turn = run_interview_turn(app_ctx, session)
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"Mock interview turn failed for session {session_id}: {e}")
        return app_ctx.llm_error_response(e)

    updates = {'transcript': transcript, 'updatedAt': now_ts}
    if turn['isComplete']:
        updates.update({'status': 'completed', 'feedback': turn['feedback'], 'completedAt': now_ts})
    else:
        transcript.append({'role': 'interviewer', 'text': turn['question'], 'timestamp': now_ts})
        updates['questionCount'] = int(session.get('questionCount', 0) or 0) + 1
    try:
        session_ref.update(updates)
    except Exception as e:
        app_ctx.logger.error(f"Could not update interview session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not save your answer'}), 500

    if turn['isComplete']:
        app_ctx.log_event(logging.INFO, 'mock_interview_completed', uid=uid, questions=session.get('questionCount', 0))
        return app_ctx.jsonify({
            'sessionId': session_id,
            'status': 'completed',
            'isComplete': True,
            'feedback': turn['feedback'],
        })
    return app_ctx.jsonify({
        'sessionId': session_id,
        'status': 'in_progress',
        'isComplete': False,
        'nextQuestion': turn['question'],
        'questionNumber': updates['questionCount'],
    })


def get_interview(app_ctx, request, session_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        _session_ref, session, error_response = _load_owned_session(app_ctx, uid, session_id)
        if error_response:
            return error_response
        session['id'] = session_id
        return app_ctx.jsonify(session)
    except Exception as e:
        app_ctx.logger.error(f"Error loading interview session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load interview session'}), 500
