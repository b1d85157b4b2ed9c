"""Business logic handlers for daily quiz APIs."""

import logging

from preptalk.repositories import quiz_repo, users_repo
from preptalk.schemas import (
    DailyQuizCompleteRequest,
    DailyQuizGenerateRequest,
    DailyQuizProgressRequest,
    DailyQuizSubmitRequest,
)
from preptalk.services import mcq_service, prompt_registry, quiz_service, subscription_api_service, subscription_service

POOL_OVERFETCH_FACTOR = 3


def _load_owned_session(app_ctx, uid, session_id):
    """Return ``(session_ref, session, None)`` or ``(None, None, error_response)``."""
    session_ref = quiz_repo.session_doc_ref(app_ctx.db, session_id)
    snapshot = session_ref.get()
    if not snapshot.exists:
        return None, None, (app_ctx.jsonify({'error': 'Quiz session not found'}), 404)
    session = snapshot.to_dict() or {}
    if session.get('userId', '') != uid:
        return None, None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    return session_ref, session, None


def fetch_pool_questions(app_ctx, config, difficulty, subject, max_questions):
    docs = quiz_repo.query_question_pool(
        app_ctx.db,
        config['questionPool'],
        difficulty,
        quiz_service.pool_subject_filter(subject),
        max_questions * POOL_OVERFETCH_FACTOR,
    )
    candidates = []
    for doc in docs:
        question = quiz_service.normalize_pool_question(doc.id, doc.to_dict() or {})
        if question:
            candidates.append(question)
    return quiz_service.select_questions(candidates, max_questions)


def generate_topup_questions(app_ctx, quiz_type, difficulty, subject, count, existing):
    """LLM-generated questions filling a pool shortfall; empty when the model is unavailable."""
    if count <= 0:
        return []
    try:
        generated = app_ctx.generate_json(
            prompt_registry.render_prompt(
                'daily_quiz_topup',
                count=count,
                quiz_type=quiz_service.QUIZ_CONFIGS[quiz_type]['name'],
                subject=subject,
                difficulty=difficulty,
            ),
            temperature=0.7,
            max_output_tokens=8192,
        )
    except app_ctx.LLMError as e:
        app_ctx.logger.warning(f"Daily quiz top-up skipped for {quiz_type}: {e}")
        return []
    seen = {question['question'].lower() for question in existing}
    questions = []
    for mcq in mcq_service.sanitize_mcqs(generated.get('questions', []), count):
        if mcq['question'].lower() in seen:
            continue
        if not mcq.get('subject') and quiz_service.pool_subject_filter(subject):
            mcq['subject'] = subject
        questions.append(quiz_service.mcq_to_quiz_question(mcq, f"gen_{app_ctx.new_id()[:12]}", difficulty))
    return questions


def get_quiz_types(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        subscription = subscription_api_service.load_effective_subscription(app_ctx, uid)
        return app_ctx.jsonify({
            'tier': subscription['tier'],
            'quizTypes': quiz_service.quiz_catalogue(subscription['tier']),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error loading quiz types for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load quiz types'}), 500


def generate_quiz(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Please sign in to start a quiz'}), 401
    uid = decoded_token['uid']

    payload, error_response = app_ctx.validate_payload(DailyQuizGenerateRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    config = quiz_service.QUIZ_CONFIGS[payload.quizType]

    try:
        subscription = subscription_api_service.load_effective_subscription(app_ctx, uid)
        tier = subscription['tier']
        if not quiz_service.can_access_quiz(payload.quizType, tier):
            return app_ctx.jsonify({
                'error': f"{config['name']} is not included in your plan",
                'currentTier': tier,
                'allowedTiers': config['allowedTiers'],
            }), 403

        usage = subscription_api_service.load_daily_usage(app_ctx, uid)
        limit = subscription_service.daily_quiz_limit(tier)
        if subscription_service.remaining_quota(limit, usage['quizzesStarted']) == 0:
            return app_ctx.jsonify({
                'error': 'Daily quiz limit reached. Upgrade your plan or come back tomorrow.',
                'limit': limit,
                'used': usage['quizzesStarted'],
            }), 429

        questions = fetch_pool_questions(app_ctx, config, payload.difficulty, payload.subject, payload.maxQuestions)
        shortfall = payload.maxQuestions - len(questions)
        if shortfall > 0:
            questions.extend(generate_topup_questions(
                app_ctx, payload.quizType, payload.difficulty, payload.subject, shortfall, questions
            ))
        if not questions:
            return app_ctx.jsonify({'error': 'No questions available for this quiz right now'}), 404

        now_ts = app_ctx.time.time()
        session_ref = quiz_repo.create_session_doc_ref(app_ctx.db)
        session_ref.set({
            'userId': uid,
            'quizType': payload.quizType,
            'difficulty': payload.difficulty,
            'subject': payload.subject,
            'questions': questions,
            'answers': [None] * len(questions),
            'timeSpent': [0] * len(questions),
            'bookmarked': [False] * len(questions),
            'currentQuestionIndex': 0,
            'timeLimit': config['timeLimit'],
            'timeRemaining': config['timeLimit'],
            'startTime': now_ts,
            'status': 'in_progress',
            'tier': tier,
        })
        quiz_repo.add_analytics_event(app_ctx.db, {
            'userId': uid,
            'event': 'quiz_started',
            'quizType': payload.quizType,
            'sessionId': session_ref.id,
            'questionCount': len(questions),
            'generatedCount': len([q for q in questions if q.get('generated')]),
            'timestamp': now_ts,
        })
        subscription_api_service.increment_daily_usage(app_ctx, uid, quizzesStarted=1)
    except Exception as e:
        app_ctx.logger.error(f"Error generating quiz for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not generate quiz'}), 500

    app_ctx.log_event(
        logging.INFO,
        'daily_quiz_generated',
        uid=uid,
        quiz_type=payload.quizType,
        questions=len(questions),
    )
    return app_ctx.jsonify({
        'sessionId': session_ref.id,
        'quizType': payload.quizType,
        'name': config['name'],
        'timeLimit': config['timeLimit'],
        'questions': [quiz_service.public_question(question) for question in questions],
    })


def submit_answer(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']

    payload, error_response = app_ctx.validate_payload(DailyQuizSubmitRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    try:
        session_ref, session, error_response = _load_owned_session(app_ctx, uid, payload.sessionId)
        if error_response:
            return error_response
        if session.get('status') == 'completed':
            return app_ctx.jsonify({'error': 'Quiz already completed'}), 409
        questions = session.get('questions', [])
        if payload.questionIndex >= len(questions):
            return app_ctx.jsonify({'error': 'Invalid question index'}), 400

        answers = list(session.get('answers') or [None] * len(questions))
        time_spent = list(session.get('timeSpent') or [0] * len(questions))
        answers[payload.questionIndex] = payload.selectedAnswer
        time_spent[payload.questionIndex] = payload.timeSpent
        session_ref.update({
            'answers': answers,
            'timeSpent': time_spent,
            'currentQuestionIndex': payload.questionIndex,
        })

        question = questions[payload.questionIndex]
        feedback = quiz_service.submission_feedback(question, payload.selectedAnswer)
        quiz_repo.add_submission(app_ctx.db, {
            'sessionId': payload.sessionId,
            'userId': uid,
            'questionIndex': payload.questionIndex,
            'questionId': question.get('id', ''),
            'selectedAnswer': payload.selectedAnswer,
            'isCorrect': feedback['isCorrect'],
            'timeSpent': payload.timeSpent,
            'timestamp': app_ctx.time.time(),
        })
        return app_ctx.jsonify(feedback)
    except Exception as e:
        app_ctx.logger.error(f"Error submitting answer for session {payload.sessionId}: {e}")
        return app_ctx.jsonify({'error': 'Could not submit answer'}), 500


def list_submissions(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    session_id = (request.args.get('sessionId', '') or '').strip()
    if not session_id:
        return app_ctx.jsonify({'error': 'sessionId is required'}), 400

    try:
        _session_ref, _session, error_response = _load_owned_session(app_ctx, uid, session_id)
        if error_response:
            return error_response
        submissions = [doc.to_dict() or {} for doc in quiz_repo.list_submissions_by_session(app_ctx.db, session_id)]
        submissions.sort(key=lambda item: (int(item.get('questionIndex', 0) or 0), float(item.get('timestamp', 0) or 0)))
        return app_ctx.jsonify({'sessionId': session_id, 'submissions': submissions})
    except Exception as e:
        app_ctx.logger.error(f"Error listing submissions for session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load submissions'}), 500


def save_progress(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']

    payload, error_response = app_ctx.validate_payload(DailyQuizProgressRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    try:
        session_ref, session, error_response = _load_owned_session(app_ctx, uid, payload.sessionId)
        if error_response:
            return error_response
        if session.get('status') == 'completed':
            return app_ctx.jsonify({'error': 'Quiz already completed'}), 409
        question_count = len(session.get('questions', []))
        if payload.currentQuestionIndex >= max(1, question_count):
            return app_ctx.jsonify({'error': 'Invalid question index'}), 400
        now_ts = app_ctx.time.time()
        updates = {
            'currentQuestionIndex': payload.currentQuestionIndex,
            'timeRemaining': payload.timeRemaining,
            'lastSavedAt': now_ts,
        }
        if payload.answers:
            updates['answers'] = (list(payload.answers) + [None] * question_count)[:question_count]
        if payload.bookmarked:
            updates['bookmarked'] = (list(payload.bookmarked) + [False] * question_count)[:question_count]
        session_ref.update(updates)
        return app_ctx.jsonify({'ok': True, 'savedAt': now_ts})
    except Exception as e:
        app_ctx.logger.error(f"Error saving progress for session {payload.sessionId}: {e}")
        return app_ctx.jsonify({'error': 'Could not save progress'}), 500


def complete_quiz(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']

    payload, error_response = app_ctx.validate_payload(DailyQuizCompleteRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    try:
        session_ref, session, error_response = _load_owned_session(app_ctx, uid, payload.sessionId)
        if error_response:
            return error_response
        result_ref = quiz_repo.result_doc_ref(app_ctx.db, payload.sessionId)
        if session.get('status') == 'completed':
            stored = result_ref.get()
            if stored.exists:
                return app_ctx.jsonify((stored.to_dict() or {}).get('results', {}))

        questions = session.get('questions', [])
        answers = payload.finalAnswers if payload.finalAnswers is not None else session.get('answers', [])
        now_ts = app_ctx.time.time()
        time_taken = now_ts - float(session.get('startTime', now_ts) or now_ts)
        results = quiz_service.calculate_results(
            questions,
            answers,
            session.get('timeSpent', []),
            session.get('quizType', ''),
            time_taken,
        )

        result_ref.set({
            'userId': uid,
            'sessionId': payload.sessionId,
            'quizType': session.get('quizType', ''),
            'results': results,
            'completedAt': now_ts,
        })
        session_ref.update({
            'status': 'completed',
            'answers': list(answers),
            'endTime': now_ts,
        })

        stats_ref = users_repo.user_stats_doc_ref(app_ctx.db, uid)
        stats_snapshot = stats_ref.get()
        existing_stats = stats_snapshot.to_dict() if stats_snapshot.exists else {}
        merged_stats = quiz_service.merge_user_stats(existing_stats, results)
        merged_stats.update({'userId': uid, 'lastQuizAt': now_ts})
        stats_ref.set(merged_stats, merge=True)

        subscription_api_service.increment_daily_usage(
            app_ctx, uid, quizzesCompleted=1, questionsAnswered=results['answeredQuestions']
        )
        quiz_repo.add_progress_log(app_ctx.db, {
            'userId': uid,
            'activity': 'daily_quiz',
            'quizType': session.get('quizType', ''),
            'score': results['score'],
            'timestamp': now_ts,
        })
        quiz_repo.add_analytics_event(app_ctx.db, {
            'userId': uid,
            'event': 'quiz_completed',
            'quizType': session.get('quizType', ''),
            'sessionId': payload.sessionId,
            'score': results['score'],
            'timestamp': now_ts,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error completing quiz session {payload.sessionId}: {e}")
        return app_ctx.jsonify({'error': 'Could not complete quiz'}), 500

    app_ctx.log_event(
        logging.INFO,
        'daily_quiz_completed',
        uid=uid,
        quiz_type=session.get('quizType', ''),
        score=results['score'],
    )
    return app_ctx.jsonify(results)
