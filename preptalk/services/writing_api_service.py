"""Business logic handlers for writing evaluation, practice prompts and PDF quizzes."""

import json
import logging

from preptalk.repositories import writing_repo
from preptalk.schemas import PdfToQuizForm, PracticePromptRequest, WritingEvaluationRequest, WritingSessionRequest
from preptalk.services import file_service, llm_service, mcq_service, prompt_registry, quiz_service, writing_service

WRITING_SERVICE_INFO = {
    'service': 'writing-evaluation',
    'dimensions': list(writing_service.SCORE_WEIGHTS.keys()),
    'weights': writing_service.SCORE_WEIGHTS,
    'contentLength': {'min': 100, 'max': 10000},
    'uploadMimeTypes': sorted(file_service.ALLOWED_WRITING_UPLOAD_MIME_TYPES),
    'timeframes': list(writing_service.TIMEFRAME_SECONDS.keys()),
}
MAX_PDF_QUIZ_QUESTIONS = 30


def _check_writing_rate_limit(app_ctx, request):
    allowed, retry_after = app_ctx.check_rate_limit(
        key=app_ctx.client_rate_limit_key('writing', request),
        limit=app_ctx.WRITING_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.WRITING_RATE_LIMIT_WINDOW_SECONDS,
    )
    if allowed:
        return None
    app_ctx.log_rate_limit_hit('writing_evaluation', retry_after)
    return app_ctx.build_rate_limited_response(
        'Too many evaluation requests. Please wait a minute and try again.',
        retry_after,
    )


def run_evaluation_agents(app_ctx, payload):
    """Content, structure and language reviews followed by the examiner synthesis."""
    content_review = app_ctx.generate_json(
        prompt_registry.render_prompt(
            'writing_content_agent',
            exam_type=payload.examType,
            subject=payload.subject,
            question_text=payload.questionText,
            content=payload.content,
        ),
        temperature=0.2,
        max_output_tokens=2048,
    )
    structure_review = app_ctx.generate_json(
        prompt_registry.render_prompt(
            'writing_structure_agent',
            question_text=payload.questionText,
            content=payload.content,
        ),
        temperature=0.2,
        max_output_tokens=2048,
    )
    language_review = app_ctx.generate_json(
        prompt_registry.render_prompt('writing_language_agent', content=payload.content),
        temperature=0.2,
        max_output_tokens=2048,
    )
    metadata = payload.metadata
    word_count = (metadata.wordCount if metadata and metadata.wordCount else None) or writing_service.count_words(payload.content)
    time_spent = metadata.timeSpent if metadata and metadata.timeSpent else 0
    synthesis = app_ctx.generate_json(
        prompt_registry.render_prompt(
            'writing_synthesis',
            question_text=payload.questionText,
            word_count=word_count,
            time_spent=time_spent or 'unknown',
            content_review=json.dumps(content_review, ensure_ascii=False),
            structure_review=json.dumps(structure_review, ensure_ascii=False),
            language_review=json.dumps(language_review, ensure_ascii=False),
        ),
        model=app_ctx.GEMINI_PRO_MODEL,
        temperature=0.3,
        max_output_tokens=2048,
    )
    return content_review, structure_review, language_review, synthesis, word_count, time_spent


def evaluate_writing(app_ctx, request):
    rate_limited = _check_writing_rate_limit(app_ctx, request)
    if rate_limited:
        return rate_limited

    payload, error_response = app_ctx.validate_payload(WritingEvaluationRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    decoded_token = app_ctx.verify_firebase_token(request)
    uid = decoded_token['uid'] if decoded_token else None

    started = app_ctx.time.time()
    try:
        content_review, structure_review, language_review, synthesis, word_count, time_spent = run_evaluation_agents(app_ctx, payload)
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"Writing evaluation failed: {e}")
        return app_ctx.llm_error_response(e)
    except Exception as e:
        app_ctx.logger.error(f"Unexpected writing evaluation error: {e}")
        return app_ctx.jsonify({'error': 'Could not evaluate your answer. Please try again.'}), 500

    now_ts = app_ctx.time.time()
    evaluation_id = app_ctx.new_id()
    result = writing_service.build_evaluation_result(
        evaluation_id,
        content_review,
        structure_review,
        language_review,
        synthesis,
        word_count=word_count,
        time_spent=time_spent,
        created_at=now_ts,
        processing_ms=(now_ts - started) * 1000,
    )

    if uid:
        try:
            writing_repo.evaluation_doc_ref(app_ctx.db, evaluation_id).set({
                'userId': uid,
                'questionText': payload.questionText,
                'content': payload.content,
                'examType': payload.examType,
                'subject': payload.subject,
                'result': result,
                'createdAt': now_ts,
            })
            writing_repo.add_session(app_ctx.db, {
                'userId': uid,
                'evaluationId': evaluation_id,
                'score': result['overallScore'],
                'detailedScores': result['scores'],
                'subject': payload.subject,
                'examType': payload.examType,
                'wordCount': word_count,
                'timeSpent': time_spent,
                'createdAt': now_ts,
            })
        except Exception as e:
            app_ctx.logger.warning(f"Could not store writing evaluation for user {uid}: {e}")

    app_ctx.log_event(
        logging.INFO,
        'writing_evaluation_completed',
        uid=uid or 'anonymous',
        score=result['overallScore'],
        words=word_count,
        duration_ms=result['processingTime'],
    )
    return app_ctx.jsonify(result)


def get_writing_info(app_ctx):
    return app_ctx.jsonify(WRITING_SERVICE_INFO)


def upload_answer_sheet(app_ctx, request):
    rate_limited = _check_writing_rate_limit(app_ctx, request)
    if rate_limited:
        return rate_limited

    uploaded = request.files.get('file')
    if uploaded is None or not uploaded.filename:
        return app_ctx.jsonify({'error': 'No file uploaded'}), 400
    mime_type = (uploaded.mimetype or '').lower()
    if mime_type not in file_service.ALLOWED_WRITING_UPLOAD_MIME_TYPES:
        return app_ctx.jsonify({'error': 'Unsupported file type. Upload a JPEG, PNG, HEIC, WEBP image or a PDF.'}), 400
    data, read_error = file_service.read_upload(uploaded, app_ctx.MAX_WRITING_UPLOAD_BYTES)
    if read_error:
        return app_ctx.jsonify({'error': read_error}), 400
    if not file_service.bytes_match_mime(data, mime_type):
        return app_ctx.jsonify({'error': 'Uploaded file content does not match its type'}), 400

    started = app_ctx.time.time()
    try:
        extracted = app_ctx.generate_json(
            prompt_registry.render_prompt('handwriting_extraction'),
            temperature=0.0,
            max_output_tokens=8192,
            parts=[llm_service.bytes_part(data, mime_type)],
        )
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"Answer sheet extraction failed: {e}")
        return app_ctx.llm_error_response(e)

    text = str(extracted.get('extractedText', '') or '').strip()
    if not text:
        return app_ctx.jsonify({'error': 'No text could be extracted from the file'}), 400
    try:
        confidence = min(max(float(extracted.get('confidence', 0.8)), 0.0), 1.0)
    except (TypeError, ValueError):
        confidence = 0.8
    legibility = str(extracted.get('legibility', 'fair') or 'fair').lower()
    quality = writing_service.assess_extraction_quality(text, confidence, legibility)
    return app_ctx.jsonify({
        'fileInfo': {
            'name': file_service.safe_upload_name(uploaded.filename),
            'type': mime_type,
            'size': len(data),
        },
        'ocr': {
            'text': text,
            'confidence': confidence,
            'legibility': legibility,
        },
        'quality': quality,
        'metadata': {
            'wordCount': quality['wordCount'],
            'source': 'ocr',
            'processingTime': int((app_ctx.time.time() - started) * 1000),
        },
    })


def get_writing_progress(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    timeframe = (request.args.get('timeframe', '30d') or '30d').strip()
    if timeframe not in writing_service.TIMEFRAME_SECONDS:
        return app_ctx.jsonify({'error': 'timeframe must be one of 7d, 30d, 90d, all'}), 400
    window = writing_service.TIMEFRAME_SECONDS[timeframe]
    since_ts = app_ctx.time.time() - window if window else None
    try:
        sessions = [doc.to_dict() or {} for doc in writing_repo.list_sessions_by_uid(app_ctx.db, uid, since_ts)]
        return app_ctx.jsonify(writing_service.summarize_progress(sessions, timeframe))
    except Exception as e:
        app_ctx.logger.error(f"Error loading writing progress for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load writing progress'}), 500


def record_writing_session(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(WritingSessionRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        now_ts = app_ctx.time.time()
        record = payload.model_dump()
        record.update({'userId': uid, 'createdAt': now_ts})
        _update_time, doc_ref = writing_repo.add_session(app_ctx.db, record)
        return app_ctx.jsonify({'ok': True, 'sessionId': doc_ref.id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error recording writing session for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not record writing session'}), 500


def generate_practice_prompt(app_ctx, request):
    payload, error_response = app_ctx.validate_payload(PracticePromptRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        raw = app_ctx.generate_json(
            prompt_registry.render_prompt(
                'writing_practice',
                difficulty=payload.difficulty,
                type=payload.type,
                exam_type=payload.examType,
                topic=payload.topic or 'any topic relevant to the exam',
            ),
            temperature=0.8,
            max_output_tokens=2048,
        )
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"Practice prompt generation failed: {e}")
        return app_ctx.llm_error_response(e)
    prompt = writing_service.shape_practice_prompt(raw, payload.type, payload.difficulty, payload.topic, payload.examType)
    prompt['id'] = app_ctx.new_id()
    return app_ctx.jsonify(prompt)


def pdf_to_quiz(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Please sign in to create quizzes from PDFs'}), 401
    uid = decoded_token['uid']

    allowed, retry_after = app_ctx.check_rate_limit(
        key=app_ctx.client_rate_limit_key('pdf_quiz', request),
        limit=app_ctx.PDF_QUIZ_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.PDF_QUIZ_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('pdf_to_quiz', retry_after)
        return app_ctx.build_rate_limited_response(
            'Too many PDF quiz requests. Please wait before uploading another PDF.',
            retry_after,
        )

    form, error_response = app_ctx.validate_payload(PdfToQuizForm, request.form.to_dict())
    if error_response:
        return error_response
    uploaded = request.files.get('pdf')
    if uploaded is None or not uploaded.filename:
        return app_ctx.jsonify({'error': 'PDF file is required'}), 400
    if not file_service.allowed_file(uploaded.filename, {'pdf'}):
        return app_ctx.jsonify({'error': 'Invalid file. Please upload a PDF.'}), 400
    if (uploaded.mimetype or '').lower() not in file_service.ALLOWED_PDF_MIME_TYPES:
        return app_ctx.jsonify({'error': 'Invalid PDF content type'}), 400
    data, read_error = file_service.read_upload(uploaded, app_ctx.MAX_PDF_QUIZ_UPLOAD_BYTES)
    if read_error:
        return app_ctx.jsonify({'error': read_error}), 400
    if not file_service.bytes_have_pdf_signature(data):
        return app_ctx.jsonify({'error': 'Uploaded PDF file is invalid.'}), 400

    try:
        generated = app_ctx.generate_json(
            prompt_registry.render_prompt('pdf_to_quiz', exam_type=form.examType, question_count=form.numQuestions),
            temperature=0.2,
            max_output_tokens=16384,
            parts=[llm_service.bytes_part(data, 'application/pdf')],
        )
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"PDF to quiz failed for user {uid}: {e}")
        return app_ctx.llm_error_response(e)

    mcqs = mcq_service.sanitize_mcqs(generated.get('questions', []), min(form.numQuestions, MAX_PDF_QUIZ_QUESTIONS))
    if not mcqs:
        return app_ctx.jsonify({'error': 'No multiple-choice questions could be extracted from this PDF'}), 422
    questions = []
    for index, mcq in enumerate(mcqs):
        question = quiz_service.mcq_to_quiz_question(mcq, f"pdf_{index + 1}", '')
        question.pop('generated', None)
        questions.append(question)

    app_ctx.log_event(logging.INFO, 'pdf_quiz_generated', uid=uid, questions=len(questions), size=len(data))
    return app_ctx.jsonify({
        'questions': questions,
        'totalQuestions': len(questions),
        'source': file_service.safe_upload_name(uploaded.filename, fallback='document.pdf'),
    })
