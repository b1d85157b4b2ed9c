"""Business logic handlers for the question bank and admin bulk uploads."""

import logging

from preptalk.repositories import question_bank_repo, storage_repo
from preptalk.repositories.query_utils import chunked
from preptalk.schemas import QuestionCreateRequest, QuestionSearchQuery, QuestionUpdateRequest, QuestionUploadForm
from preptalk.services import file_service, question_import_service

LIST_QUERY_PARAMS = ('years', 'papers', 'subjects', 'subtopics', 'difficultyLevel', 'questionType')
DIFFICULTY_RANK = {'easy': 1, 'medium': 2, 'hard': 3}
SORT_FIELDS = {
    'year': 'year',
    'successRate': 'successRate',
    'attemptCount': 'attemptCount',
}
PROTECTED_FIELDS = {'id', 'examType', 'version', 'createdAt', 'createdBy', 'attemptCount', 'correctAttempts'}
FIRESTORE_BATCH_LIMIT = 500


def _require_admin(app_ctx, request):
    """Return ``(decoded_token, None)`` or ``(None, error_response)``."""
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    if not app_ctx.is_admin_user(decoded_token):
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    return decoded_token, None


def parse_search_args(args):
    params = {}
    for key in LIST_QUERY_PARAMS:
        values = []
        for raw in args.getlist(key):
            values.extend(part.strip() for part in str(raw).split(',') if part.strip())
        if values:
            params[key] = values
    for key in ('examType', 'verified', 'limit', 'offset', 'sortBy', 'sortOrder'):
        value = args.get(key)
        if value not in (None, ''):
            params[key] = value
    return params


def _as_list(value):
    if isinstance(value, list):
        return [str(item) for item in value]
    if value in (None, ''):
        return []
    return [str(value)]


def matches_filters(question, query):
    if query.years and question.get('year') not in query.years:
        return False
    if query.papers and str(question.get('paper', '')) not in query.papers:
        return False
    if query.subjects and not set(_as_list(question.get('subject'))) & set(query.subjects):
        return False
    if query.subtopics and not set(_as_list(question.get('subtopics'))) & set(query.subtopics):
        return False
    if query.difficultyLevel and str(question.get('difficultyLevel', '')) not in query.difficultyLevel:
        return False
    if query.questionType and str(question.get('questionType', '')) not in query.questionType:
        return False
    if query.verified is not None and bool(question.get('verified')) != query.verified:
        return False
    return True


def _sort_key(sort_by):
    if sort_by == 'difficulty':
        return lambda question: DIFFICULTY_RANK.get(str(question.get('difficultyLevel', '')).lower(), 0)
    field = SORT_FIELDS[sort_by]

    def key(question):
        try:
            return float(question.get(field, 0) or 0)
        except (TypeError, ValueError):
            return 0.0
    return key


def search_question_bank(questions, query):
    filtered = [question for question in questions if matches_filters(question, query)]
    filtered.sort(key=_sort_key(query.sortBy), reverse=query.sortOrder == 'desc')
    page = filtered[query.offset:query.offset + query.limit]
    return {
        'questions': page,
        'total': len(filtered),
        'limit': query.limit,
        'offset': query.offset,
        'hasMore': query.offset + len(page) < len(filtered),
    }


def search_questions(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    query, error_response = app_ctx.validate_payload(QuestionSearchQuery, parse_search_args(request.args))
    if error_response:
        return error_response
    try:
        questions = []
        for doc in question_bank_repo.list_active_questions(app_ctx.db, query.examType):
            data = doc.to_dict() or {}
            data['id'] = doc.id
            questions.append(data)
        return app_ctx.jsonify(search_question_bank(questions, query))
    except Exception as e:
        app_ctx.logger.error(f"Error searching {query.examType} questions: {e}")
        return app_ctx.jsonify({'error': 'Could not search questions'}), 500


def create_question(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    payload, error_response = app_ctx.validate_payload(QuestionCreateRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    question = question_import_service.transform_question(dict(payload.questionData), payload.examType, {})
    errors = question_import_service.validate_questions([question], payload.examType)
    if errors:
        return app_ctx.jsonify({'error': 'Invalid question data', 'details': [error.split(': ', 1)[-1] for error in errors]}), 400
    try:
        now_ts = app_ctx.time.time()
        question.update({'createdAt': now_ts, 'updatedAt': now_ts, 'createdBy': decoded_token['uid']})
        question_ref = question_bank_repo.create_question_doc_ref(app_ctx.db, payload.examType)
        question_ref.set(question)
        question['id'] = question_ref.id
        return app_ctx.jsonify(question), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating {payload.examType} question: {e}")
        return app_ctx.jsonify({'error': 'Could not create question'}), 500


def get_question(app_ctx, request, question_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    try:
        _exam_type, snapshot = question_bank_repo.find_question(app_ctx.db, question_id)
        if snapshot is None:
            return app_ctx.jsonify({'error': 'Question not found'}), 404
        question = snapshot.to_dict() or {}
        if question.get('isActive') is False and not app_ctx.is_admin_user(decoded_token):
            return app_ctx.jsonify({'error': 'Question not found'}), 404
        question['id'] = snapshot.id
        return app_ctx.jsonify(question)
    except Exception as e:
        app_ctx.logger.error(f"Error loading question {question_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load question'}), 500


def update_question(app_ctx, request, question_id):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    payload, error_response = app_ctx.validate_payload(QuestionUpdateRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        exam_type, snapshot = question_bank_repo.find_question(app_ctx.db, question_id)
        if snapshot is None:
            return app_ctx.jsonify({'error': 'Question not found'}), 404
        question = snapshot.to_dict() or {}
        updates = {key: value for key, value in payload.questionData.items() if key not in PROTECTED_FIELDS}
        updates['version'] = int(question.get('version', 1) or 1) + 1
        updates['updatedAt'] = app_ctx.time.time()
        updates['updatedBy'] = decoded_token['uid']
        question_bank_repo.question_doc_ref(app_ctx.db, exam_type, question_id).update(updates)
        question.update(updates)
        question['id'] = question_id
        return app_ctx.jsonify(question)
    except Exception as e:
        app_ctx.logger.error(f"Error updating question {question_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update question'}), 500


def delete_question(app_ctx, request, question_id):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    try:
        exam_type, snapshot = question_bank_repo.find_question(app_ctx.db, question_id)
        if snapshot is None:
            return app_ctx.jsonify({'error': 'Question not found'}), 404
        question_bank_repo.question_doc_ref(app_ctx.db, exam_type, question_id).update({
            'isActive': False,
            'updatedAt': app_ctx.time.time(),
            'updatedBy': decoded_token['uid'],
        })
        return app_ctx.jsonify({'ok': True, 'id': question_id})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting question {question_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete question'}), 500


def write_questions(app_ctx, exam_type, questions, batch_id):
    written = 0
    for chunk in chunked(questions, FIRESTORE_BATCH_LIMIT):
        writer = question_bank_repo.new_batch_writer(app_ctx.db)
        for question in chunk:
            question['uploadBatchId'] = batch_id
            writer.set(question_bank_repo.create_question_doc_ref(app_ctx.db, exam_type), question)
        writer.commit()
        written += len(chunk)
    return written


def upload_questions(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    form, error_response = app_ctx.validate_payload(QuestionUploadForm, request.form.to_dict())
    if error_response:
        return error_response
    uploaded = request.files.get('file')
    if uploaded is None or not uploaded.filename:
        return app_ctx.jsonify({'error': 'No file uploaded'}), 400
    file_type = question_import_service.detect_file_type(uploaded.filename)
    if file_type is None:
        return app_ctx.jsonify({'error': 'Unsupported file type. Upload .xlsx, .csv or .json.'}), 400
    if (uploaded.mimetype or '').lower() not in question_import_service.ALLOWED_UPLOAD_MIME_TYPES:
        return app_ctx.jsonify({'error': 'Invalid file content type'}), 400
    data, read_error = file_service.read_upload(uploaded, app_ctx.MAX_QUESTION_UPLOAD_BYTES)
    if read_error:
        return app_ctx.jsonify({'error': read_error}), 400

    batch_id = app_ctx.new_id()
    started = app_ctx.time.time()
    safe_name = file_service.safe_upload_name(uploaded.filename)
    batch_ref = question_bank_repo.upload_batch_doc_ref(app_ctx.db, batch_id)
    processing_log = [f"Received {safe_name} ({len(data)} bytes)"]
    batch_ref.set({
        'batchId': batch_id,
        'examType': form.examType,
        'year': form.year,
        'paper': form.paper or '',
        'fileName': safe_name,
        'fileType': file_type,
        'fileSize': len(data),
        'status': 'Processing',
        'uploadedBy': uid,
        'createdAt': started,
        'processingLog': processing_log,
    })

    storage_path = ''
    try:
        storage_path = storage_repo.upload_bytes(
            app_ctx.storage_bucket,
            f"question_uploads/{batch_id}/{safe_name}",
            data,
            uploaded.mimetype or 'application/octet-stream',
        ) or ''
        if storage_path:
            processing_log.append(f"Archived upload to {storage_path}")

        defaults = {'year': form.year, 'paper': form.paper}
        try:
            questions = question_import_service.parse_upload(data, file_type, form.examType, defaults)
        except question_import_service.QuestionImportError as e:
            questions = []
            errors = [str(e)]
        else:
            errors = question_import_service.validate_questions(questions, form.examType)
            if not questions and not errors:
                errors = ['No questions found in the uploaded file']
        processing_log.append(f"Parsed {len(questions)} questions with {len(errors)} errors")

        if errors:
            batch_ref.update({
                'status': 'Failed',
                'errors': errors,
                'stats': {'total': len(questions), 'imported': 0, 'failed': len(questions)},
                'processingLog': processing_log,
                'completedAt': app_ctx.time.time(),
            })
            app_ctx.log_event(logging.WARNING, 'question_upload_failed', batch_id=batch_id, errors=len(errors))
            return app_ctx.jsonify({'error': 'Validation failed', 'batchId': batch_id, 'errors': errors}), 400

        imported = write_questions(app_ctx, form.examType, questions, batch_id)
        processing_log.append(f"Imported {imported} questions")
        stats = {'total': len(questions), 'imported': imported, 'failed': 0}
        batch_ref.update({
            'status': 'Completed',
            'errors': [],
            'stats': stats,
            'processingLog': processing_log,
            'completedAt': app_ctx.time.time(),
        })
    except Exception as e:
        app_ctx.logger.error(f"Question upload {batch_id} failed: {e}")
        batch_ref.update({
            'status': 'Failed',
            'errors': ['Internal error while processing the upload'],
            'processingLog': processing_log,
            'completedAt': app_ctx.time.time(),
        })
        return app_ctx.jsonify({'error': 'Could not process upload', 'batchId': batch_id}), 500
    finally:
        if storage_path:
            try:
                storage_repo.delete_blob(app_ctx.storage_bucket, storage_path)
            except Exception as e:
                app_ctx.logger.warning(f"Could not remove archived upload {storage_path}: {e}")

    app_ctx.log_event(
        logging.INFO,
        'question_upload_completed',
        batch_id=batch_id,
        exam_type=form.examType,
        imported=stats['imported'],
        duration_ms=int((app_ctx.time.time() - started) * 1000),
    )
    return app_ctx.jsonify({'batchId': batch_id, 'status': 'Completed', 'stats': stats}), 201


def get_upload_status(app_ctx, request):
    _decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    batch_id = (request.args.get('batchId', '') or '').strip()
    if not batch_id:
        return app_ctx.jsonify({'error': 'batchId is required'}), 400
    try:
        snapshot = question_bank_repo.upload_batch_doc_ref(app_ctx.db, batch_id).get()
        if not snapshot.exists:
            return app_ctx.jsonify({'error': 'Upload batch not found'}), 404
        return app_ctx.jsonify(snapshot.to_dict() or {})
    except Exception as e:
        app_ctx.logger.error(f"Error loading upload batch {batch_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load upload batch'}), 500
