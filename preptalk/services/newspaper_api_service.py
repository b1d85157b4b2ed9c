"""Business logic handlers for newspaper analysis APIs."""

import json
import logging

from preptalk.repositories import history_repo
from preptalk.schemas import NewspaperAnalysisRequest
from preptalk.services import mcq_service, prompt_registry

MAX_PRELIMS_MCQS = 10
MAX_MAINS_QUESTIONS = 5


def build_not_relevant_analysis(reasoning):
    return (
        "## Article Not Relevant\n\n"
        "This article does not appear to be relevant to the UPSC syllabus.\n\n"
        f"**Reasoning:** {reasoning or 'No syllabus topic matched the article.'}\n\n"
        "Try an article on polity, governance, economy, international relations, "
        "environment, science & technology or social issues."
    )


def shape_analysis(raw):
    raw = raw if isinstance(raw, dict) else {}
    prelims = raw.get('prelims') if isinstance(raw.get('prelims'), dict) else {}
    mains = raw.get('mains') if isinstance(raw.get('mains'), dict) else {}
    return {
        'analysis': str(raw.get('analysis', '') or '').strip(),
        'summary': str(raw.get('summary', '') or '').strip(),
        'prelims': {'mcqs': mcq_service.sanitize_mcqs(prelims.get('mcqs', []), MAX_PRELIMS_MCQS)},
        'mains': {'questions': mcq_service.sanitize_mains_questions(mains.get('questions', []), MAX_MAINS_QUESTIONS)},
    }


def run_analysis_flow(app_ctx, payload):
    """Relevance check, analysis, then verification. Returns the shaped analysis dict."""
    syllabus = {
        'prelims_syllabus': app_ctx.load_knowledge_file('upsc_prelims_syllabus.md'),
        'mains_syllabus': app_ctx.load_knowledge_file('upsc_mains_syllabus.md'),
    }
    relevance = app_ctx.generate_json(
        prompt_registry.render_prompt('relevance_check', source_text=payload.articleText, **syllabus),
        temperature=0.0,
        max_output_tokens=512,
    )
    is_relevant = bool(relevance.get('isRelevant'))
    reasoning = str(relevance.get('reasoning', '') or '').strip()
    if not is_relevant:
        result = shape_analysis({'analysis': build_not_relevant_analysis(reasoning), 'summary': ''})
        result.update({'isRelevant': False, 'relevanceReasoning': reasoning})
        return result

    focus = payload.resolved_focus()
    generated = app_ctx.generate_json(
        prompt_registry.render_prompt(
            'newspaper_analysis',
            exam_type=payload.examType,
            analysis_focus=focus,
            difficulty=payload.difficulty,
            focus_areas=', '.join(payload.focusAreas) or 'none',
            focus_instructions=prompt_registry.ANALYSIS_FOCUS_INSTRUCTIONS[focus],
            source_text=payload.articleText,
            **syllabus,
        ),
        temperature=0.4,
        max_output_tokens=16384,
    )
    draft = shape_analysis(generated)
    try:
        verified = shape_analysis(app_ctx.generate_json(
            prompt_registry.render_prompt(
                'newspaper_verification',
                source_text=payload.articleText,
                generated_json=json.dumps(draft, ensure_ascii=False),
            ),
            temperature=0.1,
            max_output_tokens=16384,
        ))
    except app_ctx.LLMResponseError as e:
        app_ctx.logger.warning(f"Newspaper verification output unusable, keeping draft: {e}")
        verified = draft
    if not verified['analysis']:
        verified = draft
    verified.update({'isRelevant': True, 'relevanceReasoning': reasoning})
    return verified


def analyze_article(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Please sign in to analyze articles'}), 401
    uid = decoded_token['uid']

    allowed, retry_after = app_ctx.check_rate_limit(
        key=app_ctx.client_rate_limit_key('newspaper', request),
        limit=app_ctx.NEWSPAPER_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.NEWSPAPER_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('newspaper_analysis', retry_after)
        return app_ctx.build_rate_limited_response(
            'Too many analysis requests. Please wait before analyzing another article.',
            retry_after,
        )

    payload, error_response = app_ctx.validate_payload(NewspaperAnalysisRequest, request.get_json(silent=True))
    if error_response:
        return error_response

    started = app_ctx.time.time()
    try:
        result = run_analysis_flow(app_ctx, payload)
    except app_ctx.LLMError as e:
        app_ctx.logger.error(f"Newspaper analysis failed for user {uid}: {e}")
        return app_ctx.llm_error_response(e)
    except Exception as e:
        app_ctx.logger.error(f"Unexpected newspaper analysis error for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not analyze the article. Please try again.'}), 500

    now_ts = app_ctx.time.time()
    article_url = str(payload.articleUrl) if payload.articleUrl else ''
    result['metadata'] = {
        'analysisType': payload.analysisType,
        'analysisFocus': payload.resolved_focus(),
        'examType': payload.examType,
        'processedAt': now_ts,
        'articleLength': len(payload.articleText),
        'focusAreas': payload.focusAreas,
    }
    result['historyId'] = None
    if payload.saveToHistory and result['isRelevant'] and app_ctx.db is not None:
        try:
            history_ref = history_repo.create_history_doc_ref(app_ctx.db)
            history_ref.set({
                'userId': uid,
                'analysis': {key: result[key] for key in ('analysis', 'summary', 'prelims', 'mains', 'metadata')},
                'articleUrl': article_url,
                'timestamp': now_ts,
            })
            result['historyId'] = history_ref.id
        except Exception as e:
            app_ctx.logger.warning(f"Could not save analysis history for user {uid}: {e}")

    app_ctx.log_event(
        logging.INFO,
        'newspaper_analysis_completed',
        uid=uid,
        relevant=result['isRelevant'],
        focus=payload.resolved_focus(),
        mcqs=len(result['prelims']['mcqs']),
        mains=len(result['mains']['questions']),
        duration_ms=int((now_ts - started) * 1000),
    )
    return app_ctx.jsonify(result)
