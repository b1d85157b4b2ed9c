"""Business logic handlers for onboarding, dashboard and recommendation APIs."""

from preptalk.repositories import history_repo, quiz_repo, users_repo, writing_repo
from preptalk.schemas import OnboardingRequest
from preptalk.services import notes_api_service, notes_service, recommendation_service, writing_service

RECENT_RESULTS_LIMIT = 20


def get_onboarding(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        snapshot = users_repo.get_doc(app_ctx.db, uid)
        profile = snapshot.to_dict() if snapshot.exists else {}
        return app_ctx.jsonify({
            'onboardingCompleted': bool(profile.get('onboardingCompleted')),
            'profile': profile.get('profile', {}),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error loading onboarding for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load onboarding'}), 500


def save_onboarding(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    payload, error_response = app_ctx.validate_payload(OnboardingRequest, request.get_json(silent=True))
    if error_response:
        return error_response
    try:
        now_ts = app_ctx.time.time()
        profile = payload.model_dump()
        users_repo.set_doc(app_ctx.db, uid, {
            'uid': uid,
            'email': decoded_token.get('email', ''),
            'profile': profile,
            'onboardingCompleted': True,
            'onboardedAt': now_ts,
            'updatedAt': now_ts,
        }, merge=True)
        return app_ctx.jsonify({'ok': True, 'onboardingCompleted': True, 'profile': profile})
    except Exception as e:
        app_ctx.logger.error(f"Error saving onboarding for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not save onboarding'}), 500


def load_recent_results(app_ctx, uid, limit=RECENT_RESULTS_LIMIT):
    records = [doc.to_dict() or {} for doc in quiz_repo.list_results_by_uid(app_ctx.db, uid)]
    records.sort(key=lambda record: float(record.get('completedAt', 0) or 0), reverse=True)
    return [record.get('results', {}) for record in records[:limit]]


def _load_activity(app_ctx, uid):
    now_ts = app_ctx.time.time()
    results = load_recent_results(app_ctx, uid)
    stats_snapshot = users_repo.user_stats_doc_ref(app_ctx.db, uid).get()
    user_stats = stats_snapshot.to_dict() if stats_snapshot.exists else {}
    sessions = [doc.to_dict() or {} for doc in writing_repo.list_sessions_by_uid(app_ctx.db, uid)]
    writing_progress = writing_service.summarize_progress(sessions, 'all')
    notes = notes_api_service.load_user_notes(app_ctx, uid)
    review_queue = notes_service.build_review_queue(notes, now_ts, 20)
    return results, user_stats, writing_progress, notes, review_queue


def get_dashboard_summary(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        results, user_stats, writing_progress, notes, review_queue = _load_activity(app_ctx, uid)
        now_ts = app_ctx.time.time()
        history_count = len(history_repo.list_history_by_uid(app_ctx.db, uid))
        recent_scores = [int(result.get('score', 0) or 0) for result in results if result]
        return app_ctx.jsonify({
            'quizStats': {
                'recentQuizzes': len(recent_scores),
                'recentAverageScore': round(sum(recent_scores) / len(recent_scores), 1) if recent_scores else 0,
                'subjectAccuracy': recommendation_service.aggregate_subject_accuracy(results),
            },
            'userStats': user_stats,
            'writing': {
                'totalSessions': writing_progress['totalSessions'],
                'averageScore': writing_progress['averageScore'],
                'bestScore': writing_progress['bestScore'],
            },
            'notes': {
                'total': len(notes),
                'due': len([note for note in notes if notes_service.is_due(note, now_ts)]),
                'reviewPriority': review_queue['summary']['priority'],
            },
            'historyCount': history_count,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error building dashboard for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load dashboard'}), 500


def get_recommendations(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    try:
        results, user_stats, writing_progress, _notes, review_queue = _load_activity(app_ctx, uid)
        user_snapshot = users_repo.get_doc(app_ctx.db, uid)
        profile = (user_snapshot.to_dict() or {}).get('profile', {}) if user_snapshot.exists else {}
        recommendations = recommendation_service.build_recommendations(
            results,
            user_stats,
            writing_progress,
            review_queue['summary'],
            study_hours_per_day=float(profile.get('studyHoursPerDay', 4) or 4),
        )
        now_ts = app_ctx.time.time()
        users_repo.recommendations_doc_ref(app_ctx.db, uid).set({
            'userId': uid,
            'recommendations': recommendations,
            'generatedAt': now_ts,
        })
        return app_ctx.jsonify({'recommendations': recommendations, 'generatedAt': now_ts})
    except Exception as e:
        app_ctx.logger.error(f"Error generating recommendations for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not generate recommendations'}), 500
