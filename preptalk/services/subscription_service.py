"""Subscription tiers, plan catalogue and access checks."""

TIER_ORDER = ['free', 'foundation', 'practice', 'mains', 'interview', 'elite']
UNLIMITED = -1

SUBSCRIPTION_PLANS = {
    'free': {
        'name': 'Free Starter',
        'description': 'Perfect for exploring UPSC preparation',
        'price': {'monthly': 0, 'yearly': 0, 'currency': 'INR'},
        'targetStage': ['assessment', 'prelims'],
        'dailyQuizLimit': 5,
        'features': {
            'previousYearQuestions': False,
            'subjectWisePractice': False,
            'mockTests': False,
            'adaptiveLearning': False,
            'advancedAnalysis': False,
            'writingPracticeAccess': False,
            'aiEvaluation': False,
            'interviewAccess': False,
            'progressTracking': True,
            'performanceAnalytics': False,
            'studyPlanGeneration': False,
            'prioritySupport': False,
        },
        'limits': {'dailyAnswerLimit': 0, 'dailyInterviewSessions': 0, 'dailyCurrentAffairs': 2},
    },
    'foundation': {
        'name': 'Foundation Builder',
        'description': 'Build strong fundamentals for UPSC preparation',
        'price': {'monthly': 99, 'yearly': 999, 'currency': 'INR'},
        'targetStage': ['assessment', 'prelims'],
        'dailyQuizLimit': 15,
        'features': {
            'previousYearQuestions': False,
            'subjectWisePractice': True,
            'mockTests': False,
            'adaptiveLearning': False,
            'advancedAnalysis': False,
            'writingPracticeAccess': False,
            'aiEvaluation': False,
            'interviewAccess': False,
            'progressTracking': True,
            'performanceAnalytics': True,
            'studyPlanGeneration': False,
            'prioritySupport': False,
        },
        'limits': {'dailyAnswerLimit': 0, 'dailyInterviewSessions': 0, 'dailyCurrentAffairs': 5},
    },
    'practice': {
        'name': 'Practice Pro',
        'description': 'Unlimited Prelims practice with previous year questions',
        'price': {'monthly': 199, 'yearly': 1999, 'currency': 'INR'},
        'targetStage': ['prelims'],
        'dailyQuizLimit': 50,
        'features': {
            'previousYearQuestions': True,
            'subjectWisePractice': True,
            'mockTests': True,
            'adaptiveLearning': False,
            'advancedAnalysis': True,
            'writingPracticeAccess': False,
            'aiEvaluation': False,
            'interviewAccess': False,
            'progressTracking': True,
            'performanceAnalytics': True,
            'studyPlanGeneration': True,
            'prioritySupport': False,
        },
        'limits': {'dailyAnswerLimit': 0, 'dailyInterviewSessions': 0, 'dailyCurrentAffairs': 10},
    },
    'mains': {
        'name': 'Mains Mastery',
        'description': 'Answer writing practice with AI evaluation',
        'price': {'monthly': 499, 'yearly': 4999, 'currency': 'INR'},
        'targetStage': ['prelims', 'mains'],
        'dailyQuizLimit': 100,
        'features': {
            'previousYearQuestions': True,
            'subjectWisePractice': True,
            'mockTests': True,
            'adaptiveLearning': True,
            'advancedAnalysis': True,
            'writingPracticeAccess': True,
            'aiEvaluation': True,
            'interviewAccess': False,
            'progressTracking': True,
            'performanceAnalytics': True,
            'studyPlanGeneration': True,
            'prioritySupport': False,
        },
        'limits': {'dailyAnswerLimit': 10, 'dailyInterviewSessions': 0, 'dailyCurrentAffairs': UNLIMITED},
    },
    'interview': {
        'name': 'Interview Ready',
        'description': 'Personality test preparation with mock interviews',
        'price': {'monthly': 999, 'yearly': 9999, 'currency': 'INR'},
        'targetStage': ['mains', 'interview'],
        'dailyQuizLimit': 200,
        'features': {
            'previousYearQuestions': True,
            'subjectWisePractice': True,
            'mockTests': True,
            'adaptiveLearning': True,
            'advancedAnalysis': True,
            'writingPracticeAccess': True,
            'aiEvaluation': True,
            'interviewAccess': True,
            'progressTracking': True,
            'performanceAnalytics': True,
            'studyPlanGeneration': True,
            'prioritySupport': True,
        },
        'limits': {'dailyAnswerLimit': UNLIMITED, 'dailyInterviewSessions': 5, 'dailyCurrentAffairs': UNLIMITED},
    },
    'elite': {
        'name': 'Elite Success',
        'description': 'Premium coaching for top rank aspirants',
        'price': {'monthly': 1999, 'yearly': 19999, 'currency': 'INR'},
        'targetStage': ['interview'],
        'dailyQuizLimit': UNLIMITED,
        'features': {
            'previousYearQuestions': True,
            'subjectWisePractice': True,
            'mockTests': True,
            'adaptiveLearning': True,
            'advancedAnalysis': True,
            'writingPracticeAccess': True,
            'aiEvaluation': True,
            'interviewAccess': True,
            'progressTracking': True,
            'performanceAnalytics': True,
            'studyPlanGeneration': True,
            'prioritySupport': True,
        },
        'limits': {'dailyAnswerLimit': UNLIMITED, 'dailyInterviewSessions': UNLIMITED, 'dailyCurrentAffairs': UNLIMITED},
    },
}


def normalize_tier(value):
    tier = str(value or '').strip().lower()
    return tier if tier in SUBSCRIPTION_PLANS else 'free'


def tier_rank(tier):
    return TIER_ORDER.index(normalize_tier(tier))


def tier_at_least(current_tier, required_tier):
    return tier_rank(current_tier) >= tier_rank(required_tier)


def has_feature(tier, feature):
    return bool(SUBSCRIPTION_PLANS[normalize_tier(tier)]['features'].get(feature, False))


def daily_quiz_limit(tier):
    return SUBSCRIPTION_PLANS[normalize_tier(tier)]['dailyQuizLimit']


def remaining_quota(limit, used):
    if limit == UNLIMITED:
        return UNLIMITED
    return max(0, int(limit) - int(used or 0))


def resolve_effective_subscription(subscription_data, now_ts):
    """Return ``{tier, status, ...}``; an expired paid subscription reports the free tier."""
    data = dict(subscription_data or {})
    tier = normalize_tier(data.get('tier'))
    expires_at = data.get('expiresAt')
    effective = {
        'tier': tier,
        'status': data.get('status', 'active') if tier != 'free' else 'active',
        'billingCycle': data.get('billingCycle', ''),
        'startedAt': data.get('startedAt'),
        'expiresAt': expires_at,
    }
    if tier != 'free' and expires_at is not None and float(expires_at) <= now_ts:
        effective['originalTier'] = tier
        effective['tier'] = 'free'
        effective['status'] = 'expired'
    return effective


def public_plan_catalogue():
    return [
        {
            'id': tier,
            'name': plan['name'],
            'description': plan['description'],
            'price': plan['price'],
            'targetStage': plan['targetStage'],
            'dailyQuizLimit': plan['dailyQuizLimit'],
            'features': plan['features'],
            'limits': plan['limits'],
        }
        for tier, plan in ((tier, SUBSCRIPTION_PLANS[tier]) for tier in TIER_ORDER)
    ]
