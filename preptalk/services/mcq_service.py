"""Sanitizers for LLM-generated Prelims MCQs and Mains questions."""

import base64

MAX_TEXT_LEN = 2000


def sanitize_mcqs(items, max_items):
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        question = str(item.get('question', '')).strip()[:MAX_TEXT_LEN]
        options = item.get('options', [])
        answer = str(item.get('answer', '')).strip()[:MAX_TEXT_LEN]
        explanation = str(item.get('explanation', '')).strip()[:MAX_TEXT_LEN]
        subject = str(item.get('subject', '')).strip()[:300]
        if not question or not isinstance(options, list) or len(options) != 4 or not answer:
            continue
        option_strings = [str(option).strip()[:MAX_TEXT_LEN] for option in options]
        if any(not option for option in option_strings):
            continue
        if len(set(option_strings)) != 4:
            continue
        if answer not in option_strings:
            continue
        dedupe_key = question.lower()
        if dedupe_key in seen:
            continue
        seen.add(dedupe_key)
        cleaned.append({
            'question': question,
            'options': option_strings,
            'answer': answer,
            'explanation': explanation,
            'subject': subject,
        })
        if len(cleaned) >= max_items:
            break
    return cleaned


def sanitize_mains_questions(items, max_items):
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if isinstance(item, str):
            item = {'question': item}
        if not isinstance(item, dict):
            continue
        question = str(item.get('question', '')).strip()[:MAX_TEXT_LEN]
        if not question or question.lower() in seen:
            continue
        seen.add(question.lower())
        cleaned.append({
            'question': question,
            'guidance': str(item.get('guidance', '')).strip()[:MAX_TEXT_LEN * 2],
            'subject': str(item.get('subject', '')).strip()[:300],
        })
        if len(cleaned) >= max_items:
            break
    return cleaned


def question_hash(question_text, length):
    encoded = base64.urlsafe_b64encode(str(question_text or '').encode('utf-8')).decode('ascii')
    return encoded.rstrip('=')[:length]


def saved_question_id(uid, history_id, question_text):
    return f"{uid}_{history_id}_{question_hash(question_text, 30)}"


def quiz_attempt_id(uid, history_id, question_text):
    return f"{uid}_{history_id}_{question_hash(question_text, 20)}"
