"""Gemini client helpers for structured (JSON) and plain-text generation."""

import json

from google.genai import types


class LLMError(Exception):
    pass


class LLMUnavailableError(LLMError):
    """Provider is not configured, out of quota, or rate limiting us."""


class LLMResponseError(LLMError):
    """Provider answered but the output could not be used."""


UNAVAILABLE_MARKERS = (
    'quota',
    'rate limit',
    'rate_limit',
    'resource_exhausted',
    'resource exhausted',
    '429',
    '503',
    'unavailable',
    'overloaded',
)


def is_unavailable_error(exc):
    text = str(exc or '').lower()
    return any(marker in text for marker in UNAVAILABLE_MARKERS)


def extract_json_payload(raw_text):
    if not raw_text:
        return None
    text = raw_text.strip()
    if text.startswith('```'):
        lines = text.splitlines()
        if len(lines) >= 3 and lines[0].startswith('```') and lines[-1].strip() == '```':
            text = '\n'.join(lines[1:-1]).strip()
    start = text.find('{')
    if start == -1:
        return None
    decoder = json.JSONDecoder()
    try:
        parsed, _ = decoder.raw_decode(text[start:])
        return parsed
    except json.JSONDecodeError:
        end = text.rfind('}')
        if end == -1 or end <= start:
            return None
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None


def build_contents(prompt_text, parts=None):
    content_parts = [types.Part.from_text(text=prompt_text)]
    for part in parts or []:
        content_parts.append(part)
    return [types.Content(role='user', parts=content_parts)]


def bytes_part(data, mime_type):
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def generate_text(
    client,
    model,
    prompt_text,
    *,
    temperature=None,
    max_output_tokens=8192,
    parts=None,
    response_mime_type=None,
    logger=None,
):
    if client is None:
        raise LLMUnavailableError('AI provider is not configured.')
    config_kwargs = {'max_output_tokens': max_output_tokens}
    if temperature is not None:
        config_kwargs['temperature'] = temperature
    if response_mime_type:
        config_kwargs['response_mime_type'] = response_mime_type
    try:
        response = client.models.generate_content(
            model=model,
            contents=build_contents(prompt_text, parts),
            config=types.GenerateContentConfig(**config_kwargs),
        )
    except Exception as exc:
        if logger is not None:
            logger.warning(f"Gemini call failed for model {model}: {exc}")
        if is_unavailable_error(exc):
            raise LLMUnavailableError('AI service is temporarily unavailable. Please try again later.') from exc
        raise LLMResponseError('AI service failed to generate a response.') from exc
    text = (getattr(response, 'text', '') or '').strip()
    if not text:
        raise LLMResponseError('AI service returned an empty response.')
    return text


def generate_json(client, model, prompt_text, **kwargs):
    kwargs.setdefault('response_mime_type', 'application/json')
    raw_text = generate_text(client, model, prompt_text, **kwargs)
    parsed = extract_json_payload(raw_text)
    if not isinstance(parsed, dict):
        raise LLMResponseError('AI service returned malformed structured output.')
    return parsed
