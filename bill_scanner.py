"""
AI bill scanning.
Extracts structured usage fields from a photographed electricity, LPG or
shopping bill with a Gemini multimodal call.
"""

import logging

from gemini_helper import get_model, parse_json_reply, GeminiNotConfigured

logger = logging.getLogger('relief.bills')

BILL_TYPES = ('electricity', 'lpg', 'shopping')
DEFAULT_CONFIDENCE = 0.9

EXTRACTION_PROMPT = """
You are a bill data extraction AI. Analyze this bill image carefully.
The document may be in English, Hindi, or Marathi.

{hint}

Return ONLY a valid JSON object (no markdown, no code blocks, no extra text).

The JSON MUST always include these fields:
- "bill_type": one of "electricity", "lpg", or "shopping" (required, always include this)
- "confidence": a number from 0.0 to 1.0 representing your extraction confidence

Additionally include these fields based on bill_type:
- If "electricity": "units_consumed" (number, kWh), "bill_date" (YYYY-MM-DD string), "bill_number" (string), "amount" (number in INR), "provider" (string)
- If "lpg": "cylinder_weight" (number in kg), "refill_date" (YYYY-MM-DD string), "provider" (string), "total_amount" (number in INR)
- If "shopping": "total_amount" (number in INR), "purchase_date" (YYYY-MM-DD string), "item_count" (number)

IMPORTANT: For electricity bills, "units_consumed" must be the kWh reading (e.g. 120), NOT the bill amount in rupees.
If you cannot find units_consumed for electricity, set it to null and include "amount" (total bill amount in INR) instead.

Example for electricity:
{{"bill_type":"electricity","units_consumed":120,"bill_date":"2024-01-15","bill_number":"EL123","amount":960,"provider":"MSEB","confidence":0.95}}
"""


def build_prompt(bill_type_hint=None):
    if bill_type_hint:
        hint = f'The user has indicated this is a "{bill_type_hint}" bill. Use this as a strong hint.'
    else:
        hint = 'Identify the bill type from the image content.'
    return EXTRACTION_PROMPT.format(hint=hint)


def _failure(message):
    return {
        'success': False,
        'bill_type': 'unknown',
        'fields': {},
        'confidence': 0,
        'message': message,
    }


def scan_bill(image_bytes, mime_type, bill_type_hint=None):
    """
    Send a bill image to Gemini and parse the extracted fields.

    Args:
        image_bytes: raw image bytes
        mime_type: e.g. image/jpeg
        bill_type_hint: optional type chosen by the user

    Returns:
        dict with success, bill_type, fields, confidence and message
    """
    try:
        model = get_model()
        response = model.generate_content([
            build_prompt(bill_type_hint),
            {'mime_type': mime_type, 'data': image_bytes},
        ])
        text = response.text
    except GeminiNotConfigured as e:
        return _failure(str(e))
    except Exception as e:
        logger.error(f'Gemini scan error: {e}')
        return _failure(str(e) or 'An error occurred during AI scanning.')

    try:
        data = parse_json_reply(text)
    except ValueError:
        logger.error(f'Failed to parse Gemini response as JSON: {text[:200]}')
        return _failure('Failed to parse AI response. The document might be unclear.')

    if not isinstance(data, dict):
        return _failure('Failed to parse AI response. The document might be unclear.')

    return {
        'success': True,
        'bill_type': data.get('bill_type') or bill_type_hint or 'unknown',
        'fields': data,
        'confidence': data.get('confidence') or DEFAULT_CONFIDENCE,
        'message': 'Successfully extracted data using Gemini.',
    }


def detect_bill_type(raw_type, hint, fields):
    """Pick the bill type: the model's own answer, then the user's hint, then the fields present."""
    raw_type = (raw_type or '').lower()
    if raw_type and raw_type != 'unknown':
        return raw_type
    if hint:
        return hint
    fields = fields or {}
    if fields.get('units_consumed') is not None:
        return 'electricity'
    if fields.get('cylinder_weight') is not None:
        return 'lpg'
    if 'total_amount' in fields:
        return 'shopping'
    return 'unknown'
