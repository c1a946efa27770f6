"""
Gemini Integration Helper
Shared configuration and response parsing for bill scanning and the assistant
"""

import os
import json
import logging

import google.generativeai as genai

logger = logging.getLogger('relief.gemini')

DEFAULT_MODEL = 'gemini-2.0-flash-lite'


class GeminiNotConfigured(Exception):
    pass


def get_api_key():
    """GEMINI_API_KEY, falling back to GOOGLE_GEMINI_API_KEY."""
    return (os.environ.get('GEMINI_API_KEY') or os.environ.get('GOOGLE_GEMINI_API_KEY') or '').strip()


def init_gemini():
    """Configure the SDK from the environment. Returns True when a key is present."""
    api_key = get_api_key()
    if not api_key:
        logger.warning('Gemini not configured - bill scanning and AI chat will be disabled')
        return False
    genai.configure(api_key=api_key)
    logger.info('Gemini configured')
    return True


def get_model(system_instruction=None):
    """
    Build a GenerativeModel for the configured model name.

    Args:
        system_instruction: Optional system prompt for chat models

    Returns:
        genai.GenerativeModel

    Raises:
        GeminiNotConfigured: if no API key is set
    """
    api_key = get_api_key()
    if not api_key:
        raise GeminiNotConfigured('Gemini API key is not configured')
    genai.configure(api_key=api_key)
    model_name = os.environ.get('GEMINI_MODEL', DEFAULT_MODEL)
    if system_instruction:
        return genai.GenerativeModel(model_name, system_instruction=system_instruction)
    return genai.GenerativeModel(model_name)


def strip_code_fences(text):
    """Remove a surrounding ```json ... ``` fence from a model reply."""
    text = (text or '').strip()
    if text.startswith('```json'):
        text = text[len('```json'):]
    elif text.startswith('```'):
        text = text[3:]
    if text.endswith('```'):
        text = text[:-3]
    return text.strip()


def parse_json_reply(text):
    """Parse a model reply as JSON. Raises ValueError when it is not valid JSON."""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f'Model reply is not valid JSON: {e}') from e
