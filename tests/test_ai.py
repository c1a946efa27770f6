"""Tests for bill scanning and the chat assistant with a stubbed Gemini model."""

from types import SimpleNamespace

import pytest

import assistant
import bill_scanner
from assistant import AssistantError, SYSTEM_PROMPT, build_history, chat
from bill_scanner import detect_bill_type, scan_bill
from gemini_helper import GeminiNotConfigured, get_model, parse_json_reply, strip_code_fences


class FakeModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.history = None

    def generate_content(self, parts):
        self.calls.append(parts)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.reply)

    def start_chat(self, history):
        self.history = history
        return self

    def send_message(self, message):
        return self.generate_content([message])


def not_configured():
    raise GeminiNotConfigured('Gemini API key is not configured')


class TestReplyParsing:
    """gemini_helper reply parsing"""

    def test_strips_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('```\n[1]\n```') == '[1]'

    def test_parse_json_reply(self):
        assert parse_json_reply('```json {"units_consumed": 120} ```') == {'units_consumed': 120}

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parse_json_reply('The bill shows 120 units')

    def test_get_model_requires_key(self, monkeypatch):
        monkeypatch.delenv('GEMINI_API_KEY', raising=False)
        monkeypatch.delenv('GOOGLE_GEMINI_API_KEY', raising=False)
        with pytest.raises(GeminiNotConfigured):
            get_model()


class TestScanBill:
    """bill_scanner.scan_bill"""

    def test_extracts_fields(self, monkeypatch):
        model = FakeModel('```json\n{"bill_type": "electricity", "units_consumed": 120, "confidence": 0.8}\n```')
        monkeypatch.setattr(bill_scanner, 'get_model', lambda: model)

        result = scan_bill(b'image', 'image/png', 'electricity')

        assert result['success']
        assert result['bill_type'] == 'electricity'
        assert result['fields']['units_consumed'] == 120
        assert result['confidence'] == 0.8
        prompt, image = model.calls[0]
        assert '"electricity" bill' in prompt
        assert image == {'mime_type': 'image/png', 'data': b'image'}

    def test_default_confidence(self, monkeypatch):
        monkeypatch.setattr(bill_scanner, 'get_model', lambda: FakeModel('{"total_amount": 450}'))
        result = scan_bill(b'image', 'image/jpeg', 'shopping')
        assert result['confidence'] == bill_scanner.DEFAULT_CONFIDENCE
        assert result['bill_type'] == 'shopping'

    def test_unparseable_reply(self, monkeypatch):
        monkeypatch.setattr(bill_scanner, 'get_model', lambda: FakeModel('I cannot read this image.'))
        result = scan_bill(b'image', 'image/png')
        assert not result['success']
        assert result['fields'] == {}

    def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(bill_scanner, 'get_model', not_configured)
        result = scan_bill(b'image', 'image/png')
        assert not result['success']
        assert 'not configured' in result['message']

    def test_model_error(self, monkeypatch):
        monkeypatch.setattr(bill_scanner, 'get_model', lambda: FakeModel(error=RuntimeError('boom')))
        assert scan_bill(b'image', 'image/png')['message'] == 'boom'

    @pytest.mark.parametrize('raw, hint, fields, expected', [
        ('LPG', None, {}, 'lpg'),
        ('unknown', 'shopping', {}, 'shopping'),
        (None, None, {'units_consumed': 10}, 'electricity'),
        (None, None, {'cylinder_weight': 14.2}, 'lpg'),
        (None, None, {'total_amount': 99}, 'shopping'),
        (None, None, {}, 'unknown'),
    ])
    def test_detect_bill_type(self, raw, hint, fields, expected):
        assert detect_bill_type(raw, hint, fields) == expected


class TestChat:
    """assistant.chat"""

    def test_history_starts_with_system_prompt(self):
        history = build_history([
            {'role': 'user', 'content': 'Hi'},
            {'role': 'assistant', 'content': 'Hello!'},
            {'role': 'user', 'content': ''},
        ])
        assert history[0] == {'role': 'user', 'parts': [SYSTEM_PROMPT]}
        assert history[1]['role'] == 'model'
        assert [h['role'] for h in history[2:]] == ['user', 'model']

    def test_reply(self, monkeypatch):
        model = FakeModel('Try the bill scanner.')
        monkeypatch.setattr(assistant, 'get_model', lambda: model)
        assert chat('How do I scan a bill?', [{'role': 'user', 'content': 'Hi'}]) == 'Try the bill scanner.'
        assert len(model.history) == 3

    def test_quota_error_is_429(self, monkeypatch):
        monkeypatch.setattr(assistant, 'get_model', lambda: FakeModel(error=RuntimeError('429 Quota exceeded')))
        with pytest.raises(AssistantError) as excinfo:
            chat('Hello')
        assert excinfo.value.status == 429

    def test_missing_key_is_500(self, monkeypatch):
        monkeypatch.setattr(assistant, 'get_model', not_configured)
        with pytest.raises(AssistantError) as excinfo:
            chat('Hello')
        assert excinfo.value.status == 500
