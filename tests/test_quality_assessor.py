"""Tests for the Gemini-backed quality assessment."""

from types import SimpleNamespace
from unittest.mock import MagicMock

from quality_assessor import (
    QualityAssessor, MISSING_KEY_MESSAGE, UNAVAILABLE_MESSAGE, EMPTY_RESPONSE_MESSAGE,
)


def _client(text="Strong fibre with good spinning potential."):
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(text=text)
    return client


class TestQualityAssessor:

    def test_returns_model_text(self):
        client = _client("  Strong fibre.  ")
        assessor = QualityAssessor(api_key="key", model="gemini-test", client=client)

        assert assessor.assess("4.2", "29.5", {'Mic': '4.2'}) == "Strong fibre."

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs['model'] == "gemini-test"
        assert "Micronaire: 4.2" in kwargs['contents']
        assert "Strength: 29.5" in kwargs['contents']
        assert kwargs['config'].temperature == 0.3
        assert kwargs['config'].max_output_tokens == 300

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert QualityAssessor().assess("4.2", "N/A", {}) == MISSING_KEY_MESSAGE

    def test_api_failure_degrades_to_message(self):
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError("quota exceeded")
        assessor = QualityAssessor(api_key="key", client=client)

        assert assessor.assess("4.2", "29.5", {}) == UNAVAILABLE_MESSAGE

    def test_empty_response(self):
        assessor = QualityAssessor(api_key="key", client=_client(None))
        assert assessor.assess("4.2", "29.5", {}) == EMPTY_RESPONSE_MESSAGE

    def test_prompt_includes_other_values(self):
        prompt = QualityAssessor.build_prompt("4.2", "N/A", {'Grade': '31-1', 'Mic': '4.2'})
        assert '"Grade": "31-1"' in prompt
        assert "3-sentence" in prompt

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        assert QualityAssessor().api_key == "env-key"
