from unittest.mock import MagicMock, Mock, patch

import pytest

from sellify.services.alert_service import (
    AlertDetector,
    AlertSender,
    Trigger,
    TriggerKind,
    sentiment_for_trigger,
)


@pytest.fixture
def detector():
    return AlertDetector(sensitive_words=["remboursement"])


class TestDetectTrigger:
    def test_legal_trigger(self, detector):
        assert detector.detect_trigger("Je vais contacter mon avocat") == Trigger(TriggerKind.LEGAL_SITUATION)

    def test_threat_trigger(self, detector):
        assert detector.detect_trigger("Je vais te frapper") == Trigger(TriggerKind.THREAT)

    def test_case_insensitive(self, detector):
        assert detector.detect_trigger("J'appelle la POLICE").kind == TriggerKind.LEGAL_SITUATION

    def test_legal_wins_over_threat(self, detector):
        trigger = detector.detect_trigger("Je vais te frapper et voir mon avocat")
        assert trigger.kind == TriggerKind.LEGAL_SITUATION

    def test_anger_trigger(self, detector):
        assert detector.detect_trigger("C'est une arnaque").kind == TriggerKind.ANGER

    def test_sensitive_word_carries_word(self, detector):
        trigger = detector.detect_trigger("Je veux un Remboursement")
        assert trigger == Trigger(TriggerKind.SENSITIVE_WORD, word="remboursement")
        assert trigger.describe() == "SensitiveWord(remboursement)"

    def test_repeated_misunderstanding(self, detector):
        assert detector.detect_trigger("Quoi ?", misunderstanding_count=2) is None
        trigger = detector.detect_trigger("Quoi ?", misunderstanding_count=3)
        assert trigger.kind == TriggerKind.REPEATED_MISUNDERSTANDING

    def test_no_trigger_on_normal_message(self, detector):
        assert detector.detect_trigger("Bonjour, je voudrais des informations") is None

    def test_empty_message(self, detector):
        assert detector.detect_trigger("") is None


class TestSentimentForTrigger:
    def test_mapping(self):
        assert sentiment_for_trigger(Trigger(TriggerKind.THREAT)) == "threat"
        assert sentiment_for_trigger(Trigger(TriggerKind.LEGAL_SITUATION)) == "threat"
        assert sentiment_for_trigger(Trigger(TriggerKind.ANGER)) == "anger"
        assert sentiment_for_trigger(Trigger(TriggerKind.SENSITIVE_WORD, "x")) is None
        assert sentiment_for_trigger(None) is None


class TestAlertSender:
    def test_returns_false_when_not_configured(self):
        assert AlertSender(None, None).send_alert("Threat", "conv-001") is False

    @patch("sellify.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 200
        mock_client.post.return_value = mock_response

        result = AlertSender("test-token", "test-chat").send_trigger(Trigger(TriggerKind.THREAT), "conv-001")

        assert result is True
        call_args = mock_client.post.call_args
        assert "api.telegram.org/bottest-token" in call_args[0][0]
        json_data = call_args[1]["json"]
        assert json_data["chat_id"] == "test-chat"
        assert "conv-001" in json_data["text"]
        assert "Threat" in json_data["text"]

    @patch("sellify.services.alert_service.httpx.Client")
    def test_includes_context(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=200)

        AlertSender("t", "c").send_alert("Anger", "conv-1", {"tenant_id": "shop-42"})

        text = mock_client.post.call_args[1]["json"]["text"]
        assert "tenant_id" in text
        assert "shop-42" in text

    @patch("sellify.services.alert_service.httpx.Client")
    def test_trigger_alert_carries_context(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=200)

        trigger = Trigger(TriggerKind.SENSITIVE_WORD, word="avocat")
        AlertSender("t", "c").send_trigger(trigger, "conv-1", {"tenant_id": "shop-42"})

        text = mock_client.post.call_args[1]["json"]["text"]
        assert "SensitiveWord(avocat)" in text
        assert "shop-42" in text

    @patch("sellify.services.alert_service.httpx.Client")
    def test_returns_false_on_telegram_error(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=400)

        assert AlertSender("t", "c").send_alert("Threat", "conv-1") is False

    @patch("sellify.services.alert_service.httpx.Client")
    def test_returns_false_on_exception(self, mock_client_class):
        mock_client_class.return_value.__enter__.side_effect = Exception("Network error")

        assert AlertSender("t", "c").send_alert("Threat", "conv-1") is False
