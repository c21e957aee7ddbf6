"""
Tests for the Discord webhook dispatcher.
"""

from unittest.mock import Mock, patch

import pytest
import requests
from factories import WEBHOOK_URL

from hukd_notifier.components.message_dispatcher import (
    DiscordWebhookDispatcher,
    redact_webhook_url,
)

PAYLOAD = {"content": "🆕 **power bank**", "embeds": [{"title": "Anker"}]}


def _response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.raise_for_status.return_value = None
    response.json.return_value = json_data
    return response


class TestSendPayload:
    """Test cases for posting webhook payloads."""

    def setup_method(self):
        self.dispatcher = DiscordWebhookDispatcher(max_retries=3, retry_delay=1.0)

    def test_create_session(self):
        adapter = self.dispatcher.session.get_adapter("https://discord.com")

        assert adapter.max_retries.total == 3
        assert 429 in adapter.max_retries.status_forcelist

    @patch("requests.Session.post")
    def test_send_success_first_attempt(self, mock_post):
        mock_post.return_value = _response(204)

        result = self.dispatcher.send_payload(WEBHOOK_URL, PAYLOAD)

        assert result.success is True
        assert result.error_message is None
        mock_post.assert_called_once()
        assert mock_post.call_args[0][0] == WEBHOOK_URL
        assert mock_post.call_args[1]["json"] == PAYLOAD
        assert mock_post.call_args[1]["timeout"] == 30

    @patch("hukd_notifier.components.message_dispatcher.time.sleep")
    @patch("requests.Session.post")
    def test_send_success_after_retries(self, mock_post, mock_sleep):
        mock_post.side_effect = [
            requests.exceptions.ConnectionError("reset"),
            _response(204),
        ]

        result = self.dispatcher.send_payload(WEBHOOK_URL, PAYLOAD)

        assert result.success is True
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    @patch("hukd_notifier.components.message_dispatcher.time.sleep")
    @patch("requests.Session.post")
    def test_send_failure_all_attempts(self, mock_post, mock_sleep):
        mock_post.side_effect = requests.exceptions.HTTPError("400 Bad Request")

        result = self.dispatcher.send_payload(WEBHOOK_URL, PAYLOAD)

        assert result.success is False
        assert result.error_message == (
            "Failed after 4 attempts. Last error: 400 Bad Request"
        )
        assert mock_post.call_count == 4
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]

    @patch("hukd_notifier.components.message_dispatcher.time.sleep")
    @patch("requests.Session.post")
    def test_long_errors_are_truncated(self, mock_post, mock_sleep):
        mock_post.side_effect = requests.exceptions.HTTPError("x" * 1000)

        result = self.dispatcher.send_payload(WEBHOOK_URL, PAYLOAD)

        assert len(result.error_message) == 500
        result.validate()


class TestValidateWebhook:
    """Test cases for webhook validation."""

    def setup_method(self):
        self.dispatcher = DiscordWebhookDispatcher()

    @patch("requests.get")
    def test_invalid_format_not_requested(self, mock_get):
        result = self.dispatcher.validate_webhook("https://example.com/hook")

        assert result.valid is False
        assert result.error == "Invalid Discord webhook URL format"
        mock_get.assert_not_called()

    @patch("requests.get")
    def test_valid_webhook(self, mock_get):
        mock_get.return_value = _response(
            200, {"id": "1", "channel_id": "2", "name": "Deals bot"}
        )

        result = self.dispatcher.validate_webhook(WEBHOOK_URL)

        assert result.valid is True
        assert result.webhook_name == "Deals bot"
        mock_get.assert_called_once_with(WEBHOOK_URL, timeout=10)

    @patch("requests.get")
    def test_unnamed_webhook(self, mock_get):
        mock_get.return_value = _response(200, {"id": "1", "channel_id": "2"})

        assert self.dispatcher.validate_webhook(WEBHOOK_URL).webhook_name == (
            "Unnamed webhook"
        )

    @pytest.mark.parametrize(
        "status_code,error",
        [
            (404, "Webhook not found. It may have been deleted."),
            (401, "Webhook URL is invalid or malformed."),
            (500, "Discord API error: 500"),
        ],
    )
    @patch("requests.get")
    def test_error_statuses(self, mock_get, status_code, error):
        mock_get.return_value = _response(status_code)

        result = self.dispatcher.validate_webhook(WEBHOOK_URL)

        assert result.valid is False
        assert result.error == error

    @patch("requests.get")
    def test_unexpected_body(self, mock_get):
        response = _response(200)
        response.json.side_effect = ValueError("no json")
        mock_get.return_value = response

        result = self.dispatcher.validate_webhook(WEBHOOK_URL)

        assert result.error == "Unexpected response from Discord"

    @patch("requests.get")
    def test_connection_failure(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectTimeout("timed out")

        result = self.dispatcher.validate_webhook(WEBHOOK_URL)

        assert result.error == "Failed to connect to Discord. Please try again."


def test_redact_webhook_url():
    redacted = redact_webhook_url(WEBHOOK_URL)

    assert redacted == WEBHOOK_URL[:50] + "..."
    assert "TOKEN" not in redacted
