"""Unit tests for the Google streaming recognizer with mocked clients."""

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions

from dashnotes.errors import RecognitionError
from dashnotes.models.audio import AudioFormat
from dashnotes.transcription.base import AuthorizationStatus, BufferedRecognitionRequest
from dashnotes.transcription.google_backend import GoogleStreamingRecognizer, GoogleRecognitionTask


def make_response(*results):
    return SimpleNamespace(results=[
        SimpleNamespace(is_final=is_final,
                        alternatives=[SimpleNamespace(transcript=text, confidence=0.9 if is_final else 0.0)])
        for text, is_final in results
    ])


class Collector:
    def __init__(self):
        self.results = []
        self.errors = []

    def __call__(self, result, error):
        if error is not None:
            self.errors.append(error)
        else:
            self.results.append(result)


def run_task(responses=None, side_effect=None, end_audio=True):
    client = Mock()
    if side_effect is not None:
        client.streaming_recognize.side_effect = side_effect
    else:
        client.streaming_recognize.return_value = iter(responses or [])
    request = BufferedRecognitionRequest()
    if end_audio:
        request.end_audio()
    collector = Collector()
    task = GoogleRecognitionTask(client, Mock(), request, collector, language="fr-FR")
    task.start()
    task.thread.join(timeout=2.0)
    return task, collector


@pytest.mark.unit
class TestAuthorization:

    def test_no_credentials_configured(self):
        recognizer = GoogleStreamingRecognizer(credentials_path=None)

        assert recognizer.request_authorization() is AuthorizationStatus.NOT_DETERMINED
        assert recognizer.is_available() is False

    def test_missing_credentials_file(self, temp_data_dir):
        recognizer = GoogleStreamingRecognizer(credentials_path=f"{temp_data_dir}/missing.json")

        assert recognizer.request_authorization() is AuthorizationStatus.DENIED

    def test_rejected_credentials(self, temp_data_dir):
        path = f"{temp_data_dir}/creds.json"
        with open(path, 'w') as f:
            f.write("{}")
        recognizer = GoogleStreamingRecognizer(credentials_path=path)

        with patch("dashnotes.transcription.google_backend.service_account.Credentials.from_service_account_file",
                   side_effect=ValueError("Service account info was not in the expected format")):
            assert recognizer.request_authorization() is AuthorizationStatus.RESTRICTED
        assert recognizer.is_available() is False

    def test_authorized(self, temp_data_dir):
        path = f"{temp_data_dir}/creds.json"
        with open(path, 'w') as f:
            f.write("{}")
        recognizer = GoogleStreamingRecognizer(credentials_path=path)

        with patch("dashnotes.transcription.google_backend.service_account.Credentials.from_service_account_file",
                   return_value=Mock(project_id="demo-project")), \
                patch("dashnotes.transcription.google_backend.speech.SpeechClient") as client_class:
            assert recognizer.request_authorization() is AuthorizationStatus.AUTHORIZED

        client_class.assert_called_once()
        assert recognizer.is_available() is True
        assert recognizer.project_id == "demo-project"

        recognizer.cleanup()
        assert recognizer.is_available() is False


@pytest.mark.unit
class TestStreamingConfig:

    def test_config_uses_negotiated_format(self):
        recognizer = GoogleStreamingRecognizer(language="fr-FR", interim_results=True)

        streaming_config = recognizer.build_streaming_config(AudioFormat(sample_rate=44100.0, channels=1))

        assert streaming_config.interim_results is True
        assert streaming_config.config.sample_rate_hertz == 44100
        assert streaming_config.config.audio_channel_count == 1
        assert streaming_config.config.language_code == "fr-FR"

    def test_task_requires_authorization(self):
        recognizer = GoogleStreamingRecognizer()

        with pytest.raises(RuntimeError):
            recognizer.recognition_task(BufferedRecognitionRequest(), AudioFormat(16000, 1), Mock())


@pytest.mark.unit
class TestRecognitionTask:

    def test_hypotheses_are_full_revisions(self):
        _, collector = run_task([
            make_response(("bon", False)),
            make_response(("bonjour tout", False)),
            make_response(("bonjour tout le monde.", True)),
            make_response(("ça va", False)),
        ])

        assert [r.text for r in collector.results] == [
            "bon",
            "bonjour tout",
            "bonjour tout le monde.",
            "bonjour tout le monde. ça va",
        ]
        assert [r.is_final for r in collector.results] == [False, False, True, False]
        assert collector.errors == []

    def test_empty_responses_are_skipped(self):
        _, collector = run_task([make_response(), make_response(("", False))])

        assert collector.results == []
        assert collector.errors == []

    def test_api_error_reported_once(self):
        _, collector = run_task(side_effect=gax_exceptions.ServiceUnavailable("backend down"))

        assert collector.results == []
        assert len(collector.errors) == 1
        assert isinstance(collector.errors[0], RecognitionError)
        assert "backend down" in collector.errors[0].message

    def test_credential_refresh_failure_is_reported(self):
        _, collector = run_task(side_effect=auth_exceptions.RefreshError("token expired"))

        assert collector.results == []
        assert len(collector.errors) == 1
        assert "token expired" in collector.errors[0].message

    def test_retry_exhaustion_is_reported(self):
        _, collector = run_task(side_effect=gax_exceptions.RetryError("deadline exceeded", None))

        assert len(collector.errors) == 1
        assert isinstance(collector.errors[0], RecognitionError)

    def test_unexpected_stream_failure_is_reported(self):
        _, collector = run_task(side_effect=RuntimeError("socket closed"))

        assert len(collector.errors) == 1
        assert "socket closed" in collector.errors[0].message

    def test_stream_ending_before_end_audio_is_an_error(self):
        _, collector = run_task([], end_audio=False)

        assert len(collector.errors) == 1
        assert "ended unexpectedly" in collector.errors[0].message

    def test_no_callbacks_after_cancel(self):
        collector = Collector()
        request = BufferedRecognitionRequest()
        task = GoogleRecognitionTask(Mock(), Mock(), request, collector, language="fr-FR")
        responses = MagicMock()
        task._responses = responses

        task.cancel()
        task._handle_response(make_response(("late", False)))
        task.cancel()

        assert task.is_cancelled
        assert request.is_ended
        responses.cancel.assert_called_once()
        assert collector.results == []
