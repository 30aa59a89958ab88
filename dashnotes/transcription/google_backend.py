"""Google Speech-to-Text streaming recognizer."""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .base import (
    AbstractRecognitionTask,
    AbstractStreamingRecognizer,
    AuthorizationStatus,
    BufferedRecognitionRequest,
    RecognitionCallback,
)
from ..errors import RecognitionError
from ..models.audio import AudioFormat
from ..models.transcription import TranscriptionResult

from google.auth import exceptions as auth_exceptions
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

SERVICE_NAME = "Google Speech-to-Text"


class GoogleStreamingRecognizer(AbstractStreamingRecognizer):
    """Google Speech-to-Text streaming backend.

    Authorization maps onto the service account credentials: a loadable
    credentials file means authorized, a configured but missing file means
    denied, a file the auth library rejects means restricted, and no
    configured file at all means the user never set recognition up.
    """

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "fr-FR",
                 enable_automatic_punctuation: bool = True,
                 interim_results: bool = True):
        super().__init__(language)
        self.credentials_path = credentials_path
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.interim_results = interim_results
        self.client: Optional[speech.SpeechClient] = None
        self.project_id = None

    def request_authorization(self) -> AuthorizationStatus:
        if not self.credentials_path:
            logger.warning("No Google credentials configured")
            return AuthorizationStatus.NOT_DETERMINED

        if not Path(self.credentials_path).exists():
            logger.error(f"Google credentials file not found: {self.credentials_path}")
            return AuthorizationStatus.DENIED

        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        except (ValueError, KeyError, auth_exceptions.GoogleAuthError) as e:
            logger.error(f"Google credentials rejected: {e}")
            return AuthorizationStatus.RESTRICTED

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        return AuthorizationStatus.AUTHORIZED

    def is_available(self) -> bool:
        return self.client is not None

    def create_request(self) -> BufferedRecognitionRequest:
        return BufferedRecognitionRequest()

    def build_streaming_config(self, audio_format: AudioFormat) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=int(audio_format.sample_rate),
            audio_channel_count=audio_format.channels,
            language_code=self.language,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
        )
        return speech.StreamingRecognitionConfig(config=config, interim_results=self.interim_results)

    def recognition_task(self,
                         request: BufferedRecognitionRequest,
                         audio_format: AudioFormat,
                         callback: RecognitionCallback) -> "GoogleRecognitionTask":
        if self.client is None:
            raise RuntimeError("Recognizer is not authorized")
        task = GoogleRecognitionTask(
            client=self.client,
            streaming_config=self.build_streaming_config(audio_format),
            request=request,
            callback=callback,
            language=self.language,
        )
        task.start()
        return task

    def cleanup(self) -> None:
        self.client = None


class GoogleRecognitionTask(AbstractRecognitionTask):
    """Runs one ``streaming_recognize`` call on a worker thread.

    Google finalizes one utterance at a time; the task re-assembles the
    finalized utterances plus the current interim one so that every callback
    carries the full revised hypothesis for the session.
    """

    def __init__(self,
                 client: speech.SpeechClient,
                 streaming_config: speech.StreamingRecognitionConfig,
                 request: BufferedRecognitionRequest,
                 callback: RecognitionCallback,
                 language: str):
        self.client = client
        self.streaming_config = streaming_config
        self.request = request
        self.callback = callback
        self.language = language
        self._finalized: List[str] = []
        self._cancelled = threading.Event()
        self._responses = None
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = "GoogleRecognitionTask"
        self.thread.start()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self.request.end_audio()
        responses = self._responses
        if responses is not None and hasattr(responses, "cancel"):
            responses.cancel()
        logger.debug("Recognition task cancelled")

    def _emit(self, result: Optional[TranscriptionResult], error: Optional[Exception]) -> None:
        if self._cancelled.is_set():
            return
        self.callback(result, error)

    def _run(self) -> None:
        requests = (speech.StreamingRecognizeRequest(audio_content=chunk)
                    for chunk in self.request.chunks())
        try:
            self._responses = self.client.streaming_recognize(
                config=self.streaming_config, requests=requests)
            for response in self._responses:
                if self._cancelled.is_set():
                    break
                self._handle_response(response)
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Recognition error: {e}")
            self._emit(None, RecognitionError(f"Recognition error: {e.message or e}"))
            return
        except auth_exceptions.GoogleAuthError as e:
            logger.error(f"Recognition credentials error: {e}")
            self._emit(None, RecognitionError(f"Recognition error: {e}"))
            return
        except Exception as e:
            logger.exception("Recognition stream failed")
            self._emit(None, RecognitionError(f"Recognition error: {e}"))
            return

        if not self._cancelled.is_set() and not self.request.is_ended:
            self._emit(None, RecognitionError("Recognition stream ended unexpectedly"))

    def _handle_response(self, response) -> None:
        interim = []
        confidence = 0.0
        is_final = False
        for result in response.results:
            if not result.alternatives:
                continue
            alternative = result.alternatives[0]
            if result.is_final:
                self._finalized.append(alternative.transcript.strip())
                confidence = alternative.confidence
                is_final = True
            else:
                interim.append(alternative.transcript.strip())

        text = " ".join(part for part in self._finalized + interim if part)
        if not text:
            return
        logger.debug(f"Hypothesis: '{text}' (final={is_final})")
        self._emit(TranscriptionResult(
            text=text,
            confidence=confidence,
            is_final=is_final and not interim,
            service=SERVICE_NAME,
            language=self.language,
            timestamp=datetime.now(),
        ), None)
