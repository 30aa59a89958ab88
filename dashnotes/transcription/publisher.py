"""Transcript publisher module for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.ui import CaptureStatus

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "capture.transcript"
STATE_TOPIC = "capture.state"


class TranscriptPublisher:
    """Publishes the transcript and controller state using pubsub.pub."""

    def __init__(self, transcript_topic: str = TRANSCRIPT_TOPIC, state_topic: str = STATE_TOPIC):
        """Initialize transcript publisher.

        Args:
            transcript_topic: Topic receiving ``text=<str>`` on every transcript change
            state_topic: Topic receiving ``status=<CaptureStatus>`` on every state change
        """
        self.transcript_topic = transcript_topic
        self.state_topic = state_topic
        logger.info(f"TranscriptPublisher initialized with topics: {transcript_topic}, {state_topic}")

    def publish_transcript(self, text: str) -> None:
        pub.sendMessage(self.transcript_topic, text=text)

    def publish_status(self, status: CaptureStatus) -> None:
        pub.sendMessage(self.state_topic, status=status)
        logger.debug(f"Published state: {status.state.value}")
