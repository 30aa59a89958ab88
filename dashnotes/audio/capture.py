"""Audio engine: microphone input stream with a single tap for captured chunks."""

import pyaudio
import time
import logging
import threading
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime
import numpy as np

from ..errors import EngineStartError
from ..models.audio import AudioFormat, AudioStats
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)

TapCallback = Callable[[AudioEvent], None]


class AudioEngine:
    """Continuous microphone capture that forwards every chunk to an installed tap.

    The tap callback runs on the capture thread, never on the caller's thread.
    """

    def __init__(
        self,
        chunk_size: int = 1024,
        input_device_index: Optional[int] = None,
        format: int = pyaudio.paInt16,
    ):
        """Initialize the audio engine.

        Args:
            chunk_size: Size of each audio chunk in frames
            input_device_index: PyAudio device index, or None for the default input
            format: Sample format (16-bit signed int)
        """
        self.chunk_size = chunk_size
        self.input_device_index = input_device_index
        self.format = format

        # Tap slot
        self._tap: Optional[TapCallback] = None
        self._tap_format: Optional[AudioFormat] = None
        self._tap_lock = threading.Lock()

        # Capture thread management
        self.capture_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_running = False
        self._stream = None

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.peak_level = 0.0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    def _audio(self) -> pyaudio.PyAudio:
        if self.pyaudio_instance is None:
            self.pyaudio_instance = pyaudio.PyAudio()
        return self.pyaudio_instance

    def input_format(self) -> AudioFormat:
        """Query the negotiated format of the input device.

        Returns a zero format when no input device can be queried; callers
        must treat that as unusable hardware state.
        """
        try:
            audio = self._audio()
            if self.input_device_index is None:
                info = audio.get_default_input_device_info()
            else:
                info = audio.get_device_info_by_index(self.input_device_index)
        except (OSError, IOError) as e:
            logger.error(f"Could not query audio input device: {e}")
            return AudioFormat(sample_rate=0, channels=0)

        sample_rate = float(info.get('defaultSampleRate', 0) or 0)
        max_channels = int(info.get('maxInputChannels', 0) or 0)
        # Recognition runs on mono audio
        fmt = AudioFormat(sample_rate=sample_rate, channels=min(max_channels, 1))
        logger.debug(f"Input device '{info.get('name')}' negotiated {fmt}")
        return fmt

    @property
    def has_tap(self) -> bool:
        return self._tap is not None

    def install_tap(self, callback: TapCallback, audio_format: AudioFormat) -> None:
        """Install the tap that receives every captured chunk."""
        with self._tap_lock:
            if self._tap is not None:
                raise RuntimeError("A tap is already installed on the audio input")
            self._tap = callback
            self._tap_format = audio_format
        logger.debug(f"Tap installed ({audio_format.sample_rate:.0f}Hz, {audio_format.channels}ch)")

    def remove_tap(self) -> None:
        """Remove the tap. Safe to call when none is installed."""
        with self._tap_lock:
            removed = self._tap is not None
            self._tap = None
            self._tap_format = None
        if removed:
            logger.debug("Tap removed")

    def start(self) -> None:
        """Open the input stream and start capturing in a background thread.

        Raises:
            EngineStartError: if the stream cannot be opened
        """
        if self.is_running:
            logger.warning("Audio engine already running")
            return

        fmt = self._tap_format or self.input_format()
        try:
            self._stream = self.__open_audio_stream(fmt)
        except (OSError, IOError, ValueError) as e:
            logger.error(f"Audio engine couldn't start: {e}")
            raise EngineStartError(f"Audio engine couldn't start: {e}") from e

        logger.info("Starting audio engine")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0
        self.peak_level = 0.0

        self.capture_thread = Thread(target=self._capture_continuously, args=(fmt,), daemon=True)
        self.capture_thread.name = "AudioCaptureThread"
        self.capture_thread.start()
        self.is_running = True

    def stop(self) -> None:
        """Stop capturing and close the stream. Safe to call when not running."""
        if not self.is_running:
            logger.debug("Audio engine not running")
            return

        logger.info("Stopping audio engine")
        self.stop_event.set()

        if self.capture_thread and self.capture_thread.is_alive() \
                and self.capture_thread is not threading.current_thread():
            self.capture_thread.join(timeout=2.0)
            if self.capture_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        self.is_running = False
        logger.info(f"Audio engine stopped. Total chunks: {self.total_chunks}")

    def terminate(self) -> None:
        """Release PyAudio. The engine can not be restarted afterwards."""
        self.stop()
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def __open_audio_stream(self, fmt: AudioFormat):
        stream = self._audio().open(
            format=self.format,
            channels=fmt.channels,
            rate=int(fmt.sample_rate),
            input=True,
            input_device_index=self.input_device_index,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {fmt.sample_rate:.0f}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream

    def _capture_continuously(self, fmt: AudioFormat) -> None:
        """Internal method: capture loop in background thread."""
        stream = self._stream
        try:
            while not self.stop_event.is_set():
                audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
                self.total_chunks += 1
                self.__forward_to_tap(audio_chunk, fmt)
        except (OSError, IOError) as e:
            logger.error(f"Audio capture failed: {e}")
        finally:
            stream.stop_stream()
            stream.close()
            self._stream = None

    def __forward_to_tap(self, audio_chunk: bytes, fmt: AudioFormat) -> None:
        samples = np.frombuffer(audio_chunk, dtype=np.int16)
        peak = float(np.abs(samples.astype(np.int32)).max()) / 32768.0 if samples.size else 0.0
        self.peak_level = peak

        with self._tap_lock:
            tap = self._tap
        if tap is None:
            return

        tap(AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=int(fmt.sample_rate),
            channels=fmt.channels,
            peak_level=peak,
        ))

    def get_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time and self.is_running:
            duration = (datetime.now() - self.start_time).total_seconds()

        fmt = self._tap_format or AudioFormat(sample_rate=0, channels=0)
        return AudioStats(
            is_running=self.is_running,
            duration_seconds=duration,
            sample_rate=fmt.sample_rate,
            channels=fmt.channels,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )
