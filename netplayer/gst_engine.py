"""GStreamer-backed audio engine.

Every loaded track gets its own ``playbin`` element, so releasing a
track tears down its whole pipeline. There is no GLib main loop in the
daemon: end-of-stream and error messages are drained from the pipeline
bus whenever the stream state is queried.
"""

import os
from typing import Optional, Set

import gi
gi.require_version('Gst', '1.0')
from gi.repository import Gst

from netplayer.engine import AudioEngine, ChannelState
from netplayer.logging import get_logger
from netplayer.metadata import read_duration

logger = get_logger(__name__)


# GStreamer playbin flags
GST_FLAG_AUDIO = 0x02
GST_FLAG_SOFT_VOLUME = 0x10

# Seconds to wait for a pipeline to reach its target state
STATE_CHANGE_TIMEOUT = 5


class GstStream:
    """One loaded track: its playbin plus what the bus has told us about it."""

    def __init__(self, path: str, playbin: Gst.Element):
        self.path = path
        self.playbin = playbin
        self.finished = False
        self.released = False
        self._tag_duration: Optional[float] = None

    @property
    def tag_duration(self) -> float:
        if self._tag_duration is None:
            self._tag_duration = read_duration(self.path) or 0.0
        return self._tag_duration

    def __repr__(self) -> str:
        return f"GstStream({self.path!r})"


class GstEngine(AudioEngine):
    """AudioEngine implementation on top of GStreamer's playbin."""

    def __init__(self, audio_sink: str = "autoaudiosink"):
        self.audio_sink = audio_sink
        self._streams: Set[GstStream] = set()

    def init(self) -> bool:
        if not Gst.is_initialized():
            Gst.init(None)

        for factory in ("playbin", self.audio_sink):
            if Gst.ElementFactory.find(factory) is None:
                logger.error("GStreamer element '%s' is not available", factory)
                return False
        logger.debug("GStreamer %s initialized", Gst.version_string())
        return True

    def load_track(self, path: str) -> Optional[GstStream]:
        if not os.path.exists(path):
            logger.error("File not found: %s", path)
            return None

        playbin = Gst.ElementFactory.make("playbin", None)
        if not playbin:
            logger.error("Failed to create GStreamer playbin")
            return None

        try:
            # Audio + Soft Volume (no video)
            playbin.set_property("flags", GST_FLAG_AUDIO | GST_FLAG_SOFT_VOLUME)
        except (AttributeError, TypeError):
            pass

        audio_sink = Gst.ElementFactory.make(self.audio_sink, None)
        if audio_sink:
            playbin.set_property("audio-sink", audio_sink)

        playbin.set_property("uri", Gst.filename_to_uri(os.path.abspath(path)))

        # Preroll so decoding errors surface here rather than on start
        ret = playbin.set_state(Gst.State.PAUSED)
        if ret != Gst.StateChangeReturn.FAILURE:
            ret, _, _ = playbin.get_state(STATE_CHANGE_TIMEOUT * Gst.SECOND)
        if ret == Gst.StateChangeReturn.FAILURE:
            logger.error("Failed to load track: %s", path)
            self._log_bus_errors(playbin)
            playbin.set_state(Gst.State.NULL)
            return None

        stream = GstStream(path, playbin)
        self._streams.add(stream)
        return stream

    def start(self, handle: GstStream) -> bool:
        ret = handle.playbin.set_state(Gst.State.PLAYING)
        if ret == Gst.StateChangeReturn.FAILURE:
            logger.error("Failed to start playback: %s", handle.path)
            return False
        ret, _, _ = handle.playbin.get_state(STATE_CHANGE_TIMEOUT * Gst.SECOND)
        return ret != Gst.StateChangeReturn.FAILURE

    def pause(self, handle: GstStream) -> None:
        handle.playbin.set_state(Gst.State.PAUSED)
        handle.playbin.get_state(STATE_CHANGE_TIMEOUT * Gst.SECOND)

    def stop(self, handle: GstStream) -> None:
        handle.playbin.set_state(Gst.State.READY)

    def is_active(self, handle: GstStream) -> ChannelState:
        if handle.released:
            return ChannelState.STOPPED

        self._drain_bus(handle)
        if handle.finished:
            return ChannelState.STOPPED

        _, current, pending = handle.playbin.get_state(0)
        if current == Gst.State.PLAYING:
            return ChannelState.PLAYING
        if current == Gst.State.PAUSED:
            if pending == Gst.State.PLAYING:
                return ChannelState.STALLED
            return ChannelState.PAUSED
        return ChannelState.STOPPED

    def release(self, handle: GstStream) -> None:
        if handle.released:
            return
        handle.playbin.set_state(Gst.State.NULL)
        handle.released = True
        self._streams.discard(handle)

    def position_seconds(self, handle: GstStream) -> float:
        success, position = handle.playbin.query_position(Gst.Format.TIME)
        if success:
            return position / Gst.SECOND
        return 0.0

    def seek_seconds(self, handle: GstStream, seconds: float) -> bool:
        seconds = max(0.0, seconds)
        success = handle.playbin.seek_simple(
            Gst.Format.TIME,
            Gst.SeekFlags.FLUSH | Gst.SeekFlags.KEY_UNIT,
            int(seconds * Gst.SECOND),
        )
        if not success:
            logger.warning("Seek failed for position %.2fs", seconds)
        return bool(success)

    def length_seconds(self, handle: GstStream) -> float:
        success, duration = handle.playbin.query_duration(Gst.Format.TIME)
        if success and duration > 0:
            return duration / Gst.SECOND
        # Duration is not always known right after preroll
        return handle.tag_duration

    def get_volume(self, handle: GstStream) -> float:
        return float(handle.playbin.get_property("volume"))

    def set_volume(self, handle: GstStream, volume: float) -> None:
        handle.playbin.set_property("volume", volume)

    def shutdown(self) -> None:
        for stream in list(self._streams):
            self.release(stream)
        logger.debug("GStreamer engine shut down")

    def _drain_bus(self, handle: GstStream) -> None:
        """Consume pending EOS/ERROR messages and mark the stream finished."""
        bus = handle.playbin.get_bus()
        if bus is None:
            return
        while True:
            message = bus.pop_filtered(Gst.MessageType.EOS | Gst.MessageType.ERROR)
            if message is None:
                break
            if message.type == Gst.MessageType.ERROR:
                err, debug = message.parse_error()
                logger.error("Playback error in %s: %s", handle.path, err.message)
                if debug:
                    logger.debug("GStreamer debug: %s", debug)
            handle.finished = True

    def _log_bus_errors(self, playbin: Gst.Element) -> None:
        bus = playbin.get_bus()
        if bus is None:
            return
        message = bus.pop_filtered(Gst.MessageType.ERROR)
        if message is not None:
            err, debug = message.parse_error()
            logger.warning("GStreamer error: %s", err.message)
            if debug:
                logger.debug("GStreamer debug: %s", debug)
