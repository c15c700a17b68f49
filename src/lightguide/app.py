"""Application context for the light guide."""

import logging
import threading
from typing import Optional

import mido

from lightguide.core import (
    Clock,
    NoteHistory,
    NoteTimingClassifier,
    ScheduledTask,
    StatisticsAggregator,
    SystemClock,
)
from lightguide.devices.linnstrument import DeviceStateSync, PadHighlighter
from lightguide.exceptions import ErrorContext, TransportUnavailableError
from lightguide.midi import (
    DeviceTransport,
    InstrumentTransport,
    MidiEvent,
    MidiInputManager,
    NoteOff,
    NoteOn,
    decode_message,
    name_filter,
)
from lightguide.models import AppConfig, GuideNoteOnset, PlayedNoteEvent
from lightguide.protocols import NoteObserver, NoteSource
from lightguide.utils import ObserverManager

logger = logging.getLogger(__name__)


class LightGuideApp:
    """
    Owns every component of a light guide session.

    Wiring:
    - Instrument note-ons are appended to the NoteHistory.
    - Guide note-ons light the note's pads and are classified against the
      history; results flow into the StatisticsAggregator.
    - DeviceStateSync polls the instrument layout and republishes the grid to
      the PadHighlighter.

    Components are created in __init__ and only touch MIDI ports in start(),
    so tests can pass their own clock, transport and guide input.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        clock: Optional[Clock] = None,
        transport: Optional[DeviceTransport] = None,
        guide_input: Optional[MidiInputManager] = None,
    ):
        """
        Args:
            config: Application configuration (loads default if None)
            clock: Time source (SystemClock if None)
            transport: Instrument connection (built from config if None)
            guide_input: Guide note input (built from config if None)
        """
        self.config = config or AppConfig.load_or_default()
        self.clock = clock or SystemClock()
        cfg = self.config

        self.history = NoteHistory()
        self.classifier = NoteTimingClassifier(
            self.history,
            self.clock,
            delayed_threshold=cfg.delayed_threshold,
            missed_threshold=cfg.missed_threshold,
        )
        self.statistics = StatisticsAggregator(
            self.history,
            self.clock,
            delayed_threshold=cfg.delayed_threshold,
            missed_threshold=cfg.missed_threshold,
            pause_threshold=cfg.playing_break_threshold,
        )
        self.classifier.register_observer(self.statistics)

        self.transport = transport or InstrumentTransport(
            cfg.instrument_input_port,
            cfg.instrument_output_port,
            poll_interval=cfg.midi_poll_interval,
            forward_ports=[p for p in (cfg.forward_port_1, cfg.forward_port_2) if p],
        )
        self.sync = DeviceStateSync(
            self.transport,
            self.clock,
            cfg.initial_layout(),
            channel=cfg.nrpn_channel,
            param_timeout=cfg.param_timeout,
            min_interval=cfg.update_state_interval,
            failure_penalty=cfg.sync_failure_penalty,
        )
        self.highlighter = PadHighlighter(
            self.transport,
            self.clock,
            self.sync.grid,
            channel=cfg.highlight_channel,
            fade_out_delay=cfg.fade_out_delay,
        )
        self.sync.register_observer(self.highlighter)

        self.guide_input = guide_input or MidiInputManager(
            name_filter(cfg.guide_input_port), cfg.midi_poll_interval, label="guide"
        )

        self._note_observers = ObserverManager[NoteObserver](observer_type_name="note")
        self._held_guide_notes: set[int] = set()
        self._guide_lock = threading.Lock()
        self._watchdog: Optional[ScheduledTask] = None
        self._stop_requested = threading.Event()
        self._is_running = False

    def register_note_observer(self, observer: NoteObserver) -> None:
        self._note_observers.register(observer)

    def unregister_note_observer(self, observer: NoteObserver) -> None:
        self._note_observers.unregister(observer)

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self) -> None:
        """Open the MIDI ports and start polling, highlighting and statistics."""
        if self._is_running:
            logger.warning("Light guide already running")
            return

        cfg = self.config
        self._stop_requested.clear()
        self.classifier.restart()

        self.transport.add_listener(self._on_instrument_event)
        self.guide_input.on_message(self._on_guide_message)
        with ErrorContext("open MIDI ports", logger):
            self.transport.start()
            self.guide_input.start()
        self._warn_degraded()

        self.highlighter.reset_grid()

        if cfg.layout_sync:
            self.sync.start_polling(cfg.update_state_interval)
        if cfg.guide_statistics:
            self._watchdog = self.statistics.start_watchdog(cfg.stats_check_interval)

        self._is_running = True
        logger.info("Light guide started")

    def stop(self) -> None:
        """Stop all tasks and close the MIDI ports."""
        if not self._is_running:
            return

        self._stop_requested.set()
        self.sync.stop_polling()
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

        self.classifier.shutdown(wait=True)
        self.guide_input.stop()
        self.transport.remove_listener(self._on_instrument_event)
        self.transport.stop()

        self._is_running = False
        logger.info("Light guide stopped")

    def run(self) -> None:
        """Start and block until stop() is called or the process is interrupted."""
        self.start()
        try:
            while not self._stop_requested.wait(0.5):
                pass
        finally:
            self.stop()

    def request_stop(self) -> None:
        """Make run() return; safe to call from any thread."""
        self._stop_requested.set()

    @property
    def is_running(self) -> bool:
        return self._is_running

    def _warn_degraded(self) -> None:
        cfg = self.config
        transport = self.transport

        if isinstance(transport, InstrumentTransport):
            if not transport.input_connected:
                error = TransportUnavailableError(cfg.instrument_input_port, "input")
                logger.warning(f"{error.user_message}. Played notes will not be recorded")
            if not transport.output_connected:
                error = TransportUnavailableError(cfg.instrument_output_port, "output")
                logger.warning(
                    f"{error.user_message}. Highlighting and layout sync will not work"
                )
            for label, port in transport.forward_status:
                if port is None:
                    logger.warning(f"Could not open optional MIDI {label} port")
                else:
                    logger.info(f"MIDI {label}: {port}")

        if not self.guide_input.is_connected:
            error = TransportUnavailableError(cfg.guide_input_port, "input")
            logger.warning(f"{error.user_message}. The light guide will not work")

    # =================================================================
    # Event handling
    # =================================================================

    def _on_instrument_event(self, event: MidiEvent) -> None:
        """Played note from the instrument (mido I/O thread)."""
        if isinstance(event, NoteOn):
            self.history.append(PlayedNoteEvent(timestamp=self.clock.now(), note_number=event.note))
        elif not isinstance(event, NoteOff):
            return
        self._note_observers.notify("on_note_event", NoteSource.PLAYED, event)

    def _on_guide_message(self, msg: mido.Message) -> None:
        """Raw guide input message (mido I/O thread)."""
        offset = (
            self.config.guide_pressure_note_offset if self.config.guide_pressure_encoding else None
        )
        event = decode_message(msg, pressure_note_offset=offset)
        if event is not None:
            self.handle_guide_event(event)

    def handle_guide_event(self, event: MidiEvent) -> None:
        """
        Highlight and classify a guide note.

        Pressure-encoded guides send a stream of pressure updates while a
        note is held; only the first one counts as the onset.
        """
        if isinstance(event, NoteOn):
            with self._guide_lock:
                if event.note in self._held_guide_notes:
                    return
                self._held_guide_notes.add(event.note)

            onset = GuideNoteOnset(note_number=event.note, onset_time=self.clock.now())
            self.highlighter.highlight_note(event.note, self.config.guide_highlight_color)
            self._note_observers.notify("on_note_event", NoteSource.GUIDE, event)
            if self.config.guide_statistics:
                self.classifier.submit(onset)

        elif isinstance(event, NoteOff):
            with self._guide_lock:
                self._held_guide_notes.discard(event.note)
            self.highlighter.release_note(event.note)
            self._note_observers.notify("on_note_event", NoteSource.GUIDE, event)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
