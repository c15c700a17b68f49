"""Unit tests for decoding MIDI messages at the transport boundary."""

from unittest.mock import Mock, patch

import mido
import pytest

from lightguide.midi import (
    ControlChange,
    InstrumentTransport,
    NoteOff,
    NoteOn,
    ParameterResponse,
    decode_message,
    name_filter,
)


@pytest.mark.unit
class TestDecodeMessage:
    """Test message variants."""

    def test_note_on(self):
        event = decode_message(mido.Message("note_on", channel=1, note=60, velocity=90))
        assert event == NoteOn(channel=1, note=60, velocity=90)

    def test_note_on_zero_velocity_is_note_off(self):
        event = decode_message(mido.Message("note_on", note=60, velocity=0))
        assert event == NoteOff(channel=0, note=60)

    def test_note_off(self):
        assert decode_message(mido.Message("note_off", note=61)) == NoteOff(channel=0, note=61)

    def test_nrpn_controller_is_parameter_response(self):
        event = decode_message(mido.Message("control_change", control=38, value=7))
        assert event == ParameterResponse(channel=0, control=38, value=7)

    def test_other_controller(self):
        event = decode_message(mido.Message("control_change", control=74, value=64))
        assert event == ControlChange(channel=0, control=74, value=64)

    def test_pressure_encoding(self):
        onset = decode_message(mido.Message("polytouch", note=39, value=50), pressure_note_offset=21)
        release = decode_message(mido.Message("polytouch", note=39, value=0), pressure_note_offset=21)

        assert onset == NoteOn(channel=0, note=60, velocity=50)
        assert release == NoteOff(channel=0, note=60)

    def test_pressure_ignored_without_offset(self):
        assert decode_message(mido.Message("polytouch", note=39, value=50)) is None

    def test_pressure_outside_note_range(self):
        message = mido.Message("polytouch", note=120, value=50)
        assert decode_message(message, pressure_note_offset=21) is None

    def test_unhandled_types(self):
        assert decode_message(mido.Message("pitchwheel", pitch=100)) is None
        assert decode_message(mido.Message("clock")) is None


@pytest.mark.unit
class TestNameFilter:
    """Test port name matching."""

    def test_substring_case_insensitive(self):
        matches = name_filter("linnstrument")
        assert matches("LinnStrument MIDI 1")
        assert not matches("Loop Back C")

    def test_empty_pattern_matches_nothing(self):
        assert not name_filter(None)("LinnStrument MIDI")
        assert not name_filter("")("LinnStrument MIDI")


@pytest.mark.unit
class TestInstrumentTransport:
    """Test listener dispatch and forwarding without MIDI hardware."""

    @pytest.fixture
    def transport(self):
        return InstrumentTransport("LinnStrument", "LinnStrument", forward_ports=["Loop Forward A"])

    def test_listeners_receive_decoded_events(self, transport):
        listener = Mock()
        transport.add_listener(listener)

        transport._on_message(mido.Message("note_on", note=60, velocity=100))
        transport._on_message(mido.Message("sysex", data=[1, 2]))

        listener.assert_called_once_with(NoteOn(channel=0, note=60, velocity=100))

    def test_remove_listener(self, transport):
        listener = Mock()
        transport.add_listener(listener)
        transport.remove_listener(listener)

        transport._on_message(mido.Message("note_on", note=60, velocity=100))

        listener.assert_not_called()
        assert transport.listener_count == 0

    def test_failing_listener_does_not_stop_others(self, transport):
        failing = Mock(side_effect=RuntimeError("boom"))
        listener = Mock()
        transport.add_listener(failing)
        transport.add_listener(listener)

        transport._on_message(mido.Message("note_on", note=60, velocity=100))

        listener.assert_called_once()

    def test_input_forwarded_raw(self, transport):
        message = mido.Message("polytouch", note=60, value=10)
        forward = transport._forwards[0]
        with patch.object(forward, "send") as send:
            transport._on_message(message)
        send.assert_called_once_with(message)

    def test_send_without_port_fails(self, transport):
        assert transport.send(mido.Message("control_change", control=20, value=1)) is False

    def test_list_ports(self):
        with patch("mido.get_input_names", return_value=["A"]), patch(
            "mido.get_output_names", return_value=["B"]
        ):
            assert InstrumentTransport.list_ports() == {"input": ["A"], "output": ["B"]}
