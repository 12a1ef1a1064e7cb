"""Tests for EventEmitter."""
import pytest

from albumpy.core.api.events import EventEmitter


@pytest.fixture
def emitter():
    return EventEmitter()


class TestEventEmitter:
    """Test suite for EventEmitter."""

    def test_emit_calls_handlers_in_order(self, emitter):
        calls = []
        emitter.on('start', lambda unit: calls.append(('first', unit)))
        emitter.on('start', lambda unit: calls.append(('second', unit)))

        assert emitter.emit('start', 'album-1') == 2
        assert calls == [('first', 'album-1'), ('second', 'album-1')]

    def test_emit_without_handlers(self, emitter):
        assert emitter.emit('idle') == 0

    def test_once(self, emitter):
        """Test once-handlers fire a single time."""
        calls = []
        emitter.once('idle', lambda: calls.append('idle'))

        emitter.emit('idle')
        emitter.emit('idle')

        assert calls == ['idle']
        assert emitter.listener_count('idle') == 0

    def test_off_single_handler(self, emitter):
        calls = []

        def handler(unit):
            calls.append(unit)

        emitter.on('queued', handler)
        emitter.on('queued', lambda unit: None)
        emitter.off('queued', handler)
        emitter.emit('queued', 'b')

        assert calls == []
        assert emitter.listener_count('queued') == 1

    def test_off_all(self, emitter):
        emitter.on('queued', lambda unit: None)
        emitter.off('queued')
        assert emitter.listener_count('queued') == 0

    def test_off_unknown_event(self, emitter):
        assert emitter.off('nothing') is emitter

    def test_handler_errors_propagate(self, emitter):
        def broken():
            raise RuntimeError("handler failed")

        emitter.on('idle', broken)

        with pytest.raises(RuntimeError):
            emitter.emit('idle')
