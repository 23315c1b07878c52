"""
Unit Tests for Session Module

Tests for metrics records, the emitter, the per-session engine and the
session registry.
"""
from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from hrvstream.core.analysis import BandPower, SpectralAnalyzer
from hrvstream.core.session import (
    HrvEngine,
    MetricsEmitter,
    MetricsRecord,
    SessionContext,
    SessionRegistry,
    heart_rate_from_interval,
)
from hrvstream.services.relay import InMemoryRelay
from hrvstream.utils import SessionNotFoundError


class _FailingRelay:
    def __init__(self):
        self.calls = 0

    def publish(self, channel, name, payload):
        self.calls += 1
        raise ConnectionError("relay down")


class TestMetricsRecord:
    """Tests for record serialization."""

    def test_payload_shape(self, session_context):
        record = MetricsRecord(heart_rate=72, hrv=35, lf=412.9, hf=233.2, context=session_context)

        payload = record.to_payload()

        assert payload == {
            "heartRate": 72,
            "hrv": 35,
            "lf": 412,
            "hf": 233,
            "code": "ABC123",
            "type": "private_msg",
        }

    def test_to_dict_keeps_precision(self, session_context):
        record = MetricsRecord(heart_rate=72, hrv=35, lf=412.9, hf=233.2, context=session_context)

        result = record.to_dict()

        assert result["lf"] == 412.9
        assert result["user_id"] == 42
        assert result["timestamp"] > 0

    def test_channel(self):
        assert SessionContext(user_id=7, device_code="X").channel == "private:7"


class TestMetricsEmitter:
    """Tests for record emission."""

    def test_no_context_no_emit(self, relay):
        emitter = MetricsEmitter(relay=relay)

        assert emitter.emit(70, 20, BandPower()) is None
        assert relay.messages == []
        assert emitter.emitted_count == 0

    def test_emit_publishes(self, relay, session_context):
        emitter = MetricsEmitter(relay=relay, context=session_context)

        record = emitter.emit(70, 20, BandPower(lf=10.7, hf=3.2))

        assert record is emitter.last_record
        channel, name, payload = relay.messages[0]
        assert channel == "private:42"
        assert name == "heartRate"
        assert payload["lf"] == 10
        assert payload["hf"] == 3

    def test_listeners_receive_records(self, session_context):
        received = []
        emitter = MetricsEmitter(context=session_context)
        emitter.add_listener(received.append)

        emitter.emit(66, 12, BandPower())

        assert len(received) == 1
        assert received[0].heart_rate == 66

    def test_relay_failure_is_contained(self, session_context):
        """A failing publish drops the record without raising."""
        failing = _FailingRelay()
        emitter = MetricsEmitter(relay=failing, context=session_context)

        record = emitter.emit(70, 20, BandPower())

        assert failing.calls == 1
        assert record is not None
        assert emitter.emitted_count == 1

    def test_listener_failure_is_contained(self, relay, session_context):
        def broken(record):
            raise RuntimeError("display gone")

        emitter = MetricsEmitter(relay=relay, context=session_context)
        emitter.add_listener(broken)

        emitter.emit(70, 20, BandPower())

        assert len(relay.messages) == 1


class TestHrvEngine:
    """Tests for the per-session engine."""

    def test_heart_rate_from_interval(self):
        assert heart_rate_from_interval(800) == 75
        assert heart_rate_from_interval(857) == 70
        assert heart_rate_from_interval(1000) == 60

    def test_plausibility_gate(self, engine):
        assert not engine.push_interval(299)
        assert not engine.push_interval(2001)
        assert engine.push_interval(300)
        assert engine.push_interval(2000)

        assert engine.window.snapshot() == (300.0, 2000.0)
        stats = engine.get_stats()
        assert stats["accepted"] == 2
        assert stats["rejected"] == 2

    def test_rejected_interval_leaves_state(self, engine, relay, ramp_window):
        for value in ramp_window:
            engine.push_interval(value)
        engine.flush(timeout=5.0)
        before = (engine.window.snapshot(), engine.hrv, engine.band_power, len(relay.messages))

        engine.push_interval(150)

        after = (engine.window.snapshot(), engine.hrv, engine.band_power, len(relay.messages))
        assert before == after

    def test_interval_emits_record(self, engine, relay):
        engine.push_interval(800)

        channel, name, payload = relay.messages[-1]
        assert channel == "private:42"
        assert payload["heartRate"] == 75
        assert payload["code"] == "ABC123"
        assert engine.last_record.heart_rate == 75

    def test_window_holds_latest(self, engine):
        values = [800.0 + i for i in range(40)]
        for value in values:
            engine.push_interval(value)

        assert engine.window.snapshot() == tuple(values[-30:])

    def test_hrv_after_full_window(self, engine, alternating_window):
        for value in alternating_window:
            engine.push_interval(value)

        assert engine.hrv == 10

    def test_no_spectral_before_full(self, engine, alternating_window):
        for value in alternating_window[:29]:
            engine.push_interval(value)

        assert engine.flush(timeout=5.0) == BandPower()

    def test_spectral_after_full(self, engine, random_window):
        for value in random_window:
            engine.push_interval(value)

        power = engine.flush(timeout=5.0)

        assert power == SpectralAnalyzer().analyze(tuple(float(v) for v in random_window))
        assert power.lf > 0
        assert power.hf > 0

    def test_heart_rate_carries_latest_metrics(self, engine, relay, random_window):
        for value in random_window:
            engine.push_interval(value)
        power = engine.flush(timeout=5.0)

        record = engine.push_heart_rate(68)

        assert record.heart_rate == 68
        assert record.hrv == engine.hrv
        assert record.lf == power.lf
        assert relay.messages[-1][2]["hf"] == int(power.hf)

    def test_no_context_buffers_without_emitting(self, relay, ramp_window):
        with HrvEngine(relay=relay) as engine:
            for value in ramp_window:
                engine.push_interval(value)

            assert relay.messages == []
            assert engine.hrv == 10

            engine.attach_context(SessionContext(user_id=9, device_code="LATE"))
            engine.push_heart_rate(70)

        assert relay.messages[-1][0] == "private:9"
        assert relay.messages[-1][2]["hrv"] == 10

    def test_closed_engine_ignores_samples(self, relay, session_context):
        engine = HrvEngine(context=session_context, relay=relay)
        engine.push_interval(800)
        engine.close()

        assert not engine.push_interval(810)
        assert engine.push_heart_rate(70) is None
        assert len(relay.messages) == 1
        assert engine.closed

    def test_flush_on_other_threads_during_ingestion(self, engine, random_window):
        """Concurrent flush/band_power readers never corrupt the pending results."""
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                try:
                    engine.flush(timeout=1.0)
                    engine.band_power
                except Exception as e:
                    errors.append(e)
                    return

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        try:
            for _ in range(20):
                for value in random_window:
                    engine.push_interval(value)
        finally:
            done.set()
            for thread in readers:
                thread.join(timeout=5.0)

        assert errors == []
        final = tuple(float(v) for v in random_window)
        assert engine.flush(timeout=5.0) == SpectralAnalyzer().analyze(final)

    def test_shared_executor_not_shut_down(self, session_context, ramp_window):
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            engine = HrvEngine(context=session_context, executor=executor)
            for value in ramp_window:
                engine.push_interval(value)
            engine.flush(timeout=5.0)
            engine.close()

            assert executor.submit(lambda: 1).result(timeout=5.0) == 1
        finally:
            executor.shutdown(wait=True)

    def test_engines_are_independent(self, ramp_window, alternating_window):
        with HrvEngine() as a, HrvEngine() as b:
            for value in ramp_window:
                a.push_interval(value)
            b.push_interval(alternating_window[0])

            assert len(a.window) == 30
            assert len(b.window) == 1
            assert a.session_id != b.session_id

    def test_stats(self, engine, ramp_window):
        for value in ramp_window:
            engine.push_interval(value)

        stats = engine.get_stats()

        assert stats["window_size"] == 30
        assert stats["window_full"] is True
        assert stats["hrv"] == 10
        assert stats["emitted"] == 30
        assert stats["context_attached"] is True


class TestSessionRegistry:
    """Tests for the session registry."""

    def test_create_and_get(self, session_context):
        registry = SessionRegistry(relay_factory=InMemoryRelay)
        engine = registry.create(session_context)

        assert registry.get(engine.session_id) is engine
        assert engine.session_id in registry
        assert len(registry) == 1
        registry.close_all()

    def test_relay_per_session(self):
        registry = SessionRegistry(relay_factory=InMemoryRelay)
        a = registry.create()
        b = registry.create()

        assert registry.relay_for(a.session_id) is not registry.relay_for(b.session_id)
        registry.close_all()

    def test_close_releases_session(self):
        registry = SessionRegistry(relay_factory=InMemoryRelay)
        engine = registry.create()
        relay = registry.relay_for(engine.session_id)

        registry.close(engine.session_id)

        assert engine.closed
        assert not relay.is_connected
        with pytest.raises(SessionNotFoundError):
            registry.get(engine.session_id)

    def test_unknown_session(self):
        registry = SessionRegistry()

        with pytest.raises(SessionNotFoundError) as exc_info:
            registry.close("missing")

        assert exc_info.value.to_dict()["error"] == "SESSION_NOT_FOUND"

    def test_close_all(self):
        registry = SessionRegistry()
        engines = [registry.create() for _ in range(3)]

        registry.close_all()

        assert len(registry) == 0
        assert all(e.closed for e in engines)
