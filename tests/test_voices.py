"""
Voice tests - release, dispose, repan and the voice variants.
"""

import math

import pytest

from audio.voice_registry import VoiceRegistry
from audio.voices import (
    DroneVoice, MurmurVoice, NoiseBedVoice, NoteVoice, PartialClusterVoice,
)
from state.app_state import Place
from state.constants import HALT_DELAY, MELODY_TAIL, RELEASE_TIME


def make_place(bearing=90.0, title='Clock Tower'):
    return Place(id=4, title=title, distance=100.0, bearing=bearing, activity=100)


def make_cluster(audio, bearing=90.0, partials=3):
    return PartialClusterVoice(
        audio, make_place(bearing), frequency=200.0, partials=partials, level=0.3,
        fade_in=0.5, breath_rates=[0.1] * partials, breath_phases=[0.0] * partials,
    )


def advance(voice, seconds, step=1.0 / 60):
    for _ in range(int(round(seconds / step))):
        voice.update(step)


class TestVoiceLifecycle:
    """Tests for stop/dispose semantics shared by every voice."""

    def test_fade_in(self, audio):
        voice = make_cluster(audio)
        voice.start(heading=0)
        assert voice.bus.group.volume == 0.0
        advance(voice, 0.5)
        assert voice.envelope.gain.value == pytest.approx(0.3)

    def test_stop_releases_then_halts(self, fake_system, audio):
        """Gain reaches zero by RELEASE_TIME, generators halt at HALT_DELAY."""
        voice = make_cluster(audio)
        voice.start(heading=0)
        advance(voice, 1.0)
        voice.stop()
        assert voice.is_releasing
        advance(voice, RELEASE_TIME)
        assert voice.envelope.gain.value == pytest.approx(0.0, abs=1e-9)
        assert not any(c.stopped for c in fake_system.channels)
        advance(voice, HALT_DELAY - RELEASE_TIME + 0.02)
        assert all(c.stopped for c in fake_system.channels)
        assert voice.is_finished

    def test_dispose_alone_severs_immediately(self, fake_system, audio):
        voice = make_cluster(audio)
        voice.start(heading=0)
        voice.dispose()
        assert voice.is_disposed
        assert all(d.released for d in fake_system.dsps)
        assert all(g.released for g in fake_system.voice_groups)

    def test_dispose_during_release_waits_for_ramp(self, fake_system, audio):
        """dispose() mid-release severs only once the release completes."""
        voice = make_cluster(audio)
        voice.start(heading=0)
        voice.stop()
        voice.dispose()
        assert not voice.is_disposed
        assert not any(d.released for d in fake_system.dsps)
        advance(voice, HALT_DELAY + 0.05)
        assert voice.is_disposed
        assert all(d.released for d in fake_system.dsps)
        assert all(g.released for g in fake_system.voice_groups)

    def test_stop_and_dispose_are_idempotent(self, audio):
        voice = make_cluster(audio)
        voice.start(heading=0)
        voice.dispose()
        voice.dispose()
        voice.stop()
        assert voice.is_disposed

    def test_stop_before_start(self, audio):
        voice = make_cluster(audio)
        voice.stop()
        assert voice.is_finished
        voice.dispose()
        assert voice.is_disposed


class TestRepan:
    """Tests for bearing-relative panning."""

    def test_start_places_voice_without_smoothing(self, audio):
        voice = make_cluster(audio, bearing=90.0)
        voice.start(heading=0)
        assert voice.pan == pytest.approx(1.0)
        assert voice.bus.group.pan == pytest.approx(1.0)

    def test_repan_smooths_towards_target(self, audio):
        """Pan approaches sin(bearing - heading) with a 0.1 s time constant."""
        voice = make_cluster(audio, bearing=0.0)
        voice.start(heading=0)
        voice.repan(270.0)
        assert voice.target_pan == pytest.approx(1.0)
        voice.update(0.1)
        assert voice.pan == pytest.approx(1.0 - math.exp(-1.0))
        advance(voice, 1.0)
        assert voice.pan == pytest.approx(1.0, abs=1e-3)

    def test_murmur_uses_slower_smoothing(self, audio):
        voice = MurmurVoice(audio, make_place(0.0), frequency=120.0, formant=800.0, q=5.0,
                            wobble_rate=1.0, wobble_depth=150.0, level=0.03, fade_in=1.0)
        voice.start(heading=0)
        voice.repan(270.0)
        voice.update(0.2)
        assert voice.pan == pytest.approx(1.0 - math.exp(-1.0))

    def test_no_bearing_stays_centered(self, audio):
        voice = make_cluster(audio, bearing=None)
        voice.start(heading=0)
        voice.repan(123.0)
        advance(voice, 1.0)
        assert voice.pan == 0.0

    def test_non_directional_ignores_heading(self, audio):
        drone = DroneVoice(audio, 55.0, 300.0, 0.08, 2.0)
        drone.start(heading=0)
        drone.repan(90.0)
        assert drone.panner is None
        assert drone.pan == 0.0

    def test_repan_after_stop_is_ignored(self, audio):
        voice = make_cluster(audio, bearing=90.0)
        voice.start(heading=0)
        voice.stop()
        voice.repan(90.0)
        assert voice.target_pan == pytest.approx(1.0)


class TestVariants:
    """Tests for the concrete voice shapes."""

    def test_cluster_partials(self, fake_system, audio):
        """Integer multiples of the fundamental, one oscillator each."""
        voice = make_cluster(audio, partials=4)
        voice.start(heading=0)
        assert voice.partial_frequencies == [200.0, 400.0, 600.0, 800.0]
        assert len(fake_system.channels) == 4

    def test_cluster_breathing_stays_in_range(self, audio):
        voice = make_cluster(audio, partials=2)
        voice.start(heading=0)
        for _ in range(600):
            voice.update(1.0 / 60)
            for k, generator in enumerate(voice.generators, start=1):
                assert 0.5 / k - 1e-9 <= generator.level.effective <= 1.0 / k + 1e-9

    def test_murmur_formant_wobbles(self, audio):
        voice = MurmurVoice(audio, make_place(), frequency=120.0, formant=800.0, q=5.0,
                            wobble_rate=1.0, wobble_depth=150.0, level=0.03, fade_in=1.0)
        voice.start(heading=0)
        seen = []
        for _ in range(60):
            voice.update(1.0 / 60)
            seen.append(voice.filter.frequency.effective)
        assert max(seen) == pytest.approx(950.0, abs=5.0)
        assert min(seen) == pytest.approx(650.0, abs=5.0)

    def test_noise_bed_is_non_directional(self, fake_system, audio):
        voice = NoiseBedVoice(audio, 2000.0, 1.0, 0.02, 3.0)
        voice.start(heading=0)
        assert not voice.directional
        assert fake_system.channels[-1].dsp.params[0] == 5

    def test_note_envelope_and_end(self, fake_system, audio):
        """Attack to volume, decay to the floor, then finish on its own."""
        note = NoteVoice(audio, make_place(), frequency=440.0, waveform='triangle',
                         cutoff=1000.0, q=2.0, volume=0.2, duration=1.0,
                         echo={'delay_ms': 400.0, 'feedback': 35.0, 'wet_db': -6.0})
        note.start(heading=0)
        note.update(0.05)
        assert note.envelope.gain.value == pytest.approx(0.2)
        advance(note, 0.95)
        assert note.envelope.gain.value == pytest.approx(0.001, rel=0.05)
        assert not note.is_finished
        advance(note, MELODY_TAIL + 0.02)
        assert note.is_finished
        assert note.echo.dsp in note.bus.group.dsps
        note.dispose()
        assert all(d.released for d in fake_system.dsps)


class TestVoiceRegistry:
    """Tests for live and draining voice bookkeeping."""

    def test_release_all_moves_voices_to_draining(self, audio):
        registry = VoiceRegistry()
        voices = [make_cluster(audio) for _ in range(3)]
        for voice in voices:
            voice.start(heading=0)
            registry.add(voice)
        assert registry.release_all() == 3
        assert len(registry) == 0
        assert registry.draining_count == 3
        registry.update(HALT_DELAY + 0.01)
        assert registry.draining_count == 0
        assert all(v.is_disposed for v in voices)

    def test_draining_voices_get_no_heading(self, audio):
        registry = VoiceRegistry()
        voice = make_cluster(audio, bearing=90.0)
        voice.start(heading=0)
        registry.add(voice)
        registry.release_all()
        registry.repan_all(180.0)
        assert voice.target_pan == pytest.approx(1.0)

    def test_failing_voice_does_not_block_others(self, audio):
        registry = VoiceRegistry()

        class Faulty(PartialClusterVoice):
            def stop(self):
                raise RuntimeError("device lost")

        bad = Faulty(audio, make_place(), 200.0, 1, 0.3, 0.5, [0.1], [0.0])
        good = make_cluster(audio)
        for voice in (bad, good):
            voice.start(heading=0)
            registry.add(voice)
        registry.release_all()
        assert len(registry) == 0
        assert bad.is_disposed
        assert good.is_releasing

    def test_finished_voices_are_pruned(self, audio):
        registry = VoiceRegistry()
        note = NoteVoice(audio, make_place(), 440.0, 'sine', 600.0, 1.0, 0.1, 0.2)
        note.start(heading=0)
        registry.add(note)
        assert registry.update(0.5) == 1
        assert len(registry) == 0
        assert note.is_disposed

    def test_status(self, audio):
        registry = VoiceRegistry()
        voice = make_cluster(audio)
        voice.start(heading=0)
        registry.add(voice)
        assert registry.get_status() == {'live': 1, 'draining': 0, 'kinds': {'cluster': 1}}
