"""
Sonification engine tests - generations, teardown, heading fan-out and the
mode-switch scenarios.
"""

import math
import random

import pytest

from audio.engine import EngineState, SonificationEngine
from audio.logging import AudioLogger
from audio.narrator import Narrator
from audio.voices import PartialClusterVoice
from fmod_audio import SynthAudio
from modes.melody import MelodyMode
from state.app_state import Place, SonificationMode
from utils.helpers import normalize_angle

from conftest import FakeDSPType, make_places, run_frames


def expected_pan(bearing, heading):
    return math.sin(math.radians(normalize_angle(bearing - heading)))


class TestLifecycle:
    """Tests for init, resume and state transitions."""

    def test_init_and_resume(self, engine):
        assert engine.state == EngineState.UNINITIALIZED
        assert engine.resume()
        assert engine.state == EngineState.READY
        assert engine.init()
        assert engine.narrator.is_initialized

    def test_init_failure_makes_update_a_noop(self, speech_engine):
        """No FMOD: error logged, nothing created, nothing raised."""
        def broken():
            raise OSError("fmod library not found")

        engine = SonificationEngine(
            audio=SynthAudio(system_factory=broken, dsp_types=FakeDSPType),
            narrator=Narrator(engine_factory=lambda: speech_engine),
            rng=random.Random(1),
        )
        assert engine.init() is False
        engine.update(SonificationMode.AMBIENT, make_places(3), 1000, 0)
        run_frames(engine, 1.0)
        assert engine.voice_count == 0
        assert engine.state == EngineState.UNINITIALIZED
        assert speech_engine.spoken == []
        assert AudioLogger.get_instance().get_recent_logs(level='ERROR')

    def test_state_follows_mode(self, engine, places):
        engine.update(SonificationMode.MELODY, places, 1000, 0)
        assert engine.state == EngineState.PLAYING_MELODY
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        assert engine.state == EngineState.PLAYING_CACOPHONY
        engine.stop_all()
        assert engine.state == EngineState.READY

    def test_mode_names_accepted(self, engine, places):
        engine.update('ambient', places, 1000, 0)
        assert engine.state == EngineState.PLAYING_AMBIENT
        assert engine.voice_count == len(places)

    def test_unknown_mode_is_silent(self, engine, places):
        engine.update('polka', places, 1000, 0)
        assert engine.voice_count == 0
        assert engine.state == EngineState.READY

    def test_cleanup(self, fake_system, engine, places):
        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        engine.cleanup()
        assert engine.state == EngineState.UNINITIALIZED
        assert all(d.released for d in fake_system.dsps)
        assert fake_system.closed

    def test_suspend_waits_for_release_then_update_resumes(self, fake_system, engine, places):
        """Toggling sound off lets the fades finish before the mixer sleeps."""
        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        run_frames(engine, 0.5)
        engine.suspend()
        assert engine.voice_count == 0
        engine.update_frame(1.0 / 60)
        assert not fake_system.suspended
        run_frames(engine, 1.0)
        assert engine.registry.draining_count == 0
        assert fake_system.suspended
        assert not engine.audio.is_running

        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        assert not fake_system.suspended
        assert engine.voice_count == len(places)

    def test_suspend_before_init_is_harmless(self, fake_system, engine):
        engine.suspend()
        run_frames(engine, 0.5)
        assert not fake_system.suspended

    def test_shared_instance_resets(self):
        first = SonificationEngine.get_instance()
        assert SonificationEngine.get_instance() is first
        SonificationEngine.reset_instance()
        assert SonificationEngine.get_instance() is not first
        SonificationEngine.reset_instance()


class TestGenerations:
    """Tests for the epoch and stop_all teardown."""

    def test_stop_all_increments_epoch_once(self, engine, places):
        engine.resume()
        before = engine.epoch
        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        assert engine.epoch == before + 1
        engine.stop_all()
        assert engine.epoch == before + 2

    def test_stop_all_empties_registry_and_timers(self, engine, places):
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        assert engine.voice_count > 0
        assert engine.scheduler.pending_count == 1
        engine.stop_all()
        assert engine.voice_count == 0
        assert engine.scheduler.pending_count == 0

    def test_stop_all_cancels_narration(self, engine, speech_engine, places):
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        engine.stop_all()
        assert speech_engine.stop_count >= 1

    def test_stale_step_adds_nothing(self, engine, places):
        """A deferred step holding an old epoch is a no-op."""
        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        stale_epoch = engine.epoch - 1
        count = engine.voice_count
        MelodyMode(engine).step(places, 1000, stale_epoch, 0)
        assert engine.voice_count == count
        assert engine.scheduler.pending_count == 0

    def test_draining_voices_are_fully_severed(self, fake_system, engine, places):
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        run_frames(engine, 0.5)
        engine.stop_all()
        assert engine.registry.draining_count > 0
        run_frames(engine, 0.3)
        assert engine.registry.draining_count == 0
        assert all(d.released for d in fake_system.dsps)
        assert all(g.released for g in fake_system.voice_groups)

    def test_failing_stop_does_not_block_teardown(self, engine, places):
        engine.update(SonificationMode.AMBIENT, places[:2], 1000, 0)

        class Faulty(PartialClusterVoice):
            def stop(self):
                raise RuntimeError("device lost")

        bad = Faulty(engine.audio, places[0], 200.0, 1, 0.3, 0.5, [0.1], [0.0])
        bad.start(engine.heading)
        engine.add_voice(bad)
        others = [v for v in engine.voices if v is not bad]

        engine.stop_all()
        assert engine.voice_count == 0
        assert bad.is_disposed
        assert all(v.is_releasing for v in others)


class TestPopulation:
    """Voice counts are determined by mode and place count."""

    def test_empty_places_is_silence(self, engine):
        engine.update(SonificationMode.AMBIENT, [], 1000, 0)
        assert engine.voice_count == 0
        assert engine.state == EngineState.READY

    @pytest.mark.parametrize("count,expected", [(1, 1), (8, 8), (15, 15), (40, 15)])
    def test_ambient_voice_cap(self, engine, count, expected):
        engine.update(SonificationMode.AMBIENT, make_places(count), 1000, 0)
        assert engine.voice_count == expected

    @pytest.mark.parametrize("count,murmurs", [(1, 0), (7, 3), (20, 10), (60, 10)])
    def test_cacophony_layers(self, engine, count, murmurs):
        engine.update(SonificationMode.CACOPHONY, make_places(count), 1000, 0)
        kinds = [v.kind for v in engine.voices]
        assert kinds.count('drone') == 1
        assert kinds.count('noise') == 1
        assert kinds.count('murmur') == murmurs

    def test_repeated_update_same_population(self, engine, places):
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        first = engine.voice_count
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        assert engine.voice_count == first


class TestHeading:
    """Heading changes re-pan without creating or destroying voices."""

    def test_set_heading_keeps_voice_count(self, engine, places):
        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        voices = engine.voices
        for heading in (45, 190, 359, -30):
            engine.set_heading(heading)
            assert engine.voices == voices

    def test_set_heading_updates_every_pan(self, engine, places):
        engine.update(SonificationMode.AMBIENT, places, 1000, 0)
        engine.set_heading(45)
        run_frames(engine, 1.5)
        for voice in engine.voices:
            assert voice.pan == pytest.approx(expected_pan(voice.place.bearing, 45), abs=1e-3)

    def test_cacophony_heading_shift(self, engine, places):
        """Murmurs follow the heading delta; drone and noise stay centered."""
        engine.update(SonificationMode.CACOPHONY, places, 1000, 10)
        engine.set_heading(55)
        run_frames(engine, 1.5)
        for voice in engine.voices:
            if voice.kind == 'murmur':
                assert voice.target_pan == pytest.approx(expected_pan(voice.place.bearing, 55))
                assert voice.pan == pytest.approx(expected_pan(voice.place.bearing, 55), abs=1e-2)
            else:
                assert voice.pan == 0.0

    def test_update_stores_heading(self, engine, places):
        engine.update(SonificationMode.AMBIENT, places, 1000, 400)
        assert engine.heading == 40
        voice = engine.voices[1]
        assert voice.pan == pytest.approx(expected_pan(voice.place.bearing, 40))

    def test_non_finite_heading_ignored(self, engine):
        engine.set_heading(30)
        engine.set_heading(float('nan'))
        assert engine.heading == 30


class TestScenarios:
    """End-to-end mode switches."""

    def test_melody_then_ambient(self, engine, speech_engine):
        """Only the ambient voice survives; no melody note fires afterwards."""
        e1, e2, e3 = make_places(3)
        engine.update(SonificationMode.MELODY, [e1, e2, e3], 1000, 0)
        run_frames(engine, 0.3)
        assert engine.scheduler.pending_count == 1

        engine.update(SonificationMode.AMBIENT, [e1], 500, 90)
        assert [v.kind for v in engine.voices] == ['cluster']

        run_frames(engine, 5.0)
        assert [v.kind for v in engine.voices] == ['cluster']
        assert engine.voices[0].place is e1
        assert engine.scheduler.pending_count == 0

    def test_melody_walks_places(self, engine):
        places = make_places(3)
        engine.update(SonificationMode.MELODY, places, 1000, 0)
        seen = []
        for _ in range(600):
            engine.update_frame(1.0 / 60)
            for voice in engine.voices:
                if voice.place not in seen:
                    seen.append(voice.place)
        assert seen == places

    def test_finished_notes_are_pruned(self, engine):
        engine.update(SonificationMode.MELODY, make_places(2), 1000, 0)
        first = engine.voices[0]
        run_frames(engine, 3.0)
        assert first not in engine.voices
        assert first.is_disposed
        assert engine.voice_count <= 8

    def test_cacophony_narration_timing(self, engine, speech_engine):
        """Narration fires at once, then every max(1, 4 - 0.1n) seconds."""
        places = make_places(4)
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        assert len(speech_engine.spoken) == 1
        run_frames(engine, 3.5)
        assert len(speech_engine.spoken) == 1
        run_frames(engine, 0.2)
        assert len(speech_engine.spoken) == 2

        engine.stop_all()
        run_frames(engine, 10.0)
        assert len(speech_engine.spoken) == 2

    def test_stale_narration_timer_is_silent(self, engine, speech_engine):
        """A narration tick that outlives its generation speaks nothing and stops itself."""
        places = make_places(4)
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        timer = engine.scheduler._timers[0]
        assert timer.name == 'narration'
        spoken = len(speech_engine.spoken)

        engine.stop_all()
        timer.cancelled = False
        engine.scheduler._timers.append(timer)

        run_frames(engine, 10.0)
        assert len(speech_engine.spoken) == spoken
        assert timer.cancelled
        assert engine.scheduler.pending_count == 0

    def test_stale_chatter_call_is_silent(self, engine, speech_engine):
        places = make_places(4)
        engine.update(SonificationMode.CACOPHONY, places, 1000, 0)
        old_epoch = engine.epoch
        spoken = len(speech_engine.spoken)
        engine.stop_all()
        engine._strategies[SonificationMode.CACOPHONY].chatter(places, 1000, old_epoch)
        assert len(speech_engine.spoken) == spoken

    def test_melody_steps_count_from_due_time(self, engine):
        """Frame length does not stretch the gap between notes."""
        place = Place(id=1, title='Quiet', distance=0.0, bearing=0.0, activity=0)
        engine.update(SonificationMode.MELODY, [place], 1000, 0)
        first = engine.scheduler._timers[0]
        due = first.due
        engine.update_frame(due - engine.scheduler.now + 0.3)
        second = engine.scheduler._timers[0]
        assert second is not first
        assert 1.0 <= second.due - due <= 1.5

    def test_narration_fragment_and_voice(self, engine, speech_engine):
        place = Place(id=1, title='Old Mill', distance=900.0, bearing=10.0, activity=5,
                      extract="Built 1702. Burned down in a great fire! Rebuilt?")
        engine.update(SonificationMode.CACOPHONY, [place], 1000, 0)
        spoken = speech_engine.spoken[0]
        assert spoken['text'] in ("Built 1702", "Burned down in a great fire", "Rebuilt")
        assert spoken['volume'] == pytest.approx(0.3)
        assert spoken['voice'] in ('voice-0', 'voice-1', 'voice-2')
        assert 0.8 * 180 - 1 <= spoken['rate'] <= 1.5 * 180
        assert 0.5 * 50 - 1 <= spoken['pitch'] <= 2.0 * 50

    def test_same_seed_same_sound(self, fake_system, speech_engine):
        def build(seed):
            engine = SonificationEngine(
                audio=SynthAudio(system_factory=lambda: fake_system, dsp_types=FakeDSPType),
                narrator=Narrator(engine_factory=lambda: speech_engine),
                rng=random.Random(seed),
            )
            engine.update(SonificationMode.CACOPHONY, make_places(6), 1000, 0)
            return [v.generators[0].frequency.value for v in engine.voices]

        assert build(7) == build(7)


class TestVolume:
    def test_adjust_volume(self, engine):
        engine.resume()
        engine.set_master_volume(0.5)
        assert engine.adjust_volume(0.1) == pytest.approx(0.6)
        assert engine.adjust_volume(-1.0) == 0.0
        assert engine.audio.output_group.volume == 0.0
