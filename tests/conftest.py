"""
Shared fixtures: in-memory stand-ins for the FMOD system and the speech
engine, so the sonification engine runs without audio hardware.
"""

import random

import pytest

from audio.audio_logger import audio_log as event_log
from audio.engine import SonificationEngine
from audio.logging import AudioLogger
from audio.narrator import Narrator
from fmod_audio import SynthAudio
from state.app_state import Place


class FakeDSPType:
    """Mirror of the pyfmodex DSP_TYPE members the engine uses."""
    OSCILLATOR = 'oscillator'
    MULTIBAND_EQ = 'multiband_eq'
    ECHO = 'echo'


class FakeDSP:
    def __init__(self, dsp_type):
        self.type = dsp_type
        self.params = {}
        self.released = False

    def set_parameter_float(self, index, value):
        self.params[index] = value

    def set_parameter_int(self, index, value):
        self.params[index] = value

    def release(self):
        self.released = True


class FakeChannel:
    def __init__(self, dsp, group, paused):
        self.dsp = dsp
        self.group = group
        self.paused = paused
        self.volume = 1.0
        self.dsps = []
        self.stopped = False

    @property
    def is_playing(self):
        return not self.stopped

    def add_dsp(self, index, dsp):
        self.dsps.insert(index, dsp)

    def remove_dsp(self, dsp):
        self.dsps.remove(dsp)

    def stop(self):
        self.stopped = True


class FakeChannelGroup:
    def __init__(self, name):
        self.name = name
        self.volume = 1.0
        self.pan = 0.0
        self.dsps = []
        self.groups = []
        self.released = False

    def set_pan(self, pan):
        self.pan = pan

    def add_dsp(self, index, dsp):
        self.dsps.insert(index, dsp)

    def remove_dsp(self, dsp):
        self.dsps.remove(dsp)

    def add_group(self, group):
        self.groups.append(group)

    def release(self):
        self.released = True


class FakeSystem:
    """Records everything the engine creates."""

    def __init__(self):
        self.master_channel_group = FakeChannelGroup('master')
        self.dsps = []
        self.groups = []
        self.channels = []
        self.max_channels = None
        self.suspended = False
        self.update_count = 0
        self.closed = False

    def init(self, maxchannels=32):
        self.max_channels = maxchannels

    def create_dsp_by_type(self, dsp_type):
        dsp = FakeDSP(dsp_type)
        self.dsps.append(dsp)
        return dsp

    def create_channel_group(self, name):
        group = FakeChannelGroup(name)
        self.groups.append(group)
        return group

    def play_dsp(self, dsp, channel_group=None, paused=False):
        channel = FakeChannel(dsp, channel_group, paused)
        self.channels.append(channel)
        return channel

    def mixer_suspend(self):
        self.suspended = True

    def mixer_resume(self):
        self.suspended = False

    def update(self):
        self.update_count += 1

    def close(self):
        self.closed = True

    def release(self):
        pass

    @property
    def voice_groups(self):
        """Channel groups created for voices (everything but the output group)."""
        return [g for g in self.groups if g.name != 'sonification']


class FakeVoiceInfo:
    def __init__(self, voice_id):
        self.id = voice_id


class FakeSpeechEngine:
    """pyttsx3-style engine that records utterances instead of speaking."""

    def __init__(self, voice_count=3):
        self.properties = {'voices': [FakeVoiceInfo(f'voice-{i}') for i in range(voice_count)]}
        self.spoken = []
        self.in_loop = False
        self.iterations = 0
        self.stop_count = 0

    def getProperty(self, name):
        return self.properties.get(name)

    def setProperty(self, name, value):
        self.properties[name] = value

    def say(self, text):
        self.spoken.append({
            'text': text,
            'rate': self.properties.get('rate'),
            'volume': self.properties.get('volume'),
            'pitch': self.properties.get('pitch'),
            'voice': self.properties.get('voice'),
        })

    def startLoop(self, use_driver_loop=True):
        self.in_loop = True

    def iterate(self):
        self.iterations += 1

    def stop(self):
        self.stop_count += 1

    def endLoop(self):
        self.in_loop = False


def make_places(count, radius=1000.0, with_extract=True):
    """Places spread evenly around the compass and out to the radius."""
    places = []
    for i in range(count):
        places.append(Place(
            id=i + 1,
            title=f"Place {i + 1}",
            distance=radius * (i + 1) / (count + 1),
            bearing=(i * 360.0 / max(count, 1)) % 360,
            activity=10 ** (i % 5),
            extract=(f"Place {i + 1} was founded long ago. It burned down twice! "
                     f"Rebuilt in stone?") if with_extract else None,
        ))
    return places


def run_frames(engine, seconds, fps=60):
    """Advance the engine frame by frame."""
    frames = int(round(seconds * fps))
    for _ in range(frames):
        engine.update_frame(1.0 / fps)


@pytest.fixture(autouse=True)
def fresh_loggers():
    AudioLogger.reset_instance()
    event_log.config.enabled = False
    yield
    AudioLogger.reset_instance()


@pytest.fixture
def fake_system():
    return FakeSystem()


@pytest.fixture
def audio(fake_system):
    synth = SynthAudio(system_factory=lambda: fake_system, dsp_types=FakeDSPType)
    assert synth.init()
    return synth


@pytest.fixture
def speech_engine():
    return FakeSpeechEngine()


@pytest.fixture
def narrator(speech_engine):
    return Narrator(engine_factory=lambda: speech_engine)


@pytest.fixture
def engine(fake_system, speech_engine):
    synth = SynthAudio(system_factory=lambda: fake_system, dsp_types=FakeDSPType)
    return SonificationEngine(
        audio=synth,
        narrator=Narrator(engine_factory=lambda: speech_engine),
        rng=random.Random(1234),
    )


@pytest.fixture
def places():
    return make_places(8)
