"""
Pytest coverage for MotionEncoder batches and reference synthesis.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# tests helpers
TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
import fake_codec

# local repo modules
from motranslib.core.config import CodecConfig
from motranslib.core.encoder import MotionEncoder
from motranslib.core.encoder import synthesize_reference
from motranslib.core.errors import EncodeProtocolError
from motranslib.core.errors import FormatMismatchError

#============================================

def _encode_batch(count: int) -> tuple:
	encoder = MotionEncoder(CodecConfig())
	frames = [fake_codec.FakeFrame() for _ in range(count)]
	for frame in frames:
		encoder.add_frame(frame)
	return (encoder.finish(), frames)

#============================================

def test_first_packet_discarded(monkeypatch) -> None:
	"""
Ensure N frames keep N-1 packets and drop the frame-one reference.
	"""
	factory = fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	(descriptor, frames) = _encode_batch(4)
	assert len(descriptor) == 3
	assert [packet.data for packet in descriptor] == [b"0:1", b"0:2", b"0:3"]
	assert [packet.index for packet in descriptor] == [1, 2, 3]
	assert [frame.pts for frame in frames] == [0, 1, 2, 3]
	assert len(factory.encoders()) == 1

#============================================

def test_delayed_reference_still_discarded(monkeypatch) -> None:
	"""
Ensure the reference is dropped even when it only appears on a later pull.
	"""
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory(delay=1))
	(descriptor, _) = _encode_batch(3)
	assert [packet.data for packet in descriptor] == [b"0:1", b"0:2"]

#============================================

def test_single_frame_batch_is_empty(monkeypatch) -> None:
	"""
Ensure a one-frame batch yields a descriptor with no packets.
	"""
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	(descriptor, _) = _encode_batch(1)
	assert descriptor is not None
	assert len(descriptor) == 0
	assert (descriptor.width, descriptor.height) == (64, 48)

#============================================

def test_empty_batch_returns_none(monkeypatch) -> None:
	factory = fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	assert MotionEncoder(CodecConfig()).finish() is None
	assert factory.contexts == []

#============================================

def test_encoder_options_suppress_intra(monkeypatch) -> None:
	"""
Ensure the motion session is opened with constant quality and no refresh.
	"""
	factory = fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	_encode_batch(2)
	options = factory.contexts[0].options
	assert options["flags"] == "+qscale"
	assert options["global_quality"] == "1"
	assert options["intra_penalty"] == "256"
	assert options["g"] == "600"
	assert options["keyint_min"] == "600"
	assert options["b"] == str(48 * 100000)

#============================================

def test_mid_batch_intra_packet_rejected(monkeypatch) -> None:
	"""
Ensure an intra refresh inside a batch is treated as a protocol failure.
	"""
	factory = fake_codec.install(monkeypatch,
		fake_codec.FakeCodecFactory(keyframes=(2,)))
	encoder = MotionEncoder(CodecConfig())
	encoder.add_frame(fake_codec.FakeFrame())
	encoder.add_frame(fake_codec.FakeFrame())
	with pytest.raises(EncodeProtocolError, match="intra packet 2"):
		encoder.add_frame(fake_codec.FakeFrame())
	assert len(factory.contexts) == 1

#============================================

def test_mid_batch_intra_packet_kept_when_allowed(monkeypatch, capsys) -> None:
	"""
Ensure reject_intra=False keeps the packet and warns on stderr.
	"""
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory(keyframes=(1,)))
	config = CodecConfig()
	config.reject_intra = False
	encoder = MotionEncoder(config)
	encoder.add_frame(fake_codec.FakeFrame())
	encoder.add_frame(fake_codec.FakeFrame())
	descriptor = encoder.finish()
	assert [packet.is_keyframe for packet in descriptor] == [True]
	assert "intra packet 1" in capsys.readouterr().err

#============================================

def test_mismatched_frame_size_rejected(monkeypatch) -> None:
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	encoder = MotionEncoder(CodecConfig())
	encoder.add_frame(fake_codec.FakeFrame(64, 48))
	with pytest.raises(FormatMismatchError):
		encoder.add_frame(fake_codec.FakeFrame(32, 48))
	assert encoder._session.closed

#============================================

def test_finish_twice_raises(monkeypatch) -> None:
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	encoder = MotionEncoder(CodecConfig())
	encoder.add_frame(fake_codec.FakeFrame())
	encoder.finish()
	with pytest.raises(EncodeProtocolError):
		encoder.finish()
	with pytest.raises(EncodeProtocolError):
		encoder.add_frame(fake_codec.FakeFrame())

#============================================

def test_silent_encoder_raises(monkeypatch) -> None:
	"""
Ensure a batch whose encoder never emits anything is a protocol failure.
	"""
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory(silent=True))
	encoder = MotionEncoder(CodecConfig())
	encoder.add_frame(fake_codec.FakeFrame())
	with pytest.raises(EncodeProtocolError):
		encoder.finish()

#============================================

def test_reference_uses_fresh_session(monkeypatch) -> None:
	"""
Ensure the reference comes from its own encoder with reference settings.
	"""
	factory = fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	_encode_batch(2)
	reference = synthesize_reference(fake_codec.FakeFrame(), CodecConfig())
	assert reference.data == b"1:0"
	assert reference.is_keyframe
	assert len(factory.encoders()) == 2
	assert "intra_penalty" not in factory.contexts[1].options

#============================================

def test_reference_flushes_delayed_encoder(monkeypatch) -> None:
	"""
Ensure a held-back reference packet is recovered by flushing.
	"""
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory(delay=1))
	reference = synthesize_reference(fake_codec.FakeFrame(), CodecConfig())
	assert reference.data == b"0:0"

#============================================

def test_reference_leaves_frame_pts_alone(monkeypatch) -> None:
	"""
Ensure synthesizing a reference does not renumber the caller's frame.
	"""
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory())
	frame = fake_codec.FakeFrame()
	frame.pts = 7
	synthesize_reference(frame, CodecConfig())
	assert frame.pts == 7

#============================================

def test_reference_missing_raises(monkeypatch) -> None:
	fake_codec.install(monkeypatch, fake_codec.FakeCodecFactory(silent=True))
	with pytest.raises(EncodeProtocolError):
		synthesize_reference(fake_codec.FakeFrame(), CodecConfig())
