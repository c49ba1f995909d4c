#!/usr/bin/env python3

"""
Pytest coverage for seek based frame sampling, using a fake demuxer and decoder.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from vsheetlib.core.errors import SeekFailedError
from vsheetlib.core.rational import Rational
from vsheetlib.core.sampler import SampleRequest
from vsheetlib.core.sampler import SamplerState
from vsheetlib.core.sampler import SeekSampler
from vsheetlib.core.sampler import sample_requests

#============================================

class FakePacket():
	def __init__(self, pts):
		self.pts = pts

#============================================

class FakeFrame():
	def __init__(self, pts):
		self.pts = pts

#============================================

class FakeDecoder():
	"""
	Returns one frame per packet, held back by `delay` packets.
	"""
	def __init__(self, delay: int = 0, stamp: bool = True):
		self.delay = delay
		self.stamp = stamp
		self.pending = []
		self.sent = []
		self.drain_calls = 0

	#============================
	def flush(self) -> None:
		self.pending = []

	#============================
	def send(self, packet):
		self.sent.append(packet)
		pts = packet.pts if self.stamp else None
		self.pending.append(FakeFrame(pts))
		if len(self.pending) > self.delay:
			return self.pending.pop(0)
		return None

	#============================
	def drain(self):
		self.drain_calls += 1
		if len(self.pending) > 0:
			return self.pending.pop(0)
		return None

#============================================

class FakeSource():
	"""
	Keyframe packets at the given millisecond timestamps.
	"""
	def __init__(self, packet_times, delay: int = 0, stamp: bool = True,
		fail_forward: bool = False, fail_all: bool = False):
		self.time_base = Rational(1, 1000)
		self.packet_list = [FakePacket(pts) for pts in packet_times]
		self.decoder = FakeDecoder(delay, stamp)
		self.fail_forward = fail_forward
		self.fail_all = fail_all
		self.cursor = 0
		self.seeks = []

	#============================
	def seek(self, position: int, forward_only: bool = True) -> None:
		self.seeks.append((position, forward_only))
		if self.fail_all or (forward_only and self.fail_forward):
			raise SeekFailedError("operation not permitted")
		ticks = position // 1000
		times = [packet.pts for packet in self.packet_list]
		if forward_only:
			later = [i for i, pts in enumerate(times) if pts >= ticks]
			self.cursor = later[0] if later else len(times)
		else:
			earlier = [i for i, pts in enumerate(times) if pts <= ticks]
			self.cursor = earlier[-1] if earlier else 0
		self.decoder.flush()

	#============================
	def packets(self):
		while self.cursor < len(self.packet_list):
			packet = self.packet_list[self.cursor]
			self.cursor += 1
			yield packet

#============================================

def fake_scaler(frame) -> tuple:
	width, height, stride = 4, 2, 16
	return (bytes(stride * height), width, height, stride, 1)

#============================================

def every_second(count: int) -> list:
	return [i * 1000 for i in range(count)]

#============================================

def timestamps(frames) -> list:
	return [frame.presentation_timestamp for frame in frames]

#============================================

def test_sample_targets_are_interval_centers() -> None:
	requests = sample_requests(Rational(10, 1), 4)
	targets = [request.target for request in requests]
	assert targets == [Rational(5, 4), Rational(15, 4), Rational(25, 4), Rational(35, 4)]
	assert [request.index for request in requests] == [0, 1, 2, 3]

#============================================

@pytest.mark.parametrize("count", [1, 2, 3, 15, 64])
@pytest.mark.parametrize("duration", [Rational(1, 30), Rational(120123, 1000), Rational(7200, 1)])
def test_sample_targets_increase_inside_duration(duration, count) -> None:
	targets = [request.target for request in sample_requests(duration, count)]
	assert len(targets) == count
	for earlier, later in zip(targets, targets[1:]):
		assert earlier < later
	assert targets[0] > Rational(0, 1)
	assert targets[-1] < duration

#============================================

def test_sample_requests_needs_a_positive_count() -> None:
	with pytest.raises(ValueError):
		sample_requests(Rational(10, 1), 0)

#============================================

def test_request_position_in_microseconds() -> None:
	request = SampleRequest(index=0, count=1, target=Rational(3, 2))
	assert request.position() == 1500000

#============================================

def test_one_frame_per_request() -> None:
	source = FakeSource(every_second(10))
	sampler = SeekSampler(source, Rational(10, 1), 5, fake_scaler)
	frames = list(sampler)
	assert timestamps(frames) == [Rational(t, 1) for t in (1, 3, 5, 7, 9)]
	assert [frame.index for frame in frames] == [0, 1, 2, 3, 4]
	# decoding stops at the first frame of each sample
	assert len(source.decoder.sent) == 5
	assert [forward for _, forward in source.seeks] == [True] * 5
	assert sampler.frames_produced == 5
	assert sampler.state == SamplerState.EXHAUSTED

#============================================

def test_frames_carry_scaler_geometry() -> None:
	source = FakeSource(every_second(4))
	frame = next(SeekSampler(source, Rational(4, 1), 1, fake_scaler))
	assert (frame.width, frame.height, frame.row_stride, frame.plane_count) == (4, 2, 16, 1)
	assert len(frame.pixel_buffer) == 32

#============================================

def test_delayed_decoder_and_drain() -> None:
	source = FakeSource(every_second(10), delay=1)
	frames = list(SeekSampler(source, Rational(10, 1), 5, fake_scaler))
	assert timestamps(frames) == [Rational(t, 1) for t in (1, 3, 5, 7, 9)]
	# the last sample only came out of the drained decoder
	assert frames[-1].index is None
	assert source.decoder.drain_calls == 1

#============================================

def test_drained_frame_dropped_when_sheet_is_full() -> None:
	source = FakeSource([0, 500, 1500, 2500, 3500, 3600], delay=1)
	sampler = SeekSampler(source, Rational(4, 1), 2, fake_scaler)
	frames = list(sampler)
	assert len(frames) == 2
	assert source.decoder.drain_calls == 1

#============================================

def test_missing_frames_are_skipped() -> None:
	source = FakeSource(every_second(6))
	frames = list(SeekSampler(source, Rational(10, 1), 5, fake_scaler))
	assert timestamps(frames) == [Rational(1, 1), Rational(3, 1), Rational(5, 1)]

#============================================

def test_frame_without_pts_uses_target() -> None:
	source = FakeSource(every_second(10), stamp=False)
	frames = list(SeekSampler(source, Rational(10, 1), 2, fake_scaler))
	assert timestamps(frames) == [Rational(5, 2), Rational(15, 2)]

#============================================

def test_seek_retries_with_wider_range(capsys) -> None:
	source = FakeSource(every_second(10), fail_forward=True)
	frames = list(SeekSampler(source, Rational(10, 1), 2, fake_scaler))
	assert len(frames) == 2
	assert [forward for _, forward in source.seeks] == [True, False, True, False]
	assert "trying with more range" in capsys.readouterr().err

#============================================

def test_seek_failure_aborts_and_exhausts() -> None:
	source = FakeSource(every_second(10), fail_all=True)
	sampler = SeekSampler(source, Rational(10, 1), 3, fake_scaler)
	with pytest.raises(SeekFailedError):
		next(sampler)
	assert sampler.state == SamplerState.EXHAUSTED
	with pytest.raises(StopIteration):
		next(sampler)

#============================================

def test_sampler_is_single_pass() -> None:
	source = FakeSource(every_second(10))
	sampler = SeekSampler(source, Rational(10, 1), 3, fake_scaler)
	assert len(list(sampler)) == 3
	assert list(sampler) == []
	assert len(source.seeks) == 3
