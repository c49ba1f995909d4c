#!/usr/bin/env python3

"""
Seek based frame sampling.

For N samples over a duration D, sample i is taken at D*(2i+1)/(2N), the
center of the i-th of N equal sub-intervals. Each sample seeks the
container, feeds video packets to the decoder until one frame comes out,
then moves on. Once every request has been issued the decoder is drained
once, because it may still hold a buffered frame.
"""

import enum
from dataclasses import dataclass
from vsheetlib.core import utils
from vsheetlib.core.duration import AV_TIME_BASE
from vsheetlib.core.duration import VideoDuration
from vsheetlib.core.errors import SeekFailedError
from vsheetlib.core.rational import Rational

#============================================

class SamplerState(enum.Enum):
	IDLE = 'idle'
	SEEKING = 'seeking'
	DECODING = 'decoding'
	FRAME_READY = 'frame_ready'
	DRAINING = 'draining'
	EXHAUSTED = 'exhausted'

#============================================

@dataclass(frozen=True)
class SampleRequest:
	index: int
	count: int
	target: Rational

	#============================
	def position(self) -> int:
		"""Seek position in AV_TIME_BASE units."""
		return int(self.target.to_float() * AV_TIME_BASE)

#============================================

@dataclass
class SampledFrame:
	"""A scaled, packed 3-channel frame as handed over by the scaler."""
	pixel_buffer: bytes
	width: int
	height: int
	row_stride: int
	presentation_timestamp: Rational
	plane_count: int = 1
	index: int = None

#============================================

def sample_requests(duration: Rational, count: int) -> list:
	if count < 1:
		raise ValueError("number of samples must be positive")
	requests = []
	for index in range(count):
		offset = Rational(2 * index + 1, 2 * count)
		target = duration.mul_or_approx(offset)
		requests.append(SampleRequest(index=index, count=count, target=target))
	return requests

#============================================

def pts_to_seconds(pts: int, time_base: Rational) -> Rational:
	return time_base.mul_or_approx(int(pts))

#============================================

class SeekSampler():
	"""
	Single pass, forward only source of SampledFrame objects.

	The source must provide time_base (Rational), seek(position, forward_only),
	packets() and a decoder with send(packet) and drain(). The scaler turns a
	decoded frame into (buffer, width, height, row_stride, plane_count).
	"""
	def __init__(self, source, duration: Rational, count: int, scaler):
		self.source = source
		self.scaler = scaler
		self.duration = duration
		self.count = count
		self.time_base = source.time_base
		self.requests = sample_requests(duration, count)
		self.state = SamplerState.IDLE
		self.frames_produced = 0
		self._next_request = 0

	#============================
	def __iter__(self):
		return self

	#============================
	def __next__(self) -> SampledFrame:
		if self.state == SamplerState.EXHAUSTED:
			raise StopIteration
		try:
			frame = self._advance()
		except Exception:
			self.state = SamplerState.EXHAUSTED
			raise
		if frame is None:
			self.state = SamplerState.EXHAUSTED
			raise StopIteration
		return frame

	#============================
	def _advance(self):
		while self._next_request < len(self.requests):
			request = self.requests[self._next_request]
			self._next_request += 1
			self.state = SamplerState.SEEKING
			self._seek(request)
			self.state = SamplerState.DECODING
			decoded = self._decode_first_frame()
			if decoded is not None:
				self.state = SamplerState.FRAME_READY
				return self._make_frame(decoded, request.target, request.index)
			utils.debug(f"no frame available near {VideoDuration(request.target)}")
			self.state = SamplerState.IDLE
		return self._drain()

	#============================
	def _seek(self, request: SampleRequest) -> None:
		label = VideoDuration(request.target)
		position = request.position()
		utils.debug(f"seeking to {label} (position {position})")
		try:
			self.source.seek(position, forward_only=True)
			return
		except SeekFailedError as exc:
			utils.warn(f"seek to {label}.. failed: {exc}, trying with more range")
		try:
			self.source.seek(position, forward_only=False)
		except SeekFailedError as exc:
			raise SeekFailedError(f"seek to {label} failed: {exc}") from exc

	#============================
	def _decode_first_frame(self):
		decoder = self.source.decoder
		for packet in self.source.packets():
			decoded = decoder.send(packet)
			if decoded is not None:
				return decoded
		return None

	#============================
	def _drain(self):
		if self.state == SamplerState.DRAINING:
			return None
		self.state = SamplerState.DRAINING
		decoded = self.source.decoder.drain()
		if decoded is None:
			return None
		if self.frames_produced >= self.count:
			utils.debug("dropping drained frame, every sample is already filled")
			return None
		last_target = self.requests[-1].target
		return self._make_frame(decoded, last_target, None)

	#============================
	def _make_frame(self, decoded, fallback_target: Rational, index) -> SampledFrame:
		pts = getattr(decoded, 'pts', None)
		if pts is None:
			timestamp = fallback_target
		else:
			timestamp = pts_to_seconds(pts, self.time_base)
		buffer, width, height, row_stride, plane_count = self.scaler(decoded)
		utils.debug(f" decoder got one frame: W {width} x H {height}, pts {VideoDuration(timestamp)}")
		self.frames_produced += 1
		return SampledFrame(
			pixel_buffer=buffer,
			width=width,
			height=height,
			row_stride=row_stride,
			presentation_timestamp=timestamp,
			plane_count=plane_count,
			index=index,
		)
