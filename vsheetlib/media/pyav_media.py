#!/usr/bin/env python3

"""
PyAV backed video source, decoder and scaler used by the frame sampler.
"""

import av
import av.error
from vsheetlib.core import utils
from vsheetlib.core.errors import DecodeError
from vsheetlib.core.errors import NoVideoStreamError
from vsheetlib.core.errors import OpenError
from vsheetlib.core.errors import SeekFailedError
from vsheetlib.core.rational import Rational

#============================================

SCALE_FORMAT = 'rgb24'
SCALE_INTERPOLATION = 'BILINEAR'

#============================================

class StreamDecoder():
	def __init__(self, codec_context):
		self.codec_context = codec_context

	#============================
	def send(self, packet):
		"""
		Feed one packet and return the first frame it produced, or None.
		"""
		try:
			frames = self.codec_context.decode(packet)
		except av.error.FFmpegError as exc:
			raise DecodeError(f"send packet to decoder failed: {exc}") from exc
		if len(frames) == 0:
			return None
		return frames[0]

	#============================
	def drain(self):
		try:
			frames = self.codec_context.decode(None)
		except av.error.EOFError:
			return None
		except av.error.FFmpegError as exc:
			raise DecodeError(f"receive frame after eof failed: {exc}") from exc
		if len(frames) == 0:
			return None
		return frames[0]

#============================================

class FrameScaler():
	def __init__(self, target_width: int):
		if target_width <= 0:
			raise ValueError("scaled frame width must be positive")
		self.target_width = target_width

	#============================
	def target_height(self, width: int, height: int) -> int:
		return max(1, height * self.target_width // width)

	#============================
	def __call__(self, frame) -> tuple:
		height = self.target_height(frame.width, frame.height)
		try:
			scaled = frame.reformat(width=self.target_width, height=height,
				format=SCALE_FORMAT, interpolation=SCALE_INTERPOLATION)
		except (av.error.FFmpegError, ValueError) as exc:
			raise DecodeError(f"scale failed: {exc}") from exc
		plane = scaled.planes[0]
		return (bytes(plane), scaled.width, scaled.height, plane.line_size,
			len(scaled.planes))

#============================================

class VideoSource():
	def __init__(self, path: str):
		self.path = path
		try:
			self.container = av.open(path)
		except (av.error.FFmpegError, OSError) as exc:
			raise OpenError(f"open input {path} failed: {exc}") from exc
		self.stream = self.container.streams.best('video')
		if self.stream is None:
			self.container.close()
			raise NoVideoStreamError(f"no video stream found in {path}")
		codec_context = self.stream.codec_context
		self.decoder = StreamDecoder(codec_context)
		self.index = self.stream.index
		self.width = codec_context.width
		self.height = codec_context.height
		self.codec_name = codec_context.name
		self.container_duration = self.container.duration
		self.time_base = Rational.from_fraction(self.stream.time_base).reduce()
		utils.debug(f"stream index: {self.index}, time_base: {self.time_base}")
		utils.debug(f"video size: W {self.width} x H {self.height}, codec {self.codec_name}")

	#============================
	def seek(self, position: int, forward_only: bool = True) -> None:
		"""
		Seek the container to position (AV_TIME_BASE units).

		forward_only restricts the landing point to [position, inf), otherwise
		any keyframe around position is accepted.
		"""
		try:
			self.container.seek(position, backward=not forward_only, any_frame=False)
		except av.error.FFmpegError as exc:
			raise SeekFailedError(str(exc)) from exc

	#============================
	def packets(self):
		try:
			for packet in self.container.demux(self.stream):
				# zero sized packets only mark the end of the stream
				if packet.size == 0:
					continue
				yield packet
		except av.error.EOFError:
			return
		except av.error.FFmpegError as exc:
			raise DecodeError(f"read packet failed: {exc}") from exc

	#============================
	def close(self) -> None:
		self.container.close()

	#============================
	def __enter__(self):
		return self

	#============================
	def __exit__(self, exc_type, exc_value, traceback):
		self.close()
		return False
