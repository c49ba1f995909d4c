#!/usr/bin/env python3

from dataclasses import dataclass
import numpy
from vsheetlib.core.duration import VideoDuration
from vsheetlib.core.errors import UnsupportedPixelLayoutError
from vsheetlib.core.sampler import SampledFrame

#============================================

CHANNELS = 3

#============================================

@dataclass
class NormalizedFrame:
	"""Tightly packed (height, width, 3) uint8 pixels plus the timestamp label."""
	pixels: numpy.ndarray
	width: int
	height: int
	label: str

#============================================

def normalize_frame(frame: SampledFrame) -> NormalizedFrame:
	"""
	Copy a scaled frame row by row, dropping the alignment padding at the
	end of each row.
	"""
	if frame.plane_count != 1:
		raise UnsupportedPixelLayoutError(
			f"scaled frame has {frame.plane_count} planes, expected 1")
	row_bytes = frame.width * CHANNELS
	if frame.row_stride < row_bytes:
		raise UnsupportedPixelLayoutError(
			f"row stride {frame.row_stride} is smaller than {row_bytes} bytes per row")
	needed = frame.row_stride * (frame.height - 1) + row_bytes
	if frame.height > 0 and len(frame.pixel_buffer) < needed:
		raise UnsupportedPixelLayoutError(
			f"pixel buffer holds {len(frame.pixel_buffer)} bytes, expected at least {needed}")
	flat = numpy.frombuffer(frame.pixel_buffer, dtype=numpy.uint8)
	pixels = numpy.empty((frame.height, frame.width, CHANNELS), dtype=numpy.uint8)
	for row in range(frame.height):
		start = row * frame.row_stride
		pixels[row] = flat[start:start + row_bytes].reshape(frame.width, CHANNELS)
	label = str(VideoDuration(frame.presentation_timestamp))
	return NormalizedFrame(pixels=pixels, width=frame.width, height=frame.height, label=label)
