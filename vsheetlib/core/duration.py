#!/usr/bin/env python3

import re
from dataclasses import dataclass
from fractions import Fraction
from vsheetlib.core import utils
from vsheetlib.core.errors import RationalOverflowError
from vsheetlib.core.errors import UnknownDurationError
from vsheetlib.core.rational import Rational

#============================================

# container timestamps use microseconds (AV_TIME_BASE)
AV_TIME_BASE = 1000000
# AV_NOPTS_VALUE as exposed by the C libraries
NOPTS_VALUE = -(2 ** 63)

DURATION_TEXT_RE = re.compile(r'^\s*(\d+):([0-5]\d):([0-5]\d)(?:\.(\d+))?\s*$')

#============================================

class VideoDuration():
	"""
	Seconds held as a Rational, printed as MM:SS.mmm or HH:MM:SS.mmm.
	"""
	def __init__(self, seconds: Rational):
		self.seconds = seconds

	#============================
	def __str__(self) -> str:
		value = self.seconds.to_fraction()
		if value < 0:
			return "-" + _format_seconds(-value)
		return _format_seconds(value)

	#============================
	def __repr__(self) -> str:
		return f"VideoDuration({self.seconds!r})"

#============================================

def _format_seconds(value: Fraction) -> str:
	# whole milliseconds, truncated like the integer part
	total_ms = (value.numerator * 1000) // value.denominator
	secs = total_ms // 1000
	millis = total_ms % 1000
	if secs < 3600:
		return f"{secs // 60:02d}:{secs % 60:02d}.{millis:03d}"
	return f"{secs // 3600:02d}:{secs // 60 % 60:02d}:{secs % 60:02d}.{millis:03d}"

#============================================

@dataclass(frozen=True)
class StreamTiming:
	"""Per-input timing, fixed once the duration is resolved."""
	time_base: Rational
	total_duration: Rational

#============================================

def parse_duration_text(text: str) -> Rational:
	"""
	Parse an H+:MM:SS[.fff] string, such as a Matroska DURATION tag, into seconds.
	"""
	match = DURATION_TEXT_RE.match(text)
	if match is None:
		raise ValueError(f"not a duration string: {text!r}")
	hours = int(match.group(1))
	minutes = int(match.group(2))
	seconds = int(match.group(3))
	total = Fraction(hours * 3600 + minutes * 60 + seconds, 1)
	fraction_digits = match.group(4)
	if fraction_digits:
		total += Fraction(int(fraction_digits), 10 ** len(fraction_digits))
	try:
		return Rational.from_fraction(total)
	except RationalOverflowError:
		approx = Rational.from_float(float(total))
		utils.warn(f"duration {text} does not fit a rational, fallback to {approx}")
		return approx

#============================================

def _known(value) -> bool:
	if value is None:
		return False
	return value > 0 and value != NOPTS_VALUE

#============================================

def resolve_duration(stream, container_duration=None) -> Rational:
	"""
	Return the playable duration of a video stream in seconds.

	Tries the stream tick count first, then DURATION metadata tags, then
	the container level duration in AV_TIME_BASE units.

	Args:
		stream: object with index, duration, time_base and metadata attributes.
		container_duration: container duration in microseconds, or None.

	Returns:
		Rational: duration in seconds.
	"""
	duration_ticks = getattr(stream, 'duration', None)
	time_base = getattr(stream, 'time_base', None)
	if _known(duration_ticks) and time_base is not None:
		time_base = Rational.from_fraction(time_base).reduce()
		utils.debug(f"raw duration: {duration_ticks}, time_base: {time_base}")
		return time_base.mul_or_approx(int(duration_ticks))

	metadata = getattr(stream, 'metadata', None) or {}
	utils.debug(f"trying to find duration from {len(metadata)} metadata entries")
	for key, value in metadata.items():
		if not str(key).startswith('DURATION'):
			continue
		try:
			return parse_duration_text(str(value))
		except ValueError:
			utils.debug(f"ignoring unparsable metadata {key} = {value}")
			continue

	if _known(container_duration):
		seconds = Fraction(int(container_duration), AV_TIME_BASE)
		try:
			return Rational.from_fraction(seconds)
		except RationalOverflowError:
			return Rational.from_float(float(seconds))

	raise UnknownDurationError(getattr(stream, 'index', -1))
