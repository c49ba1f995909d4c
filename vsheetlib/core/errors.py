#!/usr/bin/env python3

"""
Error classes raised while building a contact sheet.

Every class aborts the current input file only; batch callers decide
whether to keep going.
"""

#============================================

class SheetError(RuntimeError):
	pass

#============================================

class SettingsError(SheetError):
	pass

#============================================

class OpenError(SheetError):
	"""Raised when the input cannot be opened as a media container."""
	pass

#============================================

class NoVideoStreamError(OpenError):
	pass

#============================================

class UnknownDurationError(SheetError):
	def __init__(self, stream_index: int):
		self.stream_index = stream_index
		super().__init__(f"unable to determine the duration of input (stream #{stream_index})")

#============================================

class SeekFailedError(SheetError):
	pass

#============================================

class DecodeError(SheetError):
	"""Raised when decoding a packet or scaling a decoded frame fails."""
	pass

#============================================

class UnsupportedPixelLayoutError(SheetError):
	pass

#============================================

class FontLoadError(SheetError):
	def __init__(self, attempted: list, reason: str = None):
		self.attempted = list(attempted)
		message = "load font failed"
		if len(self.attempted) > 0:
			message += f", tried: {', '.join(self.attempted)}"
		if reason:
			message += f" ({reason})"
		super().__init__(message)

#============================================

class EncodeError(SheetError):
	pass

#============================================

class EmptyFrameSetError(SheetError):
	def __init__(self):
		super().__init__("no frames were sampled, contact sheet cannot be produced")

#============================================

class RationalOverflowError(OverflowError):
	pass
