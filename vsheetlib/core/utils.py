#!/usr/bin/env python3

import sys
import threading

#============================================

_QUIET_MODE = False
_DEBUG_MODE = False
_PRINT_LOCK = threading.Lock()

#============================================

def set_quiet_mode(value: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(value)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def set_debug_mode(value: bool) -> None:
	global _DEBUG_MODE
	_DEBUG_MODE = bool(value)

#============================================

def report(msg: str) -> None:
	if _QUIET_MODE:
		return
	with _PRINT_LOCK:
		print(msg)

#============================================

def warn(msg: str) -> str:
	"""
	Print a warning to stderr and hand the text back so callers can record it.
	"""
	with _PRINT_LOCK:
		print(f"WARNING: {msg}", file=sys.stderr)
	return msg

#============================================

def debug(msg: str) -> None:
	if not _DEBUG_MODE:
		return
	with _PRINT_LOCK:
		print(f"DEBUG: {msg}", file=sys.stderr)

#============================================

def readable_size(size: int) -> str:
	k = 1024
	kf = 1024.0
	if size <= k:
		return f"{size} B"
	if size <= k * k:
		return f"{size / kf:.2f} KiB"
	if size <= k * k * k:
		return f"{size / kf / kf:.2f} MiB"
	if size <= k * k * k * k:
		return f"{size / kf / kf / kf:.2f} GiB"
	return f"{size / kf / kf / kf / kf:.2f} TiB"
