"""
Font discovery helpers for tests.
"""

# Standard Library
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from vsheetlib.text.overlay import default_font_paths

#============================================

SEARCH_DIRS = [
	"/Library/Fonts",
	"/System/Library/Fonts",
	"/usr/share/fonts",
	"/usr/local/share/fonts",
]

#============================================

def find_system_ttf() -> str:
	"""
	Find a font file FreeType can open, preferring the renderer defaults.
	"""
	for path in default_font_paths():
		if os.path.isfile(path):
			return path
	for base in SEARCH_DIRS:
		if not os.path.isdir(base):
			continue
		for root, dirs, files in os.walk(base):
			dirs[:] = sorted(dirs)
			for name in sorted(files):
				if name.lower().endswith((".ttf", ".otf")):
					return os.path.join(root, name)
	return None
