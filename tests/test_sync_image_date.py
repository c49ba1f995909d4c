#!/usr/bin/env python3

"""
Pytest coverage for tools/sync_image_date.py.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
TOOLS_DIR = os.path.join(REPO_ROOT, "tools")
if TOOLS_DIR not in sys.path:
	sys.path.insert(0, TOOLS_DIR)

# local repo modules
import sync_image_date

#============================================

def make_file(path, mtime=None) -> str:
	path = str(path)
	with open(path, 'wb') as handle:
		handle.write(b'data')
	if mtime is not None:
		os.utime(path, (mtime, mtime))
	return path

#============================================

def test_appended_extension(tmp_path) -> None:
	video = make_file(tmp_path / "movie.mkv", mtime=1300000000)
	image = make_file(tmp_path / "movie.mkv.jpg")
	assert sync_image_date.sync_image_date(image) == video
	assert os.stat(image).st_mtime == 1300000000

#============================================

def test_replaced_extension(tmp_path) -> None:
	video = make_file(tmp_path / "movie.mp4", mtime=1400000000)
	image = make_file(tmp_path / "movie.jpg")
	assert sync_image_date.find_video(image) == video
	sync_image_date.main([image])
	assert os.stat(image).st_mtime == 1400000000

#============================================

def test_video_not_found(tmp_path) -> None:
	image = make_file(tmp_path / "lonely.jpg")
	with pytest.raises(RuntimeError):
		sync_image_date.find_video(image)
