#!/usr/bin/env python3

"""
Pytest coverage for timestamp text rendering.
"""

# Standard Library
import os
import sys
import threading

# PIP3 modules
import numpy
import PIL.Image
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# tests helpers
TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
from font_utils import find_system_ttf

# local repo modules
from vsheetlib.core.errors import FontLoadError
from vsheetlib.text.overlay import FontHandle
from vsheetlib.text.overlay import FontTextRenderer
from vsheetlib.text.overlay import OutlineTextRenderer
from vsheetlib.text.overlay import blend_text_pixels
from vsheetlib.text.overlay import halo_alpha
from vsheetlib.text.overlay import make_text_renderer
from vsheetlib.text.overlay import outline_shadow_color
from vsheetlib.text.overlay import text_alpha_mask

#============================================

SYSTEM_FONT = find_system_ttf()
needs_font = pytest.mark.skipif(SYSTEM_FONT is None, reason="no system font found")

#============================================

def random_background(shape=(6, 7, 3)) -> numpy.ndarray:
	rng = numpy.random.default_rng(7)
	return rng.integers(0, 256, size=shape, dtype=numpy.uint8)

#============================================

def test_full_text_coverage_gives_text_color() -> None:
	background = random_background()
	ones = numpy.ones(background.shape[:2])
	result = blend_text_pixels(background, ones, ones * 0.5, (255, 255, 255), (0, 0, 0))
	assert (result == 255).all()

#============================================

def test_zero_coverage_keeps_background() -> None:
	background = random_background()
	zeros = numpy.zeros(background.shape[:2])
	result = blend_text_pixels(background, zeros, zeros, (255, 255, 255), (0, 0, 0))
	assert numpy.array_equal(result, background)

#============================================

def test_halo_only_gives_halo_color() -> None:
	background = random_background()
	zeros = numpy.zeros(background.shape[:2])
	result = blend_text_pixels(background, zeros, zeros + 1.0, (255, 255, 255), (0, 0, 0))
	assert (result == 0).all()

#============================================

def test_partial_coverage_mixes() -> None:
	background = numpy.zeros((1, 1, 3), dtype=numpy.uint8)
	half = numpy.full((1, 1), 0.5)
	result = blend_text_pixels(background, half, numpy.zeros((1, 1)), (255, 255, 255), (0, 0, 0))
	assert tuple(result[0, 0]) == (128, 128, 128)

#============================================

def test_halo_spreads_around_ink() -> None:
	alpha = numpy.zeros((21, 21))
	alpha[10, 10] = 1.0
	halo = halo_alpha(alpha, 32)
	assert halo[10, 12] > 0.0
	assert halo.max() <= 1.0
	assert halo.min() >= 0.0

#============================================

def test_missing_font_raises_and_is_cached() -> None:
	handle = FontHandle("/nonexistent/font.ttf", fallback_paths=[])
	with pytest.raises(FontLoadError) as excinfo:
		handle.get(20)
	assert "/nonexistent/font.ttf" in excinfo.value.attempted
	assert "--font" in str(excinfo.value)
	with pytest.raises(FontLoadError):
		handle.get(20)
	assert handle.load_count == 1

#============================================

@needs_font
def test_font_falls_back_to_defaults(capsys) -> None:
	handle = FontHandle("/nonexistent/font.ttf", fallback_paths=[SYSTEM_FONT])
	handle.get(20)
	assert handle.path == SYSTEM_FONT
	assert "fallback to default" in capsys.readouterr().err

#============================================

@needs_font
def test_font_loads_once_across_threads() -> None:
	handle = FontHandle(SYSTEM_FONT, fallback_paths=[])
	barrier = threading.Barrier(8)
	faces = []
	errors = []

	def worker():
		barrier.wait()
		try:
			faces.append(handle.get(24))
		except FontLoadError as exc:
			errors.append(exc)

	threads = [threading.Thread(target=worker) for _ in range(8)]
	for thread in threads:
		thread.start()
	for thread in threads:
		thread.join()
	assert errors == []
	assert len(faces) == 8
	assert handle.load_count == 1
	# every thread owns its face
	assert len(set(id(face) for face in faces)) == 8

#============================================

@needs_font
def test_alpha_mask_has_empty_margin() -> None:
	font = FontHandle(SYSTEM_FONT, fallback_paths=[]).get(28)
	mask, _ = text_alpha_mask(font, "00:12.345")
	ascent, descent = font.getmetrics()
	assert mask.shape[0] == ascent + descent + 2
	assert mask.max() > 0.5
	assert mask[0, :].max() == 0.0
	assert mask[:, 0].max() == 0.0

#============================================

@needs_font
def test_font_renderer_draws_near_position() -> None:
	renderer = FontTextRenderer(FontHandle(SYSTEM_FONT, fallback_paths=[]))
	canvas = PIL.Image.new('RGB', (300, 100), (0, 0, 0))
	renderer.draw_text(canvas, "00:12.345", 10, 10, 28)
	pixels = numpy.asarray(canvas)
	height = renderer.text_height(28)
	assert pixels[10:10 + height, 10:200].max() > 200
	assert pixels[10 + height + 20:, :].max() == 0
	assert pixels[:, 250:].max() == 0

#============================================

@needs_font
def test_font_renderer_clips_at_canvas_edge() -> None:
	renderer = FontTextRenderer(FontHandle(SYSTEM_FONT, fallback_paths=[]))
	canvas = PIL.Image.new('RGB', (30, 20), (0, 0, 0))
	renderer.draw_text(canvas, "00:12.345", -5, 12, 28)
	renderer.draw_text(canvas, "00:12.345", 500, 500, 28)
	assert canvas.size == (30, 20)

#============================================

def test_outline_renderer_draws_text() -> None:
	renderer = OutlineTextRenderer()
	canvas = PIL.Image.new('RGB', (200, 60), (128, 128, 128))
	renderer.draw_text(canvas, "00:12.345", 5, 5, 20)
	pixels = numpy.asarray(canvas)
	assert renderer.text_height(20) > 0
	assert (pixels == 255).any()
	assert (pixels == 0).any()

#============================================

def test_make_text_renderer() -> None:
	assert isinstance(make_text_renderer('outline'), OutlineTextRenderer)
	assert isinstance(make_text_renderer('font', '/some/font.ttf'), FontTextRenderer)
	with pytest.raises(ValueError):
		make_text_renderer('bitmap')

#============================================

def test_outline_shadow_follows_halo_color() -> None:
	assert outline_shadow_color((255, 255, 255), (0, 0, 0), 16) == (16, 16, 16)
	assert outline_shadow_color((255, 255, 255), (0, 0, 0), 0) == (0, 0, 0)
	assert outline_shadow_color((0, 0, 0), (255, 255, 255), 16) == (239, 239, 239)

#============================================

def test_outline_header_text_gets_light_outline() -> None:
	renderer = OutlineTextRenderer()
	canvas = PIL.Image.new('RGB', (200, 60), (128, 128, 128))
	renderer.draw_text(canvas, "Codec: h264", 5, 5, 20, (0, 0, 0), (255, 255, 255))
	pixels = numpy.asarray(canvas)
	assert (pixels == 0).any()
	# white only comes from the outline layer
	assert (pixels == 255).any()
