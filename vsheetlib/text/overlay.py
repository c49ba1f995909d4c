#!/usr/bin/env python3

"""
Timestamp and header text rendering for contact sheets.

Two renderers share one interface, draw_text(canvas, text, x, y, size,
color, halo_color) and text_height(size):

* FontTextRenderer rasterizes the text with a TrueType/OpenType font into an
  alpha mask, grows and blurs that mask into a halo, and alpha composites
  text, halo and canvas so light text stays readable over any frame.
* OutlineTextRenderer needs no font file; it stacks Pillow's built-in font
  three times with shifted halo colored copies underneath.
"""

import io
import math
import os
import sys
import threading
import numpy
import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont
from scipy.ndimage import gaussian_filter
from scipy.ndimage import grey_dilation
from vsheetlib.core import utils
from vsheetlib.core.errors import FontLoadError

#============================================

ALPHA_EPSILON = 1e-6
# (offset, share of the text color) for the layers drawn below the text
# by the outline renderer; the rest of each layer is the halo color
OUTLINE_SHADOWS = ((2, 16), (1, 0))

WINDOWS_FONTS = [
	"C:\\Windows\\Fonts\\simhei.ttf",
	"C:\\Windows\\Fonts\\msyh.ttc",
	"C:\\Windows\\Fonts\\arial.ttf",
]
MACOS_FONTS = [
	"/System/Library/Fonts/PingFang.ttc",
	"/System/Library/Fonts/STHeiti Light.ttc",
	"/Library/Fonts/Arial Unicode.ttf",
	"/System/Library/Fonts/Supplemental/Arial.ttf",
]
LINUX_FONTS = [
	"/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
	"/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
	"/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
	"/usr/share/fonts/wenquanyi/wqy-microhei/wqy-microhei.ttc",
	"/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
	"/usr/share/fonts/TTF/DejaVuSans.ttf",
	"/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
]

#============================================

def default_font_paths() -> list:
	if sys.platform.startswith('win'):
		return list(WINDOWS_FONTS)
	if sys.platform == 'darwin':
		return list(MACOS_FONTS)
	return list(LINUX_FONTS)

#============================================

class FontHandle():
	"""
	Process wide font resource, loaded at most once on first use.

	The font file bytes are read once and shared read-only; every thread
	builds its own sized faces from them, since a FreeType face must not be
	used from two threads at the same time.
	"""
	def __init__(self, font_file: str = None, fallback_paths: list = None):
		self.font_file = font_file
		if fallback_paths is None:
			fallback_paths = default_font_paths()
		self.fallback_paths = fallback_paths
		self.path = None
		self.load_count = 0
		self._font_bytes = None
		self._failure = None
		self._lock = threading.Lock()
		self._local = threading.local()

	#============================
	def _read_font(self, path: str) -> bytes:
		utils.debug(f"loading font {path}")
		if not os.path.isfile(path):
			raise OSError(f"font {path} does not exist")
		with open(path, 'rb') as font_file:
			data = font_file.read()
		# parse once to reject files FreeType cannot open
		PIL.ImageFont.truetype(io.BytesIO(data), 12)
		return data

	#============================
	def _load(self) -> None:
		self.load_count += 1
		attempted = []
		if self.font_file is not None:
			attempted.append(self.font_file)
			try:
				self._font_bytes = self._read_font(self.font_file)
				self.path = self.font_file
				utils.report(f"Load font {self.font_file} success")
				return
			except OSError as exc:
				utils.warn(f"Load font {self.font_file} failed: {exc}, fallback to default")
		for path in self.fallback_paths:
			if not os.path.isfile(path):
				continue
			attempted.append(path)
			try:
				self._font_bytes = self._read_font(path)
				self.path = path
				return
			except OSError as exc:
				utils.debug(f"font {path} rejected: {exc}")
		if len(attempted) == 0:
			attempted = list(self.fallback_paths)
		self._failure = attempted

	#============================
	def ensure_loaded(self) -> None:
		if self._font_bytes is None and self._failure is None:
			with self._lock:
				if self._font_bytes is None and self._failure is None:
					self._load()
		if self._failure is not None:
			raise FontLoadError(self._failure, "pass a font file with --font")

	#============================
	def get(self, size: int):
		self.ensure_loaded()
		sizes = getattr(self._local, 'sizes', None)
		if sizes is None:
			sizes = {}
			self._local.sizes = sizes
		font = sizes.get(size)
		if font is None:
			font = PIL.ImageFont.truetype(io.BytesIO(self._font_bytes), size)
			sizes[size] = font
		return font

#============================================

def text_alpha_mask(font, text: str) -> tuple:
	"""
	Rasterize text into a float alpha mask with a 1px empty margin.

	Returns:
		tuple: (mask of shape (ascent+descent+2, width+2), x offset of the
		first inked column relative to the pen position)
	"""
	ascent, descent = font.getmetrics()
	left, _, right, _ = font.getbbox(text, anchor='la')
	width = max(0, right - left)
	height = ascent + descent
	image = PIL.Image.new('L', (width + 2, height + 2), 0)
	draw = PIL.ImageDraw.Draw(image)
	draw.text((1 - left, 1), text, font=font, fill=255, anchor='la')
	mask = numpy.asarray(image, dtype=numpy.float64) / 255.0
	return (mask, left)

#============================================

def halo_alpha(alpha: numpy.ndarray, font_size: float) -> numpy.ndarray:
	sigma = font_size / 16.0
	radius = math.ceil(sigma)
	grown = grey_dilation(alpha, size=(3, 3), mode='constant', cval=0.0)
	return gaussian_filter(grown, sigma=sigma, mode='nearest', truncate=radius / sigma)

#============================================

def blend_text_pixels(background: numpy.ndarray, fg_alpha: numpy.ndarray,
	halo: numpy.ndarray, color: tuple, halo_color: tuple) -> numpy.ndarray:
	"""
	Source-over composite of text over halo over background.

	Args:
		background: (h, w, 3) uint8 pixels.
		fg_alpha: (h, w) text coverage in 0..1.
		halo: (h, w) halo coverage in 0..1.
		color: text color.
		halo_color: halo color.

	Returns:
		numpy.ndarray: (h, w, 3) uint8 pixels.
	"""
	fg = fg_alpha[..., numpy.newaxis]
	bg_alpha = halo[..., numpy.newaxis]
	fg_color = numpy.asarray(color, dtype=numpy.float64) / 255.0
	bg_color = numpy.asarray(halo_color, dtype=numpy.float64) / 255.0
	out_alpha = fg + bg_alpha * (1.0 - fg)
	visible = out_alpha > ALPHA_EPSILON
	safe_alpha = numpy.where(visible, out_alpha, 1.0)
	out_color = (fg * fg_color + bg_alpha * (1.0 - fg) * bg_color) / safe_alpha
	out_alpha = numpy.where(visible, out_alpha, 0.0)
	base = background.astype(numpy.float64) / 255.0
	result = base * (1.0 - out_alpha) + out_color * out_alpha
	return numpy.clip(numpy.rint(result * 255.0), 0, 255).astype(numpy.uint8)

#============================================

class FontTextRenderer():
	def __init__(self, font_handle: FontHandle):
		self.font_handle = font_handle

	#============================
	def text_height(self, font_size: int) -> int:
		ascent, descent = self.font_handle.get(font_size).getmetrics()
		return ascent + descent + 2

	#============================
	def draw_text(self, canvas, text: str, x: int, y: int, font_size: int,
		color: tuple = (255, 255, 255), halo_color: tuple = (0, 0, 0)) -> None:
		font = self.font_handle.get(font_size)
		alpha, offset = text_alpha_mask(font, text)
		halo = halo_alpha(alpha, font_size)
		# mask column 1 holds the first inked column
		left = x + offset - 1
		top = y
		mask_h, mask_w = alpha.shape
		canvas_w, canvas_h = canvas.size
		x0 = max(left, 0)
		y0 = max(top, 0)
		x1 = min(left + mask_w, canvas_w)
		y1 = min(top + mask_h, canvas_h)
		if x1 <= x0 or y1 <= y0:
			return
		region = numpy.asarray(canvas.crop((x0, y0, x1, y1)).convert('RGB'))
		rows = slice(y0 - top, y1 - top)
		cols = slice(x0 - left, x1 - left)
		blended = blend_text_pixels(region, alpha[rows, cols], halo[rows, cols],
			color, halo_color)
		canvas.paste(PIL.Image.fromarray(blended, 'RGB'), (x0, y0))

#============================================

def outline_shadow_color(color: tuple, halo_color: tuple, share: int) -> tuple:
	"""
	Mix share/255 of the text color into the halo color.
	"""
	return tuple(h + (c - h) * share // 255 for c, h in zip(color, halo_color))

#============================================

class OutlineTextRenderer():
	def __init__(self):
		self._local = threading.local()

	#============================
	def _font(self, font_size: int):
		fonts = getattr(self._local, 'fonts', None)
		if fonts is None:
			fonts = {}
			self._local.fonts = fonts
		font = fonts.get(font_size)
		if font is None:
			font = PIL.ImageFont.load_default(size=font_size)
			fonts[font_size] = font
		return font

	#============================
	def text_height(self, font_size: int) -> int:
		font = self._font(font_size)
		bbox = font.getbbox("00:00.000")
		return bbox[3] + 2

	#============================
	def draw_text(self, canvas, text: str, x: int, y: int, font_size: int,
		color: tuple = (255, 255, 255), halo_color: tuple = (0, 0, 0)) -> None:
		font = self._font(font_size)
		draw = PIL.ImageDraw.Draw(canvas)
		for offset, share in OUTLINE_SHADOWS:
			shadow = outline_shadow_color(color, halo_color, share)
			draw.text((x + offset, y + offset), text, font=font, fill=shadow)
		draw.text((x, y), text, font=font, fill=tuple(color))

#============================================

def make_text_renderer(text_mode: str, font_file: str = None):
	if text_mode == 'outline':
		return OutlineTextRenderer()
	if text_mode == 'font':
		return FontTextRenderer(FontHandle(font_file))
	raise ValueError(f"unknown text mode {text_mode}")
