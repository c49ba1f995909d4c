#!/usr/bin/env python3

import io
from dataclasses import dataclass
import PIL.Image
import PIL.ImageDraw
from vsheetlib.core import utils
from vsheetlib.core.duration import VideoDuration
from vsheetlib.core.errors import EmptyFrameSetError
from vsheetlib.core.errors import EncodeError
from vsheetlib.core.rational import Rational

#============================================

BACKGROUND_COLOR = (255, 255, 255)
BORDER_COLOR = (0, 0, 0)
LABEL_COLOR = (255, 255, 255)
LABEL_HALO_COLOR = (0, 0, 0)
HEADER_COLOR = (0, 0, 0)
HEADER_HALO_COLOR = (255, 255, 255)
LABEL_INSET = 5
HEADER_LINES = 3

#============================================

@dataclass
class GridLayout():
	rows: int
	cols: int
	cell_width: int
	cell_height: int
	spacing: int
	header_height: int = 0

	#============================
	def canvas_size(self) -> tuple:
		width = self.cell_width * self.cols + self.spacing * (self.cols + 1)
		height = (self.cell_height * self.rows + self.spacing * (self.rows + 1)
			+ self.header_height)
		return (width, height)

	#============================
	def cell_origin(self, row: int, col: int) -> tuple:
		x = self.spacing + col * (self.spacing + self.cell_width)
		y = self.spacing + row * (self.spacing + self.cell_height) + self.header_height
		return (x, y)

	#============================
	def cells(self):
		"""Yield (row, col) in row-major order."""
		for row in range(self.rows):
			for col in range(self.cols):
				yield (row, col)

#============================================

@dataclass
class SheetInfo():
	"""Source details printed in the header band."""
	file_name: str
	file_size: int
	width: int
	height: int
	duration: Rational
	codec_name: str

	#============================
	def header_lines(self) -> list:
		return [
			f"File: {self.file_name} ({utils.readable_size(self.file_size)})",
			f"Duration: {VideoDuration(self.duration)}, Resolution: {self.width}×{self.height}",
			f"Codec: {self.codec_name}",
		]

#============================================

def compute_layout(frames: list, rows: int, cols: int, spacing: int,
	auto_flip: bool = True, header_height: int = 0) -> GridLayout:
	if len(frames) == 0:
		raise EmptyFrameSetError()
	first = frames[0]
	if auto_flip and first.height > first.width and rows > cols:
		utils.debug(f"portrait frames, flipping grid to {cols} rows x {rows} cols")
		rows, cols = cols, rows
	return GridLayout(rows=rows, cols=cols, cell_width=first.width,
		cell_height=first.height, spacing=spacing, header_height=header_height)

#============================================

def encode_image(image, ext: str, quality: int = 90) -> bytes:
	"""
	Encode the canvas in the format registered for the file extension.
	"""
	suffix = '.' + ext.lower().lstrip('.')
	image_format = PIL.Image.registered_extensions().get(suffix)
	if image_format is None:
		raise EncodeError(f"unsupported output extension: {ext}")
	params = {}
	if image_format in ('JPEG', 'WEBP'):
		params['quality'] = quality
	buffer = io.BytesIO()
	try:
		image.save(buffer, format=image_format, **params)
	except (OSError, KeyError, ValueError) as exc:
		raise EncodeError(f"encode {image_format} image failed: {exc}") from exc
	return buffer.getvalue()

#============================================

class GridCompositor():
	def __init__(self, renderer, rows: int, cols: int, spacing: int,
		auto_flip: bool = True, info: SheetInfo = None, label_size: int = 28,
		header_size: int = 36, line_height: int = 42):
		self.renderer = renderer
		self.rows = rows
		self.cols = cols
		self.spacing = spacing
		self.auto_flip = auto_flip
		self.info = info
		self.label_size = label_size
		self.header_size = header_size
		self.line_height = line_height
		self.warnings = []
		self.layout = None

	#============================
	def header_height(self) -> int:
		if self.info is None:
			return 0
		return self.spacing + HEADER_LINES * self.line_height

	#============================
	def compose(self, frames: list):
		if len(frames) == 0:
			raise EmptyFrameSetError()
		expected = self.rows * self.cols
		if len(frames) != expected:
			message = f"expected {expected} frames, got {len(frames)}"
			self.warnings.append(utils.warn(message))
		layout = compute_layout(frames, self.rows, self.cols, self.spacing,
			self.auto_flip, self.header_height())
		self.layout = layout
		canvas = PIL.Image.new('RGB', layout.canvas_size(), BACKGROUND_COLOR)
		draw = PIL.ImageDraw.Draw(canvas)
		label_height = self.renderer.text_height(self.label_size)
		for frame, (row, col) in zip(frames, layout.cells()):
			x, y = layout.cell_origin(row, col)
			tile = PIL.Image.fromarray(frame.pixels, 'RGB')
			if tile.size != (layout.cell_width, layout.cell_height):
				tile = tile.crop((0, 0, layout.cell_width, layout.cell_height))
			canvas.paste(tile, (x, y))
			draw.rectangle([x - 1, y - 1, x + layout.cell_width, y + layout.cell_height],
				outline=BORDER_COLOR)
			label_y = y + layout.cell_height - label_height - LABEL_INSET
			self.renderer.draw_text(canvas, frame.label, x + LABEL_INSET,
				max(y, label_y), self.label_size, LABEL_COLOR, LABEL_HALO_COLOR)
		if self.info is not None:
			self._draw_header(canvas)
		return canvas

	#============================
	def _draw_header(self, canvas) -> None:
		indent = self.spacing
		for line_index, line in enumerate(self.info.header_lines()):
			y = indent + line_index * self.line_height
			self.renderer.draw_text(canvas, line, indent, y, self.header_size,
				HEADER_COLOR, HEADER_HALO_COLOR)
