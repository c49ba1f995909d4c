#!/usr/bin/env python3

import argparse
import os
import sys
from vsheetlib.core import process
from vsheetlib.core import utils
from vsheetlib.core.errors import SheetError
from vsheetlib.core.settings import load_settings
from vsheetlib.text.overlay import make_text_renderer

#============================================

def parse_args(argv=None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Create a contact sheet of evenly spaced frames")
	parser.add_argument('input', help='video file, or a directory to process recursively')
	parser.add_argument('-C', '--config', dest='config_file',
		help='optional yaml config file (must set vsheet: 1)')
	parser.add_argument('-r', '--rows', dest='rows', type=int,
		help='number of rows')
	parser.add_argument('-c', '--cols', dest='cols', type=int,
		help='number of columns')
	parser.add_argument('-w', '--width', dest='width', type=int,
		help='total width of the sheet in pixels')
	parser.add_argument('-s', '--space', dest='spacing', type=int,
		help='spacing between frames in pixels')
	parser.add_argument('--ext', dest='ext',
		help='output image extension, e.g. jpg or png')
	parser.add_argument('-f', '--font', dest='font_file',
		help='font file used for labels (font text mode)')
	parser.add_argument('--text-mode', dest='text_mode', choices=('font', 'outline'),
		help='font: anti-aliased labels with a halo, outline: built-in font')
	parser.add_argument('--no-header', dest='header', action='store_false', default=None,
		help='do not draw the file information header')
	parser.add_argument('--remove-ext', dest='remove_ext', action='store_true', default=None,
		help='replace the video extension instead of appending to it')
	parser.add_argument('--no-save', dest='no_save', action='store_true', default=None,
		help='build the sheet but do not write it')
	parser.add_argument('--no-auto-flip', dest='auto_flip', action='store_false', default=None,
		help='keep rows and cols as given for portrait video')
	parser.add_argument('--no-overwrite', dest='overwrite', action='store_false', default=None,
		help='skip videos whose sheet already exists')
	parser.add_argument('--fail-fast', dest='fail_fast', action='store_true', default=None,
		help='stop a directory run at the first failed file')
	parser.add_argument('-j', '--jobs', dest='jobs', type=int,
		help='number of files processed in parallel')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print warnings and errors')
	parser.add_argument('-d', '--debug', dest='debug', action='store_true',
		help='print debug details')
	args = parser.parse_args(argv)
	return args

#============================================

def apply_overrides(settings, args) -> None:
	for name in ('rows', 'cols', 'width', 'spacing', 'ext', 'font_file',
		'text_mode', 'header', 'remove_ext', 'no_save', 'auto_flip', 'overwrite',
		'fail_fast', 'jobs'):
		value = getattr(args, name)
		if value is not None:
			setattr(settings, name, value)

#============================================

def main(argv=None) -> int:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	utils.set_debug_mode(args.debug)
	try:
		settings = load_settings(args.config_file)
		apply_overrides(settings, args)
		settings.validate()
	except SheetError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 2
	renderer = make_text_renderer(settings.text_mode, settings.font_file)
	if not os.path.exists(args.input):
		print(f"error: input file does not exist: {args.input}", file=sys.stderr)
		return 1
	if os.path.isdir(args.input):
		videos = process.find_videos(args.input)
		result = process.process_batch(videos, settings, renderer)
		utils.report(f"done, {len(result.failures)} of {len(videos)} files failed")
		for path, exc in result.failures:
			print(f"error: processing {path} failed: {exc}", file=sys.stderr)
		if len(result.cancelled) > 0:
			print(f"error: {len(result.cancelled)} files were not processed", file=sys.stderr)
		return 0 if result.ok() else 1
	try:
		process.process_file(args.input, settings, renderer)
	except (SheetError, OSError) as exc:
		print(f"error: processing {args.input} failed: {exc}", file=sys.stderr)
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
