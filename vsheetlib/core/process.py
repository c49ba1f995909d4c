#!/usr/bin/env python3

"""
Per-file contact sheet pipeline and the parallel batch runner.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import as_completed
from tqdm import tqdm
from vsheetlib.core import utils
from vsheetlib.core.compositor import GridCompositor
from vsheetlib.core.compositor import SheetInfo
from vsheetlib.core.compositor import encode_image
from vsheetlib.core.duration import StreamTiming
from vsheetlib.core.duration import VideoDuration
from vsheetlib.core.duration import resolve_duration
from vsheetlib.core.errors import SheetError
from vsheetlib.core.normalize import normalize_frame
from vsheetlib.core.sampler import SeekSampler
from vsheetlib.media.pyav_media import FrameScaler
from vsheetlib.media.pyav_media import VideoSource

#============================================

VIDEO_EXTENSIONS = ('mp4', 'm4v', 'mkv', 'avi', 'webm', 'mov', 'flv', 'ts')

#============================================

def output_path(input_file: str, ext: str, remove_ext: bool = False) -> str:
	if remove_ext:
		base, _ = os.path.splitext(input_file)
		return f"{base}.{ext}"
	return f"{input_file}.{ext}"

#============================================

def is_video(path: str) -> bool:
	_, ext = os.path.splitext(path)
	return ext.lower().lstrip('.') in VIDEO_EXTENSIONS

#============================================

def find_videos(directory: str) -> list:
	videos = []
	for root, dirs, files in os.walk(directory):
		dirs.sort()
		for name in sorted(files):
			path = os.path.join(root, name)
			if not is_video(path):
				utils.debug(f"skipping file: {path}")
				continue
			videos.append(path)
	return videos

#============================================

def make_sheet(input_file: str, settings, renderer) -> bytes:
	"""
	Sample, compose and encode the contact sheet for one video file.

	Returns:
		bytes: the encoded image.
	"""
	with VideoSource(input_file) as source:
		timing = StreamTiming(
			time_base=source.time_base,
			total_duration=resolve_duration(source.stream, source.container_duration),
		)
		utils.debug(f"video duration: {VideoDuration(timing.total_duration)}")
		scaler = FrameScaler(settings.frame_width())
		sampler = SeekSampler(source, timing.total_duration, settings.num_frames(), scaler)
		frames = [normalize_frame(frame) for frame in sampler]
		info = None
		if settings.header:
			info = SheetInfo(
				file_name=os.path.basename(input_file),
				file_size=os.path.getsize(input_file),
				width=source.width,
				height=source.height,
				duration=timing.total_duration,
				codec_name=source.codec_name,
			)
	compositor = GridCompositor(renderer, settings.rows, settings.cols,
		settings.spacing, auto_flip=settings.auto_flip, info=info,
		label_size=settings.label_size, header_size=settings.header_size,
		line_height=settings.line_height)
	image = compositor.compose(frames)
	return encode_image(image, settings.ext, settings.quality)

#============================================

def process_file(input_file: str, settings, renderer) -> str:
	"""
	Build the sheet for input_file and write it next to the video.

	Returns:
		str: 'saved', 'skipped' or 'not saved'.
	"""
	if not os.path.isfile(input_file):
		raise SheetError(f"input file does not exist: {input_file}")
	t0 = time.time()
	target = output_path(input_file, settings.ext, settings.remove_ext)
	if not settings.overwrite and os.path.exists(target):
		utils.report(f"skip {input_file}, {target} already exists")
		return 'skipped'
	data = make_sheet(input_file, settings, renderer)
	if settings.no_save:
		utils.report(f"image not saved: {input_file}")
		return 'not saved'
	with open(target, 'wb') as handle:
		handle.write(data)
	stat = os.stat(input_file)
	os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns))
	utils.report(f"image saved to {target} in {time.time() - t0:.2f} seconds")
	return 'saved'

#============================================

class BatchResult():
	def __init__(self):
		self.outcomes = {}
		self.failures = []
		self.cancelled = []

	#============================
	def record(self, path: str, outcome) -> None:
		self.outcomes[path] = outcome
		if isinstance(outcome, Exception):
			self.failures.append((path, outcome))

	#============================
	def ok(self) -> bool:
		return len(self.failures) == 0 and len(self.cancelled) == 0

#============================================

def _run_task(path: str, settings, renderer, worker) -> tuple:
	try:
		return (path, worker(path, settings, renderer))
	except Exception as exc:
		# every per-file failure stays with its own file
		return (path, exc)

#============================================

def process_batch(paths: list, settings, renderer, worker=None) -> BatchResult:
	"""
	Run worker over many files in a thread pool.

	Each task reports (path, outcome) back here; a failure stays with its
	own file unless settings.fail_fast is set, in which case tasks that have
	not started yet are cancelled.
	"""
	result = BatchResult()
	if len(paths) == 0:
		return result
	if worker is None:
		worker = process_file
	executor = ThreadPoolExecutor(max_workers=settings.jobs)
	try:
		futures = {}
		for path in paths:
			future = executor.submit(_run_task, path, settings, renderer, worker)
			futures[future] = path
		completed = as_completed(futures)
		if not utils.is_quiet_mode():
			completed = tqdm(completed, total=len(futures))
		for future in completed:
			path, outcome = future.result()
			result.record(path, outcome)
			if isinstance(outcome, Exception):
				utils.warn(f"processing {path} failed: {outcome}")
				if settings.fail_fast:
					for pending, pending_path in futures.items():
						if pending.cancel():
							result.cancelled.append(pending_path)
					break
	finally:
		executor.shutdown(wait=True)
	return result
