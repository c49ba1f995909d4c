#!/usr/bin/env python3

"""
sync_image_date.py

Copy the modification time of a video onto its contact sheet image, so the
sheet sorts next to its source in file browsers.

The source video is found by stripping the last extension of the image
(movie.mkv.jpg -> movie.mkv), or else by looking for a sibling file with
the same stem (movie.jpg -> movie.mp4).
"""

# Standard Library
import argparse
import os

#============================================

def parse_args(argv=None) -> argparse.Namespace:
	"""
	Parse command-line arguments.

	Returns:
		argparse.Namespace: Parsed CLI args.
	"""
	parser = argparse.ArgumentParser(
		description="Copy a video's modification time onto its contact sheet image."
	)
	parser.add_argument("image", help="Contact sheet image path.")
	return parser.parse_args(argv)

#============================================

def find_video(image_path: str) -> str:
	"""
	Locate the video a contact sheet image was made from.

	Args:
		image_path: Contact sheet image path.

	Returns:
		str: Path of the source video.
	"""
	stripped, _ = os.path.splitext(image_path)
	if os.path.isfile(stripped):
		return stripped
	stem = os.path.basename(stripped)
	directory = os.path.dirname(os.path.abspath(image_path))
	for name in sorted(os.listdir(directory)):
		candidate = os.path.join(directory, name)
		if not os.path.isfile(candidate):
			continue
		if os.path.abspath(candidate) == os.path.abspath(image_path):
			continue
		if os.path.splitext(name)[0] == stem:
			return candidate
	raise RuntimeError("video not found")

#============================================

def sync_image_date(image_path: str) -> str:
	source = find_video(image_path)
	stat = os.stat(source)
	os.utime(image_path, ns=(os.stat(image_path).st_atime_ns, stat.st_mtime_ns))
	return source

#============================================

def main(argv=None) -> None:
	args = parse_args(argv)
	source = sync_image_date(args.image)
	print(f"{args.image}: modification time copied from {source}")


if __name__ == '__main__':
	main()
