#!/usr/bin/env python3

import os
import shutil
import tempfile
import av
import numpy
import PIL.Image
from motranslib.core import utils
from motranslib.core.errors import SinkWriteError
from motranslib.core.errors import SourceReadError

# formats whose chroma planes are subsampled in both directions
SUBSAMPLED_FORMATS = ('yuv420p', 'yuvj420p', 'nv12')
INTERCHANGE_FORMAT = 'rgb24'

#============================================

def readFrame(imagefile: str, pixel_format: str = 'yuv420p') -> av.VideoFrame:
	"""
	Decode the first video frame of imagefile into pixel_format.
	"""
	if not os.path.isfile(imagefile):
		raise SourceReadError(f"file not found: {imagefile}")
	frame = None
	try:
		with av.open(imagefile, mode='r') as container:
			if len(container.streams.video) == 0:
				raise SourceReadError(f"no video stream in {imagefile}")
			for decoded in container.decode(video=0):
				frame = decoded
				break
	except av.FFmpegError as exc:
		raise SourceReadError(f"cannot read {imagefile}: {exc}") from exc
	if frame is None:
		raise SourceReadError(f"no decodable frame in {imagefile}")
	return canonicalFrame(frame, pixel_format, imagefile)

#============================================

def canonicalFrame(frame: av.VideoFrame, pixel_format: str,
	label: str = 'frame') -> av.VideoFrame:
	"""
	Rebuild frame from raw plane data in pixel_format at its native size.

	The copy carries no picture type, timestamps or side data from the
	source decoder, so an encoder never sees a forced keyframe request.
	"""
	if pixel_format in SUBSAMPLED_FORMATS:
		if frame.width % 2 != 0 or frame.height % 2 != 0:
			raise SourceReadError(f"{label}: {pixel_format} needs even dimensions, "
				f"got {frame.width}x{frame.height}")
	try:
		planes = frame.to_ndarray(format=pixel_format)
		canonical = av.VideoFrame.from_ndarray(numpy.ascontiguousarray(planes),
			format=pixel_format)
	except (ValueError, av.FFmpegError) as exc:
		raise SourceReadError(f"{label}: cannot convert to {pixel_format}: {exc}") from exc
	return canonical

#============================================

def writeFrame(frame: av.VideoFrame, imagefile: str) -> str:
	"""
	Save frame as a single still image; the extension picks the format.

	The image is written into a scratch directory beside imagefile and moved
	into place only once complete, so a failed write leaves any existing
	file untouched.
	"""
	target_dir = os.path.dirname(os.path.abspath(imagefile))
	temp_dir = None
	try:
		rgb = frame.to_ndarray(format=INTERCHANGE_FORMAT)
		image = PIL.Image.fromarray(rgb)
		temp_dir = tempfile.mkdtemp(prefix=".motrans-", dir=target_dir)
		temp_file = os.path.join(temp_dir, os.path.basename(imagefile))
		image.save(temp_file)
		os.replace(temp_file, imagefile)
	except (OSError, ValueError, KeyError, av.FFmpegError) as exc:
		raise SinkWriteError(f"cannot write {imagefile}: {exc}") from exc
	finally:
		if temp_dir is not None:
			shutil.rmtree(temp_dir, ignore_errors=True)
	utils.status(f"wrote {imagefile} ({frame.width}x{frame.height})")
	return imagefile
