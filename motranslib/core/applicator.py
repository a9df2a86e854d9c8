#!/usr/bin/env python3

import av
from tqdm import tqdm
from motranslib.core import utils
from motranslib.core.config import CodecConfig
from motranslib.core.descriptor import MotionDescriptor
from motranslib.core.descriptor import MotionPacket
from motranslib.core.errors import DecodeProtocolError
from motranslib.core.errors import FormatMismatchError
from motranslib.media import session
from motranslib.media.session import PullStatus

#============================================

def apply_motion(reference: MotionPacket, descriptor: MotionDescriptor,
	config: CodecConfig, width: int, height: int,
	pixel_format: str = None) -> av.VideoFrame:
	"""
	Decode the reference packet, then replay the motion packets on top of it.

	The decoder only ever sees the synthetic reference, so the deltas move
	its content instead of the motion source's. An empty or missing
	descriptor gives back the reference frame itself.
	"""
	if pixel_format is None:
		pixel_format = config.pixel_format
	packets = []
	codec = config.codec
	if descriptor is not None:
		if not descriptor.is_compatible(descriptor.codec, width, height,
			pixel_format):
			raise FormatMismatchError(f"base frame is {width}x{height} "
				f"{pixel_format}, motion is {descriptor.describe()}")
		codec = descriptor.codec
		packets = list(descriptor)
	if codec != config.codec:
		raise FormatMismatchError(f"motion was encoded with {codec}, "
			f"reference uses {config.codec}")
	if utils.is_quiet_mode() or len(packets) == 0:
		packet_iter = packets
	else:
		packet_iter = tqdm(packets, desc="applying motion", unit="packet")
	result = None
	with session.CodecSession.open(session.DECODE, codec, width, height,
		pixel_format) as decoder:
		decoder.push_packet(reference.data)
		for packet in packet_iter:
			# a decoded frame still queued is superseded by this packet
			decoder.pull()
			decoder.push_packet(packet.data)
		decoder.push_packet(None)
		# keep the last frame; h263p yields one here, the first after the flush
		while True:
			status, frame = decoder.pull()
			if status == PullStatus.END_OF_STREAM:
				break
			if status == PullStatus.NOT_READY:
				raise DecodeProtocolError("decoder wants input after end of stream")
			result = frame
	if result is None:
		raise DecodeProtocolError(f"{codec} decoder produced no frame")
	return result
