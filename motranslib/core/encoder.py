#!/usr/bin/env python3

import av
from motranslib.core import utils
from motranslib.core.config import CodecConfig
from motranslib.core.descriptor import MotionDescriptor
from motranslib.core.descriptor import MotionPacket
from motranslib.core.errors import EncodeProtocolError
from motranslib.core.errors import FormatMismatchError
from motranslib.core.errors import MotionTransferError
from motranslib.media import session
from motranslib.media.session import PullStatus

#============================================

class MotionEncoder():
	"""
	Encode one batch of motion-source frames into delta packets.

	The encoder session is opened on the first frame and tuned so that only
	that frame is intra coded. The first packet it produces is the intra
	reference for frame one; it is dropped because the decoder will be given
	a different reference. Every later packet is kept in production order.
	"""
	def __init__(self, config: CodecConfig):
		self.config = config
		self.descriptor = None
		self.frame_count = 0
		self.packet_count = 0
		self._session = None
		self._reference_discarded = False
		self._finished = False

	#============================
	def add_frame(self, frame: av.VideoFrame) -> None:
		if self._finished:
			raise EncodeProtocolError("motion batch is already finished")
		pixel_format = frame.format.name
		if self._session is None:
			self._open(frame.width, frame.height, pixel_format)
		elif not self.descriptor.is_compatible(self.config.codec, frame.width,
			frame.height, pixel_format):
			self._abort()
			raise FormatMismatchError(f"motion frame is {frame.width}x{frame.height} "
				f"{pixel_format}, batch is {self.descriptor.describe()}")
		frame.pts = self.frame_count
		self.frame_count += 1
		try:
			self._session.push_frame(frame)
			self._collect(self._session.drain())
		except MotionTransferError:
			self._abort()
			raise

	#============================
	def finish(self):
		"""
		Flush the encoder and return the batch's MotionDescriptor.

		Returns None when no frame was ever added.
		"""
		if self._finished:
			raise EncodeProtocolError("motion batch is already finished")
		self._finished = True
		if self._session is None:
			return None
		try:
			self._session.push_frame(None)
			while True:
				status, packet = self._session.pull()
				if status == PullStatus.END_OF_STREAM:
					break
				if status == PullStatus.NOT_READY:
					raise EncodeProtocolError("encoder wants input after end of stream")
				self._collect([packet])
		finally:
			self._abort()
		if not self._reference_discarded:
			raise EncodeProtocolError(f"{self.config.codec} encoder produced no packets")
		return self.descriptor

	#============================
	def _open(self, width: int, height: int, pixel_format: str) -> None:
		options = self.config.motion.codec_options(height)
		self._session = session.CodecSession.open(session.ENCODE,
			self.config.codec, width, height, pixel_format, options,
			self.config.time_base)
		self.descriptor = MotionDescriptor(self.config.codec, width, height,
			pixel_format)

	#============================
	def _collect(self, packets: list) -> None:
		for packet in packets:
			index = self.packet_count
			self.packet_count += 1
			if not self._reference_discarded:
				self._reference_discarded = True
				continue
			if packet.is_keyframe:
				message = (f"intra packet {index} inside motion batch; raise "
					"motion.keyframe_interval above the batch length")
				if self.config.reject_intra:
					raise EncodeProtocolError(message)
				utils.warn(message)
			self.descriptor.append(MotionPacket(bytes(packet), index,
				packet.is_keyframe))

	#============================
	def _abort(self) -> None:
		if self._session is not None and not self._session.closed:
			self._session.close()

#============================================

def synthesize_reference(frame: av.VideoFrame, config: CodecConfig) -> MotionPacket:
	"""
	Encode frame on its own to get an intra packet to decode motion against.
	"""
	options = config.reference.codec_options(frame.height)
	with session.CodecSession.open(session.ENCODE, config.codec, frame.width,
		frame.height, frame.format.name, options, config.time_base) as encoder:
		# the caller keeps its frame; only the encoder sees pts 0
		previous_pts = frame.pts
		frame.pts = 0
		try:
			encoder.push_frame(frame)
		finally:
			frame.pts = previous_pts
		status, packet = encoder.pull()
		if status == PullStatus.NOT_READY:
			encoder.push_frame(None)
			status, packet = encoder.pull()
		if status != PullStatus.READY:
			raise EncodeProtocolError(f"{config.codec} encoder produced no "
				"reference packet")
	return MotionPacket(bytes(packet), 0, packet.is_keyframe)
