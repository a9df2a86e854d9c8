#!/usr/bin/env python3

"""
Push/pull wrapper around one PyAV codec context.

PyAV's encode() and decode() already call the native receive function until
it reports EAGAIN, so every unit the codec has finished is returned at once.
CodecSession queues those units and hands them out one at a time through
pull(), which reports one of three outcomes: a unit is ready, the codec needs
more input, or the stream is over. Callers never see a partial result list
and never loop on a retry count.
"""

import collections
import enum
from fractions import Fraction
import av
from motranslib.core.errors import CodecOpenError
from motranslib.core.errors import DecodeProtocolError
from motranslib.core.errors import EncodeProtocolError

ENCODE = 'encode'
DECODE = 'decode'

#============================================

class PullStatus(enum.Enum):
	READY = 'ready'
	NOT_READY = 'not-ready'
	END_OF_STREAM = 'end-of-stream'

#============================================

class CodecSession():
	def __init__(self, role: str, codec_name: str, context, width: int,
		height: int, pixel_format: str):
		self.role = role
		self.codec_name = codec_name
		self.width = width
		self.height = height
		self.pixel_format = pixel_format
		self._context = context
		self._pending = collections.deque()
		self._input_ended = False
		self._closed = False

	#============================
	@classmethod
	def open(cls, role: str, codec_name: str, width: int, height: int,
		pixel_format: str, options: dict = None,
		time_base: Fraction = Fraction(1, 60)):
		"""
		Create and open a codec context bound to one configuration.

		Encoders get the frame geometry, pixel format and time base set on
		the context; decoders read geometry from the bitstream and are only
		checked against it when frames come out.
		"""
		if role not in (ENCODE, DECODE):
			raise CodecOpenError(f"unknown codec session role: {role}")
		mode = 'w' if role == ENCODE else 'r'
		try:
			context = av.CodecContext.create(codec_name, mode)
		except (ValueError, av.FFmpegError) as exc:
			raise CodecOpenError(f"{role} codec {codec_name} unavailable: {exc}") from exc
		try:
			if role == ENCODE:
				context.width = width
				context.height = height
				context.pix_fmt = pixel_format
				context.time_base = time_base
			if options:
				context.options = {str(k): str(v) for k, v in options.items()}
			context.open()
		except (ValueError, av.FFmpegError) as exc:
			raise CodecOpenError(f"{role} codec {codec_name} rejected "
				f"{width}x{height} {pixel_format}: {exc}") from exc
		return cls(role, codec_name, context, width, height, pixel_format)

	#============================
	def _protocol_error(self, message: str):
		if self.role == ENCODE:
			return EncodeProtocolError(message)
		return DecodeProtocolError(message)

	#============================
	def _check_open(self, action: str) -> None:
		if self._closed:
			raise self._protocol_error(f"{action} on closed {self.codec_name} session")

	#============================
	def push_frame(self, frame) -> None:
		"""Submit one frame to an encoder; None signals end of stream."""
		if self.role != ENCODE:
			raise self._protocol_error("push_frame on a decode session")
		self._push(frame, 'push_frame')

	#============================
	def push_packet(self, data) -> None:
		"""Submit one packet payload to a decoder; None signals end of stream."""
		if self.role != DECODE:
			raise self._protocol_error("push_packet on an encode session")
		packet = None
		if data is not None:
			if isinstance(data, av.Packet):
				packet = data
			else:
				packet = av.Packet(bytes(data))
		self._push(packet, 'push_packet')

	#============================
	def _push(self, unit, action: str) -> None:
		self._check_open(action)
		if self._input_ended:
			raise self._protocol_error(f"{action} after end of stream")
		if unit is None:
			self._input_ended = True
		try:
			if self.role == ENCODE:
				produced = self._context.encode(unit)
			else:
				produced = self._context.decode(unit)
		except av.FFmpegError as exc:
			raise self._protocol_error(f"{self.codec_name} {action} failed: {exc}") from exc
		for item in produced:
			self._check_output(item)
			self._pending.append(item)

	#============================
	def _check_output(self, item) -> None:
		if self.role != DECODE:
			return
		if self.width is not None and item.width != self.width:
			raise DecodeProtocolError(f"decoded width {item.width}, expected {self.width}")
		if self.height is not None and item.height != self.height:
			raise DecodeProtocolError(f"decoded height {item.height}, expected {self.height}")

	#============================
	def pull(self) -> tuple:
		self._check_open('pull')
		if len(self._pending) > 0:
			return (PullStatus.READY, self._pending.popleft())
		if self._input_ended:
			return (PullStatus.END_OF_STREAM, None)
		return (PullStatus.NOT_READY, None)

	#============================
	def drain(self) -> list:
		"""Pull every unit currently available."""
		units = []
		while True:
			status, unit = self.pull()
			if status != PullStatus.READY:
				return units
			units.append(unit)

	#============================
	def close(self) -> None:
		self._check_open('close')
		self._closed = True
		self._pending.clear()
		# PyAV frees the native context when the last reference goes away
		self._context = None

	#============================
	@property
	def closed(self) -> bool:
		return self._closed

	#============================
	def __enter__(self):
		return self

	#============================
	def __exit__(self, exc_type, exc_value, traceback) -> None:
		if not self._closed:
			self.close()
