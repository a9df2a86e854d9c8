#!/usr/bin/env python3

from motranslib.core.errors import FormatMismatchError

#============================================

class MotionPacket():
	def __init__(self, data: bytes, index: int, is_keyframe: bool = False):
		self.data = bytes(data)
		self.index = index
		self.is_keyframe = is_keyframe

	#============================
	def __len__(self) -> int:
		return len(self.data)

	#============================
	def __repr__(self) -> str:
		return f"MotionPacket(index={self.index}, size={len(self.data)})"

#============================================

class MotionDescriptor():
	"""
	Ordered delta packets bound to the codec configuration that made them.

	Packets are differential: each one is decoded against the decoder's
	running state, so replay must follow insertion order.
	"""
	def __init__(self, codec: str, width: int, height: int, pixel_format: str):
		self.codec = codec
		self.width = width
		self.height = height
		self.pixel_format = pixel_format
		self._packets = []

	#============================
	def is_compatible(self, codec: str, width: int, height: int,
		pixel_format: str) -> bool:
		return (self.codec == codec and self.width == width
			and self.height == height and self.pixel_format == pixel_format)

	#============================
	def describe(self) -> str:
		return f"{self.codec} {self.width}x{self.height} {self.pixel_format}"

	#============================
	def append(self, packet: MotionPacket) -> None:
		self._packets.append(packet)

	#============================
	def extend(self, other) -> None:
		if not self.is_compatible(other.codec, other.width, other.height,
			other.pixel_format):
			raise FormatMismatchError(f"motion batch is {other.describe()}, "
				f"earlier batches are {self.describe()}")
		for packet in other:
			self._packets.append(packet)

	#============================
	def total_bytes(self) -> int:
		return sum(len(packet) for packet in self._packets)

	#============================
	def __iter__(self):
		return iter(list(self._packets))

	#============================
	def __len__(self) -> int:
		return len(self._packets)
