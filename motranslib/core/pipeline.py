#!/usr/bin/env python3

from motranslib.core import utils
from motranslib.core.applicator import apply_motion
from motranslib.core.config import CodecConfig
from motranslib.core.encoder import MotionEncoder
from motranslib.core.encoder import synthesize_reference
from motranslib.core.errors import UsageError
from motranslib.media import frames

MOTION = 'motion'
BASE = 'base'
OUTPUT = 'output'

#============================================

class TransferPipeline():
	"""
	Accumulate motion batches and a base frame, and write transfer results.

	Consecutive motion frames form one batch with its own encoder session.
	Any other step closes the open batch and adds its packets to the
	descriptor. The first motion frame after an output starts a new
	descriptor.
	"""
	def __init__(self, config: CodecConfig = None):
		if config is None:
			config = CodecConfig()
		self.config = config
		self.descriptor = None
		self.base_frame = None
		self.output_written = False
		self._batch = None

	#============================
	def add_motion(self, imagefile: str) -> None:
		if self._batch is None:
			if self.output_written:
				self.descriptor = None
				self.output_written = False
			self._batch = MotionEncoder(self.config)
		frame = frames.readFrame(imagefile, self.config.pixel_format)
		utils.status(f"motion frame {self._batch.frame_count}: {imagefile}")
		self._batch.add_frame(frame)

	#============================
	def close_batch(self) -> None:
		if self._batch is None:
			return
		batch = self._batch
		self._batch = None
		batch_descriptor = batch.finish()
		if batch_descriptor is None:
			return
		utils.status(f"motion batch: {batch.frame_count} frames, "
			f"{len(batch_descriptor)} packets, {batch_descriptor.total_bytes()} bytes")
		if self.descriptor is None:
			self.descriptor = batch_descriptor
		else:
			self.descriptor.extend(batch_descriptor)

	#============================
	def set_base(self, imagefile: str) -> None:
		self.close_batch()
		self.base_frame = frames.readFrame(imagefile, self.config.pixel_format)
		utils.status(f"base frame: {imagefile} "
			f"({self.base_frame.width}x{self.base_frame.height})")

	#============================
	def write_output(self, imagefile: str) -> str:
		self.close_batch()
		if self.base_frame is None:
			raise UsageError(f"no base frame set before writing {imagefile}")
		base = self.base_frame
		reference = synthesize_reference(base, self.config)
		result = apply_motion(reference, self.descriptor, self.config,
			base.width, base.height, base.format.name)
		frames.writeFrame(result, imagefile)
		self.output_written = True
		return imagefile

	#============================
	def run(self, operations: list) -> None:
		"""Execute (step, file) pairs in command-line order."""
		for (step, imagefile) in operations:
			if step == MOTION:
				self.add_motion(imagefile)
			elif step == BASE:
				self.set_base(imagefile)
			elif step == OUTPUT:
				self.write_output(imagefile)
			else:
				raise UsageError(f"unknown step: {step}")
		self.close_batch()
