#!/usr/bin/env python3

#============================================

class MotionTransferError(RuntimeError):
	"""Base class for every fatal motrans failure."""
	pass

#============================================

class SourceReadError(MotionTransferError):
	pass

#============================================

class CodecOpenError(MotionTransferError):
	pass

#============================================

class EncodeProtocolError(MotionTransferError):
	pass

#============================================

class DecodeProtocolError(MotionTransferError):
	pass

#============================================

class SinkWriteError(MotionTransferError):
	pass

#============================================

class UsageError(MotionTransferError):
	pass

#============================================

class FormatMismatchError(MotionTransferError):
	"""Frames or packets that cannot share one codec configuration."""
	pass

#============================================

class ConfigError(MotionTransferError):
	pass
