#!/usr/bin/env python3

import sys
from fractions import Fraction

_QUIET_MODE = False

#============================================

def set_quiet_mode(value: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(value)
	return

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def status(message: str) -> None:
	if not is_quiet_mode():
		print(message)
	return

#============================================

def warn(message: str) -> None:
	sys.stderr.write(f"WARNING: {message}\n")
	return

#============================================

def parse_time_base(raw_value) -> Fraction:
	if raw_value is None:
		raise RuntimeError("time_base is required")
	if isinstance(raw_value, bool):
		raise RuntimeError("time_base must be int, float, or fraction string")
	if isinstance(raw_value, int):
		value = Fraction(raw_value, 1)
	elif isinstance(raw_value, float):
		value = Fraction(str(raw_value))
	elif isinstance(raw_value, str):
		if '/' in raw_value:
			parts = raw_value.split('/')
			if len(parts) != 2:
				raise RuntimeError(f"bad time_base: {raw_value}")
			value = Fraction(int(parts[0]), int(parts[1]))
		else:
			value = Fraction(raw_value.strip())
	else:
		raise RuntimeError("time_base must be int, float, or fraction string")
	if value <= 0:
		raise RuntimeError("time_base must be positive")
	return value

