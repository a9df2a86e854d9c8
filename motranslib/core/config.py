#!/usr/bin/env python3

import os
import yaml
from fractions import Fraction
from motranslib.core import utils
from motranslib.core.errors import ConfigError

#============================================

DEFAULT_CODEC = 'h263p'
DEFAULT_PIXEL_FORMAT = 'yuv420p'
DEFAULT_TIME_BASE = Fraction(1, 60)

#============================================

class EncoderSettings():
	"""Quality and rate settings for one encode session."""
	def __init__(self, global_quality: int = 1, bitrate_per_line: int = 100000,
		intra_penalty: int = None, keyframe_interval: int = None,
		extra_options: dict = None):
		self.global_quality = global_quality
		self.bitrate_per_line = bitrate_per_line
		self.intra_penalty = intra_penalty
		self.keyframe_interval = keyframe_interval
		self.extra_options = dict(extra_options or {})

	#============================
	def codec_options(self, height: int) -> dict:
		"""
		Build the AVOption strings handed to the codec on open.

		Rate control is constant quality (qscale), so the bitrate only
		sizes the rate buffers; it scales with frame height.
		"""
		options = {
			'flags': '+qscale',
			'global_quality': str(self.global_quality),
			'b': str(int(height) * self.bitrate_per_line),
		}
		if self.intra_penalty is not None:
			options['intra_penalty'] = str(self.intra_penalty)
		if self.keyframe_interval is not None:
			options['g'] = str(self.keyframe_interval)
			options['keyint_min'] = str(self.keyframe_interval)
		for key, value in self.extra_options.items():
			options[str(key)] = str(value)
		return options

#============================================

class CodecConfig():
	def __init__(self):
		self.config_file = None
		self.codec = DEFAULT_CODEC
		self.pixel_format = DEFAULT_PIXEL_FORMAT
		self.time_base = DEFAULT_TIME_BASE
		self.reject_intra = True
		# no keyframe interval or scene cut may refresh intra inside a batch
		self.motion = EncoderSettings(intra_penalty=256, keyframe_interval=600,
			extra_options={'sc_threshold': 1000000000})
		self.reference = EncoderSettings()

#============================================

class ConfigLoader():
	def __init__(self, yaml_file: str = None):
		self.yaml_file = yaml_file

	#============================
	def load(self) -> CodecConfig:
		config = CodecConfig()
		if self.yaml_file is None:
			return config
		config.config_file = self.yaml_file
		data = self._load_yaml()
		self._validate_required_keys(data)
		config.codec = self._parse_name(data, 'codec', config.codec)
		config.pixel_format = self._parse_name(data, 'pixel_format',
			config.pixel_format)
		if data.get('time_base') is not None:
			try:
				config.time_base = utils.parse_time_base(data['time_base'])
			except (RuntimeError, ValueError, ZeroDivisionError) as exc:
				raise ConfigError(f"time_base: {exc}") from exc
		motion = data.get('motion', {})
		config.motion = self._parse_settings('motion', motion, config.motion)
		if isinstance(motion, dict) and 'reject_intra' in motion:
			reject_intra = motion['reject_intra']
			if not isinstance(reject_intra, bool):
				raise ConfigError("motion.reject_intra must be true or false")
			config.reject_intra = reject_intra
		config.reference = self._parse_settings('reference',
			data.get('reference', {}), config.reference)
		return config

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.isfile(self.yaml_file):
			raise ConfigError(f"config file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 6:
			raise ConfigError("config file is larger than 1MB")
		try:
			with open(self.yaml_file, 'r') as data_file:
				data = yaml.safe_load(data_file)
		except yaml.YAMLError as exc:
			raise ConfigError(f"cannot parse {self.yaml_file}: {exc}") from exc
		if not isinstance(data, dict):
			raise ConfigError("config yaml must be a mapping at the top level")
		return data

	#============================
	def _validate_required_keys(self, data: dict) -> None:
		if data.get('motrans') != 1:
			raise ConfigError("motrans must be set to 1")
		known_keys = ('motrans', 'codec', 'pixel_format', 'time_base',
			'motion', 'reference')
		for key in data:
			if key not in known_keys:
				raise ConfigError(f"unknown config key: {key}")

	#============================
	def _parse_name(self, data: dict, key: str, default: str) -> str:
		value = data.get(key, default)
		if not isinstance(value, str) or len(value.strip()) == 0:
			raise ConfigError(f"{key} must be a non-empty string")
		return value.strip()

	#============================
	def _parse_settings(self, section: str, raw: dict,
		defaults: EncoderSettings) -> EncoderSettings:
		if raw is None:
			return defaults
		if not isinstance(raw, dict):
			raise ConfigError(f"{section} must be a mapping")
		known_keys = ('global_quality', 'bitrate_per_line', 'intra_penalty',
			'keyframe_interval', 'options')
		if section == 'motion':
			known_keys += ('reject_intra',)
		for key in raw:
			if key not in known_keys:
				raise ConfigError(f"unknown {section} key: {key}")
		settings = EncoderSettings(
			global_quality=self._parse_int(section, raw, 'global_quality',
				defaults.global_quality, 1, nullable=False),
			bitrate_per_line=self._parse_int(section, raw, 'bitrate_per_line',
				defaults.bitrate_per_line, 1, nullable=False),
			intra_penalty=self._parse_int(section, raw, 'intra_penalty',
				defaults.intra_penalty, 0),
			keyframe_interval=self._parse_int(section, raw, 'keyframe_interval',
				defaults.keyframe_interval, 1),
			extra_options=defaults.extra_options,
		)
		options = raw.get('options')
		if options is not None:
			if not isinstance(options, dict):
				raise ConfigError(f"{section}.options must be a mapping")
			settings.extra_options.update(options)
		return settings

	#============================
	def _parse_int(self, section: str, raw: dict, key: str, default,
		minimum: int, nullable: bool = True):
		if key not in raw:
			return default
		value = raw[key]
		if value is None and nullable:
			return None
		if isinstance(value, bool) or not isinstance(value, int):
			raise ConfigError(f"{section}.{key} must be an integer")
		if value < minimum:
			raise ConfigError(f"{section}.{key} must be at least {minimum}")
		return value
