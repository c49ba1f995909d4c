#!/usr/bin/env python3

import os
import yaml
from vsheetlib.core.errors import SettingsError

#============================================

CONFIG_HEADER_KEY = "vsheet"
CONFIG_HEADER_VALUE = 1
TEXT_MODES = ('font', 'outline')

#============================================

def default_config() -> dict:
	"""
	Default settings, in the same nesting as the YAML config file.
	"""
	return {
		CONFIG_HEADER_KEY: CONFIG_HEADER_VALUE,
		'grid': {
			'rows': 5,
			'cols': 3,
			'width': 2048,
			'spacing': 10,
			'auto_flip': True,
		},
		'text': {
			'mode': 'font',
			'font_file': None,
			'label_size': 28,
			'header': True,
			'header_size': 36,
			'line_height': 42,
		},
		'output': {
			'ext': 'jpg',
			'quality': 90,
			'remove_ext': False,
			'no_save': False,
			'overwrite': True,
		},
		'batch': {
			'jobs': None,
			'fail_fast': False,
		},
	}

#============================================

def load_config(config_path: str) -> dict:
	if not os.path.isfile(config_path):
		raise SettingsError(f"config file not found: {config_path}")
	with open(config_path, 'r', encoding='utf-8') as handle:
		try:
			data = yaml.safe_load(handle)
		except yaml.YAMLError as exc:
			raise SettingsError(f"config {config_path}: invalid yaml: {exc}") from exc
	if not isinstance(data, dict):
		raise SettingsError("config file must be a mapping")
	if data.get(CONFIG_HEADER_KEY) != CONFIG_HEADER_VALUE:
		raise SettingsError(
			f"config file must set {CONFIG_HEADER_KEY}: {CONFIG_HEADER_VALUE}")
	return data

#============================================

def merge_config(base: dict, override: dict, config_path: str, prefix: str = '') -> dict:
	merged = dict(base)
	for key, value in override.items():
		key_path = f"{prefix}{key}"
		if key not in base:
			raise SettingsError(f"config {config_path}: unknown key {key_path}")
		if isinstance(base[key], dict):
			if not isinstance(value, dict):
				raise SettingsError(f"config {config_path}: {key_path} must be a mapping")
			merged[key] = merge_config(base[key], value, config_path, key_path + '.')
		else:
			merged[key] = value
	return merged

#============================================

def coerce_int(value, config_path: str, key_path: str) -> int:
	if isinstance(value, bool):
		raise SettingsError(f"config {config_path}: {key_path} must be an integer")
	if isinstance(value, int):
		return value
	if isinstance(value, str) and value.strip().lstrip('-').isdigit():
		return int(value.strip())
	raise SettingsError(f"config {config_path}: {key_path} must be an integer")

#============================================

def coerce_bool(value, config_path: str, key_path: str) -> bool:
	if isinstance(value, bool):
		return value
	raise SettingsError(f"config {config_path}: {key_path} must be true or false")

#============================================

def coerce_str(value, config_path: str, key_path: str) -> str:
	if isinstance(value, str):
		return value
	raise SettingsError(f"config {config_path}: {key_path} must be a string")

#============================================

class SheetSettings():
	def __init__(self):
		self.rows = 5
		self.cols = 3
		self.width = 2048
		self.spacing = 10
		self.auto_flip = True
		self.text_mode = 'font'
		self.font_file = None
		self.label_size = 28
		self.header = True
		self.header_size = 36
		self.line_height = 42
		self.ext = 'jpg'
		self.quality = 90
		self.remove_ext = False
		self.no_save = False
		self.overwrite = True
		self.jobs = os.cpu_count() or 1
		self.fail_fast = False

	#============================
	def num_frames(self) -> int:
		return self.rows * self.cols

	#============================
	def frame_width(self) -> int:
		return (self.width - (self.cols + 1) * self.spacing) // self.cols

	#============================
	def validate(self) -> None:
		if self.rows < 1 or self.cols < 1:
			raise SettingsError("rows and cols must be >= 1")
		if self.spacing < 0:
			raise SettingsError("spacing must be >= 0")
		if self.width <= 0 or self.frame_width() <= 0:
			raise SettingsError(
				f"width {self.width} leaves no room for {self.cols} columns "
				f"with spacing {self.spacing}")
		if self.ext == '' or self.ext.startswith('.'):
			raise SettingsError("ext must be an extension without a leading dot")
		if self.text_mode not in TEXT_MODES:
			raise SettingsError(f"text mode must be one of {', '.join(TEXT_MODES)}")
		if self.label_size <= 0 or self.header_size <= 0 or self.line_height <= 0:
			raise SettingsError("text sizes must be positive")
		if not 1 <= self.quality <= 100:
			raise SettingsError("quality must be 1..100")
		if self.jobs < 1:
			raise SettingsError("jobs must be >= 1")

#============================================

def build_settings(config: dict, config_path: str = '<defaults>') -> SheetSettings:
	grid = config['grid']
	text = config['text']
	output = config['output']
	batch = config['batch']
	settings = SheetSettings()
	settings.rows = coerce_int(grid['rows'], config_path, 'grid.rows')
	settings.cols = coerce_int(grid['cols'], config_path, 'grid.cols')
	settings.width = coerce_int(grid['width'], config_path, 'grid.width')
	settings.spacing = coerce_int(grid['spacing'], config_path, 'grid.spacing')
	settings.auto_flip = coerce_bool(grid['auto_flip'], config_path, 'grid.auto_flip')
	settings.text_mode = coerce_str(text['mode'], config_path, 'text.mode')
	if text['font_file'] is not None:
		settings.font_file = coerce_str(text['font_file'], config_path, 'text.font_file')
	settings.label_size = coerce_int(text['label_size'], config_path, 'text.label_size')
	settings.header = coerce_bool(text['header'], config_path, 'text.header')
	settings.header_size = coerce_int(text['header_size'], config_path, 'text.header_size')
	settings.line_height = coerce_int(text['line_height'], config_path, 'text.line_height')
	settings.ext = coerce_str(output['ext'], config_path, 'output.ext')
	settings.quality = coerce_int(output['quality'], config_path, 'output.quality')
	settings.remove_ext = coerce_bool(output['remove_ext'], config_path, 'output.remove_ext')
	settings.no_save = coerce_bool(output['no_save'], config_path, 'output.no_save')
	settings.overwrite = coerce_bool(output['overwrite'], config_path, 'output.overwrite')
	if batch['jobs'] is not None:
		settings.jobs = coerce_int(batch['jobs'], config_path, 'batch.jobs')
	settings.fail_fast = coerce_bool(batch['fail_fast'], config_path, 'batch.fail_fast')
	return settings

#============================================

def load_settings(config_path: str = None) -> SheetSettings:
	config = default_config()
	if config_path is not None:
		config = merge_config(config, load_config(config_path), config_path)
		return build_settings(config, config_path)
	return build_settings(config)
