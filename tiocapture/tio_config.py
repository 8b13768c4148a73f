#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - Capture configuration
Copyright 2024 Twinleaf LLC
License: MIT

Settings are read from a YAML document such as:

  url: tcp://localhost/0
  index_type: u16
  inclusive_last_block: true
"""

import yaml
import tiorpc

DEFAULTS = {
  'url': 'tcp://localhost',
  'verbose': False,
  'debug': False,
  'timeout': 3.0,
  'index_type': 'u16',
  'inclusive_last_block': True,
  'serialize_per_element': True,
}

class ConfigError(Exception):
  pass

def load_config(filename=None, **overrides):
  """
  Returns the settings from filename (if any) over the defaults, with any
  overrides that are not None applied last.
  """
  config = dict(DEFAULTS)
  if filename is not None:
    with open(filename, 'r') as stream:
      document = yaml.load(stream, Loader=yaml.SafeLoader)
    if document is None:
      document = {}
    if not isinstance(document, dict):
      raise ConfigError(f"{filename}: expected a mapping of settings")
    config.update(document)
  config.update({key:value for key, value in overrides.items() if value is not None})
  return validate(config)

def validate(config):
  unknown = set(config.keys()) - set(DEFAULTS.keys())
  if unknown:
    raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
  try:
    index_type = tiorpc.TypeKind.parse(config['index_type'])
  except ValueError as e:
    raise ConfigError(str(e)) from None
  if not index_type.is_integer:
    raise ConfigError(f"index_type must be an integer type, not {index_type.value}")
  config['index_type'] = index_type
  for key in ['verbose', 'debug', 'inclusive_last_block', 'serialize_per_element']:
    if not isinstance(config[key], bool):
      raise ConfigError(f"{key} must be true or false")
  try:
    config['timeout'] = float(config['timeout'])
  except (TypeError, ValueError):
    raise ConfigError("timeout must be a number of seconds") from None
  return config

def dump_config(config, filename):
  document = dict(config)
  document['index_type'] = tiorpc.TypeKind.parse(document['index_type']).value
  with open(filename, 'w') as stream:
    yaml.dump(document, stream, default_flow_style=False)
