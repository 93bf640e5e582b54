"""YAML configuration files for ResNet builds.

A file holds the `ArchitectureConfig` fields, either at the top level or
under a `model:` key:

    model:
      version: resnet50
      input_channels: 3
      input_width: 224
      input_height: 224
      num_classes: 10
      include_top: true
      pretrained: false
"""
from dataclasses import fields, replace

import yaml

from ..models.config import ArchitectureConfig

CONFIG_FIELDS = tuple(f.name for f in fields(ArchitectureConfig))


def config_from_dict(cfg_dict: dict) -> ArchitectureConfig:
    section = cfg_dict.get('model', cfg_dict)
    if not isinstance(section, dict):
        raise ValueError(f"'model' section must be a mapping, got {type(section).__name__}")
    unknown = sorted(set(section) - set(CONFIG_FIELDS))
    if unknown:
        raise ValueError(f'Unknown config keys {unknown}. Available keys: {list(CONFIG_FIELDS)}')
    return ArchitectureConfig(**section)


def load_config(path: str, **overrides) -> ArchitectureConfig:
    """Read an ArchitectureConfig from YAML; non-None `overrides` win over the file."""
    try:
        with open(path, 'r') as f:
            cfg_dict = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Could not find config file at: {path}")
    except yaml.YAMLError as exc:
        raise ValueError(f"Error parsing YAML file: {exc}")

    if cfg_dict is None:
        raise ValueError(f"File {path} is empty!")
    if not isinstance(cfg_dict, dict):
        raise ValueError(f"File {path} must contain a mapping")

    config = config_from_dict(cfg_dict)
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **overrides) if overrides else config


__all__ = ['load_config', 'config_from_dict', 'CONFIG_FIELDS']
