"""
Configuration file support for cover parameters.

Supports YAML and JSON config files. Parameters live under a ``cover``
section (or at the top level of the file):

    cover:
      sel_prob: 0.5        # or sel_tax: 0.69
      setXset_factor: 1.0
      reg: 0.01
      min_weight: 0.01
"""

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from enrichedcover.cover.params import CoverParams

__all__ = [
    'load_config',
    'load_cover_params',
    'params_to_dict',
]

_PARAM_FIELDS = frozenset(f.name for f in dataclasses.fields(CoverParams))


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("cover.yaml"))
        >>> print(config['cover']['setXset_factor'])
        1.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def load_cover_params(
    source: Union[Path, str, Mapping[str, Any]],
    section: str = "cover",
) -> CoverParams:
    """
    Build validated CoverParams from a config file or mapping.

    Parameters:
        source: Config file path, or an already loaded mapping
        section: Name of the section holding the parameters; the top level
            is used when the section is absent

    Returns:
        CoverParams

    Raises:
        ValueError: Unknown keys, ``sel_prob`` together with ``sel_tax``,
            or parameters out of range
    """
    config = source if isinstance(source, Mapping) else load_config(Path(source))
    values = config.get(section, config)
    if values is None:
        values = {}
    if not isinstance(values, Mapping):
        raise ValueError(f"Config section '{section}' must be a mapping")
    values = dict(values)

    unknown = set(values) - _PARAM_FIELDS - {'sel_prob'}
    if unknown:
        raise ValueError(f"Unknown cover parameters: {sorted(unknown)}")

    if 'sel_prob' in values:
        if 'sel_tax' in values:
            raise ValueError("Specify either sel_prob or sel_tax, not both")
        return CoverParams.from_sel_prob(values.pop('sel_prob'), **values)
    return CoverParams(**values)


def params_to_dict(params: CoverParams) -> Dict[str, Any]:
    """Plain mapping of the parameters, suitable for YAML/JSON dumping."""
    return dataclasses.asdict(params)
