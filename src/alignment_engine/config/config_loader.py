"""
Configuration loader for the alignment engine.
Author: Rowel Facunla
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``overrides`` on ``base`` (both left untouched)."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads and manages configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.config = {}
        self.load_config()

    def load_config(self):
        """
        Load configuration from the YAML file.

        Values in the file are overlaid on the built-in defaults, so a file
        only needs the keys it changes. A missing file falls back to the
        defaults; malformed YAML raises.
        """
        defaults = self._get_default_config()
        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning(f"Config file {self.config_path} not found. Using defaults.")
            self.config = defaults
            return
        except yaml.YAMLError as e:
            logger.error(f"Error loading config file {self.config_path}: {e}")
            raise

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Invalid YAML format in {self.config_path}")

        self.config = _merge(defaults, loaded)
        self.config['_source'] = str(self.config_path.resolve())
        logger.debug(f"Configuration loaded from {self.config['_source']}")

    def _get_default_config(self) -> Dict[str, Any]:
        """Return default configuration if YAML file is not found."""
        return {
            'alignment': {
                'mode': 'global',
                'dna': {
                    'match_score': 2,
                    'mismatch_score': -1,
                    'gap_open': -5,
                    'gap_extend': -2,
                },
                'protein': {
                    'matrix': 'blosum62',
                    'gap_open': -10,
                    'gap_extend': -1,
                },
            },
            'banded': {
                'bandwidth': 16,
            },
            'poa': {
                'match_score': 2,
                'mismatch_score': -1,
                'gap_score': -2,
            },
            'batch': {
                'num_workers': 1,
            },
            'debug': {
                'log_level': 'INFO',
                'log_file': None,
            },
        }

    def get_alignment_params(self) -> Dict[str, Any]:
        """Get alignment parameters."""
        return self.config.get('alignment', {})

    def get_dna_scoring_params(self) -> Dict[str, Any]:
        """Get nucleotide scoring parameters."""
        return self.get_alignment_params().get('dna', {})

    def get_protein_scoring_params(self) -> Dict[str, Any]:
        """Get protein scoring parameters."""
        return self.get_alignment_params().get('protein', {})

    def get_banded_params(self) -> Dict[str, Any]:
        """Get banded alignment parameters."""
        return self.config.get('banded', {})

    def get_poa_params(self) -> Dict[str, Any]:
        """Get partial-order alignment parameters."""
        return self.config.get('poa', {})

    def get_batch_params(self) -> Dict[str, Any]:
        """Get batch alignment parameters."""
        return self.config.get('batch', {})

    def get_debug_params(self) -> Dict[str, Any]:
        """Get logging/debug parameters."""
        return self.config.get('debug', {})


# Global config instance
config_loader = ConfigLoader()


def get_config() -> ConfigLoader:
    """Get the global config loader instance."""
    return config_loader


def reload_config(config_path: Optional[str] = None) -> ConfigLoader:
    """Reload configuration from file."""
    global config_loader
    if config_path:
        config_loader = ConfigLoader(config_path)
    else:
        config_loader.load_config()
    return config_loader


__all__ = [
    'ConfigLoader',
    'DEFAULT_CONFIG_PATH',
    'get_config',
    'reload_config',
]
