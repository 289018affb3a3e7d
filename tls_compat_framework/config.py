"""
Configuration loader for the handshake compatibility harness
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from .vocabulary import Vocabulary, ProtocolFamily


PACKAGE_DIR = Path(__file__).parent

DEFAULTS = {
    'network': {
        'host': '127.0.0.1',
        'port': 4433,
    },
    'certificates': {
        'fixtures_dir': str(PACKAGE_DIR / 'fixtures'),
        'cert': 'agent.crt',
        'key': 'agent.key',
    },
    'test_execution': {
        'trial_timeout': 30,
        'handshake_timeout': 10,
        'port_wait_timeout': 5,
        'show_agent_output': False,
    },
    'vocabulary': {
        # the agents cannot negotiate SSLv2, see negotiation.version_range()
        'protocol_families': [
            ProtocolFamily.SSLV3.value,
            ProtocolFamily.TLSV1.value,
            ProtocolFamily.SSLV23.value,
        ],
    },
    'reporting': {
        'template': str(PACKAGE_DIR / 'templates' / 'report_template.html'),
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class HarnessConfig:
    """Load and manage harness configuration from a YAML file"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration loader

        Args:
            config_path: Path to YAML configuration file, or None to run with
                         built-in defaults only
        """
        self.config_path = Path(config_path) if config_path else None
        overrides = {}

        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")

            with open(self.config_path) as f:
                overrides = yaml.safe_load(f) or {}

        self.config = _merge(DEFAULTS, overrides)

    def _resolve(self, path: str) -> Path:
        """Relative paths in the file are taken relative to the file itself"""
        resolved = Path(path)
        if not resolved.is_absolute() and self.config_path is not None:
            resolved = self.config_path.parent / resolved
        return resolved

    def get_network_settings(self) -> Dict[str, Any]:
        """Get listening address shared by all trials"""
        return self.config['network']

    def get_certificate_paths(self) -> Dict[str, Path]:
        """
        Get the server certificate fixture

        Returns:
            Dictionary with 'cert', 'key' paths
        """
        certs = self.config['certificates']
        fixtures_dir = self._resolve(certs['fixtures_dir'])

        return {
            'cert': fixtures_dir / certs['cert'],
            'key': fixtures_dir / certs['key']
        }

    def get_test_execution_settings(self) -> Dict[str, Any]:
        """Get test execution settings"""
        return self.config['test_execution']

    def get_vocabulary(self) -> Vocabulary:
        """
        Build the vocabulary restricted to the configured protocol families

        Raises:
            ValueError: If a family name is unknown
        """
        names = self.config['vocabulary']['protocol_families']
        return Vocabulary.restricted(ProtocolFamily(name) for name in names)

    def get_reporting_settings(self) -> Dict[str, Any]:
        """Get reporting settings"""
        settings = dict(self.config['reporting'])
        settings['template'] = self._resolve(settings['template'])
        return settings
