"""
Test Suite for Engine Configuration

This test suite covers:
- Loading settings from YAML
- Defaults for missing files, sections and keys
- Parameter validation
- Join strategy normalization

Author: Your Name
Date: 2024
"""

import os
import sys
import tempfile
import unittest

import yaml

sys.path.append('..')

from tax_engine.config import JoinStrategy, TaxConfig, load_config
from tax_engine.exceptions import ConfigError


class TestLoadConfig(unittest.TestCase):
    """Tests for load_config."""

    def setUp(self):
        """Set up test fixtures."""
        self.config_data = {
            'taxes': {
                'capital_gains_rate': 0.15
            },
            'output': {
                'currency_symbol': 'R$ '
            },
            'concurrency': {
                'join_strategy': 'polling',
                'max_workers': 4,
                'poll_interval_seconds': 0.05,
                'timeout_seconds': 30
            },
            'input': {
                'buy_indicator': 'c',
                'has_header': True
            }
        }

        # Create temporary config file
        self.temp_config = tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False)
        yaml.dump(self.config_data, self.temp_config)
        self.temp_config.close()

    def tearDown(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_config.name):
            os.unlink(self.temp_config.name)

    def test_load_all_sections(self):
        """Test that every setting is read from the file."""
        config = load_config(self.temp_config.name)

        self.assertEqual(config.tax_rate, 0.15)
        self.assertEqual(config.currency_symbol, 'R$ ')
        self.assertEqual(config.join_strategy, JoinStrategy.POLLING)
        self.assertEqual(config.max_workers, 4)
        self.assertEqual(config.poll_interval, 0.05)
        self.assertEqual(config.timeout, 30)
        self.assertEqual(config.buy_indicator, 'c')
        self.assertTrue(config.has_header)

    def test_missing_file_uses_defaults(self):
        """Test that a missing settings file falls back to defaults."""
        with self.assertLogs('tax_engine.config', level='WARNING'):
            config = load_config(os.path.join(tempfile.gettempdir(), 'does-not-exist.yaml'))

        self.assertEqual(config, TaxConfig())

    def test_partial_file_uses_defaults(self):
        """Test that missing keys keep their defaults."""
        with open(self.temp_config.name, 'w') as f:
            yaml.dump({'taxes': {'capital_gains_rate': 0.2}}, f)

        config = load_config(self.temp_config.name)

        self.assertEqual(config.tax_rate, 0.2)
        self.assertEqual(config.currency_symbol, '$')
        self.assertEqual(config.join_strategy, JoinStrategy.BLOCKING)
        self.assertIsNone(config.timeout)

    def test_empty_file_uses_defaults(self):
        """Test that an empty settings file yields the defaults."""
        with open(self.temp_config.name, 'w') as f:
            f.write('')

        self.assertEqual(load_config(self.temp_config.name), TaxConfig())

    def test_invalid_yaml_raises(self):
        """Test that malformed YAML is reported."""
        with open(self.temp_config.name, 'w') as f:
            f.write('taxes: [unclosed')

        with self.assertRaises(yaml.YAMLError):
            load_config(self.temp_config.name)

    def test_non_mapping_rejected(self):
        """Test that a YAML list is not a valid settings file."""
        with open(self.temp_config.name, 'w') as f:
            yaml.dump([1, 2, 3], f)

        with self.assertRaises(ConfigError):
            load_config(self.temp_config.name)

    def test_shipped_settings_file(self):
        """Test that the repository settings file loads with the documented defaults."""
        path = os.path.join(os.path.dirname(__file__), '..', 'config', 'settings.yaml')

        config = load_config(path)

        self.assertEqual(config.tax_rate, 0.25)
        self.assertEqual(config.currency_symbol, '$')
        self.assertEqual(config.poll_interval, 0.1)
        self.assertFalse(config.has_header)


class TestTaxConfigValidation(unittest.TestCase):
    """Tests for TaxConfig validation."""

    def test_defaults(self):
        """Test default values."""
        config = TaxConfig()

        self.assertEqual(config.tax_rate, 0.25)
        self.assertEqual(config.currency_symbol, '$')
        self.assertEqual(config.join_strategy, JoinStrategy.BLOCKING)
        self.assertIsNone(config.max_workers)
        self.assertEqual(config.poll_interval, 0.1)
        self.assertIsNone(config.timeout)
        self.assertEqual(config.buy_indicator, 'b')
        self.assertFalse(config.has_header)

    def test_invalid_values(self):
        """Test that out-of-range parameters raise ConfigError."""
        invalid = [
            {'tax_rate': -0.1},
            {'tax_rate': 1.5},
            {'max_workers': 0},
            {'poll_interval': 0},
            {'timeout': -1},
            {'buy_indicator': ''},
            {'join_strategy': 'eventually'},
        ]
        for kwargs in invalid:
            with self.subTest(**kwargs):
                with self.assertRaises(ConfigError):
                    TaxConfig(**kwargs)

    def test_strategy_normalization(self):
        """Test that strategy names are case-insensitive."""
        self.assertEqual(TaxConfig(join_strategy='POLLING').join_strategy, JoinStrategy.POLLING)
        self.assertIs(JoinStrategy.validate(JoinStrategy.BLOCKING), JoinStrategy.BLOCKING)

    def test_to_dict(self):
        """Test serialization of the configuration."""
        data = TaxConfig().to_dict()

        self.assertEqual(data['join_strategy'], 'blocking')
        self.assertEqual(data['tax_rate'], 0.25)


if __name__ == '__main__':
    unittest.main()
