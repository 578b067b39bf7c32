"""
Tests for forwarder configuration loading.
"""

import json
import pytest
from unittest.mock import patch
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.config import ForwarderConfig, DEFAULT_MIN_REMAINING_TIME_MS
from domain.errors import ConfigurationError


class TestFromDict:
    """Test config.json layout."""

    def test_full_config(self, mapping_data):
        config = ForwarderConfig.from_dict({
            'from': 'forwarder@example.com',
            'bucket': 'ses-incoming',
            'mappings': mapping_data,
            'mailboxDirectories': {'example.com': 'example'},
            'defaultDirectory': 'other',
            'minRemainingTimeMs': 2000
        })

        assert config.from_address == 'forwarder@example.com'
        assert config.bucket_name == 'ses-incoming'
        assert config.mapping.domain_to_domain == {'blue.com': 'red.com'}
        assert config.mailbox_directories.directory_for('me@example.com') == 'example'
        assert config.mailbox_directories.default_directory == 'other'
        assert config.min_remaining_time_ms == 2000

    def test_defaults(self):
        config = ForwarderConfig.from_dict({'from': 'f@example.com', 'bucket': 'b'})

        assert config.mapping.email_to_email == {}
        assert config.mailbox_directories.storage_key('id') == 'id'
        assert config.min_remaining_time_ms == DEFAULT_MIN_REMAINING_TIME_MS

    def test_missing_from_address(self):
        with pytest.raises(ConfigurationError, match="from address"):
            ForwarderConfig.from_dict({'bucket': 'b'})

    def test_missing_bucket(self):
        with pytest.raises(ConfigurationError, match="bucket"):
            ForwarderConfig.from_dict({'from': 'f@example.com'})

    def test_invalid_min_remaining_time(self):
        with pytest.raises(ConfigurationError, match="minRemainingTimeMs"):
            ForwarderConfig.from_dict({
                'from': 'f@example.com', 'bucket': 'b', 'minRemainingTimeMs': 'soon'
            })


class TestFromEnv:
    """Test environment variable loading."""

    def test_from_env_variables(self, mapping_data):
        env = {
            'FORWARD_FROM_ADDRESS': 'forwarder@example.com',
            'SES_INCOMING_BUCKET': 'ses-incoming',
            'FORWARD_MAPPINGS': json.dumps(mapping_data),
            'MAILBOX_DIRECTORIES': json.dumps({'example.com': 'example'}),
            'DEFAULT_MAILBOX_DIRECTORY': 'other',
            'MIN_REMAINING_TIME_MS': '1500',
        }
        with patch.dict(os.environ, env):
            os.environ.pop('FORWARDER_CONFIG_PATH', None)
            config = ForwarderConfig.from_env()

        assert config.from_address == 'forwarder@example.com'
        assert config.bucket_name == 'ses-incoming'
        assert config.mapping.email_to_email == {'sint@castle.es': 'santa@north.pole'}
        assert config.mailbox_directories.directory_for('x@y.org') == 'other'
        assert config.min_remaining_time_ms == 1500

    def test_from_env_invalid_json(self):
        with patch.dict(os.environ, {'FORWARD_MAPPINGS': '{not json'}):
            os.environ.pop('FORWARDER_CONFIG_PATH', None)
            with pytest.raises(ConfigurationError, match="FORWARD_MAPPINGS is not valid JSON"):
                ForwarderConfig.from_env()

    def test_from_env_json_must_be_object(self):
        with patch.dict(os.environ, {'MAILBOX_DIRECTORIES': '["a"]'}):
            os.environ.pop('FORWARDER_CONFIG_PATH', None)
            with pytest.raises(ConfigurationError, match="must be a JSON object"):
                ForwarderConfig.from_env()

    def test_from_env_config_file(self, tmp_path, mapping_data):
        config_file = tmp_path / 'config.json'
        config_file.write_text(json.dumps({
            'from': 'file@example.com',
            'bucket': 'file-bucket',
            'mappings': mapping_data
        }))

        with patch.dict(os.environ, {'FORWARDER_CONFIG_PATH': str(config_file)}):
            config = ForwarderConfig.from_env()

        assert config.from_address == 'file@example.com'
        assert config.bucket_name == 'file-bucket'
        assert config.mapping.domain_to_email == {'world.com': 'hello@world.com'}

    def test_from_env_missing_config_file(self, tmp_path):
        with patch.dict(os.environ, {'FORWARDER_CONFIG_PATH': str(tmp_path / 'missing.json')}):
            with pytest.raises(ConfigurationError, match="Failed to load config file"):
                ForwarderConfig.from_env()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
