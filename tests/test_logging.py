"""Tests for logging setup."""

import os
import tempfile
from unittest.mock import patch

from loguru import logger

from src.affiliate_migrate.utils.logging import (
    CONSOLE_FORMAT,
    FILE_FORMAT,
    setup_logging,
)


class TestSetupLogging:
    """Test loguru sink configuration."""

    def teardown_method(self):
        """Clean up test fixtures."""
        logger.remove()

    @patch('src.affiliate_migrate.utils.logging.logger')
    def test_component_formats_by_default(self, mock_logger):
        """Test both sinks use the component formats when none is configured."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = os.path.join(temp_dir, 'logs', 'migration.log')
            setup_logging('INFO', log_file=log_file, log_format=None)

        formats = [call.kwargs['format'] for call in mock_logger.add.call_args_list]
        assert formats == [CONSOLE_FORMAT, FILE_FORMAT]
        mock_logger.configure.assert_called_once_with(extra={'component': 'main'})

    @patch('src.affiliate_migrate.utils.logging.logger')
    def test_custom_format(self, mock_logger):
        """Test a configured format replaces the console format."""
        setup_logging('DEBUG', log_format='{level} {message}')

        call = mock_logger.add.call_args
        assert call.kwargs['format'] == '{level} {message}'
        assert call.kwargs['level'] == 'DEBUG'

    def test_component_is_rendered(self):
        """Test records show the bound component."""
        setup_logging('INFO')
        lines = []
        logger.add(lines.append, format=FILE_FORMAT, level='INFO')

        logger.bind(component='MigrateUsersBatch').info('converted')
        logger.info('started')

        assert '| MigrateUsersBatch | converted' in lines[0]
        assert '| main | started' in lines[1]
