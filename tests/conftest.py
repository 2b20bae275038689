"""Test configuration for pytest."""

import logging
import os
import pytest


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    os.environ['KLEERFRAME_LOG_LEVEL'] = 'WARNING'

    logging.getLogger().setLevel(logging.WARNING)

    # Decode failures are exercised on purpose; keep their warnings out of the output
    for logger_name in ['kleerframe.dedup.candidates', 'kleerframe.catalog']:
        logging.getLogger(logger_name).setLevel(logging.ERROR)
