"""
Unit tests for configuration constants.
"""

import os
from core.config import (
    ENVIRONMENT,
    PRACTICE_API_BASE_URL,
    PRACTICE_API_TOKEN,
    PRACTICE_API_TIMEOUT_SECONDS,
    PRACTICE_UTC_OFFSET_HOURS,
    LEDGER_PAGE_SIZE,
    LEDGER_BATCH_SIZE,
    SEARCH_DEBOUNCE_MS,
    LOAD_MORE_DELAY_MS,
    ANALYTICS_PAYMENTS_LIMIT
)


class TestConfigConstants:
    """Test cases for configuration constants."""

    def test_default_values(self):
        """Test default configuration values."""
        assert ENVIRONMENT == "development"
        assert PRACTICE_API_BASE_URL == "http://localhost:3000/api"
        assert PRACTICE_API_TOKEN == ""
        assert PRACTICE_UTC_OFFSET_HOURS == -3
        assert LEDGER_PAGE_SIZE == 10
        assert LEDGER_BATCH_SIZE == 10
        assert SEARCH_DEBOUNCE_MS == 300
        assert LOAD_MORE_DELAY_MS == 500
        assert ANALYTICS_PAYMENTS_LIMIT == 1000

    def test_environment_override(self):
        """Test that environment variables override defaults."""
        os.environ["PRACTICE_API_BASE_URL"] = "https://practice.example.com/api"
        os.environ["LEDGER_PAGE_SIZE"] = "25"

        try:
            # Re-import to get updated values
            from importlib import reload
            import core.config
            reload(core.config)

            assert core.config.PRACTICE_API_BASE_URL == "https://practice.example.com/api"
            assert core.config.LEDGER_PAGE_SIZE == 25
        finally:
            # Clean up environment variables
            del os.environ["PRACTICE_API_BASE_URL"]
            del os.environ["LEDGER_PAGE_SIZE"]
            from importlib import reload
            import core.config
            reload(core.config)

    def test_types_and_values(self):
        """Test that constants have correct types and sensible values."""
        assert isinstance(PRACTICE_API_BASE_URL, str)
        assert isinstance(PRACTICE_API_TIMEOUT_SECONDS, float)
        assert PRACTICE_API_TIMEOUT_SECONDS > 0
        assert LEDGER_PAGE_SIZE > 0
