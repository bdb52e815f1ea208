"""Global pytest configuration and fixtures."""

import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--endpoint",
        action="store",
        default=None,
        help="S3-compatible endpoint for integration tests (default: $S3_ENDPOINT)",
    )
    parser.addoption(
        "--no-verify-ssl",
        action="store_true",
        default=False,
        help="Disable SSL certificate verification (INSECURE - use for testing only)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as requiring a live S3-compatible endpoint"
    )
    config.addinivalue_line(
        "markers", "edge_case: mark test as edge case or boundary condition"
    )
    config.addinivalue_line(
        "markers", "signing: mark test as covering SigV4 canonicalization and signing"
    )
