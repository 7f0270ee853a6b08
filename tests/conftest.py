"""Pytest configuration and fixtures for research-console tests."""


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: Tests that talk to a running research API")
