"""Shared pytest fixtures for hotelbook tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_jwks_cache():
    """Clear the module-level JWKS cache so keys never leak between tests."""
    import hotelbook.api.auth as auth_module

    auth_module._jwks_cache.clear()
    yield
    auth_module._jwks_cache.clear()
