"""Root conftest for all tests.

Shared fixtures: the bundled movement registry and cache isolation between
tests.
"""

import pytest

from app.generation.critic.cache import clear_critic_cache
from app.generation.registry import MovementRegistry, load_registry
from app.generation.seed import clear_seed_store


@pytest.fixture(scope="session")
def registry() -> MovementRegistry:
    """Bundled movement registry, parsed once per session."""
    return load_registry()


@pytest.fixture(autouse=True)
def isolated_caches():
    """Start and end every test with empty critic and seed caches."""
    clear_critic_cache()
    clear_seed_store()
    yield
    clear_critic_cache()
    clear_seed_store()
