"""
Tests for test/prod environment separation.
"""

import pytest

from agentic_memory.config import (
    Environment,
    PROD_ENV,
    TEST_ENV,
    get_current_environment,
    get_environment_config,
    set_current_environment,
)
from agentic_memory.config.environments import get_all_environments


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    monkeypatch.delenv("AGENTIC_MEMORY_ENV", raising=False)
    set_current_environment(TEST_ENV)
    yield
    set_current_environment(TEST_ENV)


def test_default_is_test():
    config = get_current_environment()

    assert config.name == "test"
    assert config.falkordb_graph == "agent_memory_test"
    assert config.qdrant_collection == "agent_memory_test"


def test_switch_environment():
    set_current_environment(PROD_ENV)
    assert get_current_environment().name == "prod"


def test_env_var_wins(monkeypatch):
    set_current_environment(PROD_ENV)
    monkeypatch.setenv("AGENTIC_MEMORY_ENV", "TEST")

    assert get_current_environment().name == "test"


def test_unknown_env_var_ignored(monkeypatch):
    monkeypatch.setenv("AGENTIC_MEMORY_ENV", "staging")
    assert get_current_environment().name == "test"


def test_environments_are_isolated():
    test_config = get_environment_config(TEST_ENV)
    prod_config = get_environment_config(PROD_ENV)

    assert test_config.falkordb_graph != prod_config.falkordb_graph
    assert test_config.qdrant_collection != prod_config.qdrant_collection


def test_get_all_environments_is_a_copy():
    environments = get_all_environments()
    environments.pop(Environment.PROD)

    assert Environment.PROD in get_all_environments()
