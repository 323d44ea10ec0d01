from __future__ import annotations

import pytest

from apichain.workflows import ExecutorRegistry


@pytest.fixture
def registry_with():
    def factory(executor, protocol: str = "rest") -> ExecutorRegistry:
        registry = ExecutorRegistry()
        registry.register(protocol, executor)
        return registry

    return factory
