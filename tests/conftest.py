"""Shared pytest fixtures and configuration for pytest."""

import logging

import pytest

from jsonsmd.rpc.dispatcher import Dispatcher
from jsonsmd.rpc.http import HttpResponse


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "network: test binds a real local socket"
    )


class Calculator:
    """Simple service used across dispatcher, HTTP and CLI tests."""

    def add(self, a: int, b: int = 0) -> int:
        """Add two numbers.

        Args:
            a: First addend.
            b: Second addend.
        """
        return a + b

    def greet(self, name: str, greeting: str = "Hello") -> str:
        return f"{greeting}, {name}!"

    def fail(self) -> None:
        raise RuntimeError("boom")


@pytest.fixture
def calculator_dispatcher() -> Dispatcher:
    """Dispatcher with Calculator registered, producing HttpResponse objects."""
    dispatcher = Dispatcher(response_class=HttpResponse)
    dispatcher.set_class(Calculator)
    return dispatcher


@pytest.fixture(autouse=True)
def _reset_jsonsmd_logger():
    """Undo handler changes made by configure_server_logging()."""
    root = logging.getLogger("jsonsmd")
    handlers = list(root.handlers)
    level, propagate = root.level, root.propagate
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    root.propagate = propagate
