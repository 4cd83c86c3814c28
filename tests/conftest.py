"""Pytest configuration and fixtures."""

import logging
from collections.abc import Generator

import pytest

from idxclient.core.config import IDXConfig
from idxclient.core.idx import IDXClient
from idxclient.core.logging import LogLevel, ProtocolLogger, get_protocol_logger, set_protocol_logger
from tests.support import ISSUER, FakeIdP


@pytest.fixture
def config() -> IDXConfig:
    """A complete, valid client configuration."""
    return IDXConfig(
        issuer=ISSUER,
        client_id="test-client",
        client_secret="test-secret",
        redirect_uri="https://app.example.com/login/callback",
        scopes=["openid", "profile"],
    )


@pytest.fixture
def idp() -> FakeIdP:
    """Fake identity provider recording every request."""
    return FakeIdP()


@pytest.fixture
def protocol_logger() -> ProtocolLogger:
    return ProtocolLogger(level=LogLevel.DEBUG)


@pytest.fixture
def client(config: IDXConfig, idp: FakeIdP, protocol_logger: ProtocolLogger) -> Generator[IDXClient, None, None]:
    """IDX client wired to the fake identity provider."""
    idx_client = IDXClient(config, protocol_logger=protocol_logger, transport=idp.transport)
    yield idx_client
    idx_client.close()


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Undo global logging changes made by a test."""
    package_logger = logging.getLogger("idxclient")
    level, handlers = package_logger.level, list(package_logger.handlers)
    previous = get_protocol_logger()
    yield
    for handler in package_logger.handlers:
        if handler not in handlers:
            handler.close()
    package_logger.setLevel(level)
    package_logger.handlers[:] = handlers
    set_protocol_logger(previous)
