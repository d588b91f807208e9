import pytest

from relay.messaging.router import MessageRouter
from relay.server.app import create_app
from relay.server.settings import RelayServerSettings
from relay.session.broadcast import ConnectionHub
from relay.session.registry import SessionRegistry
from relay.tests.mocks import FixedIdentityProvider


@pytest.fixture
def identity():
    return FixedIdentityProvider(room_ids=("ABC123", "XYZ789"))


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def registry(hub, identity):
    return SessionRegistry(hub, identity)


@pytest.fixture
def message_router(registry, hub):
    return MessageRouter(registry, hub)


@pytest.fixture
def settings():
    return RelayServerSettings(cors_origins=["http://localhost:8080"])


@pytest.fixture
def app(settings, registry, hub, message_router):
    return create_app(settings=settings, registry=registry, hub=hub, message_router=message_router)
