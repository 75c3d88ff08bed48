import pytest

from printer_bridge import create_app
from printer_bridge.device import (
    DeviceEnumerator,
    MemoryDeviceStore,
    SessionManager,
    TransferExecutor,
    default_filters,
)
from tests.fakes import FakeBackend, FakeDevice


@pytest.fixture()
def device():
    return FakeDevice()


@pytest.fixture()
def backend(device):
    # Attached but not yet authorized: the first connect has to select it
    return FakeBackend(devices=[device])


@pytest.fixture()
def store():
    return MemoryDeviceStore()


@pytest.fixture()
def enumerator(backend):
    return DeviceEnumerator(backend, default_filters([0x04b8]))


@pytest.fixture()
def manager(enumerator, store):
    return SessionManager(enumerator, store=store)


@pytest.fixture()
def executor():
    return TransferExecutor()


@pytest.fixture()
def app(backend):
    app = create_app("testing", backend=backend)
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def gateway(app):
    return app.extensions["printer_bridge"]
