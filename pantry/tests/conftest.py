import pytest

from commonlib.storage import JsonStore
from pantry import app as flask_app
from pantry.controller import InventoryController
from pantry.services.inventory_store import FirestoreInventoryStore, JsonInventoryStore


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return None if self._data is None else dict(self._data)


class FakeDocument:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def get(self):
        self._collection.client.round_trip("get", self.id)
        return FakeSnapshot(self.id, self._collection.docs.get(self.id))

    def set(self, data, merge=False):
        self._collection.client.round_trip("set", self.id)
        if merge:
            self._collection.docs.setdefault(self.id, {}).update(data)
        else:
            self._collection.docs[self.id] = dict(data)

    def delete(self):
        self._collection.client.round_trip("delete", self.id)
        self._collection.docs.pop(self.id, None)


class FakeCollection:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    @property
    def docs(self):
        return self.client.data.setdefault(self.name, {})

    def document(self, doc_id):
        return FakeDocument(self, doc_id)

    def stream(self):
        self.client.round_trip("list", None)
        return iter([FakeSnapshot(key, value) for key, value in list(self.docs.items())])


class FakeFirestore:
    """In-memory stand-in for ``google.cloud.firestore.Client``.

    Records every round trip in ``calls`` and raises whatever exception was
    registered for an operation through :meth:`fail`.
    """

    def __init__(self, data=None):
        self.data = {"inventory": dict(data or {})}
        self.calls = []
        self.failures = {}

    def collection(self, name):
        return FakeCollection(self, name)

    def fail(self, operation, exc):
        self.failures[operation] = exc

    def round_trip(self, operation, key):
        self.calls.append((operation, key))
        exc = self.failures.get(operation)
        if exc is not None:
            raise exc

    @property
    def inventory(self):
        return self.data["inventory"]


@pytest.fixture
def firestore_client():
    return FakeFirestore()


@pytest.fixture
def firestore_store(firestore_client):
    return FirestoreInventoryStore(firestore_client)


@pytest.fixture
def json_store(tmp_path):
    return JsonInventoryStore(JsonStore(tmp_path / "inventory.json", backups=2))


@pytest.fixture
def controller(firestore_store):
    return InventoryController(firestore_store)


@pytest.fixture(autouse=True)
def plain_http_app():
    flask_app.app.config.update(TESTING=True)
    talisman = flask_app.app.extensions.get("talisman")
    if talisman:
        talisman.force_https = False


@pytest.fixture
def client(json_store, monkeypatch):
    controller = InventoryController(json_store)
    controller.load()
    monkeypatch.setattr(flask_app, "CONTROLLER", controller)
    return flask_app.app.test_client()
