import copy
import itertools

import pytest

from preptalk import create_app, runtime

_auto_ids = itertools.count(1)


class FakeSnapshot:
    def __init__(self, doc_id, data, reference=None):
        self.id = doc_id
        self._data = copy.deepcopy(data) if data is not None else None
        self.reference = reference

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    def get(self, **_kwargs):
        return FakeSnapshot(self.id, self._store.get(self.id), self)

    def set(self, data, merge=False):
        if merge and self.id in self._store:
            self._store[self.id].update(copy.deepcopy(data))
        else:
            self._store[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._store:
            raise KeyError(f"No document to update: {self.id}")
        self._store[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._store.pop(self.id, None)


def _matches(value, op, expected):
    if op == '==':
        return value == expected
    if op == '>=':
        return value is not None and value >= expected
    if op == '<=':
        return value is not None and value <= expected
    if op == 'in':
        return value in expected
    if op == 'array_contains':
        return isinstance(value, list) and expected in value
    raise ValueError(f"Unsupported operator {op}")


class FakeQuery:
    """Positional ``where`` only, like the simple doubles ``apply_where`` falls back for."""

    def __init__(self, store, filters=None, limit_count=None):
        self._store = store
        self._filters = list(filters or [])
        self._limit = limit_count

    def where(self, *args, **kwargs):
        if 'filter' in kwargs:
            raise TypeError('filter keyword unsupported')
        field_path, op, value = args
        return FakeQuery(self._store, self._filters + [(field_path, op, value)], self._limit)

    def limit(self, count):
        return FakeQuery(self._store, self._filters, count)

    def stream(self):
        results = []
        for doc_id, data in list(self._store.items()):
            if all(_matches(data.get(field), op, value) for field, op, value in self._filters):
                results.append(FakeSnapshot(doc_id, data, FakeDocumentRef(self._store, doc_id)))
        if self._limit is not None:
            results = results[:self._limit]
        return iter(results)


class FakeCollection(FakeQuery):
    def __init__(self, store):
        super().__init__(store)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._store, doc_id or f"auto{next(_auto_ids)}")

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeBatch:
    def __init__(self):
        self._writes = []
        self.commits = 0

    def set(self, ref, data):
        self._writes.append((ref, data))

    def commit(self):
        for ref, data in self._writes:
            ref.set(data)
        self._writes = []
        self.commits += 1


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return FakeCollection(self.collections.setdefault(name, {}))

    def get_all(self, refs):
        return [ref.get() for ref in refs]

    def batch(self):
        return FakeBatch()

    def docs(self, name):
        return self.collections.get(name, {})


class FakeLLM:
    """Scripted stand-in for ``runtime.generate_json``; pops queued responses in order."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def __call__(self, prompt_text, **kwargs):
        self.calls.append({'prompt': prompt_text, **kwargs})
        if not self.responses:
            raise runtime.LLMResponseError('No scripted response left.')
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)


@pytest.fixture(autouse=True)
def isolated_runtime(monkeypatch):
    monkeypatch.delenv('SENTRY_DSN_BACKEND', raising=False)
    monkeypatch.delenv('RENDER', raising=False)
    monkeypatch.setenv('FLASK_ENV', 'development')
    fake_db = FakeFirestore()
    monkeypatch.setattr(runtime, 'db', fake_db)
    monkeypatch.setattr(runtime, 'storage_bucket', None)
    monkeypatch.setattr(runtime, 'RATE_LIMIT_FIRESTORE_ENABLED', False)
    monkeypatch.setattr(runtime, 'verify_firebase_token', lambda _request: None)
    runtime.RATE_LIMIT_STATE.clear()
    yield fake_db
    runtime.RATE_LIMIT_STATE.clear()


@pytest.fixture()
def fake_db(isolated_runtime):
    return isolated_runtime


@pytest.fixture()
def fake_llm(monkeypatch):
    llm = FakeLLM()
    monkeypatch.setattr(runtime, 'generate_json', llm)
    return llm


@pytest.fixture()
def login(monkeypatch):
    def _login(uid='user-1', email='aspirant@example.com'):
        monkeypatch.setattr(runtime, 'verify_firebase_token', lambda _request: {'uid': uid, 'email': email})
    return _login


@pytest.fixture()
def app():
    flask_app = create_app()
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as test_client:
        yield test_client
