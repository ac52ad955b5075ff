"""
Pytest configuration and shared test doubles for search-sink.

FakeCluster keeps documents per collection so tests can compare final
cluster state; FakeAdmin/FakeDispatch record calls and can inject failures.
"""

from collections import defaultdict

import pytest

from search_sink import CollectionPolicy, SearchSinkTask
from search_sink.models import Delete, Upsert


class FakeCluster:
    def __init__(self, existing=()):
        self.collections = {name: {} for name in existing}

    def state(self):
        return {name: dict(docs) for name, docs in self.collections.items()}


class FakeAdmin:
    """AdminTransport double with call counters."""

    def __init__(self, cluster: FakeCluster):
        self.cluster = cluster
        self.list_calls = 0
        self.created = []
        self.fail_list = None

    def list_destinations(self):
        self.list_calls += 1
        if self.fail_list is not None:
            raise self.fail_list
        return list(self.cluster.collections)

    def create_destination(self, name, shards, replication_factor, max_shards_per_node):
        self.created.append((name, shards, replication_factor, max_shards_per_node))
        self.cluster.collections.setdefault(name, {})


class FakeDispatch:
    """DispatchTransport double; applies requests to the FakeCluster."""

    def __init__(self, cluster: FakeCluster):
        self.cluster = cluster
        self.sent = []
        self.drains = 0
        self.closed = False
        self.failures = defaultdict(list)  # destination -> exceptions to raise, in order

    def fail_next(self, destination, exc):
        self.failures[destination].append(exc)

    def send(self, destination, request):
        if self.failures[destination]:
            raise self.failures[destination].pop(0)
        self.sent.append((destination, request))
        docs = self.cluster.collections.setdefault(destination, {})
        for op in request.operations:
            if isinstance(op, Upsert):
                docs[op.doc_id] = op.document
            elif isinstance(op, Delete):
                docs.pop(op.doc_id, None)

    def drain(self):
        self.drains += 1

    def close(self):
        self.closed = True

    def dispatched(self, destination):
        """Flattened (kind, id) pairs sent to one destination, in order."""
        return [
            (op.kind.value, op.doc_id)
            for dest, req in self.sent
            if dest == destination
            for op in req.operations
        ]


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def admin(cluster):
    return FakeAdmin(cluster)


@pytest.fixture
def dispatch(cluster):
    return FakeDispatch(cluster)


@pytest.fixture
def auto_create_policy():
    return CollectionPolicy(
        auto_create=True, num_shards=2, replication_factor=2, max_shards_per_node=1
    )


@pytest.fixture
def task(admin, dispatch, auto_create_policy):
    t = SearchSinkTask(admin, dispatch)
    t.start(auto_create_policy)
    return t
