"""
Unit tests for the OpenSearch transports (client mocked).
"""

from unittest.mock import MagicMock, patch

import pytest
from opensearchpy.exceptions import RequestError

from search_sink import DestinationBatch, SinkSettings, TransportFailure
from search_sink.models import Delete, Upsert
from search_sink.transports import (
    BufferedDispatchTransport,
    DirectDispatchTransport,
    OpenSearchAdminTransport,
    create_client,
)

BULK = "search_sink.transports.opensearch.helpers.bulk"


def _requests(*ops, destination="idx"):
    b = DestinationBatch(destination)
    for op in ops:
        b.add(op)
    return list(b.requests())


class TestAdminTransport:
    def test_lists_indices_and_aliases(self):
        client = MagicMock()
        client.indices.get_alias.return_value = {
            "idx1": {"aliases": {"articles": {}}},
            "idx2": {"aliases": {}},
        }
        assert OpenSearchAdminTransport(client).list_destinations() == ["articles", "idx1", "idx2"]
        client.indices.get_alias.assert_called_once_with(index="*")

    def test_create_maps_replication_factor_to_replicas(self):
        client = MagicMock()
        OpenSearchAdminTransport(client).create_destination("t1", 3, 2, 4)

        client.indices.create.assert_called_once()
        kwargs = client.indices.create.call_args.kwargs
        assert kwargs["index"] == "t1"
        settings = kwargs["body"]["settings"]["index"]
        assert settings["number_of_shards"] == 3
        assert settings["number_of_replicas"] == 1
        assert settings["routing.allocation.total_shards_per_node"] == 4

    def test_create_already_exists_is_noop(self):
        client = MagicMock()
        client.indices.create.side_effect = RequestError(
            400, "resource_already_exists_exception", {}
        )
        OpenSearchAdminTransport(client).create_destination("t1", 1, 1, 1)

    def test_create_other_rejection_propagates(self):
        client = MagicMock()
        client.indices.create.side_effect = RequestError(400, "illegal_argument_exception", {})
        with pytest.raises(RequestError):
            OpenSearchAdminTransport(client).create_destination("t1", 1, 1, 1)


class TestDirectDispatch:
    @patch(BULK, return_value=(2, []))
    def test_one_bulk_call_per_request(self, mock_bulk):
        client = MagicMock()
        t = DirectDispatchTransport(client, refresh="wait_for")
        for req in _requests(Upsert({"a": 1}, key="k1"), Upsert({"a": 2}, key="k2"), Delete("k1")):
            t.send("idx", req)

        assert mock_bulk.call_count == 2
        first_actions = mock_bulk.call_args_list[0].args[1]
        assert [a["_id"] for a in first_actions] == ["k1", "k2"]
        assert mock_bulk.call_args_list[1].args[1][0]["_op_type"] == "delete"
        assert mock_bulk.call_args.kwargs["refresh"] == "wait_for"
        assert mock_bulk.call_args.kwargs["raise_on_error"] is False

    @patch(BULK, return_value=(0, [{"delete": {"_id": "k1", "status": 404}}]))
    def test_delete_of_missing_document_is_ok(self, mock_bulk):
        t = DirectDispatchTransport(MagicMock())
        t.send("idx", _requests(Delete("k1"))[0])

    @patch(BULK, return_value=(0, [{"index": {"_id": "k1", "status": 400, "error": "mapper"}}]))
    def test_rejected_items_raise(self, mock_bulk):
        t = DirectDispatchTransport(MagicMock())
        with pytest.raises(TransportFailure, match="1 bulk item") as ei:
            t.send("idx", _requests(Upsert({}, key="k1"))[0])
        assert len(ei.value.errors) == 1


class TestBufferedDispatch:
    @patch(BULK, return_value=(0, []))
    def test_buffers_until_max_actions(self, mock_bulk):
        t = BufferedDispatchTransport(MagicMock(), max_actions=3)
        up, dele = _requests(Upsert({}, key="a"), Upsert({}, key="b"), Delete("a"), Delete("c"))

        t.send("idx", up)
        assert mock_bulk.call_count == 0
        assert t.pending == 2

        t.send("idx", dele)
        assert mock_bulk.call_count == 1
        actions = mock_bulk.call_args.args[1]
        assert [(a["_op_type"], a["_id"]) for a in actions] == [
            ("index", "a"),
            ("index", "b"),
            ("delete", "a"),
            ("delete", "c"),
        ]
        assert t.pending == 0

    @patch(BULK, return_value=(0, []))
    def test_drain_flushes_and_is_idempotent(self, mock_bulk):
        t = BufferedDispatchTransport(MagicMock(), max_actions=100)
        t.send("idx", _requests(Upsert({}, key="a"))[0])
        t.drain()
        t.drain()
        assert mock_bulk.call_count == 1

    @patch(BULK, return_value=(0, []))
    def test_destination_switch_flushes_previous(self, mock_bulk):
        t = BufferedDispatchTransport(MagicMock(), max_actions=100)
        t.send("t1", _requests(Upsert({}, key="a"), destination="t1")[0])
        t.send("t2", _requests(Upsert({}, key="b"), destination="t2")[0])
        assert mock_bulk.call_count == 1
        assert mock_bulk.call_args.args[1][0]["_index"] == "t1"

    @patch(BULK, return_value=(0, [{"index": {"_id": "a", "status": 503}}]))
    def test_failed_flush_clears_buffer(self, mock_bulk):
        t = BufferedDispatchTransport(MagicMock(), max_actions=100)
        t.send("idx", _requests(Upsert({}, key="a"))[0])
        with pytest.raises(TransportFailure):
            t.drain()
        assert t.pending == 0

    def test_close_discards_buffer(self):
        client = MagicMock()
        t = BufferedDispatchTransport(client, max_actions=100)
        t.send("idx", _requests(Upsert({}, key="a"))[0])
        t.close()
        assert t.pending == 0
        client.close.assert_called_once()

    def test_invalid_max_actions(self):
        with pytest.raises(ValueError):
            BufferedDispatchTransport(MagicMock(), max_actions=0)


@patch("search_sink.transports.opensearch.OpenSearch")
def test_create_client_uses_settings(mock_os):
    s = SinkSettings(hosts=["https://es:9200"], username="u", password="p", use_ssl=True)
    create_client(s)
    kwargs = mock_os.call_args.kwargs
    assert kwargs["hosts"] == ["https://es:9200"]
    assert kwargs["http_auth"] == ("u", "p")
    assert kwargs["use_ssl"] is True
