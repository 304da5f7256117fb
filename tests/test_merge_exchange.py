import json
import logging

import pytest

from trafficspec.capture.exchange import CapturedExchange
from trafficspec.capture.merge import merge_exchange
from trafficspec.domain.models import SpecDocument
from trafficspec.errors import ParameterLocationConflict


def exchange(method="GET", path="/users", status=200, body=None, request=b"", query=None, raw=None):
    return CapturedExchange(
        method=method,
        path=path,
        status_code=status,
        response_body=raw if raw is not None else json.dumps(body).encode("utf-8"),
        request_body=request,
        query=query or {},
    )


def test_post_body_is_wrapped_under_singular_resource():
    doc = SpecDocument()
    ok = merge_exchange(
        doc,
        exchange("POST", "/users/42", status=201, body={"id": 42}, request=b'{"name": "Bob"}'),
    )
    assert ok

    op = doc.paths["/users/{id}"]["post"]
    body = op.find_parameter("user")
    assert body.location == "body"
    assert body.type is None
    assert body.schema_.properties["name"].type == "string"
    assert body.schema_.properties["name"].enum == ["Bob"]

    path_id = op.find_parameter("id")
    assert path_id.location == "path"
    assert path_id.type == "string"
    assert list(op.responses) == ["201"]


def test_parameter_order_is_first_seen_and_append_only():
    doc = SpecDocument()
    merge_exchange(doc, exchange(path="/users/1", query={"q": "a"}, body={}))
    merge_exchange(doc, exchange(path="/users/2", query={"page": "2", "q": "b"}, body={}))

    op = doc.paths["/users/{id}"]["get"]
    assert [p.name for p in op.parameters] == ["q", "id", "page"]
    assert [p.location for p in op.parameters] == ["query", "path", "query"]


def test_query_type_widens_for_repeated_keys():
    doc = SpecDocument()
    merge_exchange(doc, exchange(query={"tag": "a"}, body=[]))
    merge_exchange(doc, exchange(query={"tag": ["a", "b"]}, body=[]))
    merge_exchange(doc, exchange(query={"tag": "c"}, body=[]))

    tag = doc.paths["/users"]["get"].find_parameter("tag")
    assert tag.type == ["string", "array"]


def test_non_json_response_leaves_document_untouched():
    doc = SpecDocument()
    ok = merge_exchange(doc, exchange(raw=b"<html>nope</html>", query={"q": "x"}))
    assert ok is False
    assert doc.paths == {}


def test_empty_response_body_is_not_json():
    doc = SpecDocument()
    assert merge_exchange(doc, exchange(status=204, raw=b"")) is False
    assert doc.paths == {}


def test_json_null_response_is_recorded():
    doc = SpecDocument()
    assert merge_exchange(doc, exchange(body=None))
    resp = doc.paths["/users"]["get"].responses["200"]
    assert resp.schema_.type == "null"
    assert resp.examples == {"application/json": None}


def test_non_json_request_body_only_drops_body_parameter():
    doc = SpecDocument()
    merge_exchange(doc, exchange("POST", "/users", body={"ok": True}, request=b"name=Bob"))

    op = doc.paths["/users"]["post"]
    assert op.parameters == []
    assert op.responses["200"].schema_.properties["ok"].type == "boolean"


def test_collection_body_uses_plain_segment_name():
    doc = SpecDocument()
    merge_exchange(doc, exchange("POST", "/users", body={}, request=b'{"name": "Bob"}'))
    assert doc.paths["/users"]["post"].find_parameter("users").location == "body"


def test_first_example_is_kept_schema_is_unioned():
    doc = SpecDocument()
    merge_exchange(doc, exchange(body={"a": 1}))
    merge_exchange(doc, exchange(body={"b": "long string value"}))

    resp = doc.paths["/users"]["get"].responses["200"]
    assert resp.examples == {"application/json": {"a": 1}}
    assert set(resp.schema_.properties) == {"a", "b"}
    assert resp.schema_.properties["b"].enum is None


def test_statuses_are_tracked_separately():
    doc = SpecDocument()
    merge_exchange(doc, exchange(body={"a": 1}))
    merge_exchange(doc, exchange(status=404, body={"error": "missing"}))

    responses = doc.paths["/users"]["get"].responses
    assert set(responses) == {"200", "404"}
    assert responses["404"].examples["application/json"] == {"error": "missing"}


def test_methods_are_lowercased_and_kept_apart():
    doc = SpecDocument()
    merge_exchange(doc, exchange("GET", body=[]))
    merge_exchange(doc, exchange("DELETE", body={}))
    assert set(doc.paths["/users"]) == {"get", "delete"}


def test_base_path_is_removed_from_template():
    doc = SpecDocument()
    merge_exchange(doc, exchange(path="/api/users/7", body={}), base_path="/api")
    assert list(doc.paths) == ["/users/{id}"]


def test_location_conflict_warns_and_keeps_first_location(caplog):
    doc = SpecDocument()
    with caplog.at_level(logging.WARNING, logger="trafficspec.capture.merge"):
        merge_exchange(doc, exchange(path="/users/42", query={"id": "7"}, body={}))

    param = doc.paths["/users/{id}"]["get"].find_parameter("id")
    assert param.location == "query"
    assert param.type == "string"
    assert "id" in caplog.text
    assert "query" in caplog.text and "path" in caplog.text


def test_body_conflict_does_not_touch_existing_parameter():
    doc = SpecDocument()
    merge_exchange(doc, exchange("POST", "/users", query={"users": "x"}, body={}, request=b"[1]"))

    param = doc.paths["/users"]["post"].find_parameter("users")
    assert param.location == "query"
    assert param.type == "string"
    assert param.schema_ is None


def test_location_conflict_can_raise():
    doc = SpecDocument()
    with pytest.raises(ParameterLocationConflict) as exc:
        merge_exchange(
            doc,
            exchange(path="/users/42", query={"id": "7"}, body={}),
            conflict_policy="raise",
        )
    assert exc.value.name == "id"
    assert exc.value.existing == "query"
    assert exc.value.observed == "path"


def test_document_serializes_with_swagger_names():
    doc = SpecDocument()
    merge_exchange(doc, exchange("POST", "/users/1", body={"ok": True}, request=b'{"n": 1}'))

    data = doc.to_json_dict()
    assert data["swagger"] == "2.0"
    op = data["paths"]["/users/{id}"]["post"]
    assert op["consumes"] == ["application/json"]
    assert op["produces"] == ["application/json"]
    assert op["parameters"] == [
        {"name": "id", "in": "path", "type": "string"},
        {"name": "user", "in": "body", "schema": {"type": "object", "properties": {"n": {"type": "integer"}}}},
    ]
    assert op["responses"]["200"] == {
        "schema": {"type": "object", "properties": {"ok": {"type": "boolean"}}},
        "examples": {"application/json": {"ok": True}},
    }


def test_body_posted_to_root_path_is_named_body():
    doc = SpecDocument()
    merge_exchange(doc, exchange("POST", "/api", body={}, request=b'{"q": "x"}'), base_path="/api")

    op = doc.paths["/"]["post"]
    assert [(p.name, p.location) for p in op.parameters] == [("body", "body")]
    assert op.parameters[0].schema_.properties["q"].enum == ["x"]
