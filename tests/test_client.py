"""Tests for the remote store client's request shaping and error mapping."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from schoolportal.client import SINGLE_OBJECT_ACCEPT, PortalClient
from schoolportal.config import PortalConfig
from schoolportal.exceptions import (
	PortalAPIError,
	PortalConnectionError,
	PortalDataError,
	PortalError,
)

CONFIG = PortalConfig(url="https://example.supabase.co", anon_key="anon-key")
REST = "https://example.supabase.co/rest/v1"
STORAGE = "https://example.supabase.co/storage/v1/object"


def _response(status, body=""):
	"""An async context manager yielding a fake aiohttp response."""
	resp = MagicMock()
	resp.status = status
	resp.text = AsyncMock(return_value=body if isinstance(body, str) else json.dumps(body))
	ctx = MagicMock()
	ctx.__aenter__ = AsyncMock(return_value=resp)
	ctx.__aexit__ = AsyncMock(return_value=False)
	return ctx


def _client(*responses):
	session = MagicMock()
	session.request = MagicMock(side_effect=list(responses))
	return PortalClient(CONFIG, session), session


def test_select_orders_and_authenticates():
	client, session = _client(_response(200, [{"id": "1"}, {"id": "2"}]))

	rows = asyncio.run(client.async_select("uploads", order_by="uploaded_at", ascending=False))

	assert rows == [{"id": "1"}, {"id": "2"}]
	method, url = session.request.call_args.args
	kwargs = session.request.call_args.kwargs
	assert (method, url) == ("GET", f"{REST}/uploads")
	assert kwargs["params"] == {"select": "*", "order": "uploaded_at.desc"}
	assert kwargs["headers"]["apikey"] == "anon-key"
	assert kwargs["headers"]["Authorization"] == "Bearer anon-key"


def test_select_one_builds_equality_filters():
	client, session = _client(_response(200, {"id": "u1", "username": "alice"}))

	row = asyncio.run(client.async_select_one("users", username="alice", password="pw"))

	assert row == {"id": "u1", "username": "alice"}
	kwargs = session.request.call_args.kwargs
	assert kwargs["params"] == {"select": "*", "username": "eq.alice", "password": "eq.pw"}
	assert kwargs["headers"]["Accept"] == SINGLE_OBJECT_ACCEPT


def test_select_one_not_found_returns_none():
	client, _ = _client(_response(406, {"code": "PGRST116", "message": "0 rows"}))

	assert asyncio.run(client.async_select_one("users", username="ghost", password="pw")) is None


def test_insert_returns_server_row():
	client, session = _client(_response(201, [{"id": "new", "title": "Hello", "created_at": "2024-01-01"}]))

	row = asyncio.run(client.async_insert("announcements", {"title": "Hello"}))

	assert row["id"] == "new"
	kwargs = session.request.call_args.kwargs
	assert session.request.call_args.args == ("POST", f"{REST}/announcements")
	assert kwargs["json"] == [{"title": "Hello"}]
	assert kwargs["headers"]["Prefer"] == "return=representation"


def test_insert_without_returned_row_is_a_data_error():
	client, _ = _client(_response(201, []))

	with pytest.raises(PortalDataError):
		asyncio.run(client.async_insert("announcements", {"title": "Hello"}))


def test_update_patches_by_id():
	client, session = _client(_response(204))

	asyncio.run(client.async_update("uploads", "u1", {"status": "marked", "grade": None}))

	kwargs = session.request.call_args.kwargs
	assert session.request.call_args.args == ("PATCH", f"{REST}/uploads")
	assert kwargs["params"] == {"id": "eq.u1"}
	assert kwargs["json"] == {"status": "marked", "grade": None}


def test_delete_with_not_equals_filter():
	client, session = _client(_response(204))

	asyncio.run(client.async_delete("suggestions", not_equals={"id": "00000000-0000-0000-0000-000000000000"}))

	assert session.request.call_args.kwargs["params"] == {"id": "neq.00000000-0000-0000-0000-000000000000"}


def test_delete_without_filter_is_refused():
	client, session = _client()

	with pytest.raises(PortalDataError):
		asyncio.run(client.async_delete("suggestions"))

	session.request.assert_not_called()


def test_boolean_filters_are_lowercase():
	client, session = _client(_response(200, {"id": "a1"}))

	asyncio.run(client.async_select_one("announcements", is_read=False))

	assert session.request.call_args.kwargs["params"]["is_read"] == "eq.false"


def test_api_error_carries_status_and_message():
	client, _ = _client(_response(409, {"code": "23505", "message": "duplicate key value"}))

	with pytest.raises(PortalAPIError) as excinfo:
		asyncio.run(client.async_insert("teachers", {"username": "alice"}))

	assert excinfo.value.status == 409
	assert excinfo.value.code == "23505"
	assert "duplicate key value" in str(excinfo.value)


def test_connection_error_is_wrapped():
	session = MagicMock()
	session.request = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
	client = PortalClient(CONFIG, session)

	with pytest.raises(PortalConnectionError):
		asyncio.run(client.async_select("uploads"))


def test_invalid_json_is_a_data_error():
	client, _ = _client(_response(200, "<html>oops</html>"))

	with pytest.raises(PortalDataError):
		asyncio.run(client.async_select("uploads"))


def test_client_without_session_refuses_requests():
	client = PortalClient(CONFIG)

	with pytest.raises(PortalError):
		asyncio.run(client.async_select("uploads"))


def test_upload_posts_raw_bytes():
	client, session = _client(_response(200, {"Key": "uploads/1-abc.pdf"}))

	key = asyncio.run(client.async_upload("uploads", "1-abc.pdf", b"data", "application/pdf"))

	assert key == "1-abc.pdf"
	kwargs = session.request.call_args.kwargs
	assert session.request.call_args.args == ("POST", f"{STORAGE}/uploads/1-abc.pdf")
	assert kwargs["data"] == b"data"
	assert kwargs["headers"]["Content-Type"] == "application/pdf"


def test_public_url_needs_no_request():
	client, session = _client()

	url = client.get_public_url("resources", "1-abc.pdf")

	assert url == "https://example.supabase.co/storage/v1/object/public/resources/1-abc.pdf"
	session.request.assert_not_called()


def test_remove_sends_keys_in_one_call():
	client, session = _client(_response(200, []))

	asyncio.run(client.async_remove("uploads", ["a.pdf", "b.png"]))

	session.request.assert_called_once()
	assert session.request.call_args.args == ("DELETE", f"{STORAGE}/uploads")
	assert session.request.call_args.kwargs["json"] == {"prefixes": ["a.pdf", "b.png"]}


def test_remove_nothing_skips_request():
	client, session = _client()

	asyncio.run(client.async_remove("uploads", []))

	session.request.assert_not_called()


def test_shared_session_is_not_closed():
	session = MagicMock()
	session.close = AsyncMock()
	client = PortalClient(CONFIG, session)

	asyncio.run(client.async_close())

	session.close.assert_not_awaited()
