"""Shared fakes for the school portal tests."""

from unittest.mock import AsyncMock, MagicMock

from schoolportal.client import PortalClient
from schoolportal.const import CATEGORY_RESOURCE, TARGET_INTERNAL

PUBLIC_BASE = "https://example.supabase.co/storage/v1/object/public"


def make_client() -> MagicMock:
	"""A PortalClient stand-in whose remote calls are AsyncMocks."""
	client = MagicMock(spec=PortalClient)
	client.async_select = AsyncMock(return_value=[])
	client.async_select_one = AsyncMock(return_value=None)
	client.async_insert = AsyncMock()
	client.async_update = AsyncMock(return_value=None)
	client.async_delete = AsyncMock(return_value=None)
	client.async_upload = AsyncMock(side_effect=lambda bucket, key, data, content_type=None: key)
	client.async_remove = AsyncMock(return_value=None)
	client.get_public_url = MagicMock(side_effect=lambda bucket, key: f"{PUBLIC_BASE}/{bucket}/{key}")
	return client


def echo_insert(client: MagicMock, new_id: str = "new-id", **server_fields) -> None:
	"""Make async_insert return the payload with server-assigned fields added."""
	
	async def _insert(table, row):
		return {"id": new_id, **server_fields, **row}
	
	client.async_insert.side_effect = _insert


def resource_row(row_id, category=CATEGORY_RESOURCE, uploaded_at="2024-01-01T00:00:00+00:00", key=None):
	return {
		"id": row_id,
		"title": f"Resource {row_id}",
		"file_name": f"{row_id}.pdf",
		"file_url": f"{PUBLIC_BASE}/resources/{key or row_id + '.pdf'}",
		"file_type": "pdf",
		"uploaded_by": "admin",
		"uploaded_at": uploaded_at,
		"category": category,
	}


def upload_row(row_id, status="pending", key=None):
	return {
		"id": row_id,
		"teacher_id": "t1",
		"teacher_name": "Alice",
		"type": "lesson_plan",
		"file_name": f"{row_id}.pdf",
		"file_url": f"{PUBLIC_BASE}/uploads/{key or row_id + '.pdf'}",
		"uploaded_at": "2024-01-02T00:00:00+00:00",
		"status": status,
	}


def announcement_row(row_id, is_read=False, target=TARGET_INTERNAL):
	return {
		"id": row_id,
		"title": f"Announcement {row_id}",
		"content": "Body",
		"author": "admin",
		"target": target,
		"is_read": is_read,
		"created_at": "2024-01-03T00:00:00+00:00",
	}


def suggestion_row(row_id, is_read=False, name="Bob", reply=None):
	return {
		"id": row_id,
		"name": name,
		"email": f"{name.lower()}@example.com",
		"message": "Please add more sports",
		"source": "contact_form",
		"is_read": is_read,
		"submitted_at": "2024-01-04T00:00:00+00:00",
		"reply": reply,
	}


def admission_row(row_id, status="pending"):
	return {
		"id": row_id,
		"student_name": "Carol",
		"parent_name": "Dan",
		"email": "dan@example.com",
		"phone": "0123",
		"grade": "5",
		"message": "",
		"status": status,
		"submitted_at": "2024-01-05T00:00:00+00:00",
	}


def attendance_row(row_id):
	return {
		"id": row_id,
		"teacher_id": "t1",
		"teacher_name": "Alice",
		"date": "2024-01-06",
		"time": "08:00",
		"status": "present",
		"location": "Main gate",
	}
