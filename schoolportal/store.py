"""Local mirror of the portal's remote tables."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, FrozenSet, List, Optional, TypeVar

from .client import PortalClient
from .const import (
	ADMISSION_STATUSES,
	ADMISSION_STATUS_PENDING,
	BUCKET_RESOURCES,
	BUCKET_UPLOADS,
	CATEGORIES,
	CATEGORY_RESOURCE,
	CATEGORY_TIMETABLE,
	COUNT_ADMISSIONS,
	COUNT_ANNOUNCEMENTS,
	COUNT_ATTENDANCE,
	COUNT_RESOURCES,
	COUNT_SUGGESTIONS,
	COUNT_TIMETABLE,
	COUNT_UPLOADS,
	ORDER_COLUMNS,
	PUBLIC_TARGETS,
	RESOURCE_TYPES,
	SENTINEL_ID,
	TABLE_ADMISSIONS,
	TABLE_ANNOUNCEMENTS,
	TABLE_ATTENDANCE,
	TABLE_RESOURCES,
	TABLE_SUGGESTIONS,
	TABLE_UPLOADS,
	TABLE_VIEWED_RESOURCES,
	TABLE_VIEWED_TIMETABLES,
	TARGETS,
	TARGET_INTERNAL,
	UPLOAD_STATUS_MARKED,
	UPLOAD_STATUS_PENDING,
)
from .exceptions import PortalDataError, PortalError, PortalNotFoundError, PortalStateError
from .models import (
	AdmissionApplication,
	Announcement,
	AttendanceRecord,
	FileUpload,
	Resource,
	Suggestion,
	Upload,
)
from .utils import blob_key_from_url, generate_storage_key, resource_type_for

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _patched(items: List[T], item_id: str, **changes: Any) -> List[T]:
	"""Return a copy of items with the entry matching item_id updated."""
	return [replace(item, **changes) if item.id == item_id else item for item in items]


def _without(items: List[T], item_id: str) -> List[T]:
	return [item for item in items if item.id != item_id]


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def _parse_resources(rows: List[Dict[str, Any]]) -> List[Resource]:
	"""Parse resource rows, skipping any that fit neither the resource nor the timetable view."""
	resources = []
	for row in rows:
		try:
			resources.append(Resource.from_row(row))
		except PortalDataError as e:
			_LOGGER.warning(f"Skipping resource row: {e}")
	return resources


class PortalDataStore:
	"""Mirrors the remote collections and applies writes once the backend confirms them.

	Every mutation calls the backend first and only then replaces the affected
	local collection, so a failed call leaves local state untouched. Errors are
	logged and re-raised for the caller to report.
	"""

	def __init__(self, client: PortalClient) -> None:
		"""Initialise an empty store."""
		self.client = client
		self.resources: List[Resource] = []
		self.uploads: List[Upload] = []
		self.announcements: List[Announcement] = []
		self.suggestions: List[Suggestion] = []
		self.admissions: List[AdmissionApplication] = []
		self.attendance_records: List[AttendanceRecord] = []
		self.viewed_resources: FrozenSet[str] = frozenset()
		self.viewed_timetables: FrozenSet[str] = frozenset()
		self.loading = True

	async def _async_call(self, action: str, call: Awaitable[T]) -> T:
		try:
			return await call
		except PortalError as e:
			_LOGGER.error(f"Error {action}: {e}")
			raise

	# Loading

	def _select_recent(self, table: str) -> Awaitable[List[Dict[str, Any]]]:
		return self.client.async_select(table, order_by=ORDER_COLUMNS[table], ascending=False)

	async def async_load(self) -> bool:
		"""Fetch every collection concurrently.

		If any query fails nothing is applied. The loading flag clears either way.

		Returns:
			True if the collections were replaced.
		"""
		try:
			(
				resource_rows,
				upload_rows,
				announcement_rows,
				suggestion_rows,
				admission_rows,
				attendance_rows,
				viewed_resource_rows,
				viewed_timetable_rows,
			) = await asyncio.gather(
				self._select_recent(TABLE_RESOURCES),
				self._select_recent(TABLE_UPLOADS),
				self._select_recent(TABLE_ANNOUNCEMENTS),
				self._select_recent(TABLE_SUGGESTIONS),
				self._select_recent(TABLE_ADMISSIONS),
				self._select_recent(TABLE_ATTENDANCE),
				self.client.async_select(TABLE_VIEWED_RESOURCES, columns="resource_id"),
				self.client.async_select(TABLE_VIEWED_TIMETABLES, columns="resource_id"),
			)

			resources = _parse_resources(resource_rows)
			uploads = [Upload.from_row(row) for row in upload_rows]
			announcements = [Announcement.from_row(row) for row in announcement_rows]
			suggestions = [Suggestion.from_row(row) for row in suggestion_rows]
			admissions = [AdmissionApplication.from_row(row) for row in admission_rows]
			attendance_records = [AttendanceRecord.from_row(row) for row in attendance_rows]
			viewed_resources = frozenset(row["resource_id"] for row in viewed_resource_rows if row.get("resource_id"))
			viewed_timetables = frozenset(row["resource_id"] for row in viewed_timetable_rows if row.get("resource_id"))
		except PortalError as e:
			_LOGGER.error(f"Error loading data: {e}")
			return False
		finally:
			self.loading = False

		self.resources = resources
		self.uploads = uploads
		self.announcements = announcements
		self.suggestions = suggestions
		self.admissions = admissions
		self.attendance_records = attendance_records
		# View tracking only grows within a process
		self.viewed_resources = self.viewed_resources | viewed_resources
		self.viewed_timetables = self.viewed_timetables | viewed_timetables
		_LOGGER.info(
			f"Loaded {len(resources)} resources, {len(uploads)} uploads, "
			f"{len(announcements)} announcements, {len(suggestions)} suggestions, "
			f"{len(admissions)} admissions, {len(attendance_records)} attendance records"
		)
		return True

	async def async_refresh(self) -> bool:
		"""Reload everything; on failure the previous state is kept."""
		self.loading = True
		return await self.async_load()

	async def _async_store_file(self, bucket: str, file: FileUpload) -> str:
		"""Upload a blob under a fresh key and return its public URL."""
		key = generate_storage_key(file.name)
		await self.client.async_upload(bucket, key, file.content, file.content_type)
		return self.client.get_public_url(bucket, key)

	async def _async_remove_blobs(self, bucket: str, keys: List[str]) -> None:
		"""Remove blobs. A failure here must not stop the row delete that follows."""
		if not keys:
			return
		try:
			await self.client.async_remove(bucket, keys)
		except PortalError as e:
			_LOGGER.warning(f"Could not remove {len(keys)} blobs from {bucket}: {e}")

	# Resources

	async def async_add_resource(
		self,
		title: str,
		file: FileUpload,
		uploaded_by: str,
		category: str = CATEGORY_RESOURCE,
		resource_type: Optional[str] = None,
	) -> Resource:
		"""Upload a file and record it as a resource or timetable."""
		if category not in CATEGORIES:
			raise PortalDataError(f"Unknown resource category {category!r}")
		resource_type = resource_type or resource_type_for(file.content_type)
		if resource_type not in RESOURCE_TYPES:
			raise PortalDataError(f"Unknown resource type {resource_type!r}")

		async def _add() -> Resource:
			file_url = await self._async_store_file(BUCKET_RESOURCES, file)
			row = await self.client.async_insert(TABLE_RESOURCES, {
				"title": title,
				"file_name": file.name,
				"file_url": file_url,
				"file_type": resource_type,
				"uploaded_by": uploaded_by,
				"category": category,
			})
			return Resource.from_row(row)

		resource = await self._async_call("adding resource", _add())
		self.resources = [resource, *self.resources]
		return resource

	async def async_delete_resource(self, resource_id: str) -> None:
		"""Delete a resource and its stored file."""
		resource = next((r for r in self.resources if r.id == resource_id), None)
		if resource is None:
			_LOGGER.error(f"Error deleting resource: {resource_id} not found")
			raise PortalNotFoundError("Resource not found")

		key = blob_key_from_url(resource.file_url)
		if key:
			await self._async_remove_blobs(BUCKET_RESOURCES, [key])

		await self._async_call(
			"deleting resource",
			self.client.async_delete(TABLE_RESOURCES, equals={"id": resource_id}),
		)
		self.resources = _without(self.resources, resource_id)

	def get_resources(self) -> List[Resource]:
		"""General resources, in load order."""
		return [r for r in self.resources if r.category == CATEGORY_RESOURCE]

	def get_timetables(self) -> List[Resource]:
		"""Timetable resources, newest first."""
		timetables = [r for r in self.resources if r.category == CATEGORY_TIMETABLE]
		return sorted(timetables, key=lambda r: r.uploaded_at or "", reverse=True)

	# Uploads

	async def async_add_upload(
		self,
		teacher_id: str,
		teacher_name: str,
		upload_type: str,
		file: FileUpload,
	) -> Upload:
		"""Store a teacher's submission; it starts out pending."""

		async def _add() -> Upload:
			file_url = await self._async_store_file(BUCKET_UPLOADS, file)
			row = await self.client.async_insert(TABLE_UPLOADS, {
				"teacher_id": teacher_id,
				"teacher_name": teacher_name,
				"type": upload_type,
				"file_name": file.name,
				"file_url": file_url,
				"status": UPLOAD_STATUS_PENDING,
			})
			return Upload.from_row(row)

		upload = await self._async_call("adding upload", _add())
		self.uploads = [upload, *self.uploads]
		return upload

	async def async_mark_upload(self, upload_id: str, comments: str, grade: Optional[str] = None) -> None:
		"""Mark a submission. Marking again overwrites the comments and grade."""
		changes = {"status": UPLOAD_STATUS_MARKED, "comments": comments, "grade": grade}
		await self._async_call(
			"marking upload",
			self.client.async_update(TABLE_UPLOADS, upload_id, changes),
		)
		self.uploads = _patched(self.uploads, upload_id, **changes)

	async def async_clear_all_uploads(self) -> None:
		"""Delete every upload together with its stored file."""
		keys = []
		for upload in self.uploads:
			key = blob_key_from_url(upload.file_url)
			if key:
				keys.append(key)
		await self._async_remove_blobs(BUCKET_UPLOADS, list(dict.fromkeys(keys)))

		await self._async_call(
			"clearing uploads",
			self.client.async_delete(TABLE_UPLOADS, not_equals={"id": SENTINEL_ID}),
		)
		self.uploads = []

	# Announcements

	async def async_add_announcement(
		self,
		title: str,
		content: str,
		author: str,
		target: str = TARGET_INTERNAL,
	) -> Announcement:
		if target not in TARGETS:
			raise PortalDataError(f"Unknown announcement target {target!r}")

		row = await self._async_call(
			"adding announcement",
			self.client.async_insert(TABLE_ANNOUNCEMENTS, {
				"title": title,
				"content": content,
				"author": author,
				"target": target,
				"is_read": False,
			}),
		)
		announcement = Announcement.from_row(row)
		self.announcements = [announcement, *self.announcements]
		return announcement

	async def async_delete_announcement(self, announcement_id: str) -> None:
		await self._async_call(
			"deleting announcement",
			self.client.async_delete(TABLE_ANNOUNCEMENTS, equals={"id": announcement_id}),
		)
		self.announcements = _without(self.announcements, announcement_id)

	async def async_mark_announcement_read(self, announcement_id: str) -> None:
		await self._async_call(
			"marking announcement read",
			self.client.async_update(TABLE_ANNOUNCEMENTS, announcement_id, {"is_read": True}),
		)
		self.announcements = _patched(self.announcements, announcement_id, is_read=True)

	def get_public_announcements(self) -> List[Announcement]:
		return [a for a in self.announcements if a.target in PUBLIC_TARGETS]

	def get_unread_public_announcements(self) -> List[Announcement]:
		return [a for a in self.get_public_announcements() if not a.is_read]

	# Suggestions

	async def async_add_suggestion(self, name: str, email: str, message: str, source: str) -> Suggestion:
		row = await self._async_call(
			"adding suggestion",
			self.client.async_insert(TABLE_SUGGESTIONS, {
				"name": name,
				"email": email,
				"message": message,
				"source": source,
				"is_read": False,
			}),
		)
		suggestion = Suggestion.from_row(row)
		self.suggestions = [suggestion, *self.suggestions]
		return suggestion

	async def async_mark_suggestion_read(self, suggestion_id: str) -> None:
		await self._async_call(
			"marking suggestion read",
			self.client.async_update(TABLE_SUGGESTIONS, suggestion_id, {"is_read": True}),
		)
		self.suggestions = _patched(self.suggestions, suggestion_id, is_read=True)

	async def async_add_suggestion_reply(self, suggestion_id: str, reply: str, replied_by: str) -> None:
		"""Reply to a suggestion, which also marks it read. A suggestion takes one reply."""
		existing = next((s for s in self.suggestions if s.id == suggestion_id), None)
		if existing is not None and existing.has_reply:
			raise PortalStateError(f"Suggestion {suggestion_id} already has a reply")

		changes = {
			"reply": reply,
			"replied_at": _now_iso(),
			"replied_by": replied_by,
			"is_read": True,
		}
		await self._async_call(
			"adding suggestion reply",
			self.client.async_update(TABLE_SUGGESTIONS, suggestion_id, changes),
		)
		self.suggestions = _patched(self.suggestions, suggestion_id, **changes)

	async def async_clear_all_suggestions(self) -> None:
		await self._async_call(
			"clearing suggestions",
			self.client.async_delete(TABLE_SUGGESTIONS, not_equals={"id": SENTINEL_ID}),
		)
		self.suggestions = []

	async def async_clear_teacher_suggestions(self, teacher_name: str) -> None:
		"""Delete every suggestion submitted under the given name."""
		await self._async_call(
			"clearing teacher suggestions",
			self.client.async_delete(TABLE_SUGGESTIONS, equals={"name": teacher_name}),
		)
		self.suggestions = [s for s in self.suggestions if s.name != teacher_name]

	# Admissions

	async def async_add_admission(
		self,
		student_name: str,
		parent_name: str,
		email: str,
		phone: str,
		grade: str,
		message: str = "",
	) -> AdmissionApplication:
		row = await self._async_call(
			"adding admission",
			self.client.async_insert(TABLE_ADMISSIONS, {
				"student_name": student_name,
				"parent_name": parent_name,
				"email": email,
				"phone": phone,
				"grade": grade,
				"message": message,
				"status": ADMISSION_STATUS_PENDING,
			}),
		)
		admission = AdmissionApplication.from_row(row)
		self.admissions = [admission, *self.admissions]
		return admission

	async def async_update_admission_status(self, admission_id: str, status: str) -> None:
		if status not in ADMISSION_STATUSES:
			raise PortalDataError(f"Unknown admission status {status!r}")

		await self._async_call(
			"updating admission status",
			self.client.async_update(TABLE_ADMISSIONS, admission_id, {"status": status}),
		)
		self.admissions = _patched(self.admissions, admission_id, status=status)

	# Attendance

	async def async_add_attendance_record(
		self,
		teacher_id: str,
		teacher_name: str,
		date: str,
		time: str,
		status: str,
		location: Optional[str] = None,
	) -> AttendanceRecord:
		row = await self._async_call(
			"adding attendance record",
			self.client.async_insert(TABLE_ATTENDANCE, {
				"teacher_id": teacher_id,
				"teacher_name": teacher_name,
				"date": date,
				"time": time,
				"status": status,
				"location": location,
			}),
		)
		record = AttendanceRecord.from_row(row)
		self.attendance_records = [record, *self.attendance_records]
		return record

	# View tracking

	async def async_mark_resource_viewed(self, resource_id: str) -> None:
		if resource_id in self.viewed_resources:
			return
		await self._async_call(
			"marking resource viewed",
			self.client.async_insert(TABLE_VIEWED_RESOURCES, {"resource_id": resource_id}),
		)
		self.viewed_resources = self.viewed_resources | {resource_id}

	async def async_mark_timetable_viewed(self, timetable_id: str) -> None:
		if timetable_id in self.viewed_timetables:
			return
		await self._async_call(
			"marking timetable viewed",
			self.client.async_insert(TABLE_VIEWED_TIMETABLES, {"resource_id": timetable_id}),
		)
		self.viewed_timetables = self.viewed_timetables | {timetable_id}

	async def async_mark_all_timetables_viewed(self) -> None:
		"""Mark every timetable as seen, as the timetable screen does when opened.

		All marks are sent together; one failing does not stop the others.
		"""
		results = await asyncio.gather(
			*(self.async_mark_timetable_viewed(t.id) for t in self.get_timetables()),
			return_exceptions=True,
		)
		for result in results:
			if isinstance(result, BaseException):
				raise result

	# Notification counts

	def get_unread_counts(self) -> Dict[str, int]:
		"""Count what each badge should show.

		Attendance is the total number of records, not an unread count.
		"""
		return {
			COUNT_ANNOUNCEMENTS: sum(1 for a in self.announcements if not a.is_read),
			COUNT_SUGGESTIONS: sum(1 for s in self.suggestions if not s.is_read),
			COUNT_UPLOADS: sum(1 for u in self.uploads if u.status == UPLOAD_STATUS_PENDING),
			COUNT_ADMISSIONS: sum(1 for a in self.admissions if a.status == ADMISSION_STATUS_PENDING),
			COUNT_ATTENDANCE: len(self.attendance_records),
			COUNT_RESOURCES: sum(
				1 for r in self.get_resources() if r.id not in self.viewed_resources
			),
			COUNT_TIMETABLE: sum(
				1 for r in self.resources
				if r.category == CATEGORY_TIMETABLE and r.id not in self.viewed_timetables
			),
		}
