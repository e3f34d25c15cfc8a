"""Data models for school portal entities."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .const import (
	CATEGORIES,
	LEGACY_RESOURCE_TYPES,
	ROLE_TEACHER,
	UPLOAD_STATUS_PENDING,
	ADMISSION_STATUS_PENDING,
	TARGET_INTERNAL,
)
from .exceptions import PortalDataError
from .utils import async_read_file, guess_content_type


def _require(row: Dict[str, Any], key: str) -> Any:
	try:
		return row[key]
	except KeyError:
		raise PortalDataError(f"Row is missing required field {key!r}") from None


@dataclass
class User:
	"""An authenticated portal account (admin, teacher or committee)."""
	id: str
	username: str
	password: str
	role: str
	name: str
	is_first_login: bool = False
	created_at: Optional[str] = None
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "User":
		return cls(
			id=_require(row, "id"),
			username=row.get("username", ""),
			password=row.get("password", ""),
			role=row.get("role", ""),
			name=row.get("name", ""),
			is_first_login=bool(row.get("is_first_login", False)),
			created_at=row.get("created_at"),
		)


@dataclass
class Teacher(User):
	"""A teacher account, created by an admin."""
	added_by: Optional[str] = None
	attendance_history: List[Dict[str, Any]] = field(default_factory=list)
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "Teacher":
		return cls(
			id=_require(row, "id"),
			username=row.get("username", ""),
			password=row.get("password", ""),
			role=row.get("role") or ROLE_TEACHER,
			name=row.get("name", ""),
			is_first_login=bool(row.get("is_first_login", False)),
			created_at=row.get("created_at"),
			added_by=row.get("added_by"),
			attendance_history=list(row.get("attendance_history") or []),
		)


@dataclass
class Resource:
	"""A titled file shared by the admin, either a general resource or a timetable."""
	id: str
	title: str
	file_name: str
	file_url: str
	type: str  # "document" or "image"
	uploaded_by: str
	category: str  # "resource" or "timetable"
	uploaded_at: Optional[str] = None
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "Resource":
		category = row.get("category")
		if category not in CATEGORIES:
			raise PortalDataError(f"Resource {row.get('id')!r} has unknown category {category!r}")
		file_type = row.get("file_type") or ""
		return cls(
			id=_require(row, "id"),
			title=row.get("title", ""),
			file_name=row.get("file_name", ""),
			file_url=row.get("file_url", ""),
			type=LEGACY_RESOURCE_TYPES.get(file_type, file_type),
			uploaded_by=row.get("uploaded_by", ""),
			category=category,
			uploaded_at=row.get("uploaded_at"),
		)


@dataclass
class Upload:
	"""A file submitted by a teacher for review."""
	id: str
	teacher_id: str
	teacher_name: str
	type: str
	file_name: str
	file_url: str
	status: str = UPLOAD_STATUS_PENDING  # "pending" or "marked"
	uploaded_at: Optional[str] = None
	comments: Optional[str] = None
	grade: Optional[str] = None
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "Upload":
		return cls(
			id=_require(row, "id"),
			teacher_id=row.get("teacher_id", ""),
			teacher_name=row.get("teacher_name", ""),
			type=row.get("type", ""),
			file_name=row.get("file_name", ""),
			file_url=row.get("file_url", ""),
			status=row.get("status") or UPLOAD_STATUS_PENDING,
			uploaded_at=row.get("uploaded_at"),
			comments=row.get("comments"),
			grade=row.get("grade"),
		)


@dataclass
class Announcement:
	"""An announcement for staff, the public, or both."""
	id: str
	title: str
	content: str
	author: str
	target: str = TARGET_INTERNAL  # "internal", "public" or "both"
	is_read: bool = False
	created_at: Optional[str] = None
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "Announcement":
		return cls(
			id=_require(row, "id"),
			title=row.get("title", ""),
			content=row.get("content", ""),
			author=row.get("author", ""),
			target=row.get("target") or TARGET_INTERNAL,
			is_read=bool(row.get("is_read", False)),
			created_at=row.get("created_at"),
		)


@dataclass
class Suggestion:
	"""Feedback sent through one of the portal's channels."""
	id: str
	name: str
	email: str
	message: str
	source: str
	is_read: bool = False
	submitted_at: Optional[str] = None
	reply: Optional[str] = None
	replied_at: Optional[str] = None
	replied_by: Optional[str] = None
	
	@property
	def has_reply(self) -> bool:
		return bool(self.reply)
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "Suggestion":
		return cls(
			id=_require(row, "id"),
			name=row.get("name", ""),
			email=row.get("email", ""),
			message=row.get("message", ""),
			source=row.get("source", ""),
			is_read=bool(row.get("is_read", False)),
			submitted_at=row.get("submitted_at"),
			reply=row.get("reply"),
			replied_at=row.get("replied_at"),
			replied_by=row.get("replied_by"),
		)


@dataclass
class AdmissionApplication:
	"""An admission request submitted by a parent."""
	id: str
	student_name: str
	parent_name: str
	email: str
	phone: str
	grade: str
	message: str = ""
	status: str = ADMISSION_STATUS_PENDING  # "pending", "accepted" or "rejected"
	submitted_at: Optional[str] = None
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "AdmissionApplication":
		return cls(
			id=_require(row, "id"),
			student_name=row.get("student_name", ""),
			parent_name=row.get("parent_name", ""),
			email=row.get("email", ""),
			phone=row.get("phone", ""),
			grade=row.get("grade", ""),
			message=row.get("message") or "",
			status=row.get("status") or ADMISSION_STATUS_PENDING,
			submitted_at=row.get("submitted_at"),
		)


@dataclass
class AttendanceRecord:
	"""A teacher check-in."""
	id: str
	teacher_id: str
	teacher_name: str
	date: str
	time: str
	status: str
	location: Optional[str] = None
	
	@classmethod
	def from_row(cls, row: Dict[str, Any]) -> "AttendanceRecord":
		return cls(
			id=_require(row, "id"),
			teacher_id=row.get("teacher_id", ""),
			teacher_name=row.get("teacher_name", ""),
			date=row.get("date", ""),
			time=row.get("time", ""),
			status=row.get("status", ""),
			location=row.get("location"),
		)


@dataclass
class FileUpload:
	"""A file selected for upload."""
	name: str
	content: bytes
	content_type: Optional[str] = None
	
	def __post_init__(self) -> None:
		if self.content_type is None:
			self.content_type = guess_content_type(self.name)
	
	@property
	def size(self) -> int:
		return len(self.content)
	
	@classmethod
	async def from_path(cls, path: str, content_type: Optional[str] = None) -> "FileUpload":
		"""Read a file from disk without blocking the event loop."""
		content = await async_read_file(path)
		return cls(name=os.path.basename(path), content=content, content_type=content_type)


@dataclass
class LoginResult:
	"""Outcome of a login attempt."""
	success: bool
	message: str
	user: Optional[User] = None


@dataclass
class ResolvedIdentity:
	"""A matched account together with the kind of account it came from."""
	kind: str  # "user" or "teacher"
	user: User
