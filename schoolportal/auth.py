"""Session handling and teacher account management for the school portal."""

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from .client import PortalClient
from .const import (
	ACCOUNT_KIND_TEACHER,
	ACCOUNT_KIND_USER,
	DEFAULT_ADDED_BY,
	MSG_INVALID_CREDENTIALS,
	MSG_LOGIN_FAILED,
	MSG_LOGIN_OK,
	ORDER_COLUMNS,
	ROLE_TEACHER,
	TABLE_TEACHERS,
	TABLE_USERS,
)
from .exceptions import PortalError
from .models import LoginResult, ResolvedIdentity, Teacher, User

_LOGGER = logging.getLogger(__name__)

# Account kinds are probed in this order; the first match wins.
IDENTITY_SOURCES: Tuple[Tuple[str, str, Callable[[dict], User]], ...] = (
	(ACCOUNT_KIND_USER, TABLE_USERS, User.from_row),
	(ACCOUNT_KIND_TEACHER, TABLE_TEACHERS, Teacher.from_row),
)


async def async_resolve_identity(
	client: PortalClient,
	username: str,
	password: str,
) -> Optional[ResolvedIdentity]:
	"""Find the account matching the credentials.

	Passwords are compared by equality in the backend query. This mirrors how the
	accounts are stored today; a hashed, server-side check would replace it.
	"""
	for kind, table, parse in IDENTITY_SOURCES:
		row = await client.async_select_one(table, username=username, password=password)
		if row:
			return ResolvedIdentity(kind=kind, user=parse(row))
	return None


class SessionManager:
	"""Holds the logged-in user and the teacher roster."""

	def __init__(self, client: PortalClient) -> None:
		"""Initialise the session manager."""
		self.client = client
		self.current_user: Optional[User] = None
		self.teachers: List[Teacher] = []
		self.loading = True

	@property
	def is_authenticated(self) -> bool:
		return self.current_user is not None

	async def async_load_teachers(self) -> None:
		"""Load the teacher roster, newest first. Failures leave the roster empty."""
		try:
			rows = await self.client.async_select(
				TABLE_TEACHERS,
				order_by=ORDER_COLUMNS[TABLE_TEACHERS],
				ascending=False,
			)
			self.teachers = [Teacher.from_row(row) for row in rows]
			_LOGGER.debug(f"Loaded {len(self.teachers)} teachers")
		except PortalError as e:
			_LOGGER.error(f"Error loading teachers: {e}")
		finally:
			self.loading = False

	async def async_login(self, username: str, password: str) -> LoginResult:
		"""Log in with a username and password. Never raises."""
		try:
			identity = await async_resolve_identity(self.client, username, password)
		except PortalError as e:
			_LOGGER.error(f"Login error: {e}")
			return LoginResult(success=False, message=MSG_LOGIN_FAILED)

		if identity is None:
			return LoginResult(success=False, message=MSG_INVALID_CREDENTIALS)

		self.current_user = identity.user
		_LOGGER.info(f"Logged in {identity.user.username} ({identity.kind})")
		return LoginResult(success=True, message=MSG_LOGIN_OK, user=identity.user)

	def logout(self) -> None:
		self.current_user = None

	async def async_add_teacher(self, name: str, password: str) -> Teacher:
		"""Create a teacher account; the username is the lowercased name."""
		new_teacher = {
			"username": name.lower(),
			"password": password,
			"role": ROLE_TEACHER,
			"name": name,
			"is_first_login": True,
			"added_by": self.current_user.username if self.current_user else DEFAULT_ADDED_BY,
			"attendance_history": [],
		}

		try:
			row = await self.client.async_insert(TABLE_TEACHERS, new_teacher)
		except PortalError as e:
			_LOGGER.error(f"Error adding teacher: {e}")
			raise

		teacher = Teacher.from_row(row)
		self.teachers = [*self.teachers, teacher]
		return teacher

	async def async_delete_teacher(self, teacher_id: str) -> None:
		try:
			await self.client.async_delete(TABLE_TEACHERS, equals={"id": teacher_id})
		except PortalError as e:
			_LOGGER.error(f"Error deleting teacher: {e}")
			raise

		self.teachers = [t for t in self.teachers if t.id != teacher_id]

	async def async_update_teacher_password(self, teacher_id: str, new_password: str) -> None:
		"""Set a new password and clear the first-login flag."""
		try:
			await self.client.async_update(
				TABLE_TEACHERS,
				teacher_id,
				{"password": new_password, "is_first_login": False},
			)
		except PortalError as e:
			_LOGGER.error(f"Error updating teacher password: {e}")
			raise

		self.teachers = [
			replace(t, password=new_password, is_first_login=False) if t.id == teacher_id else t
			for t in self.teachers
		]
		if self.current_user is not None and self.current_user.id == teacher_id:
			self.current_user = replace(self.current_user, password=new_password, is_first_login=False)
