"""Client for the hosted backend's table and storage APIs."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from .config import PortalConfig
from .exceptions import PortalAPIError, PortalConnectionError, PortalDataError, PortalError

_LOGGER = logging.getLogger(__name__)

# Asks the REST layer for a single object; it answers 406 when zero or several rows match
SINGLE_OBJECT_ACCEPT = "application/vnd.pgrst.object+json"
STATUS_NOT_SINGLE = 406


def _format_value(value: Any) -> str:
	if isinstance(value, bool):
		return "true" if value else "false"
	if value is None:
		return "null"
	return str(value)


def _filter_params(
	equals: Optional[Dict[str, Any]] = None,
	not_equals: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
	params: Dict[str, str] = {}
	for column, value in (equals or {}).items():
		params[column] = f"eq.{_format_value(value)}"
	for column, value in (not_equals or {}).items():
		params[column] = f"neq.{_format_value(value)}"
	return params


class PortalClient:
	"""Client for interacting with the portal's remote store."""

	def __init__(self, config: PortalConfig, session: Optional[aiohttp.ClientSession] = None):
		"""Initialise the client.

		Args:
			config: Backend connection settings.
			session: Optional aiohttp session. If None, one is created on entry.
		"""
		self.config = config
		self._session = session
		self._own_session = session is None

	async def __aenter__(self):
		"""Async context manager entry."""
		await self.async_open()
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		"""Async context manager exit."""
		await self.async_close()

	async def async_open(self) -> None:
		"""Create the HTTP session if none was given."""
		if self._own_session and self._session is None:
			self._session = aiohttp.ClientSession()

	async def async_close(self) -> None:
		"""Close the HTTP session if this client created it."""
		if self._own_session and self._session:
			await self._session.close()
			self._session = None

	def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
		headers = {
			"apikey": self.config.anon_key,
			"Authorization": f"Bearer {self.config.anon_key}",
		}
		if extra:
			headers.update(extra)
		return headers

	async def _request(
		self,
		method: str,
		url: str,
		*,
		params: Optional[Dict[str, str]] = None,
		json_body: Any = None,
		data: Optional[bytes] = None,
		headers: Optional[Dict[str, str]] = None,
		allow_status: Sequence[int] = (),
	) -> Any:
		"""Send a request and return the decoded JSON body (None when empty).

		Statuses listed in allow_status are returned as None instead of raising.
		"""
		if self._session is None:
			raise PortalError("Client not properly initialised")

		try:
			async with self._session.request(
				method,
				url,
				params=params,
				json=json_body,
				data=data,
				headers=self._headers(headers),
			) as resp:
				if resp.status in allow_status:
					return None
				text = await resp.text()
				if resp.status >= 400:
					message, code = self._parse_error(text)
					raise PortalAPIError(
						f"{method} {url} failed: HTTP {resp.status}: {message}",
						status=resp.status,
						code=code,
					)
				if not text:
					return None
				try:
					return json.loads(text)
				except json.JSONDecodeError as e:
					_LOGGER.error(f"Response is not JSON: {text[:200]}...")
					raise PortalDataError(f"Invalid JSON response from {url}") from e
		except aiohttp.ClientError as e:
			raise PortalConnectionError(f"Connection error: {e}") from e
		except asyncio.TimeoutError as e:
			raise PortalConnectionError(f"Request to {url} timed out") from e

	@staticmethod
	def _parse_error(text: str) -> tuple[str, Optional[str]]:
		try:
			body = json.loads(text) if text else {}
		except json.JSONDecodeError:
			return text[:200], None
		if not isinstance(body, dict):
			return text[:200], None
		message = body.get("message") or body.get("error") or body.get("msg") or text[:200]
		code = body.get("code") or body.get("statusCode")
		return str(message), str(code) if code is not None else None

	def _table_url(self, table: str) -> str:
		return f"{self.config.rest_url}/{table}"

	async def async_select(
		self,
		table: str,
		columns: str = "*",
		order_by: Optional[str] = None,
		ascending: bool = True,
	) -> List[Dict[str, Any]]:
		"""Fetch every row of a table, optionally ordered by one column."""
		params = {"select": columns}
		if order_by:
			params["order"] = f"{order_by}.{'asc' if ascending else 'desc'}"

		rows = await self._request("GET", self._table_url(table), params=params)
		if rows is None:
			return []
		if not isinstance(rows, list):
			raise PortalDataError(f"Expected a list of rows from {table}")
		_LOGGER.debug(f"Fetched {len(rows)} rows from {table}")
		return rows

	async def async_select_one(self, table: str, **equals: Any) -> Optional[Dict[str, Any]]:
		"""Fetch the single row matching all equality predicates, or None."""
		params = {"select": "*"}
		params.update(_filter_params(equals))
		return await self._request(
			"GET",
			self._table_url(table),
			params=params,
			headers={"Accept": SINGLE_OBJECT_ACCEPT},
			allow_status=(STATUS_NOT_SINGLE,),
		)

	async def async_insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
		"""Insert one row and return it with server-assigned fields filled in."""
		rows = await self._request(
			"POST",
			self._table_url(table),
			params={"select": "*"},
			json_body=[row],
			headers={"Prefer": "return=representation"},
		)
		if not rows or not isinstance(rows, list):
			raise PortalDataError(f"Insert into {table} returned no row")
		return rows[0]

	async def async_update(self, table: str, row_id: str, values: Dict[str, Any]) -> None:
		"""Patch the row with the given id."""
		await self._request(
			"PATCH",
			self._table_url(table),
			params=_filter_params({"id": row_id}),
			json_body=values,
			headers={"Prefer": "return=minimal"},
		)

	async def async_delete(
		self,
		table: str,
		equals: Optional[Dict[str, Any]] = None,
		not_equals: Optional[Dict[str, Any]] = None,
	) -> None:
		"""Delete the rows matching the predicates."""
		params = _filter_params(equals, not_equals)
		if not params:
			# The REST layer refuses unfiltered deletes
			raise PortalDataError(f"Refusing to delete from {table} without a filter")
		await self._request(
			"DELETE",
			self._table_url(table),
			params=params,
			headers={"Prefer": "return=minimal"},
		)

	async def async_upload(
		self,
		bucket: str,
		key: str,
		data: bytes,
		content_type: Optional[str] = None,
	) -> str:
		"""Store a blob and return its key."""
		await self._request(
			"POST",
			f"{self.config.storage_url}/{bucket}/{quote(key)}",
			data=data,
			headers={
				"Content-Type": content_type or "application/octet-stream",
				"x-upsert": "false",
			},
		)
		_LOGGER.debug(f"Uploaded {len(data)} bytes to {bucket}/{key}")
		return key

	def get_public_url(self, bucket: str, key: str) -> str:
		"""Return the public URL of a stored blob."""
		return f"{self.config.public_storage_url}/{bucket}/{quote(key)}"

	async def async_remove(self, bucket: str, keys: List[str]) -> None:
		"""Delete blobs by key. Keys that do not exist are ignored by the backend."""
		if not keys:
			return
		await self._request(
			"DELETE",
			f"{self.config.storage_url}/{bucket}",
			json_body={"prefixes": list(keys)},
		)
		_LOGGER.debug(f"Removed {len(keys)} blobs from {bucket}")
