"""Custom exceptions for the school portal data layer."""

from typing import Optional


class PortalError(Exception):
	"""Base exception for school portal errors."""
	pass


class PortalConfigError(PortalError):
	"""Configuration is missing or invalid."""
	pass


class PortalAPIError(PortalError):
	"""The remote store rejected a request."""
	
	def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None) -> None:
		super().__init__(message)
		self.status = status
		self.code = code


class PortalConnectionError(PortalError):
	"""Connection to the remote store failed."""
	pass


class PortalDataError(PortalError):
	"""Data parsing or validation error."""
	pass


class PortalNotFoundError(PortalError):
	"""Entity is not present in local state."""
	pass


class PortalStateError(PortalError):
	"""Operation is not allowed in the entity's current state."""
	pass
