"""Process-wide wiring of the portal's client, session and data store."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .auth import SessionManager
from .client import PortalClient
from .config import PortalConfig
from .store import PortalDataStore

_LOGGER = logging.getLogger(__name__)


@dataclass
class Portal:
	"""The objects the presentation layer talks to, created once per process."""
	client: PortalClient
	auth: SessionManager
	data: PortalDataStore
	
	async def async_close(self) -> None:
		await self.client.async_close()


async def async_setup_portal(
	config: Optional[PortalConfig] = None,
	session: Optional[aiohttp.ClientSession] = None,
) -> Portal:
	"""Build the portal and run the initial loads.
	
	Args:
		config: Connection settings. Read from the environment when omitted.
		session: Optional shared aiohttp session. If None, the client owns one.
	"""
	_LOGGER.debug("Setting up school portal")
	if config is None:
		config = PortalConfig.from_env()
	
	client = PortalClient(config, session)
	await client.async_open()
	
	portal = Portal(client=client, auth=SessionManager(client), data=PortalDataStore(client))
	
	# Both loads log and swallow their own failures
	await asyncio.gather(portal.auth.async_load_teachers(), portal.data.async_load())
	
	_LOGGER.info(
		f"School portal ready: {len(portal.auth.teachers)} teachers, "
		f"{len(portal.data.resources)} resources"
	)
	return portal
