"""Tests for configuration loading and storage key helpers."""

import asyncio
import os
import re
from dataclasses import fields
from unittest.mock import patch

import pytest

from schoolportal.config import PortalConfig
from schoolportal.const import RESOURCE_TYPE_DOCUMENT, RESOURCE_TYPE_IMAGE
from schoolportal.exceptions import PortalConfigError
from schoolportal.models import FileUpload
from schoolportal.utils import (
	blob_key_from_url,
	file_extension,
	generate_storage_key,
	resource_type_for,
)


def test_config_from_env_mapping():
	config = PortalConfig.from_env(env={
		"SUPABASE_URL": "https://example.supabase.co/",
		"SUPABASE_ANON_KEY": "anon",
	})

	assert config.url == "https://example.supabase.co"
	assert config.rest_url == "https://example.supabase.co/rest/v1"
	assert config.public_storage_url == "https://example.supabase.co/storage/v1/object/public"
	assert [f.name for f in fields(config)] == ["url", "anon_key"]


def test_config_accepts_browser_build_names():
	config = PortalConfig.from_env(env={
		"VITE_SUPABASE_URL": "https://example.supabase.co",
		"VITE_SUPABASE_ANON_KEY": "anon",
	})

	assert config.anon_key == "anon"


def test_config_reads_dotenv_file(tmp_path):
	env_file = tmp_path / ".env"
	env_file.write_text("SUPABASE_URL=https://dotenv.supabase.co\nSUPABASE_ANON_KEY=from-file\n")

	with patch.dict(os.environ, {}, clear=True):
		config = PortalConfig.from_env(env_file=str(env_file))

	assert config.url == "https://dotenv.supabase.co"
	assert config.anon_key == "from-file"


def test_config_missing_values_raise():
	with pytest.raises(PortalConfigError):
		PortalConfig.from_env(env={"SUPABASE_URL": "https://example.supabase.co"})


def test_storage_key_keeps_extension():
	key = generate_storage_key("Term 1 Timetable.PDF", now_ms=1700000000000)

	assert re.fullmatch(r"1700000000000-[a-z0-9]{11}\.PDF", key)


def test_storage_keys_do_not_collide():
	keys = {generate_storage_key("a.pdf", now_ms=1) for _ in range(50)}

	assert len(keys) == 50


def test_storage_key_without_extension():
	assert "." not in generate_storage_key("README", now_ms=5)
	assert file_extension("archive.tar.gz") == "gz"


def test_blob_key_from_url():
	url = "https://example.supabase.co/storage/v1/object/public/uploads/1700-abc.pdf"

	assert blob_key_from_url(url) == "1700-abc.pdf"
	assert blob_key_from_url(url + "?download=1") == "1700-abc.pdf"
	assert blob_key_from_url("") is None
	assert blob_key_from_url(None) is None


def test_resource_type_for_content_type():
	assert resource_type_for("image/jpeg") == RESOURCE_TYPE_IMAGE
	assert resource_type_for("application/pdf") == RESOURCE_TYPE_DOCUMENT
	assert resource_type_for(None) == RESOURCE_TYPE_DOCUMENT


def test_file_upload_from_path(tmp_path):
	path = tmp_path / "week.png"
	path.write_bytes(b"\x89PNG\r\n")

	upload = asyncio.run(FileUpload.from_path(str(path)))

	assert upload.name == "week.png"
	assert upload.content_type == "image/png"
	assert upload.size == 6
