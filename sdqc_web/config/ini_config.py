########## ini_config.py

from __future__ import annotations

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

INI_DEFAULT_NAME = "sdqc_web.ini"

MB = 1024 * 1024


@dataclass(frozen=True)
class AppSettings:
    anthropic_api_key: str
    anthropic_model: str
    max_tokens: int
    timeout_seconds: float
    blob_timeout_seconds: float

    # Size ceilings, in bytes
    compress_threshold_bytes: int
    inline_max_bytes: int
    max_document_bytes: int
    upload_max_bytes: int

    blob_backend: str           # "filesystem" | "http"
    blob_storage_dir: Path
    blob_public_base_url: str
    blob_api_url: str
    blob_token: str
    token_ttl_seconds: int
    fetch_timeout_seconds: float

    progress_interval_seconds: float

    flask_host: str
    flask_port: int
    flask_debug: bool
    secret_key: str


class IniConfig:
    """
    Adapter around ConfigParser and environment lookups.
    Keeps INI and secret handling out of the service code.

    A missing INI file is not an error: every setting has a default, so the
    tool runs with nothing more than ANTHROPIC_API_KEY in the environment.
    """

    def __init__(self, ini_path: Optional[Path] = None, *, required: bool = False):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        if ini_path is not None:
            read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
            if not read_ok and required:
                raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        load_dotenv()
        ini_raw = (os.getenv("APP_INI") or "").strip()
        if ini_raw:
            # An explicit APP_INI must exist
            return IniConfig(Path(ini_raw), required=True)
        # Otherwise default to repo-root-relative ini location, if present
        return IniConfig(Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)

    def _get_str(self, section: str, key: str, fallback: str) -> str:
        return (self._cfg.get(section, key, fallback=fallback) or "").strip() or fallback

    def _get_mb(self, section: str, key: str, fallback: float) -> int:
        return int(self._cfg.getfloat(section, key, fallback=fallback) * MB)

    def _cfg_path(self, section: str, key: str, fallback: str) -> Path:
        raw = self._get_str(section, key, fallback)
        raw = os.path.expandvars(os.path.expanduser(raw))
        return Path(raw).resolve()

    def load_settings(self) -> AppSettings:
        # Model provider
        anthropic_model = self._get_str("anthropic", "model", "claude-sonnet-4-20250514")
        max_tokens = self._cfg.getint("anthropic", "max_tokens", fallback=4096)
        timeout_seconds = self._cfg.getfloat("anthropic", "timeout_seconds", fallback=60.0)
        blob_timeout_seconds = self._cfg.getfloat("anthropic", "blob_timeout_seconds", fallback=120.0)
        api_key_env = self._get_str("anthropic", "api_key_env", "ANTHROPIC_API_KEY")

        # Limits
        compress_threshold_bytes = self._get_mb("limits", "compress_threshold_mb", 10)
        inline_max_bytes = self._get_mb("limits", "inline_max_mb", 5)
        max_document_bytes = self._get_mb("limits", "max_document_mb", 32)
        upload_max_bytes = self._get_mb("limits", "upload_max_mb", 50)

        # Blob store
        blob_backend = self._get_str("blob", "backend", "filesystem").lower()
        blob_storage_dir = self._cfg_path("blob", "storage_dir", "./blob_storage")
        blob_public_base_url = self._get_str("blob", "public_base_url", "http://127.0.0.1:5000").rstrip("/")
        blob_api_url = self._get_str("blob", "api_url", "https://blob.vercel-storage.com").rstrip("/")
        token_env = self._get_str("blob", "token_env", "BLOB_READ_WRITE_TOKEN")
        token_ttl_seconds = self._cfg.getint("blob", "token_ttl_seconds", fallback=3600)
        fetch_timeout_seconds = self._cfg.getfloat("blob", "fetch_timeout_seconds", fallback=30.0)

        progress_interval_seconds = self._cfg.getfloat("progress", "interval_seconds", fallback=1.2)

        # Flask
        flask_host = self._get_str("flask", "host", "127.0.0.1")
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=False)
        secret_key_env = self._get_str("flask", "secret_key_env", "SDQC_SECRET_KEY")

        # Validate
        if blob_backend not in ("filesystem", "http"):
            raise ValueError(f"Unknown blob backend: {blob_backend!r}")
        if not 0 < inline_max_bytes <= max_document_bytes:
            raise ValueError("limits.inline_max_mb must be positive and not above limits.max_document_mb")
        if max_document_bytes > upload_max_bytes:
            raise ValueError("limits.max_document_mb must not exceed limits.upload_max_mb")

        if blob_backend == "filesystem":
            blob_storage_dir.mkdir(parents=True, exist_ok=True)

        return AppSettings(
            anthropic_api_key=(os.getenv(api_key_env) or "").strip(),
            anthropic_model=anthropic_model,
            max_tokens=max_tokens,
            timeout_seconds=timeout_seconds,
            blob_timeout_seconds=blob_timeout_seconds,
            compress_threshold_bytes=compress_threshold_bytes,
            inline_max_bytes=inline_max_bytes,
            max_document_bytes=max_document_bytes,
            upload_max_bytes=upload_max_bytes,
            blob_backend=blob_backend,
            blob_storage_dir=blob_storage_dir,
            blob_public_base_url=blob_public_base_url,
            blob_api_url=blob_api_url,
            blob_token=(os.getenv(token_env) or "").strip(),
            token_ttl_seconds=token_ttl_seconds,
            fetch_timeout_seconds=fetch_timeout_seconds,
            progress_interval_seconds=progress_interval_seconds,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
            secret_key=(os.getenv(secret_key_env) or "").strip(),
        )
