from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

import pytest
from pypdf import PdfWriter

from sdqc_web.config.ini_config import AppSettings, IniConfig

MB = 1024 * 1024


def make_pdf(pages: int = 3, title: Optional[str] = "Lobby Feature Wall") -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    if title is not None:
        writer.add_metadata({
            "/Title": title,
            "/Author": "JD",
            "/Subject": "Shop drawing",
            "/Keywords": "elevation, backlit",
            "/Producer": "CAD Export 12",
            "/Creator": "CAD",
        })
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def fake_pdf_bytes(size: int) -> bytes:
    """Bytes that pass the %PDF- sniff, padded to `size`."""
    head = b"%PDF-1.7\n"
    return head + b"0" * max(size - len(head), 0)


def write_ini(path: Path, storage_dir: Path, extra: str = "") -> Path:
    path.write_text(
        "[blob]\n"
        f"storage_dir = {storage_dir}\n"
        "public_base_url = http://localhost\n"
        "[progress]\n"
        "interval_seconds = 0.01\n"
        + extra,
        encoding="utf-8",
    )
    return path


@pytest.fixture
def pdf_bytes() -> bytes:
    return make_pdf()


@pytest.fixture
def settings(tmp_path: Path, monkeypatch) -> AppSettings:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setenv("SDQC_SECRET_KEY", "test-secret")
    ini = write_ini(tmp_path / "test.ini", tmp_path / "blobs")
    return IniConfig(ini, required=True).load_settings()


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def fake_pdf():
    return fake_pdf_bytes
