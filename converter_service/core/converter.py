# converter_service/core/converter.py
from __future__ import annotations

import asyncio
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from converter_service.core.files import DocumentFormat

logger = structlog.get_logger(__name__)


class ConversionError(RuntimeError):
    pass


def _mb(n: int) -> str:
    return f"{n / (1024 * 1024):.2f}"


@dataclass(frozen=True)
class ConversionResult:
    pdf: bytes
    input_size_mb: str
    output_size_mb: str
    duration_ms: int


class Converter(Protocol):
    async def convert(self, data: bytes, fmt: DocumentFormat) -> ConversionResult:
        ...


class SofficeConverter:
    """Converts Office documents to PDF with a headless LibreOffice process.

    Each call works in its own temporary directory, including a private
    LibreOffice profile, so concurrent conversions do not share a lock.
    """

    def __init__(self, soffice_bin: str = "soffice", *, timeout: int = 120) -> None:
        self._bin = soffice_bin
        self._timeout = timeout

    async def convert(self, data: bytes, fmt: DocumentFormat) -> ConversionResult:
        start = time.monotonic()
        try:
            pdf = await asyncio.to_thread(self._run, data, fmt)
        except ConversionError as e:
            raise ConversionError(f"Failed to convert {fmt.label} to PDF: {e}") from e
        return ConversionResult(
            pdf=pdf,
            input_size_mb=_mb(len(data)),
            output_size_mb=_mb(len(pdf)),
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def _run(self, data: bytes, fmt: DocumentFormat) -> bytes:
        with tempfile.TemporaryDirectory(prefix="convert-") as tmp:
            work = Path(tmp)
            input_path = work / f"input{fmt.extension}"
            input_path.write_bytes(data)
            out_dir = work / "out"
            out_dir.mkdir()

            cmd = [
                self._bin,
                f"-env:UserInstallation={(work / 'profile').as_uri()}",
                "--headless",
                "--convert-to",
                "pdf",
                "--outdir",
                str(out_dir),
                str(input_path),
            ]
            try:
                proc = subprocess.run(cmd, capture_output=True, timeout=self._timeout)
            except FileNotFoundError as e:
                raise ConversionError(f"conversion binary not found: {self._bin}") from e
            except subprocess.TimeoutExpired as e:
                raise ConversionError(f"timed out after {self._timeout}s") from e

            if proc.returncode != 0:
                stderr = proc.stderr.decode("utf-8", errors="replace").strip()
                raise ConversionError(f"{self._bin} exited with {proc.returncode}: {stderr[:500]}")

            output_path = out_dir / "input.pdf"
            if not output_path.exists():
                raise ConversionError("no PDF produced")
            return output_path.read_bytes()
