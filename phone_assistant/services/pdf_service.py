import os
import shutil
import asyncio
import logging
import uuid
import subprocess
from typing import Optional
from phone_assistant.core import config

logger = logging.getLogger(__name__)

class PdfRendererMissingError(RuntimeError):
    """Raised when Ghostscript is not found on the system."""
    pass

class PdfRenderError(RuntimeError):
    """Raised when Ghostscript fails to produce a PDF."""
    pass

class PDFService:
    def __init__(self, gs_path: Optional[str] = None):
        self.gs_path = gs_path or config.GHOSTSCRIPT_CMD or self._find_ghostscript()
        if self.gs_path:
            logger.info(f"Ghostscript found at: {self.gs_path}")
        else:
            logger.warning("Ghostscript not found. PDF export will be unavailable.")

    def _find_ghostscript(self):
        # Check for common Ghostscript executable names
        for name in ["gswin64c", "gswin32c", "gs"]:
            path = shutil.which(name)
            if path:
                return path
        return None

    def is_gs_available(self):
        return self.gs_path is not None

    async def render_pdf(self, postscript: str, output_path: str) -> str:
        """
        Converts a PostScript document to PDF with Ghostscript.
        Returns output_path once the PDF exists.

        Uses synchronous subprocess.run in a thread for maximum reliability on Windows.
        """
        if not self.is_gs_available():
            raise PdfRendererMissingError("Ghostscript is not available for PDF export.")

        base_dir = os.path.dirname(output_path) or "."
        os.makedirs(base_dir, exist_ok=True)
        # ASCII-only temporary name avoids encoding issues with Ghostscript on Windows
        ps_path = os.path.join(base_dir, f"gs_in_{uuid.uuid4().hex}.ps")

        try:
            with open(ps_path, "wb") as f:
                f.write(postscript.encode("latin-1", errors="replace"))

            cmd = [
                self.gs_path,
                "-sDEVICE=pdfwrite",
                "-dCompatibilityLevel=1.4",
                "-dNOPAUSE",
                "-dQUIET",
                "-dBATCH",
                f"-sOutputFile={output_path}",
                ps_path
            ]

            logger.info(f"Rendering PDF (sync thread): {output_path}")

            def run_sync():
                return subprocess.run(cmd, capture_output=True, text=False)

            result = await asyncio.to_thread(run_sync)

            if result.returncode != 0:
                stderr_text = result.stderr.decode(errors='replace')
                logger.error(f"Ghostscript failed with return code {result.returncode}: {stderr_text}")
                if os.path.exists(output_path):
                    os.remove(output_path)
                raise PdfRenderError(f"Ghostscript exited with {result.returncode}")

            if not os.path.exists(output_path):
                logger.error(f"Ghostscript finished but output file missing: {output_path}")
                raise PdfRenderError("Ghostscript produced no output")

            return output_path
        finally:
            if os.path.exists(ps_path):
                os.remove(ps_path)
