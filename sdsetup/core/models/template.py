"""
Generated file model — used by the script renderers.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class GeneratedFile(BaseModel):
    """A file produced by the artifact stage.

    Attributes:
        path:    Absolute destination path.
        content: Full file content.
        mode:    Permission bits applied after writing.
        reason:  Why this file was generated.
    """

    path: Path
    content: str
    mode: int = 0o755
    reason: str = ""

    def write(self) -> Path:
        """Write the file and apply its mode."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.content, encoding="utf-8")
        self.path.chmod(self.mode)
        return self.path
