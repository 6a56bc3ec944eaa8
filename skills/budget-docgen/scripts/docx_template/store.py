"""Template source and document store backed by python-docx."""

import io
import zipfile
from pathlib import Path

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from .common import DOCX_EXTENSION, UnsupportedTemplateFormat


class TemplateStore:
    """
    Loads the template package once and hands out independent copies.

    Each fresh_copy() parses the cached bytes again, so a group's edits are
    never visible to another group.
    """

    def __init__(self, template_path: str):
        self.template_path = Path(template_path)
        self._validate()
        self._template_bytes = self.template_path.read_bytes()
        try:
            self.fresh_copy()
        except (PackageNotFoundError, KeyError, ValueError) as e:
            raise UnsupportedTemplateFormat(
                f"Template is not a Word document package: {self.template_path} ({e})"
            ) from e

    def _validate(self):
        if not self.template_path.exists():
            raise FileNotFoundError(f"Template file not found: {self.template_path}")

        suffix = self.template_path.suffix.lower()
        if suffix == '.doc':
            raise UnsupportedTemplateFormat(
                f"Legacy .doc templates are not supported, convert to .docx: {self.template_path}"
            )
        if suffix != f'.{DOCX_EXTENSION}':
            raise UnsupportedTemplateFormat(f"Template must be a .docx file: {self.template_path}")
        if not zipfile.is_zipfile(self.template_path):
            raise UnsupportedTemplateFormat(f"Template is not a valid .docx package: {self.template_path}")

    def fresh_copy(self):
        """New mutable Document parsed from the template bytes"""
        return Document(io.BytesIO(self._template_bytes))

    @staticmethod
    def save(document, output_path: Path):
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        document.save(str(output_path))
