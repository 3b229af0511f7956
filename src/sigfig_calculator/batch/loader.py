"""Read expressions from a text file or an archive."""
from pathlib import Path
import tarfile
import tempfile
from typing import List
import zipfile

import py7zr
from pydantic import BaseModel, ConfigDict, Field, FilePath

from sigfig_calculator.common.logger import logger


class ExpressionFileLoader(BaseModel):
    """
    Load arithmetic expressions, one per line, from a file.

    Supported inputs:
    - plain .txt files
    - .zip, .tar.xz and .7z archives, from which the first .txt member is read
    """

    model_config = ConfigDict(frozen=True)

    path: FilePath = Field(..., description="Existing text file or archive")

    def read_text(self) -> str:
        """
        Return the raw text of the file, extracting it from the archive if needed.

        :return: File content
        :rtype: str
        :raises ValueError: If the archive format is unsupported or contains no .txt file
        """
        if self.path.suffix == ".txt":
            return self.path.read_text(encoding="utf-8")
        return self._extract_archive(self.path)

    def load(self) -> List[str]:
        """
        Return the stripped, non-empty lines of the file.

        :return: Expressions in file order
        :rtype: List[str]
        """
        lines = [line.strip() for line in self.read_text().splitlines() if line.strip()]
        logger.info(f"📄 Loaded {len(lines)} expression(s) from {self.path.name}")
        return lines

    def _extract_archive(self, archive_path: Path) -> str:
        """
        Extract the first .txt file found in a supported archive and return its content as a string.

        :param Path archive_path: Path to the archive file

        :return: Content of the extracted .txt file
        :rtype: str
        :raises ValueError: If no .txt file is found or format is unsupported
        """
        # Extract into a temporary directory, never next to the archive
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir_path = Path(tmpdir)
            if archive_path.suffix == ".zip":
                with zipfile.ZipFile(archive_path, "r") as zf:
                    txt_files = [f for f in zf.namelist() if f.endswith(".txt")]
                    if not txt_files:
                        raise ValueError("📄❌ No .txt file found in zip archive")
                    zf.extract(txt_files[0], path=tmpdir_path)
                    return (tmpdir_path / txt_files[0]).read_text(encoding="utf-8")

            elif archive_path.suffixes[-2:] == [".tar", ".xz"]:
                with tarfile.open(archive_path, "r:xz") as tf:
                    txt_files = [m for m in tf.getmembers() if m.isfile() and m.name.endswith(".txt")]
                    if not txt_files:
                        raise ValueError("📄❌ No .txt file found in tar.xz archive")
                    tf.extract(txt_files[0], path=tmpdir_path, filter="data")
                    return (tmpdir_path / txt_files[0].name).read_text(encoding="utf-8")

            elif archive_path.suffix == ".7z":
                with py7zr.SevenZipFile(archive_path, mode="r") as archive:
                    txt_files = [f for f in archive.getnames() if f.endswith(".txt")]
                    if not txt_files:
                        raise ValueError("📄❌ No .txt file found in 7z archive")
                    archive.extract(targets=[txt_files[0]], path=tmpdir_path)
                    return (tmpdir_path / txt_files[0]).read_text(encoding="utf-8")

            else:
                raise ValueError(f"📄❌ Unsupported archive format: {archive_path.suffix}")


def load_expressions(path: Path) -> List[str]:
    """Shortcut for ``ExpressionFileLoader(path=path).load()``."""
    return ExpressionFileLoader(path=path).load()
