"""Write the report files and the ZIP archive of the output directory."""

import dataclasses
import os
import zipfile
from pathlib import Path

from .models import ReportDocument
from .report import to_json

DATA_FILE = "BlueBox.json"
HTML_FILE = "BlueBox.html"
ARCHIVE_PREFIX = "BlueBox_"


@dataclasses.dataclass(frozen=True)
class BundlePaths:
    data_path: Path
    html_path: Path
    archive_path: Path


def archive_name(stamp: str) -> str:
    return f"{ARCHIVE_PREFIX}{stamp}.zip"


def make_archive(output_dir: Path, archive_path: Path) -> Path:
    """Zip every file under *output_dir* except the archive itself.

    An existing archive at *archive_path* is replaced.
    """
    output_dir = Path(output_dir)
    archive_path = Path(archive_path)
    tmp_path = archive_path.with_name(archive_path.name + ".tmp")
    skip = {archive_path.resolve(), tmp_path.resolve()}

    files = sorted(
        p for p in output_dir.rglob("*")
        if p.is_file() and p.resolve() not in skip
    )
    with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in files:
            zf.write(path, path.relative_to(output_dir).as_posix())
    os.replace(tmp_path, archive_path)
    return archive_path


def write_bundle(
    output_dir: Path,
    document: ReportDocument,
    html_text: str,
    *,
    stamp: str,
) -> BundlePaths:
    """Persist document, page and archive. Any OSError is left to the caller."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    data_path = output_dir / DATA_FILE
    html_path = output_dir / HTML_FILE
    # write_text closes each file before the archive reads it
    data_path.write_text(to_json(document), encoding="utf-8")
    html_path.write_text(html_text, encoding="utf-8")

    archive_path = make_archive(output_dir, output_dir / archive_name(stamp))
    return BundlePaths(data_path=data_path, html_path=html_path, archive_path=archive_path)
