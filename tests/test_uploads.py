from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from hr_onboarding.core.config import settings
from hr_onboarding.core.uploads import attachment_filename, save_attachments


def _upload(name: str, data: bytes = b"%PDF-1.4", content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=name, headers=Headers({"content-type": content_type}))


def test_attachment_filename_strips_paths_and_unsafe_characters():
    assert attachment_filename("C:\\docs\\Offer Letter (final).PDF") == "Offer_Letter_final.pdf"
    assert attachment_filename("../../etc/passwd") == "passwd"
    assert attachment_filename(None) == "attachment"
    assert len(attachment_filename("x" * 400 + ".docx")) == 150


async def test_save_attachments_writes_under_folder(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "uploads_dir", str(tmp_path))
    paths = await save_attachments([_upload("offer.pdf"), _upload("")], folder="batch/Engineering-3")

    assert len(paths) == 1
    assert paths[0].startswith("batch/Engineering-3/") and paths[0].endswith("_offer.pdf")
    assert (tmp_path / paths[0]).read_bytes() == b"%PDF-1.4"


async def test_rejected_upload_leaves_no_files(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "uploads_dir", str(tmp_path))
    with pytest.raises(HTTPException) as excinfo:
        await save_attachments([_upload("offer.pdf"), _upload("run.exe", content_type="application/x-msdownload")], folder="batch")
    assert excinfo.value.detail == "unsupported_file_type"
    assert list(tmp_path.iterdir()) == []
