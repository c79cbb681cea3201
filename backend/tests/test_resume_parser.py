"""Tests for resume validation and text extraction."""

import io

import pytest
from docx import Document
from fastapi import UploadFile
from starlette.datastructures import Headers

from simplehire.services.resume_parser import ResumeParser, resume_parser
from simplehire.utils.errors import AppError, ValidationFailed

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

RESUME_TEXT = [
    "Jane Candidate - Senior Backend Engineer",
    "8 years of experience building Python services with Django and FastAPI.",
    "Maintained PostgreSQL schemas and wrote SQL reports for finance.",
    "Deployed everything on AWS with Docker.",
]


def make_docx(paragraphs=RESUME_TEXT) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content),
        headers=Headers({"content-type": content_type}),
    )


class TestFileValidation:

    def test_accepts_docx(self):
        upload = make_upload(b"PK\x03\x04", "resume.docx", DOCX_TYPE)
        assert ResumeParser.validate_file(upload) == ".docx"

    def test_rejects_unknown_extension(self):
        upload = make_upload(b"hello", "resume.txt", "text/plain")
        with pytest.raises(ValidationFailed) as exc_info:
            ResumeParser.validate_file(upload)
        assert exc_info.value.code == "INVALID_FILE_TYPE"

    def test_rejects_mismatched_content_type(self):
        upload = make_upload(b"%PDF-1.4", "resume.pdf", "image/png")
        with pytest.raises(ValidationFailed):
            ResumeParser.validate_file(upload)

    def test_rejects_oversize_file(self, monkeypatch):
        upload = make_upload(b"%PDF-1.4", "resume.pdf", "application/pdf")
        upload.size = 50 * 1024 * 1024
        with pytest.raises(AppError) as exc_info:
            ResumeParser.validate_file(upload)
        assert exc_info.value.status_code == 413

    def test_signature_must_match_extension(self):
        with pytest.raises(ValidationFailed) as exc_info:
            ResumeParser.verify_signature(b"not a pdf", ".pdf")
        assert exc_info.value.code == "INVALID_FILE_SIGNATURE"
        ResumeParser.verify_signature(b"%PDF-1.7 ...", ".pdf")


class TestExtraction:

    def test_docx_text(self):
        text = ResumeParser.extract_text_from_docx(make_docx())
        assert "Senior Backend Engineer" in text
        assert "AWS" in text

    def test_corrupted_pdf(self):
        with pytest.raises(ValidationFailed) as exc_info:
            ResumeParser.extract_text_from_pdf(b"%PDF-garbage")
        assert exc_info.value.code == "PARSE_ERROR"

    def test_detect_skills_most_frequent_first(self):
        skills = ResumeParser.detect_skills("Python, Django and FastAPI. Some SQL. JavaScript.")
        assert skills[0] == "python"
        assert set(skills) == {"python", "sql", "javascript"}

    def test_java_is_not_javascript(self):
        assert ResumeParser.detect_skills("JavaScript and TypeScript") == ["javascript"]

    def test_years_of_experience(self):
        assert ResumeParser.detect_years_of_experience("3 years at A, 10+ years overall") == 10
        assert ResumeParser.detect_years_of_experience("no numbers here") is None


@pytest.mark.asyncio
async def test_parse_docx_resume():
    parsed = await resume_parser.parse(make_upload(make_docx(), "resume.docx", DOCX_TYPE))
    assert parsed.primary_skill == "python"
    assert "cloud" in parsed.skills
    assert parsed.years_of_experience == 8
    assert len(parsed.file_hash) == 64
    assert parsed.to_dict()["filename"] == "resume.docx"


@pytest.mark.asyncio
async def test_parse_rejects_short_resume():
    upload = make_upload(make_docx(["Too short"]), "resume.docx", DOCX_TYPE)
    with pytest.raises(ValidationFailed) as exc_info:
        await resume_parser.parse(upload)
    assert exc_info.value.code == "PARSE_ERROR"
