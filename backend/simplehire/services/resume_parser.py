"""Resume parsing for the skill assessment."""

import hashlib
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import PyPDF2
from docx import Document
from fastapi import UploadFile

from simplehire.config import settings
from simplehire.utils.errors import AppError, ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".docx"}

# Content types accepted per extension; browsers often send octet-stream for docx
ALLOWED_MIME_TYPES = {
    ".pdf": {"application/pdf"},
    ".docx": {
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/octet-stream",
    },
}

MAGIC_BYTES = {
    ".pdf": b"%PDF",
    ".docx": b"PK\x03\x04",
}

MIN_TEXT_LENGTH = 50

# Skill keyword -> canonical skill name used to pick questions from the bank
SKILL_KEYWORDS = {
    "python": "python",
    "django": "python",
    "flask": "python",
    "fastapi": "python",
    "javascript": "javascript",
    "typescript": "javascript",
    "react": "javascript",
    "node.js": "javascript",
    "nodejs": "javascript",
    "java": "java",
    "spring": "java",
    "sql": "sql",
    "postgresql": "sql",
    "mysql": "sql",
    "aws": "cloud",
    "docker": "cloud",
    "kubernetes": "cloud",
}


@dataclass
class ParsedResume:
    """Text and derived facts of an uploaded resume."""
    text: str
    file_hash: str
    filename: str
    skills: List[str] = field(default_factory=list)
    primary_skill: str = "general"
    years_of_experience: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "fileHash": self.file_hash,
            "skills": self.skills,
            "primarySkill": self.primary_skill,
            "yearsOfExperience": self.years_of_experience,
            "textLength": len(self.text),
        }


class ResumeParser:
    """Validates resume uploads and extracts their text."""

    @staticmethod
    def validate_file(file: UploadFile) -> str:
        """
        Validate uploaded file format and size.

        Args:
            file: The uploaded file to validate

        Returns:
            str: The normalized file extension

        Raises:
            AppError: If file validation fails
        """
        if file.size and file.size > settings.max_file_size_bytes:
            raise AppError(
                f"File size exceeds maximum limit of {settings.max_file_size_mb}MB",
                413,
                "FILE_TOO_LARGE",
            )

        file_ext = Path(file.filename or "").suffix.lower()
        if file_ext not in ALLOWED_EXTENSIONS:
            raise ValidationFailed(
                f"File type {file_ext or 'unknown'} not supported. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
                code="INVALID_FILE_TYPE",
            )

        if file.content_type not in ALLOWED_MIME_TYPES[file_ext]:
            raise ValidationFailed(
                f"Invalid file type. Content-Type: {file.content_type}",
                code="INVALID_FILE_TYPE",
            )
        return file_ext

    @staticmethod
    def verify_signature(content: bytes, file_ext: str) -> None:
        """Reject files whose leading bytes do not match their extension."""
        if not content.startswith(MAGIC_BYTES[file_ext]):
            raise ValidationFailed(
                "File content does not match its extension",
                code="INVALID_FILE_SIGNATURE",
            )

    @staticmethod
    def extract_text_from_pdf(file_content: bytes) -> str:
        """
        Extract text from PDF file.

        Args:
            file_content: PDF file content as bytes

        Returns:
            Extracted text content
        """
        try:
            pdf_reader = PyPDF2.PdfReader(io.BytesIO(file_content))
        except Exception as e:
            logger.error(f"PDF parsing failed: {e}")
            raise ValidationFailed("PDF file appears to be corrupted", code="PARSE_ERROR")

        if len(pdf_reader.pages) == 0:
            raise ValidationFailed("PDF file appears to be empty", code="PARSE_ERROR")

        text_content = []
        for page in pdf_reader.pages:
            try:
                page_text = page.extract_text() or ""
            except Exception as e:
                logger.warning(f"Failed to extract text from PDF page: {e}")
                continue
            if page_text.strip():
                text_content.append(page_text)
        return "\n".join(text_content).strip()

    @staticmethod
    def extract_text_from_docx(file_content: bytes) -> str:
        try:
            doc = Document(io.BytesIO(file_content))
        except Exception as e:
            logger.error(f"DOCX parsing failed: {e}")
            raise ValidationFailed("DOCX file appears to be corrupted", code="PARSE_ERROR")

        text_content = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text.strip():
                        text_content.append(cell.text)
        return "\n".join(text_content).strip()

    @staticmethod
    def detect_skills(text: str) -> List[str]:
        """Canonical skills mentioned in ``text``, most frequent first."""
        lowered = text.lower()
        counts = {}
        for keyword, skill in SKILL_KEYWORDS.items():
            hits = len(re.findall(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", lowered))
            if hits:
                counts[skill] = counts.get(skill, 0) + hits
        return sorted(counts, key=lambda s: (-counts[s], s))

    @staticmethod
    def detect_years_of_experience(text: str) -> Optional[int]:
        matches = re.findall(r"(\d{1,2})\+?\s*(?:years|yrs)", text, flags=re.IGNORECASE)
        if not matches:
            return None
        return max(int(m) for m in matches)

    @classmethod
    async def parse(cls, file: UploadFile) -> ParsedResume:
        """
        Validate an uploaded resume and extract its text and skills.

        Args:
            file: The uploaded file

        Returns:
            ParsedResume

        Raises:
            AppError: If the file is invalid or holds too little text
        """
        file_ext = cls.validate_file(file)
        file_content = await file.read()
        if len(file_content) > settings.max_file_size_bytes:
            raise AppError(
                f"File size exceeds maximum limit of {settings.max_file_size_mb}MB",
                413,
                "FILE_TOO_LARGE",
            )
        cls.verify_signature(file_content, file_ext)
        file_hash = hashlib.sha256(file_content).hexdigest()
        await file.seek(0)

        if file_ext == ".pdf":
            text = cls.extract_text_from_pdf(file_content)
        else:
            text = cls.extract_text_from_docx(file_content)

        if len(text) < MIN_TEXT_LENGTH:
            raise ValidationFailed(
                "Extracted text is too short. Please ensure your resume contains sufficient content.",
                code="PARSE_ERROR",
            )

        skills = cls.detect_skills(text)
        parsed = ParsedResume(
            text=text,
            file_hash=file_hash,
            filename=file.filename or "",
            skills=skills,
            primary_skill=skills[0] if skills else "general",
            years_of_experience=cls.detect_years_of_experience(text),
        )
        logger.info(f"Parsed resume {parsed.filename}: {len(text)} chars, skills={skills}")
        return parsed


resume_parser = ResumeParser()
