"""Identity document checks backed by AWS Textract and Rekognition."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from simplehire.config import settings
from simplehire.utils.errors import AppError, ValidationFailed

logger = logging.getLogger(__name__)

FACE_MATCH_THRESHOLD = 80.0
PASSING_SCORE = 70
MIN_TEXT_LINES = 5
MIN_LINE_CONFIDENCE = 70.0

_DATA_URL_PREFIX = re.compile(r"^data:image/[a-z]+;base64,")


@dataclass
class FaceComparison:
    match: bool
    similarity: float
    confidence: float

    def to_dict(self) -> dict:
        return {"match": self.match, "similarity": self.similarity, "confidence": self.confidence}


@dataclass
class DocumentQuality:
    is_good_quality: bool
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class VerificationOutcome:
    """Result of the full ID-plus-selfie check."""
    success: bool
    overall_score: int
    id_data: Dict[str, Any]
    face_match: FaceComparison
    quality: DocumentQuality
    issues: List[str]

    def review_notes(self) -> dict:
        return {
            "aiVerification": True,
            "score": self.overall_score,
            "issues": self.issues,
            "idData": self.id_data,
            "faceMatch": {"match": self.face_match.match, "similarity": self.face_match.similarity},
        }


def score_verification(quality_ok: bool, extraction_confidence: float, faces_match: bool) -> int:
    """Quality is worth 30 (10 when poor), extraction up to 40, a face match 30."""
    quality_score = 30 if quality_ok else 10
    extraction_score = extraction_confidence * 0.4
    face_score = 30 if faces_match else 0
    return int(quality_score + extraction_score + face_score + 0.5)


def decode_image(image_base64: str) -> bytes:
    """Decode a base64 image, with or without a ``data:`` URL prefix."""
    cleaned = _DATA_URL_PREFIX.sub("", image_base64.strip())
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailed("Image is not valid base64", code="INVALID_IMAGE")


class DocumentVerificationService:
    """Runs document quality, ID extraction and face comparison checks."""

    def __init__(self):
        self._textract = None
        self._rekognition = None

    @property
    def configured(self) -> bool:
        return settings.aws_configured

    def _client(self, name: str):
        return boto3.client(
            name,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )

    @property
    def textract(self):
        if self._textract is None:
            self._textract = self._client("textract")
        return self._textract

    @property
    def rekognition(self):
        if self._rekognition is None:
            self._rekognition = self._client("rekognition")
        return self._rekognition

    def _s3_object(self, key: str) -> dict:
        return {"S3Object": {"Bucket": settings.aws_s3_bucket, "Name": key}}

    def verify_document_quality(self, key: str) -> DocumentQuality:
        """
        Check that a document image has enough legible text.

        Never raises: a Textract failure is reported as a quality issue.
        """
        try:
            result = self.textract.detect_document_text(Document=self._s3_object(key))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Document quality check failed for {key}: {e}")
            return DocumentQuality(
                is_good_quality=False,
                issues=["Unable to verify document quality"],
                recommendations=["Please upload a clearer image"],
            )

        lines = [b for b in result.get("Blocks", []) if b.get("BlockType") == "LINE"]
        issues, recommendations = [], []
        if len(lines) < MIN_TEXT_LINES:
            issues.append("Insufficient text detected")
            recommendations.append("Ensure document is clearly visible and well-lit")
        average = sum(b.get("Confidence", 0) for b in lines) / len(lines) if lines else 0
        if average < MIN_LINE_CONFIDENCE:
            issues.append("Low text clarity")
            recommendations.append("Take a clearer photo with better lighting")
        return DocumentQuality(is_good_quality=not issues, issues=issues, recommendations=recommendations)

    def extract_id_data(self, key: str) -> Dict[str, Any]:
        """Extract identity fields from an ID document with Textract AnalyzeID."""
        try:
            result = self.textract.analyze_id(DocumentPages=[self._s3_object(key)])
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            logger.error(f"ID extraction failed for {key}: {code}")
            if code == "InvalidParameterException":
                raise ValidationFailed("Invalid document format", code="INVALID_DOCUMENT")
            if code == "ProvisionedThroughputExceededException":
                raise AppError("Service busy, please try again", 503, "SERVICE_BUSY")
            raise AppError("Failed to extract ID data", 500, "EXTRACTION_ERROR")

        documents = result.get("IdentityDocuments") or []
        if not documents:
            raise ValidationFailed("No identity document found in image", code="NO_DOCUMENT_FOUND")

        fields = documents[0].get("IdentityDocumentFields") or []

        def value(field_type: str) -> Optional[str]:
            for f in fields:
                if f.get("Type", {}).get("Text") == field_type:
                    return f.get("ValueDetection", {}).get("Text")
            return None

        confidences = [f.get("ValueDetection", {}).get("Confidence", 0) for f in fields]
        return {
            "documentType": value("DOCUMENT_TYPE") or "unknown",
            "fullName": value("FULL_NAME"),
            "documentNumber": value("DOCUMENT_NUMBER"),
            "dateOfBirth": value("DATE_OF_BIRTH"),
            "expirationDate": value("EXPIRATION_DATE"),
            "confidence": round(sum(confidences) / len(confidences)) if confidences else 0,
        }

    def _compare(self, source: dict, target: dict) -> FaceComparison:
        try:
            result = self.rekognition.compare_faces(
                SourceImage=source,
                TargetImage=target,
                SimilarityThreshold=FACE_MATCH_THRESHOLD,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            logger.error(f"Face comparison failed: {code}")
            if code in ("InvalidParameterException", "InvalidImageFormatException"):
                raise ValidationFailed("Invalid image format or no face detected", code="INVALID_IMAGE")
            raise AppError("Failed to compare faces", 500, "COMPARISON_ERROR")

        matches = result.get("FaceMatches") or []
        if not matches:
            return FaceComparison(match=False, similarity=0.0, confidence=0.0)
        best = matches[0]
        similarity = float(best.get("Similarity", 0))
        return FaceComparison(
            match=similarity >= FACE_MATCH_THRESHOLD,
            similarity=similarity,
            confidence=float(best.get("Face", {}).get("Confidence", 0)),
        )

    def compare_stored_faces(self, id_key: str, selfie_key: str) -> FaceComparison:
        return self._compare(self._s3_object(selfie_key), self._s3_object(id_key))

    def compare_face_images(self, reference_base64: str, live_base64: str) -> FaceComparison:
        """Compare two base64 encoded frames."""
        return self._compare(
            {"Bytes": decode_image(reference_base64)},
            {"Bytes": decode_image(live_base64)},
        )

    def perform_full_verification(self, id_key: str, selfie_key: str) -> VerificationOutcome:
        """
        Run quality, extraction and face checks on a stored ID and selfie.

        Args:
            id_key: Storage key of the ID document
            selfie_key: Storage key of the selfie

        Returns:
            VerificationOutcome: success requires a passing score and a face match
        """
        quality = self.verify_document_quality(id_key)
        id_data = self.extract_id_data(id_key)
        face_match = self.compare_stored_faces(id_key, selfie_key)

        overall = score_verification(quality.is_good_quality, id_data["confidence"], face_match.match)
        issues = list(quality.issues)
        if id_data["confidence"] < 70:
            issues.append("Low confidence in extracted data")
        if not face_match.match:
            issues.append("Face verification failed")

        return VerificationOutcome(
            success=overall >= PASSING_SCORE and face_match.match,
            overall_score=overall,
            id_data=id_data,
            face_match=face_match,
            quality=quality,
            issues=issues,
        )


document_verification_service = DocumentVerificationService()
