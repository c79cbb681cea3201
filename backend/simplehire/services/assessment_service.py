"""Skill assessment flow: resume intake, voice interview, MCQ, coding and certificate.

All state of an attempt lives in the user's active ``assessment`` session.
Question generation and grading by language models are not part of this
service; MCQs and coding challenges come from the seeded question bank and
only the MCQ is scored.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from simplehire.models.database import AssessmentSessionDB, CodingChallengeDB, McqQuestionDB, UserDB
from simplehire.models.user import ProductId
from simplehire.services.certificate_service import certificate_service, certificate_url
from simplehire.services.notification_service import notification_service
from simplehire.services.progress import round_half_up
from simplehire.services.resume_parser import resume_parser
from simplehire.services.session_service import SESSION_KIND_ASSESSMENT, session_service
from simplehire.services.storage_service import (
    COVER_LETTERS_FOLDER,
    DOCUMENT_MIME_TYPES,
    ID_DOCUMENTS_FOLDER,
    IMAGE_MIME_TYPES,
    RESUMES_FOLDER,
    storage_service,
)
from simplehire.services.user_service import user_service
from simplehire.utils.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

GENERAL_SKILL = "general"
MCQ_QUESTION_COUNT = 10
CODING_CHALLENGE_COUNT = 2

COMPONENT_WEIGHTS = {"voice": 0.3, "mcq": 0.35, "coding": 0.35}

SKILL_STEPS = ("voiceInterview", "mcqTest", "codingChallenge")


def difficulty_for_experience(years: Optional[int]) -> str:
    if years is None or years <= 2:
        return "easy"
    if years <= 6:
        return "medium"
    return "hard"


def skill_level(score: int) -> str:
    if score >= 85:
        return "expert"
    if score >= 75:
        return "senior"
    if score >= 65:
        return "intermediate"
    if score >= 50:
        return "junior"
    return "beginner"


def build_voice_questions(skills: List[str], years: Optional[int] = None, role: Optional[str] = None) -> List[Dict[str, str]]:
    """Interview prompts handed to the external voice agent."""
    topics = skills or [GENERAL_SKILL]
    questions = [{
        "id": "intro",
        "question": f"Tell me about your background{' as a ' + role if role else ''} and the work you are most proud of.",
    }]
    for index, topic in enumerate(topics[:3], start=1):
        questions.append({
            "id": f"skill-{index}",
            "question": f"Describe a recent project where you used {topic}. What trade-offs did you make?",
        })
    if years and years >= 5:
        questions.append({
            "id": "leadership",
            "question": "How have you mentored others or guided technical decisions on your team?",
        })
    questions.append({
        "id": "problem-solving",
        "question": "Walk me through how you debugged the hardest problem you faced recently.",
    })
    return questions


def mcq_public(question: McqQuestionDB) -> Dict[str, Any]:
    return {
        "id": question.id,
        "question": question.question,
        "options": list(question.options or []),
        "skill": question.skill,
        "difficulty": question.difficulty,
    }


def challenge_public(challenge: CodingChallengeDB) -> Dict[str, Any]:
    return {
        "id": challenge.id,
        "title": challenge.title,
        "description": challenge.description,
        "language": challenge.language,
        "starterCode": challenge.starter_code,
        "skill": challenge.skill,
        "difficulty": challenge.difficulty,
    }


class AssessmentService:
    """Drives one candidate through the skill verification steps."""

    def _session(self, db: Session, user: UserDB, create: bool = False) -> AssessmentSessionDB:
        record = session_service.latest_assessment(db, user.id)
        if record is None:
            if not create:
                raise NotFound("No active assessment session", code="SESSION_NOT_FOUND")
            record = session_service.create_session(
                db,
                owner_id=user.id,
                user_id=user.id,
                data={"skills": [], "primarySkill": GENERAL_SKILL},
                kind=SESSION_KIND_ASSESSMENT,
            )
        return record

    def _update(self, db: Session, record: AssessmentSessionDB, updates: Dict[str, Any]) -> AssessmentSessionDB:
        updated = session_service.update_session(db, record.session_id, updates)
        if updated is None:
            raise NotFound("Session not found or expired", code="SESSION_NOT_FOUND")
        return updated

    async def upload_documents(self, db: Session, user: UserDB, resume: UploadFile,
                               cover_letter: Optional[UploadFile] = None) -> Dict[str, Any]:
        """Store the resume and optional cover letter and mark documents uploaded."""
        content = await storage_service.read_upload(resume, DOCUMENT_MIME_TYPES)
        stored_resume = storage_service.save(content, resume.filename, resume.content_type, RESUMES_FOLDER)

        cover_url = None
        cover_content = await storage_service.read_upload(cover_letter, DOCUMENT_MIME_TYPES, required=False)
        if cover_content is not None:
            cover_url = storage_service.save(
                cover_content, cover_letter.filename, cover_letter.content_type, COVER_LETTERS_FOLDER
            ).url

        progress = user_service.set_interview_step(db, user, "documentsUploaded")
        return {
            "resumeUrl": stored_resume.url,
            "coverLetterUrl": cover_url,
            "interviewProgress": progress,
        }

    async def start_assessment(self, db: Session, user: UserDB, resume: UploadFile,
                               id_card: Optional[UploadFile] = None) -> Dict[str, Any]:
        """
        Parse the resume and open a new assessment session.

        Args:
            db: Database session
            user: Candidate
            resume: PDF or DOCX resume
            id_card: Optional ID image kept for proctoring

        Returns:
            dict: sessionId, the parsed resume summary and the voice questions
        """
        parsed = await resume_parser.parse(resume)
        content = await resume.read()
        stored_resume = storage_service.save(content, resume.filename, resume.content_type, RESUMES_FOLDER)

        id_card_url = None
        id_content = await storage_service.read_upload(id_card, IMAGE_MIME_TYPES, required=False)
        if id_content is not None:
            id_card_url = storage_service.save(
                id_content, id_card.filename, id_card.content_type, ID_DOCUMENTS_FOLDER
            ).url

        questions = build_voice_questions(parsed.skills, parsed.years_of_experience)
        record = session_service.create_session(
            db,
            owner_id=user.id,
            user_id=user.id,
            kind=SESSION_KIND_ASSESSMENT,
            data={
                "resumeText": parsed.text,
                "resume": parsed.to_dict(),
                "resumeUrl": stored_resume.url,
                "idCardUrl": id_card_url,
                "skills": parsed.skills,
                "primarySkill": parsed.primary_skill,
                "yearsOfExperience": parsed.years_of_experience,
                "voiceQuestions": questions,
            },
        )
        user_service.set_interview_step(db, user, "documentsUploaded")
        logger.info(f"Started assessment {record.session_id} for user {user.id}")
        return {
            "sessionId": record.session_id,
            "resume": parsed.to_dict(),
            "voiceQuestions": questions,
        }

    def start_voice(self, db: Session, user: UserDB, role: Optional[str] = None) -> Dict[str, Any]:
        record = self._session(db, user, create=True)
        data = record.data or {}
        questions = build_voice_questions(data.get("skills") or [], data.get("yearsOfExperience"), role)
        self._update(db, record, {
            "voiceQuestions": questions,
            "voiceStartedAt": datetime.utcnow().isoformat(),
            "role": role,
        })
        return {"sessionId": record.session_id, "questions": questions}

    def complete_voice(self, db: Session, user: UserDB, session_id: str, answers: List[Dict[str, str]]) -> Dict[str, Any]:
        """Store interview transcripts and mark the voice step done."""
        record = session_service.get_session(db, session_id, owner_id=user.id)
        if record is None:
            raise NotFound("Session not found or expired", code="SESSION_NOT_FOUND")
        self._update(db, record, {
            "voiceAnswers": answers,
            "voiceCompletedAt": datetime.utcnow().isoformat(),
        })
        progress = user_service.set_interview_step(db, user, "voiceInterview")
        return {"sessionId": session_id, "answered": len(answers), "interviewProgress": progress}

    def _bank(self, db: Session, model, skill: str, difficulty: str, count: int) -> list:
        """Pick ``count`` bank entries, preferring the skill and difficulty given."""
        chosen = db.query(model).filter(model.skill == skill, model.difficulty == difficulty).all()
        if len(chosen) < count:
            seen = {item.id for item in chosen}
            chosen += [item for item in db.query(model).filter(model.skill == skill).all() if item.id not in seen]
        if len(chosen) < count:
            seen = {item.id for item in chosen}
            chosen += [item for item in db.query(model).filter(model.skill == GENERAL_SKILL).all() if item.id not in seen]
        if len(chosen) < count:
            seen = {item.id for item in chosen}
            chosen += [item for item in db.query(model).all() if item.id not in seen]
        random.shuffle(chosen)
        return chosen[:count]

    def get_mcq(self, db: Session, user: UserDB, count: int = MCQ_QUESTION_COUNT) -> Dict[str, Any]:
        """
        Draw MCQs for the session and remember their answers server-side.

        The returned questions never include the correct option.
        """
        record = self._session(db, user, create=True)
        data = record.data or {}
        difficulty = difficulty_for_experience(data.get("yearsOfExperience"))
        questions = self._bank(db, McqQuestionDB, data.get("primarySkill") or GENERAL_SKILL, difficulty, count)
        if not questions:
            raise NotFound("No questions available", code="NO_QUESTIONS")

        self._update(db, record, {
            "mcq": {
                "questionIds": [q.id for q in questions],
                "answers": {q.id: q.correct_option_index for q in questions},
                "issuedAt": datetime.utcnow().isoformat(),
            },
        })
        return {"sessionId": record.session_id, "questions": [mcq_public(q) for q in questions]}

    def submit_mcq(self, db: Session, user: UserDB, answers: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Score submitted answers against the ones stored on the session.

        Returns:
            dict: score, totalQuestions and percentage
        """
        record = self._session(db, user)
        mcq = (record.data or {}).get("mcq")
        if not mcq:
            raise ValidationFailed("No MCQ test in progress", code="NO_ACTIVE_TEST")

        expected = mcq["answers"]
        selected = {a["questionId"]: a["selectedOptionIndex"] for a in answers}
        score = sum(1 for qid, correct in expected.items() if selected.get(qid) == correct)
        total = len(expected)
        percentage = round_half_up(score * 100, total) if total else 0
        result = {"score": score, "totalQuestions": total, "percentage": percentage}

        self._update(db, record, {
            "mcq": {**mcq, "submittedAt": datetime.utcnow().isoformat(), "selected": selected},
            "mcqResult": result,
        })
        user_service.set_interview_step(db, user, "mcqTest")
        logger.info(f"User {user.id} scored {score}/{total} on MCQ")
        return result

    def get_coding(self, db: Session, user: UserDB, count: int = CODING_CHALLENGE_COUNT) -> Dict[str, Any]:
        record = self._session(db, user, create=True)
        data = record.data or {}
        difficulty = difficulty_for_experience(data.get("yearsOfExperience"))
        challenges = self._bank(db, CodingChallengeDB, data.get("primarySkill") or GENERAL_SKILL, difficulty, count)
        if not challenges:
            raise NotFound("No coding challenges available", code="NO_CHALLENGES")
        self._update(db, record, {"codingChallengeIds": [c.id for c in challenges]})
        return {"sessionId": record.session_id, "challenges": [challenge_public(c) for c in challenges]}

    def submit_coding(self, db: Session, user: UserDB, challenge_id: str, code: str, language: str) -> Dict[str, Any]:
        """Record a coding submission; grading happens outside this service."""
        challenge = db.query(CodingChallengeDB).filter(CodingChallengeDB.id == challenge_id).first()
        if challenge is None:
            raise NotFound("Challenge not found")

        record = self._session(db, user, create=True)
        submitted_at = datetime.utcnow().isoformat()
        submissions = list((record.data or {}).get("codingSubmissions") or [])
        submissions.append({
            "challengeId": challenge_id,
            "language": language,
            "code": code,
            "submittedAt": submitted_at,
        })
        self._update(db, record, {"codingSubmissions": submissions})
        user_service.set_interview_step(db, user, "codingChallenge")
        return {"challengeId": challenge_id, "submitted": True, "submittedAt": submitted_at}

    def evaluation(self, db: Session, user: UserDB) -> Dict[str, Any]:
        """
        Aggregate what the candidate has completed so far.

        Only components with a numeric score contribute to ``overallScore``;
        their weights are renormalised over the scored components.
        """
        progress = user_service.get_user_data(db, user)["interviewProgress"]
        record = session_service.latest_assessment(db, user.id)
        data = (record.data if record else None) or {}

        mcq_result = data.get("mcqResult")
        components = [
            {"component": "voice", "completed": progress["voiceInterview"], "score": None,
             "answered": len(data.get("voiceAnswers") or [])},
            {"component": "mcq", "completed": progress["mcqTest"],
             "score": mcq_result["percentage"] if mcq_result else None},
            {"component": "coding", "completed": progress["codingChallenge"], "score": None,
             "submissions": len(data.get("codingSubmissions") or [])},
        ]

        scored = [c for c in components if c["score"] is not None]
        overall = None
        level = None
        if scored:
            weight = sum(COMPONENT_WEIGHTS[c["component"]] for c in scored)
            overall = int(sum(c["score"] * COMPONENT_WEIGHTS[c["component"]] for c in scored) / weight + 0.5)
            level = skill_level(overall)

        return {
            "sessionId": record.session_id if record else None,
            "skills": data.get("skills") or [],
            "components": components,
            "overallScore": overall,
            "level": level,
            "mcq": mcq_result,
            "readyForCertificate": all(progress[step] for step in SKILL_STEPS),
        }

    def issue_certificate(self, db: Session, user: UserDB) -> Dict[str, Any]:
        """
        Issue the skill certificate once every skill step is done.

        An already issued certificate is returned instead of a second one.

        Raises:
            ValidationFailed: ASSESSMENT_INCOMPLETE while a step is outstanding
        """
        evaluation = self.evaluation(db, user)
        if not evaluation["readyForCertificate"]:
            raise ValidationFailed("Complete all assessment steps first", code="ASSESSMENT_INCOMPLETE")

        certificate = certificate_service.find_for_product(db, user.id, ProductId.SKILL.value)
        if certificate is None:
            certificate = certificate_service.issue(db, user, ProductId.SKILL.value, skills_data={
                "skills": evaluation["skills"],
                "overallScore": evaluation["overallScore"],
                "level": evaluation["level"],
                "mcq": evaluation["mcq"],
            })
            notification_service.notify_certificate_issued(user.id, user.email, certificate.certificate_number)
        return {
            "certificateId": certificate.id,
            "certificateNumber": certificate.certificate_number,
            "certificateUrl": certificate_url(certificate.certificate_number),
        }


assessment_service = AssessmentService()
