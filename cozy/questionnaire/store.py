"""QuestionnaireStore — questions and per-user answers via libsql."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cozy.config import settings
from cozy.db import SqlStore, utcnow
from cozy.errors import ValidationError
from cozy.questionnaire.models import AnsweredQuestion, Question

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_QUESTIONS = """
CREATE TABLE IF NOT EXISTS questions (
    id       INTEGER PRIMARY KEY AUTOINCREMENT,
    question TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT ''
)
"""

_CREATE_ANSWERS = """
CREATE TABLE IF NOT EXISTS user_answers (
    user_id     TEXT NOT NULL,
    question_id INTEGER NOT NULL REFERENCES questions(id),
    answer      TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    PRIMARY KEY (user_id, question_id)
)
"""


class QuestionnaireStore(SqlStore):
    """Persists questionnaire questions and user answers.

    A user's questionnaire counts as complete once they have stored at least
    one answer (or every question, with
    ``QUESTIONNAIRE_REQUIRES_ALL_ANSWERS``); it is vacuously complete while
    no questions exist.
    """

    _SCHEMA = (_CREATE_QUESTIONS, _CREATE_ANSWERS)

    def __init__(self, db_path: Path | None = None, *, require_all: bool | None = None) -> None:
        super().__init__(db_path)
        self._require_all = (
            settings.questionnaire_requires_all_answers if require_all is None else require_all
        )

    # -- Questions -------------------------------------------------------------

    async def add_question(self, question: str, category: str = "") -> Question:
        """Insert a question and return it with its assigned id."""
        if not question.strip():
            raise ValidationError("Question text cannot be empty")
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO questions (question, category) VALUES (?, ?)",
                (question.strip(), category.strip()),
            )
            question_id = await db.last_insert_rowid()
            await db.commit()
            return Question(id=question_id, question=question.strip(), category=category.strip())
        finally:
            await db.close()

    async def list_questions(self) -> list[Question]:
        """All questions in id order."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT id, question, category FROM questions ORDER BY id")
            rows = await cursor.fetchall()
            return [Question(id=row[0], question=row[1], category=row[2]) for row in rows]
        finally:
            await db.close()

    async def count_questions(self) -> int:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT COUNT(*) FROM questions")
            row = await cursor.fetchone()
            return int(row[0]) if row else 0
        finally:
            await db.close()

    async def questions_exist(self) -> bool:
        return await self.count_questions() > 0

    # -- Answers ---------------------------------------------------------------

    async def get_answers(self, user_id: str) -> dict[int, str]:
        """The user's answers keyed by question id."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT question_id, answer FROM user_answers WHERE user_id = ?",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return {int(row[0]): row[1] for row in rows}
        finally:
            await db.close()

    async def get_answers_with_questions(self, user_id: str) -> list[AnsweredQuestion]:
        """The user's answers joined with question text, in question order."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT q.id, q.question, q.category, a.answer
                FROM user_answers a
                JOIN questions q ON q.id = a.question_id
                WHERE a.user_id = ?
                ORDER BY q.id
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [
                AnsweredQuestion(question_id=row[0], question=row[1], category=row[2], answer=row[3])
                for row in rows
            ]
        finally:
            await db.close()

    async def save_answers(self, user_id: str, answers: Mapping[int, str]) -> int:
        """Insert or update the given answers. Returns how many were saved.

        Raises ``ValidationError`` when *answers* is empty or names a
        question that does not exist.
        """
        if not answers:
            raise ValidationError("You need to answer at least one question")

        known = {q.id for q in await self.list_questions()}
        unknown = sorted(int(qid) for qid in answers if int(qid) not in known)
        if unknown:
            raise ValidationError(f"Unknown question ids: {unknown}")

        now = utcnow()
        db = await self._connect()
        try:
            for question_id, answer in answers.items():
                await db.execute(
                    """
                    INSERT INTO user_answers (user_id, question_id, answer, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT (user_id, question_id)
                    DO UPDATE SET answer = excluded.answer, updated_at = excluded.updated_at
                    """,
                    (user_id, int(question_id), answer, now, now),
                )
            await db.commit()
            logger.info("Saved %d answer(s) for %s", len(answers), user_id)
            return len(answers)
        finally:
            await db.close()

    async def count_answers(self, user_id: str) -> int:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM user_answers WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return int(row[0]) if row else 0
        finally:
            await db.close()

    async def has_answers(self, user_id: str) -> bool:
        """Whether the user has answered enough to clear the questionnaire step.

        Does not consider whether questions exist; the onboarding gate checks
        that separately.
        """
        answered = await self.count_answers(user_id)
        if not self._require_all:
            return answered > 0
        return answered > 0 and answered >= await self.count_questions()

    async def has_completed(self, user_id: str) -> bool:
        """Questionnaire completeness, including the no-questions case."""
        if not await self.questions_exist():
            return True
        return await self.has_answers(user_id)
