"""Scoring and persistence of student quiz attempts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import uuid4

from quizforge.application.errors import QuizValidationError
from quizforge.application.quiz_persistence import QuizUnitOfWorkFactory
from quizforge.domain.quiz import MCQQuestion, QuizAttempt, ScoredAnswer, SubmittedAnswer

LOGGER = logging.getLogger(__name__)


def score_answers(
    questions: Sequence[MCQQuestion],
    answers: Sequence[SubmittedAnswer],
) -> tuple[ScoredAnswer, ...]:
    """Mark each answer correct only when it matches an existing scoreable question."""
    scored: list[ScoredAnswer] = []
    for answer in answers:
        question = (
            questions[answer.question_index]
            if 0 <= answer.question_index < len(questions)
            else None
        )
        is_correct = (
            question is not None
            and question.is_scoreable
            and question.correct_answer == answer.selected_answer
        )
        scored.append(
            ScoredAnswer(
                question_index=answer.question_index,
                selected_answer=answer.selected_answer,
                is_correct=is_correct,
            )
        )
    return tuple(scored)


class SubmitQuizAttemptUseCase:
    """Score a student's answers against a stored quiz and persist the attempt."""

    def __init__(self, uow_factory: QuizUnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def execute(
        self,
        *,
        quiz_id: str,
        student_id: str,
        answers: Sequence[SubmittedAnswer],
        time_spent_seconds: int | None = None,
    ) -> QuizAttempt:
        if not quiz_id or not student_id:
            raise QuizValidationError("quiz_id and student_id are required.")

        correlation_id = str(uuid4())
        with self._uow_factory() as uow:
            quiz = uow.quizzes.get_quiz(quiz_id)
            if quiz is None:
                raise QuizValidationError(f"Quiz not found: {quiz_id}.")
            if not quiz.questions:
                raise QuizValidationError("Quiz has no questions.")

            scored = score_answers(quiz.questions, answers)
            attempt = uow.attempts.add_attempt(
                quiz_id=quiz_id,
                student_id=student_id,
                answers=scored,
                score=sum(1 for item in scored if item.is_correct),
                total_questions=len(quiz.questions),
                time_spent_seconds=time_spent_seconds,
            )
            uow.commit()

        LOGGER.info(
            (
                "event=quiz_attempt_saved correlation_id=%s quiz_id=%s attempt_id=%s "
                "score=%s total_questions=%s"
            ),
            correlation_id,
            quiz_id,
            attempt.id,
            attempt.score,
            attempt.total_questions,
        )
        return attempt


class ListQuizAttemptsUseCase:
    """List attempts for a quiz, a student, or one student on one quiz."""

    def __init__(self, uow_factory: QuizUnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def execute(
        self,
        *,
        quiz_id: str | None = None,
        student_id: str | None = None,
    ) -> list[QuizAttempt]:
        if not quiz_id and not student_id:
            raise QuizValidationError("quiz_id or student_id is required.")

        with self._uow_factory() as uow:
            attempts = uow.attempts.list_attempts(
                quiz_id=quiz_id or None,
                student_id=student_id or None,
            )

        LOGGER.info(
            "event=quiz_attempts_listed quiz_id=%s student_id=%s items_count=%s",
            quiz_id or "-",
            student_id or "-",
            len(attempts),
        )
        return attempts
