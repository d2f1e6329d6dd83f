"""Unit tests for the question schema and answer collection (startkit_cli.questions)."""

from __future__ import annotations

import pytest

from startkit_cli.modules import FEATURE_MODULES
from startkit_cli.questions import (
    NO,
    YES,
    Question,
    QuestionKind,
    ShowWhen,
    build_questions,
    collect_answers,
    is_open_access,
    selected_modules,
    validate_schema,
    visible_answers,
    wants_start,
)

STORAGE_KEYS = ["storageName", "storageRegion", "storageUrl", "storageKey", "storageSecret"]


def _keys(questions):
    return [q.key for q in questions]


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class TestBuildQuestions:
    def test_project_name_default(self):
        questions = build_questions("./demo")
        assert questions[0].key == "projectName"
        assert questions[0].default == "./demo"

    def test_modules_default_to_all(self):
        modules = next(q for q in build_questions("x") if q.key == "modules")
        assert modules.kind is QuestionKind.MULTI_CHOICE
        assert modules.default == [m.display_name for m in FEATURE_MODULES]

    def test_start_question_optional(self):
        assert "start" in _keys(build_questions("x"))
        assert "start" not in _keys(build_questions("x", ask_to_start=False))

    def test_storage_fields_depend_on_enable_storage(self):
        for question in build_questions("x"):
            if question.key in STORAGE_KEYS:
                assert question.visible_if == ShowWhen("enableStorage", YES)


class TestValidateSchema:
    def test_forward_dependency_rejected(self):
        questions = [
            Question("a", QuestionKind.FREE_TEXT, "A", visible_if=ShowWhen("b", YES)),
            Question("b", QuestionKind.SINGLE_CHOICE, "B"),
        ]
        with pytest.raises(ValueError, match="not asked before"):
            validate_schema(questions)

    def test_self_dependency_rejected(self):
        with pytest.raises(ValueError):
            validate_schema([Question("a", QuestionKind.FREE_TEXT, "A", visible_if=ShowWhen("a", YES))])

    def test_duplicate_key_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            validate_schema([Question("a", QuestionKind.FREE_TEXT, "A"), Question("a", QuestionKind.FREE_TEXT, "A")])


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


class TestCollectAnswers:
    def test_hidden_questions_are_not_asked(self):
        asked = []

        def ask(question, answers):
            asked.append(question.key)
            return question.default if question.kind is not QuestionKind.FREE_TEXT else "value"

        answers = collect_answers(build_questions("x"), ask)

        assert not set(STORAGE_KEYS) & set(asked)
        assert "pineconeApiKey" not in asked
        assert answers["enableStorage"] == NO
        assert "storageName" not in answers

    def test_conditional_questions_asked_when_enabled(self):
        def ask(question, answers):
            if question.key == "enableStorage":
                return YES
            if question.kind is QuestionKind.FREE_TEXT:
                return f"{question.key}-value"
            return question.default

        answers = collect_answers(build_questions("x"), ask)
        for key in STORAGE_KEYS:
            assert answers[key] == f"{key}-value"

    def test_prior_answers_passed_to_ask(self):
        seen = {}

        def ask(question, answers):
            seen[question.key] = dict(answers)
            return "v"

        questions = [Question("a", QuestionKind.FREE_TEXT, "A"), Question("b", QuestionKind.FREE_TEXT, "B")]
        collect_answers(questions, ask)
        assert seen == {"a": {}, "b": {"a": "v"}}

    def test_none_leaves_key_absent(self):
        answers = collect_answers([Question("a", QuestionKind.FREE_TEXT, "A")], lambda q, a: None)
        assert answers == {}


class TestVisibleAnswers:
    def test_drops_stale_conditional_values(self):
        supplied = {"enableStorage": NO, "storageName": "stale", "storageSecret": "stale", "mongoUri": "m"}
        answers = visible_answers(build_questions("x"), supplied)
        assert answers == {"enableStorage": NO, "mongoUri": "m"}

    def test_keeps_conditional_values_when_visible(self):
        supplied = {"enablePinecone": YES, "pineconeApiKey": "pk"}
        assert visible_answers(build_questions("x"), supplied)["pineconeApiKey"] == "pk"

    def test_missing_controlling_answer_hides_dependents(self):
        answers = visible_answers(build_questions("x"), {"storageName": "bucket"})
        assert answers == {}

    def test_unknown_keys_dropped(self):
        assert visible_answers(build_questions("x"), {"JWT_SECRET": "mine"}) == {}


class TestAnswerHelpers:
    def test_selected_modules(self):
        assert selected_modules({}) is None
        assert selected_modules({"modules": "Chat"}) == ["Chat"]
        assert selected_modules({"modules": ["Chat", "Moderation"]}) == ["Chat", "Moderation"]

    def test_flags(self):
        assert is_open_access({"openAccess": YES})
        assert not is_open_access({"openAccess": NO})
        assert wants_start({"start": YES})
        assert not wants_start({})
