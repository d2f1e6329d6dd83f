"""Configuration questions asked before the template is cloned.

Questions are plain data: the order they are declared in is the order they are
asked, and a question's ``visible_if`` rule may only look at answers to
questions declared before it. The CLI decides how a question is rendered; this
module only decides *which* questions apply and which answers are kept.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from .modules import FEATURE_MODULES

AnswerValue = Union[str, list[str]]
AnswerSet = dict[str, AnswerValue]

YES = "Yes"
NO = "No"


class QuestionKind(str, Enum):
    FREE_TEXT = "free_text"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"


@dataclass(frozen=True)
class ShowWhen:
    """Visibility rule: show the question when an earlier answer equals a value."""

    key: str
    equals: str

    def __call__(self, answers: Mapping[str, Any]) -> bool:
        return answers.get(self.key) == self.equals


@dataclass(frozen=True)
class Question:
    key: str
    kind: QuestionKind
    message: str
    default: Optional[AnswerValue] = None
    choices: Mapping[str, str] = field(default_factory=dict)
    visible_if: Optional[ShowWhen] = None
    required: bool = False

    def is_visible(self, answers: Mapping[str, Any]) -> bool:
        return self.visible_if is None or self.visible_if(answers)


YES_NO = {YES: "set it up now", NO: "skip for now"}


def _storage_field(key: str, label: str) -> Question:
    return Question(key, QuestionKind.FREE_TEXT, f"Enter storage {label}:", visible_if=ShowWhen("enableStorage", YES))


def build_questions(default_project_name: str, ask_to_start: bool = True) -> list[Question]:
    """Return the ordered question list for a new project."""
    module_names = [module.display_name for module in FEATURE_MODULES]
    questions = [
        Question(
            "projectName",
            QuestionKind.FREE_TEXT,
            "Where should we create your new project?",
            default=default_project_name,
            required=True,
        ),
        Question(
            "modules",
            QuestionKind.MULTI_CHOICE,
            "What modules will your project use?",
            default=module_names,
            choices={module.display_name: module.relative_path for module in FEATURE_MODULES},
            required=True,
        ),
        Question(
            "openAiKey",
            QuestionKind.FREE_TEXT,
            "Now lets set up some default values for your new project! Enter your OpenAI API key:",
            required=True,
        ),
        Question("mongoUri", QuestionKind.FREE_TEXT, "Enter your MongoDB connection string:", required=True),
        Question(
            "enableStorage",
            QuestionKind.SINGLE_CHOICE,
            "Do you want to set up S3 storage? This lets your product store generated images and user uploads.",
            default=NO,
            choices=YES_NO,
        ),
        _storage_field("storageName", "name"),
        _storage_field("storageRegion", "region"),
        _storage_field("storageUrl", "URL"),
        _storage_field("storageKey", "key"),
        _storage_field("storageSecret", "secret"),
        Question(
            "enablePinecone",
            QuestionKind.SINGLE_CHOICE,
            "Do you want to set up Pinecone? This lets your product do RAG alongside the Chat endpoints.",
            default=NO,
            choices=YES_NO,
        ),
        Question(
            "pineconeApiKey",
            QuestionKind.FREE_TEXT,
            "Enter your Pinecone API key:",
            visible_if=ShowWhen("enablePinecone", YES),
        ),
        Question(
            "pineconeIndexHost",
            QuestionKind.FREE_TEXT,
            "Enter your Pinecone Index Host:",
            visible_if=ShowWhen("enablePinecone", YES),
        ),
        Question(
            "openAccess",
            QuestionKind.SINGLE_CHOICE,
            "Run the API in open access mode (authentication disabled)? Only use this for local development.",
            default=NO,
            choices={YES: "disable authentication", NO: "keep authentication on"},
        ),
    ]
    if ask_to_start:
        questions.append(
            Question(
                "start",
                QuestionKind.SINGLE_CHOICE,
                "Do you want to run StartKit.AI now? (Or you can do this later by running `yarn dev`)",
                default=NO,
                choices=YES_NO,
            )
        )
    validate_schema(questions)
    return questions


def validate_schema(questions: Sequence[Question]) -> None:
    """Reject duplicate keys and visibility rules that look forward or at themselves."""
    seen: set[str] = set()
    for question in questions:
        if question.key in seen:
            raise ValueError(f"Duplicate question key '{question.key}'")
        if question.visible_if is not None and question.visible_if.key not in seen:
            raise ValueError(
                f"Question '{question.key}' depends on '{question.visible_if.key}', "
                "which is not asked before it"
            )
        seen.add(question.key)


def collect_answers(
    questions: Sequence[Question],
    ask: Callable[[Question, AnswerSet], Optional[AnswerValue]],
) -> AnswerSet:
    """Ask every visible question in order; ``None`` from ``ask`` leaves the key absent."""
    answers: AnswerSet = {}
    for question in questions:
        if not question.is_visible(answers):
            continue
        value = ask(question, dict(answers))
        if value is not None:
            answers[question.key] = value
    return answers


def visible_answers(questions: Sequence[Question], supplied: Mapping[str, Any]) -> AnswerSet:
    """Keep only the supplied values whose question is visible given the kept answers.

    Values for hidden questions (and for unknown keys) are dropped, so a stale
    storage secret left over from an earlier answer never reaches the ``.env``.
    """
    answers: AnswerSet = {}
    for question in questions:
        if question.key not in supplied or supplied[question.key] is None:
            continue
        if question.is_visible(answers):
            answers[question.key] = supplied[question.key]
    return answers


def selected_modules(answers: Mapping[str, Any]) -> Optional[list[str]]:
    """Feature modules chosen by the user, or ``None`` when the question was not answered."""
    value = answers.get("modules")
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return list(value)


def is_open_access(answers: Mapping[str, Any]) -> bool:
    return answers.get("openAccess") == YES


def wants_start(answers: Mapping[str, Any]) -> bool:
    return answers.get("start") == YES
