"""Turn the template's ``.env.example`` into the project's ``.env``.

Every line of the example file produces exactly one line in the output, in the
same order. Comments and blank lines are copied as-is; ``KEY=VALUE`` lines get
their value from the key's policy:

* ``FromAnswer`` - the collected answer (empty when it was not answered)
* ``GeneratedSecret`` - a fresh 32-byte hex token
* ``ComputedFlag`` - ``true``/``false`` from a predicate over the answers

Keys without a policy are looked up in the answers under their own name.
"""

import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Union

from .errors import DestinationExists, TemplateCorrupt, WriteFailed
from .questions import is_open_access

ENV_EXAMPLE_FILENAME = ".env.example"
ENV_FILENAME = ".env"
AUTH_DISABLED_KEY = "DISABLE_AUTH"
COMMENT_PREFIX = "#"


def generate_secret() -> str:
    return secrets.token_hex(32)


@dataclass(frozen=True)
class Passthrough:
    text: str


@dataclass(frozen=True)
class KeyValue:
    key: str
    raw_value: str


EnvLine = Union[Passthrough, KeyValue]


@dataclass(frozen=True)
class FromAnswer:
    answer_key: str


@dataclass(frozen=True)
class GeneratedSecret:
    pass


@dataclass(frozen=True)
class ComputedFlag:
    predicate: Callable[[Mapping[str, Any]], bool]


KeyRule = Union[FromAnswer, GeneratedSecret, ComputedFlag]
EnvKeyPolicy = Mapping[str, KeyRule]

DEFAULT_ENV_POLICY: dict[str, KeyRule] = {
    "OPENAI_KEY": FromAnswer("openAiKey"),
    "MONGO_URI": FromAnswer("mongoUri"),
    "STORAGE_NAME": FromAnswer("storageName"),
    "STORAGE_REGION": FromAnswer("storageRegion"),
    "STORAGE_URL": FromAnswer("storageUrl"),
    "STORAGE_KEY": FromAnswer("storageKey"),
    "STORAGE_SECRET": FromAnswer("storageSecret"),
    "PINECONE_API_KEY": FromAnswer("pineconeApiKey"),
    "PINECONE_INDEX_HOST": FromAnswer("pineconeIndexHost"),
    "JWT_SECRET": GeneratedSecret(),
    "EMBEDDINGS_BEARER_TOKEN": GeneratedSecret(),
    AUTH_DISABLED_KEY: ComputedFlag(is_open_access),
}


def parse_line(line: str) -> EnvLine:
    """Classify one template line (line ending included) by splitting on the first ``=``."""
    if line.strip() == "" or line.startswith(COMMENT_PREFIX):
        return Passthrough(line)
    key, _, raw_value = line.rstrip("\r\n").partition("=")
    return KeyValue(key.strip(), raw_value)


def _answer_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


class _SecretPool:
    """Hands out secrets that are unique within one materialization."""

    def __init__(self, factory: Callable[[], str]):
        self._factory = factory
        self._issued: set[str] = set()

    def take(self) -> str:
        value = self._factory()
        while value in self._issued:
            value = self._factory()
        self._issued.add(value)
        return value


def resolve_value(key: str, answers: Mapping[str, Any], policy: EnvKeyPolicy, secret: Callable[[], str]) -> str:
    rule = policy.get(key, FromAnswer(key))
    if isinstance(rule, GeneratedSecret):
        return secret()
    if isinstance(rule, ComputedFlag):
        return "true" if rule.predicate(answers) else "false"
    return _answer_text(answers.get(rule.answer_key))


def render_lines(
    lines: list[str],
    answers: Mapping[str, Any],
    policy: EnvKeyPolicy = DEFAULT_ENV_POLICY,
    secret_factory: Callable[[], str] = generate_secret,
) -> list[str]:
    """Render template lines (with their line endings) into ``.env`` lines."""
    pool = _SecretPool(secret_factory)
    rendered = []
    keys = set()
    for line in lines:
        parsed = parse_line(line)
        if isinstance(parsed, Passthrough):
            rendered.append(parsed.text)
            continue
        keys.add(parsed.key)
        rendered.append(f"{parsed.key}={resolve_value(parsed.key, answers, policy, pool.take)}\n")

    if is_open_access(answers) and AUTH_DISABLED_KEY not in keys:
        if rendered and not rendered[-1].endswith("\n"):
            rendered[-1] += "\n"
        rendered.append(f"{AUTH_DISABLED_KEY}=true\n")
    return rendered


def materialize_env(
    template_path: Path,
    dest_path: Path,
    answers: Mapping[str, Any],
    policy: EnvKeyPolicy = DEFAULT_ENV_POLICY,
    secret_factory: Callable[[], str] = generate_secret,
) -> Path:
    """Write ``dest_path`` from ``template_path``; never overwrites an existing file."""
    if not template_path.is_file():
        raise TemplateCorrupt(f"{template_path.name} is missing from the cloned template ({template_path})")

    try:
        dest = open(dest_path, "x", encoding="utf-8", newline="")
    except FileExistsError as e:
        raise DestinationExists(f"{dest_path} already exists; refusing to overwrite it") from e
    except OSError as e:
        raise WriteFailed(f"Could not create {dest_path}: {e}") from e

    with dest:
        try:
            # utf-8-sig drops a leading BOM so the first key still matches
            with open(template_path, encoding="utf-8-sig", newline="") as fh:
                lines = fh.readlines()
            dest.writelines(render_lines(lines, answers, policy, secret_factory))
        except (OSError, UnicodeDecodeError) as e:
            raise WriteFailed(f"Failed to create {dest_path.name}: {e}") from e
    return dest_path


def env_paths(project_path: Path) -> tuple[Path, Path]:
    """``(template, destination)`` paths inside a cloned project."""
    return project_path / ENV_EXAMPLE_FILENAME, project_path / ENV_FILENAME
