"""Template repository access: probing, selection and invocation parsing."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import DEFAULT_PROJECT_NAME, PURCHASE_URL, Settings
from .errors import NoAccess


class RepoLabel(str, Enum):
    GROWTH = "growth"
    STARTER = "starter"


REPO_TYPE_CHOICES = {
    RepoLabel.GROWTH.value: "Growth - full StartKit.AI template",
    RepoLabel.STARTER.value: "Starter - core StartKit.AI template",
}


@dataclass(frozen=True)
class TemplateSource:
    identifier: str
    label: RepoLabel


@dataclass(frozen=True)
class AccessResult:
    growth_reachable: bool
    starter_reachable: bool

    @property
    def any_reachable(self) -> bool:
        return self.growth_reachable or self.starter_reachable


def parse_invocation(args: Sequence[Optional[str]]) -> tuple[Optional[RepoLabel], str]:
    """Split positional arguments into ``(repo type override, project name)``.

    A first argument that is not a known repo type is treated as the project name.
    """
    first = args[0] if len(args) > 0 else None
    second = args[1] if len(args) > 1 else None
    if first in REPO_TYPE_CHOICES:
        return RepoLabel(first), second or DEFAULT_PROJECT_NAME
    return None, first or DEFAULT_PROJECT_NAME


def check_access(settings: Settings, is_reachable: Callable[[str], bool]) -> AccessResult:
    """Check both template repositories independently."""
    return AccessResult(
        growth_reachable=bool(is_reachable(settings.growth_repo)),
        starter_reachable=bool(is_reachable(settings.starter_repo)),
    )


def resolve_template_source(
    access: AccessResult,
    settings: Settings,
    override: Optional[RepoLabel] = None,
) -> TemplateSource:
    """Pick the template to clone.

    An explicit override wins even if that repository was not reachable; the
    clone step reports the failure. Without one, growth is preferred.
    """
    if not access.any_reachable:
        raise NoAccess(
            "It looks like you don't have access to the StartKit.AI repo, "
            f"you need to purchase access from {PURCHASE_URL}."
        )
    if override is RepoLabel.GROWTH:
        return TemplateSource(settings.growth_repo, RepoLabel.GROWTH)
    if override is RepoLabel.STARTER:
        return TemplateSource(settings.starter_repo, RepoLabel.STARTER)
    if access.growth_reachable:
        return TemplateSource(settings.growth_repo, RepoLabel.GROWTH)
    return TemplateSource(settings.starter_repo, RepoLabel.STARTER)
