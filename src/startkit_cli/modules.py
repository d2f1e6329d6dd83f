"""Optional feature modules shipped in the template and pruning of unused ones."""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional


@dataclass(frozen=True)
class FeatureModule:
    display_name: str
    relative_path: str


FEATURE_MODULES = (
    FeatureModule("Chat", "modules/chat"),
    FeatureModule("Image Generation", "modules/images"),
    FeatureModule("Text-to-Speech", "modules/tts"),
    FeatureModule("Speech-to-Text", "modules/stt"),
    FeatureModule("Translation", "modules/translation"),
    FeatureModule("Moderation", "modules/moderation"),
    FeatureModule("AI Detection", "modules/ai-detection"),
)


def selects_all(selected: Optional[Iterable[str]], registry: Iterable[FeatureModule] = FEATURE_MODULES) -> bool:
    if selected is None:
        return True
    chosen = set(selected)
    return all(module.display_name in chosen for module in registry)


def _remove(path: Path) -> bool:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False


def prune_modules(
    project_path: Path,
    selected: Optional[Iterable[str]],
    registry: Iterable[FeatureModule] = FEATURE_MODULES,
) -> list[FeatureModule]:
    """Delete every registered module that is not in ``selected``.

    Returns the modules that were removed. A ``None`` selection or one that
    names every module leaves the tree untouched; missing paths are skipped.
    """
    registry = tuple(registry)
    if selects_all(selected, registry):
        return []
    chosen = set(selected)
    removed = []
    for module in registry:
        if module.display_name in chosen:
            continue
        if _remove(project_path / module.relative_path):
            removed.append(module)
    return removed
