"""Error kinds raised by the scaffolding pipeline."""


class ScaffoldError(Exception):
    """Base class for every failure that terminates a run."""

    title = "Setup Failed"


class UnsupportedRuntime(ScaffoldError):
    title = "Unsupported Runtime"


class NoAccess(ScaffoldError):
    title = "No Repository Access"


class DestinationExists(ScaffoldError):
    title = "Directory Conflict"


class CloneFailed(ScaffoldError):
    title = "Clone Failed"


class InstallFailed(ScaffoldError):
    title = "Install Failed"


class TemplateCorrupt(ScaffoldError):
    title = "Template Corrupt"


class WriteFailed(ScaffoldError):
    title = "Write Failed"


class LaunchFailed(ScaffoldError):
    title = "Launch Failed"


# Raised before anything is written to disk
PRECONDITION_ERRORS = (UnsupportedRuntime, NoAccess, DestinationExists)
