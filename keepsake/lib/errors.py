"""Error types for the keepsake agent.

Every error is fatal: the agent has no local recovery path and relies on an
external supervisor to restart it.
"""


class KeepsakeError(Exception):
    """Base class for fatal agent errors.

    Attributes:
        context: Structured fields attached to the logged diagnostic
    """

    def __init__(self, message: str, context: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.context: dict[str, object] = context or {}


class ConfigurationError(KeepsakeError):
    """A required startup value is missing or invalid."""


class BackendError(KeepsakeError):
    """Vault request failed or returned a malformed response."""


class PersistenceError(KeepsakeError):
    """Writing a certificate artifact to disk failed."""

    def __init__(self, path: object, error: OSError) -> None:
        super().__init__(f"failed to write {path}: {error}", context={"file": str(path)})
        self.path = path


class HookError(KeepsakeError):
    """The post-issuance hook command failed to launch or exited non-zero."""

    def __init__(self, command: str, returncode: int | None, detail: str) -> None:
        context: dict[str, object] = {"cmd": command}
        if returncode is not None:
            context["returncode"] = returncode
        super().__init__(f"hook command failed: {detail}", context=context)
        self.command = command
        self.returncode = returncode
