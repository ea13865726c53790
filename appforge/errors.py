"""Exception hierarchy for appforge.

Configuration and structural errors are raised before any file is rendered
or written.  Post-processor failures are the only errors the scaffold engine
catches itself; they end up in ``ScaffoldResult.post_processor_errors``.
"""

from __future__ import annotations


class AppForgeError(Exception):
    """Base class for every error raised by appforge."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigError(AppForgeError):
    """Raised when a project configuration file is unreadable or invalid."""


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


class ModuleError(AppForgeError):
    """Base class for module registry / resolution errors."""


class DuplicateModuleError(ModuleError):
    """Raised when a module id is registered twice."""

    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        super().__init__(f"Module '{module_id}' is already registered")


class InvalidManifestError(ModuleError):
    """Raised when a module manifest fails structural validation."""

    def __init__(self, source: str, field: str, message: str) -> None:
        self.source = source
        self.field = field
        super().__init__(
            f"Module from '{source}' has invalid manifest: '{field}' {message}"
        )


class UnknownModuleError(ModuleError):
    """Raised when a requested or required module is not in the registry."""

    def __init__(self, module_id: str, required_by: str | None = None) -> None:
        self.module_id = module_id
        self.required_by = required_by
        if required_by:
            message = (
                f"Module '{required_by}' requires '{module_id}', "
                f"but '{module_id}' was not found in registry"
            )
        else:
            message = f"Module '{module_id}' not found in registry"
        super().__init__(message)


class CyclicDependencyError(ModuleError):
    """Raised when ``requires`` edges form a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(
            f"Circular dependency detected among modules: {' -> '.join(cycle)}"
        )


class ModuleConflictError(ModuleError):
    """Raised when two selected modules declare each other as conflicting."""

    def __init__(self, module_id: str, conflicting_id: str) -> None:
        self.module_id = module_id
        self.conflicting_id = conflicting_id
        super().__init__(
            f"Module '{module_id}' conflicts with '{conflicting_id}'; "
            "they cannot be used together"
        )


class ModuleAlreadyEnabledError(ModuleError):
    """Raised by ``appforge add`` for a module the project already uses."""

    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        super().__init__(f"Module '{module_id}' is already enabled in this project")


class IncomparableVersionError(ModuleError):
    """Raised when two differing version strings have no numeric part to compare."""

    def __init__(self, a: str, b: str) -> None:
        self.a = a
        self.b = b
        super().__init__(f"Cannot compare version constraints {a!r} and {b!r}")


class VersionConflictError(ModuleError):
    """Raised when two modules pin one package to incomparable constraints."""

    def __init__(self, package: str, a: str, b: str) -> None:
        self.package = package
        self.a = a
        self.b = b
        super().__init__(
            f"Conflicting constraints for package '{package}': {a!r} vs {b!r}"
        )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TemplateError(AppForgeError):
    """Base class for template discovery and rendering errors."""


class TemplateNotFoundError(TemplateError):
    """Raised when a required template root or file does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Template not found: {path}")


class TemplateRenderError(TemplateError):
    """Raised when Jinja2 fails to compile or render a template."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Failed to render template {source}: {message}")


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------


class PostProcessorError(AppForgeError):
    """Raised by a post-processor when its external tool fails."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(message)
