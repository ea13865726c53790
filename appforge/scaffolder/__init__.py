"""appforge scaffolder -- renders and writes a Flutter project.

Takes a ``ProjectContext`` and renders the core template tree plus the tree
of every enabled module, merges module dependencies into ``pubspec.yaml``,
writes the files and runs the Dart/Flutter post-processors.

Quick usage::

    from appforge.config import ForgeConfig
    from appforge.context import create_project_context
    from appforge.scaffolder import ScaffoldEngine

    config = ForgeConfig.from_cli("my_app", org_id="com.example", modules=["auth"])
    context = create_project_context(config, "./my_app")
    result = await ScaffoldEngine().run(context)
"""

from appforge.scaffolder.engine import AddResult, GeneratedFile, ScaffoldEngine, ScaffoldResult
from appforge.scaffolder.file_writer import FileWriter, OverwriteMode, WriteOutcome, WriteResult
from appforge.scaffolder.templates import TemplateRenderer

__all__ = [
    "AddResult",
    "FileWriter",
    "GeneratedFile",
    "OverwriteMode",
    "ScaffoldEngine",
    "ScaffoldResult",
    "TemplateRenderer",
    "WriteOutcome",
    "WriteResult",
]
