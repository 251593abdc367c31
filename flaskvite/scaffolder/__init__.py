"""flaskvite scaffolder -- generates Flask + Vite project structures.

Quick usage::

    from flaskvite.config import Settings
    from flaskvite.scaffolder import ProjectGenerator

    generator = ProjectGenerator(Settings(projects_dir=Path("./projects")))
    project_path = await generator.generate("demo", port=5000)
"""

from flaskvite.scaffolder.generator import GenerationStage, ProjectGenerator
from flaskvite.scaffolder.templates import TemplateRenderer

__all__ = [
    "GenerationStage",
    "ProjectGenerator",
    "TemplateRenderer",
]
