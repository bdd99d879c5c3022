"""Where saved files go and what they are called.

``noah-tools/calculators/simple-calculator-2025-10-01.html``
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from noah.filesystem.types import FileCategory

CATEGORY_DIRECTORIES = {
    FileCategory.TOOL: "noah-tools",
    FileCategory.THINKING: "noah-thinking",
    FileCategory.CONVERSATION: "noah-sessions",
    FileCategory.REPORT: "noah-reports",
}

# First match wins; tools without a match land in "utilities"
TOOL_SUBCATEGORIES = (
    ("calculators", ("calculator", "calc", "compute", "math")),
    ("timers", ("timer", "stopwatch", "countdown", "clock")),
    ("converters", ("converter", "convert", "unit", "currency")),
    ("generators", ("generator", "generate", "random", "password")),
    ("data-tools", ("chart", "graph", "visualize", "data", "table", "list")),
    ("forms", ("form", "survey", "questionnaire", "input")),
    ("games", ("game", "quiz", "puzzle")),
    ("utilities", ("utility", "tool", "helper")),
)
DEFAULT_SUBCATEGORY = "utilities"
MAX_TITLE_LENGTH = 50

PathLike = Union[str, Path]


class FileNamingStrategy:
    @classmethod
    def generate_file_path(
        cls,
        title: str,
        category: FileCategory,
        file_type: str,
        timestamp: Optional[datetime] = None,
    ) -> str:
        category = FileCategory(category)
        when = timestamp or datetime.now()
        filename = f"{cls.sanitize_title(title) or 'untitled'}-{when:%Y-%m-%d}.{file_type}"

        parts = [CATEGORY_DIRECTORIES[category]]
        subcategory = cls.determine_subcategory(title, category)
        if subcategory:
            parts.append(subcategory)
        parts.append(filename)
        return "/".join(parts)

    @staticmethod
    def determine_subcategory(title: str, category: FileCategory) -> Optional[str]:
        if FileCategory(category) is not FileCategory.TOOL:
            return None
        lowered = title.lower()
        for subcategory, keywords in TOOL_SUBCATEGORIES:
            if any(keyword in lowered for keyword in keywords):
                return subcategory
        return DEFAULT_SUBCATEGORY

    @staticmethod
    def sanitize_title(title: str) -> str:
        slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
        slug = re.sub(r"\s+", "-", slug)
        slug = re.sub(r"-+", "-", slug).strip("-")
        return slug[:MAX_TITLE_LENGTH]

    @staticmethod
    def is_path_allowed(file_path: PathLike, allowed_dirs: Iterable[PathLike]) -> bool:
        """True when the resolved path sits inside one of ``allowed_dirs``.

        Compares resolved paths, not string prefixes: ``noah-tools-evil`` is
        not inside ``noah-tools`` and ``noah-tools/../etc`` resolves away.
        """
        resolved = Path(file_path).resolve()
        return any(resolved.is_relative_to(Path(allowed).resolve()) for allowed in allowed_dirs)

    @staticmethod
    def determine_file_type(title: str, content: str) -> str:
        if "<!DOCTYPE" in content or "<html" in content:
            return "html"
        if "function " in content or "const " in content or "export " in content:
            return "js"
        if "def " in content or "import " in content:
            return "py"
        stripped = content.strip()
        if stripped.startswith(("{", "[")):
            try:
                json.loads(stripped)
                return "json"
            except ValueError:
                pass
        return "txt"
