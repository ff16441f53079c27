from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from relay.errors import ConfigurationError

PROMPT_DIR = Path(__file__).resolve().parent

RECEPTIONIST_PROMPT = "receptionist.txt"
COMPLAINTS_PROMPT = "complaints.txt"


@lru_cache(maxsize=8)
def load_prompt(filename: str) -> str:
    """Load a prompt text file shipped with the codebase."""

    path = PROMPT_DIR / filename
    if not path.is_file():
        raise ConfigurationError(f"Prompt file not found: {filename}")
    return path.read_text(encoding="utf-8").strip() + "\n"


def build_instructions(*, enable_complaints: bool = False) -> str:
    """System instructions for the realtime session, plus the complaint section when enabled."""

    sections = [load_prompt(RECEPTIONIST_PROMPT)]
    if enable_complaints:
        sections.append(load_prompt(COMPLAINTS_PROMPT))
    return "".join(sections)
