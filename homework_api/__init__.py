"""Homework review API gateway.

Loads environment variables from a project-root .env file before any module
reads its configuration.
"""

from pathlib import Path

from dotenv import load_dotenv

_env_file = Path(__file__).resolve().parent.parent / ".env"
if _env_file.exists():
    load_dotenv(dotenv_path=_env_file, override=False)
