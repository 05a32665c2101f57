import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator


class Settings(BaseModel):
    # Top-level package whose frames are marked as application code
    target_package: Optional[str] = None

    # Editor URI template, e.g. "vscode://file/__FILE__:__LINE__"
    editor: Optional[str] = None

    @field_validator("target_package", "editor")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


def load_settings(target_package: Optional[str] = None, env_file: Optional[str] = None) -> Settings:
    if env_file:
        load_dotenv(dotenv_path=env_file, override=False)
    return Settings(
        target_package=target_package or os.getenv("DEBUGPAGE_TARGET_PACKAGE"),
        editor=os.getenv("DEBUGPAGE_EDITOR"),
    )
