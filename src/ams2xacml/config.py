"""
ams2xacml Configuration Management

Run settings for a conversion. Defaults come from AMS2XACML_* environment
variables; command line options override them.
"""

from pathlib import Path
from typing import List, Optional
import os
import re

from pydantic import BaseModel, Field, field_validator

from ams2xacml.exceptions import InvalidNodeIdError
from ams2xacml.policy.expander import UNLIMITED_USERS, UsernameFormat

NODE_ID_PATTERN = re.compile(r"^MPI\d+#$")

DEFAULT_POLICIES_DIR = "generatedPolicies"


def validate_node_id(node_id: str) -> str:
    """
    Check a start node ID.

    Raises:
        InvalidNodeIdError: If it is not of the form 'MPI12345#'
    """
    if not NODE_ID_PATTERN.match(node_id):
        raise InvalidNodeIdError(
            f"Invalid start node ID: {node_id!r}, make sure it is in the form 'MPI12345#'"
        )
    return node_id


class ConversionConfig(BaseModel):
    """Configuration for a corpus structure to XACML conversion run."""

    # Corpus structure store
    db_path: str = Field(
        default_factory=lambda: os.getenv("AMS2XACML_DB_PATH", "corpusstructure.db")
    )
    db_timeout: float = Field(
        default_factory=lambda: os.getenv("AMS2XACML_DB_TIMEOUT", "30")
    )

    # Output
    policies_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("AMS2XACML_POLICIES_DIR", DEFAULT_POLICIES_DIR))
    )
    dry_run: bool = False

    # Policy generation
    max_users_per_group: Optional[int] = Field(
        default_factory=lambda: os.getenv("AMS2XACML_MAX_USERS_PER_GROUP")
    )
    username_format: UsernameFormat = Field(
        default_factory=lambda: os.getenv("AMS2XACML_USERNAME_FORMAT", "keep")
    )

    # Run
    start_node_ids: List[str] = Field(default_factory=list)
    workers: int = Field(
        default_factory=lambda: os.getenv("AMS2XACML_WORKERS", "1")
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("AMS2XACML_LOG_LEVEL", "INFO")
    )

    model_config = {"validate_default": True}

    @field_validator("start_node_ids")
    @classmethod
    def _check_node_ids(cls, value: List[str]) -> List[str]:
        for node_id in value:
            if not NODE_ID_PATTERN.match(node_id):
                raise ValueError(
                    f"Invalid start node ID: {node_id!r}, make sure it is in the form 'MPI12345#'"
                )
        return value

    @field_validator("max_users_per_group", mode="before")
    @classmethod
    def _normalize_threshold(cls, value):
        if value in (None, "", UNLIMITED_USERS, str(UNLIMITED_USERS)):
            return None
        if int(value) < 1:
            raise ValueError("max_users_per_group must be at least 1, or -1 for unlimited")
        return int(value)

    @field_validator("username_format", mode="before")
    @classmethod
    def _parse_username_format(cls, value):
        if isinstance(value, str):
            return UsernameFormat(value.strip().lower())
        return value

    @field_validator("workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("workers must be at least 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Unsupported log level: {value}")
        return level
