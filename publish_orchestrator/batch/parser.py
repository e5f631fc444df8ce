"""Job file parser for batch publishing.

Supports YAML and JSON job files describing one piece of content and the
targets it should be published to.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from publish_orchestrator.exceptions import TaskParseError
from publish_orchestrator.models import PublishOptions


class JobDefinition(BaseModel):
    """A publish job read from a job file."""

    title: str = Field(description="Content title")
    content: str | None = Field(default=None, description="Inline content")
    content_file: str | None = Field(
        default=None,
        description="Content file path (relative to the job file)",
    )
    targets: list[str] = Field(min_length=1, description="Target kinds")
    options: PublishOptions = Field(default_factory=PublishOptions)

    @model_validator(mode="after")
    def check_content_source(self) -> "JobDefinition":
        """Exactly one of content and content_file must be given."""
        if (self.content is None) == (self.content_file is None):
            raise ValueError("specify exactly one of 'content' or 'content_file'")
        return self


class JobParser:
    """Parser for YAML and JSON job files."""

    def __init__(self, base_path: Path | str | None = None):
        """Initialize parser.

        Args:
            base_path: Base path for resolving content_file in string input.
        """
        self.base_path = Path(base_path) if base_path else Path.cwd()

    def parse(self, file_path: str | Path) -> JobDefinition:
        """Parse a job file, loading content_file relative to it.

        Raises:
            TaskParseError: If file reading, parsing or validation fails.
            FileNotFoundError: If file does not exist.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Job file not found: {path}")

        content = self._read_file(path)
        data = self._parse_content(content, path)
        return self._create_job(data, str(path), path.parent)

    def parse_string(
        self,
        content: str,
        format_type: str = "yaml",
        file_path: str | None = None,
    ) -> JobDefinition:
        """Parse job content from a string.

        Raises:
            TaskParseError: If parsing or validation fails.
        """
        data = self._parse_string(content, format_type, file_path)
        return self._create_job(data, file_path, self.base_path)

    def _read_file(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise TaskParseError(f"Failed to read file: {e}", str(path)) from None

    def _parse_content(self, content: str, path: Path) -> dict[str, Any]:
        """Parse file content based on file extension."""
        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            return self._parse_string(content, "yaml", str(path))
        elif suffix == ".json":
            return self._parse_string(content, "json", str(path))
        else:
            # Try YAML first, then JSON
            try:
                return self._parse_string(content, "yaml", str(path))
            except TaskParseError:
                return self._parse_string(content, "json", str(path))

    def _parse_string(
        self,
        content: str,
        format_type: str,
        file_path: str | None,
    ) -> dict[str, Any]:
        try:
            if format_type == "yaml":
                data = yaml.safe_load(content)
            elif format_type == "json":
                data = json.loads(content)
            else:
                raise TaskParseError(f"Unsupported format: {format_type}", file_path)
        except yaml.YAMLError as e:
            raise TaskParseError(f"Invalid YAML: {e}", file_path) from None
        except json.JSONDecodeError as e:
            raise TaskParseError(f"Invalid JSON: {e}", file_path) from None

        if not isinstance(data, dict):
            raise TaskParseError("Job file must contain a mapping", file_path)
        return data

    def _create_job(
        self,
        data: dict[str, Any],
        file_path: str | None,
        base_dir: Path,
    ) -> JobDefinition:
        try:
            job = JobDefinition.model_validate(data)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'job'}: {err['msg']}" for err in e.errors()
            )
            raise TaskParseError(f"Invalid job definition: {errors}", file_path) from None

        if job.content_file is not None:
            content_path = Path(job.content_file)
            if not content_path.is_absolute():
                content_path = base_dir / content_path
            try:
                content = content_path.read_text(encoding="utf-8")
            except OSError as e:
                raise TaskParseError(f"Failed to read content file: {e}", file_path) from None
            job = job.model_copy(update={"content": content})

        return job
