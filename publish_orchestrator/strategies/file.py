"""File strategy writing content as Markdown documents to a directory."""

import re
import uuid
from datetime import datetime
from pathlib import Path

import aiofiles
import yaml
from jinja2 import Environment

from publish_orchestrator.models import PublishOptions, PublishResult
from publish_orchestrator.storage.session import SessionStore
from publish_orchestrator.strategies.base import PublishStrategy

DOCUMENT_TEMPLATE = """---
{{ front_matter }}---

# {{ title }}

{{ content }}
"""


def slugify(title: str, max_length: int = 48) -> str:
    """Turn a title into a file-name-safe slug."""
    slug = re.sub(r"[^\w]+", "-", title.strip().lower(), flags=re.UNICODE).strip("-")
    return slug[:max_length].rstrip("-") or "untitled"


class FileStrategy(PublishStrategy):
    """Publish by writing a Markdown file with YAML front matter.

    Every call writes a new uniquely named file, so concurrent publishes
    never touch the same path.
    """

    def __init__(
        self,
        kind: str,
        output_dir: str | Path,
        *,
        name: str | None = None,
        session_store: SessionStore | None = None,
    ):
        super().__init__(kind, name=name, session_store=session_store)
        self.output_dir = Path(output_dir)
        self._template = Environment(keep_trailing_newline=True).from_string(DOCUMENT_TEMPLATE)

    async def prepare(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        await super().prepare()

    def render(self, content: str, title: str, options: PublishOptions) -> str:
        front_matter = {
            "title": title,
            "date": datetime.now().isoformat(timespec="seconds"),
            "tags": options.tags,
            "categories": options.categories,
            "visibility": options.visibility,
        }
        if options.summary:
            front_matter["summary"] = options.summary

        return self._template.render(
            front_matter=yaml.safe_dump(front_matter, allow_unicode=True, sort_keys=False),
            title=title,
            content=content.strip(),
        )

    def _next_path(self, title: str) -> Path:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.output_dir / f"{stamp}_{slugify(title)}_{uuid.uuid4().hex[:6]}.md"

    async def publish(
        self,
        content: str,
        title: str,
        options: PublishOptions,
    ) -> PublishResult:
        path = self._next_path(title)
        document = self.render(content, title, options)

        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(document)

        self.logger.debug(f"Wrote {len(document)} chars to {path}")
        return PublishResult.succeeded(
            message=f"written to {self.name}",
            locator=path.resolve().as_uri(),
        )
