"""
Agent Analyzer: Source Normalization

Turns any supported agent source into an ``AnalyzedAgent`` (name,
description, content, metadata) for capability detection.
"""

from __future__ import annotations

import json
import re
from pathlib import Path, PurePath
from typing import Any, Callable, Mapping

import yaml

from trustroute._logging import get_logger
from trustroute.errors import SourceAnalysisError, UnsupportedSourceError

from .models import (
    AgentSource,
    AnalyzedAgent,
    FileSource,
    JsonSource,
    MarkdownSource,
    StructuredSource,
)

logger = get_logger("AgentAnalyzer")

UNKNOWN_AGENT = "unknown-agent"
MAX_DESCRIPTION_LENGTH = 300

FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)
HEADING_PATTERN = re.compile(r"^#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)

MARKDOWN_SUFFIXES = (".md", ".markdown")
YAML_SUFFIXES = (".yaml", ".yml")


def _parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from the markdown body.

    Malformed frontmatter yields empty metadata and the full text as body.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        logger.warning("frontmatter_unparseable", error=str(exc))
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end():]


def _first_paragraph(body: str) -> str:
    for block in re.split(r"\n\s*\n", body.strip()):
        block = block.strip()
        if not block or block.startswith("#"):
            continue
        paragraph = " ".join(line.strip() for line in block.splitlines())
        if len(paragraph) < MAX_DESCRIPTION_LENGTH:
            return paragraph
        return ""
    return ""


def _name_from_path(path: str) -> str:
    name = PurePath(path).name
    for suffix in MARKDOWN_SUFFIXES:
        name = name.removesuffix(suffix)
    return name.removesuffix(".agent")


def _string_field(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class AgentAnalyzer:
    """Normalizes markdown, structured, JSON and file agent sources."""

    def __init__(self) -> None:
        self._handlers: dict[type, Callable[[Any], AnalyzedAgent]] = {
            MarkdownSource: self._analyze_markdown,
            StructuredSource: self._analyze_structured,
            JsonSource: self._analyze_json,
            FileSource: self._analyze_file,
        }

    def analyze(self, source: AgentSource) -> AnalyzedAgent:
        """Analyze a source.

        Raises:
            UnsupportedSourceError: For an unknown source variant or file type
            SourceAnalysisError: When a file cannot be read or JSON decoded
        """
        handler = self._handlers.get(type(source))
        if handler is None:
            raise UnsupportedSourceError(
                f"Unsupported agent source type: {type(source).__name__}"
            )
        return handler(source)

    def _analyze_markdown(self, source: MarkdownSource) -> AnalyzedAgent:
        metadata, body = _parse_frontmatter(source.content)

        name = _string_field(metadata, "name")
        if name is None and source.path:
            name = _name_from_path(source.path) or None
        if name is None:
            heading = HEADING_PATTERN.search(body)
            name = heading.group(1).strip() if heading else None

        description = _string_field(metadata, "description") or _first_paragraph(body)

        return AnalyzedAgent(
            name=name or UNKNOWN_AGENT,
            description=description,
            content=source.content,
            metadata=metadata,
        )

    def _analyze_structured(self, source: StructuredSource) -> AnalyzedAgent:
        return self._from_mapping(source.agent)

    def _analyze_json(self, source: JsonSource) -> AnalyzedAgent:
        definition = source.definition
        if isinstance(definition, str):
            try:
                definition = json.loads(definition)
            except json.JSONDecodeError as exc:
                raise SourceAnalysisError(f"Invalid JSON agent definition: {exc}") from exc
        agent = self._from_mapping(definition)
        if not agent.description:
            nested = agent.metadata.get("metadata")
            if isinstance(nested, Mapping):
                agent.description = _string_field(nested, "description") or ""
        return agent

    def _analyze_file(self, source: FileSource) -> AnalyzedAgent:
        path = Path(source.path)
        suffix = path.suffix.lower()
        if suffix not in (*MARKDOWN_SUFFIXES, ".json", *YAML_SUFFIXES):
            raise UnsupportedSourceError(f"Unsupported agent file type: {path.name}")

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceAnalysisError(f"Cannot read agent file {path}: {exc}") from exc

        if suffix in MARKDOWN_SUFFIXES:
            return self._analyze_markdown(MarkdownSource(content=text, path=str(path)))
        if suffix == ".json":
            return self._analyze_json(JsonSource(definition=text))

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SourceAnalysisError(f"Invalid YAML agent definition {path}: {exc}") from exc
        return self._analyze_structured(StructuredSource(agent=data))

    @staticmethod
    def _from_mapping(data: Any) -> AnalyzedAgent:
        if not isinstance(data, Mapping):
            raise SourceAnalysisError(
                f"Agent definition must be a mapping, got {type(data).__name__}"
            )
        name = _string_field(data, "name") or _string_field(data, "id") or UNKNOWN_AGENT
        return AnalyzedAgent(
            name=name,
            description=_string_field(data, "description") or "",
            content=json.dumps(dict(data), indent=2, sort_keys=True, default=str),
            metadata=dict(data),
        )
