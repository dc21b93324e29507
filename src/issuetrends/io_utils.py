"""Filesystem helpers for the command-line entry point."""

from __future__ import annotations

import json
import re
from pathlib import Path

from .models import IssueSummaryResult, PaperInput

TEXT_SUFFIXES = (".md", ".txt")
MARKDOWN_H1_PATTERN = re.compile(r"^\s*#\s+(.+?)\s*$")


def discover_text_paths(input_path: Path, max_files: int | None = None) -> list[Path]:
    if input_path.is_file():
        paths = [input_path] if input_path.suffix.lower() in TEXT_SUFFIXES else []
    else:
        paths = sorted(
            path
            for path in input_path.rglob("*")
            if path.is_file() and path.suffix.lower() in TEXT_SUFFIXES
        )

    if max_files is not None:
        return paths[:max_files]
    return paths


def _title_from_text(text: str, fallback: str) -> str:
    for line in text.splitlines():
        match = MARKDOWN_H1_PATTERN.match(line)
        if match:
            return match.group(1)
    return fallback


def load_papers_from_json(path: Path) -> list[PaperInput]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("papers", [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of papers in {path}")
    return [
        PaperInput(
            id=str(item.get("id") or ""),
            title=str(item.get("title") or ""),
            text=str(item.get("text") or item.get("full_text") or item.get("abstract") or ""),
        )
        for item in payload
    ]


def load_papers_from_dir(input_root: Path, max_files: int | None = None) -> list[PaperInput]:
    papers: list[PaperInput] = []
    for path in discover_text_paths(input_root, max_files=max_files):
        relative = (
            Path(path.name) if input_root.is_file() else path.relative_to(input_root)
        )
        text = path.read_text(encoding="utf-8")
        papers.append(
            PaperInput(
                id=relative.with_suffix("").as_posix(),
                title=_title_from_text(text, fallback=path.stem),
                text=text,
            )
        )
    return papers


def load_papers(input_path: Path, max_files: int | None = None) -> list[PaperInput]:
    if input_path.is_file() and input_path.suffix.lower() == ".json":
        papers = load_papers_from_json(input_path)
        return papers[:max_files] if max_files is not None else papers
    return load_papers_from_dir(input_path, max_files=max_files)


def write_result_json(result: IssueSummaryResult, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(result.to_dict(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return output_path
