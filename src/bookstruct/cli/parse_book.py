"""CLI command that recovers paragraphs and chapters from PDF or TXT books."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from bookstruct.extraction.config import ExtractionSettings
from bookstruct.extraction.selector import ExtractionStrategySelector
from bookstruct.structure.config import StructureSettings
from bookstruct.structure.errors import StructureError
from bookstruct.structure.pipeline import StructureParser, save_paragraphs, split_paragraphs


load_dotenv()

LOGGER = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".pdf", ".txt"}


def _collect_inputs(target: Path) -> list[Path]:
    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(
            path for path in target.rglob("*") if path.is_file() and path.suffix.lower() in _SUPPORTED_SUFFIXES
        )
    return []


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recover paragraphs and chapters from extracted book text")
    parser.add_argument("--path", required=True, help="Source .pdf/.txt file or directory")
    parser.add_argument(
        "--mode",
        choices=("structure", "paragraphs"),
        default="structure",
        help="'structure' detects chapters and metadata, 'paragraphs' only splits paragraphs",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Write <name>_structure.json or <name>_paragraphs.txt files into this directory",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def _process_file(
    file_path: Path,
    *,
    mode: str,
    output_dir: Path | None,
    selector: ExtractionStrategySelector,
    parser: StructureParser,
) -> dict[str, object]:
    extracted = await selector.select(file_path.read_bytes())

    if mode == "paragraphs":
        paragraphs = split_paragraphs(extracted.text, parser.settings)
        row: dict[str, object] = {
            "source_path": str(file_path),
            "extraction_method": extracted.method.value,
            "paragraph_count": len(paragraphs),
        }
        if output_dir is not None:
            written = save_paragraphs(paragraphs, output_dir / f"{file_path.stem}_paragraphs.txt")
            row["output_path"] = str(written)
        return row

    structure = parser.parse_text(
        extracted.text,
        extracted.method,
        title_hint=extracted.title,
        author_hint=extracted.author,
    )
    row = {
        "source_path": str(file_path),
        "title": structure.title,
        "author": structure.author,
        "extraction_method": structure.extraction_method,
        "has_chapters": structure.has_chapters,
        "chapter_titles": [chapter.title for chapter in structure.chapters],
        "paragraph_count": len(structure.paragraphs()),
    }
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{file_path.stem}_structure.json"
        output_path.write_text(json.dumps(structure.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        row["output_path"] = str(output_path)
    return row


async def _run(args: argparse.Namespace) -> int:
    try:
        extraction = ExtractionSettings.from_env()
        settings = StructureSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    source_path = Path(args.path)
    output_dir = Path(args.output_dir) if args.output_dir else None
    selector = ExtractionStrategySelector(extraction)
    parser = StructureParser(settings)

    results: list[dict[str, object]] = []
    errors: list[dict[str, str]] = []

    for file_path in _collect_inputs(source_path):
        try:
            row = await _process_file(
                file_path,
                mode=args.mode,
                output_dir=output_dir,
                selector=selector,
                parser=parser,
            )
        except (StructureError, OSError) as exc:
            errors.append({"source_path": str(file_path), "error": str(exc)})
            continue
        results.append(row)

    payload = {
        "path": str(source_path),
        "mode": args.mode,
        "processed": len(results),
        "results": results,
        "errors": errors,
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if not errors else 1


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
