"""Minimal example: index a local PDF, search it and dump its figures."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import sys
from pathlib import Path

from pdfstruct import ChunkingOptions, generate_diagnostic_summary, open_pdf

# Render scale used for screen-space bounding boxes
RENDER_SCALE = float(os.getenv("PDFSTRUCT_SCALE", "1.5"))


def _progress(current: int, total: int) -> None:
    print(f"\r  page {current}/{total}", end="", flush=True)
    if current == total:
        print()


async def main(pdf_path: Path, query: str, out_dir: Path | None) -> None:
    content = base64.b64encode(pdf_path.read_bytes()).decode("ascii")
    session = await open_pdf(
        content=content, filename=pdf_path.name, scale=RENDER_SCALE
    )

    with session:
        print(f"{session.filename}: {session.num_pages} pages")

        pages, report = await session.load_all_pages(_progress)
        print(report.summary())

        for hit in await session.search(query):
            print(f"p{hit.page} @{hit.position}: ...{hit.context}...")
            print(f"    box={hit.bounding_box}")

        chunks = await session.semantic_chunks(
            ChunkingOptions(max_chunk_size=1500, overlap_size=150)
        )
        print(f"{len(chunks)} semantic chunks over {len(pages)} readable pages")

        figures = await session.extract_figures(on_progress=_progress)
        print(generate_diagnostic_summary(figures.diagnostics))

        if out_dir is not None:
            out_dir.mkdir(parents=True, exist_ok=True)
            for figure in figures.figures:
                (out_dir / f"{figure.id}.png").write_bytes(figure.to_png())


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
    if len(sys.argv) < 3:
        print("usage: simple_example.py FILE.pdf QUERY [FIGURE_DIR]")
        raise SystemExit(2)

    figure_dir = Path(sys.argv[3]) if len(sys.argv) > 3 else None
    asyncio.run(main(Path(sys.argv[1]), sys.argv[2], figure_dir))
