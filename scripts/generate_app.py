"""Generate an app from the command line and save or export it.

Streams ``POST /api/generate`` from a running service, prints the active
section as it changes and writes the final files.

Usage:
    python scripts/generate_app.py "a pomodoro timer" --out ./timer
    python scripts/generate_app.py "a todo list" --save "Todo" --user-id u-123
    python scripts/generate_app.py "a todo list" --save "Todo"          # guest, local file
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from client.generator_client import GenerationClient  # noqa: E402
from client.local_store import DEFAULT_PATH, LocalProjectStore  # noqa: E402
from client.render_driver import ViewState  # noqa: E402
from errors.exceptions import AppBuilderError  # noqa: E402
from models.artifact import GeneratedArtifact  # noqa: E402
from models.events import SectionGrammar  # noqa: E402

logger = logging.getLogger("generate_app")


def write_files(artifact: GeneratedArtifact, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "index.html").write_text(artifact.html, encoding="utf-8")
    (out_dir / "style.css").write_text(artifact.css, encoding="utf-8")
    (out_dir / "script.js").write_text(artifact.js, encoding="utf-8")
    print(f"  Wrote index.html, style.css, script.js to {out_dir}")


async def main(args: argparse.Namespace) -> int:
    last_active = None

    def on_change(state: ViewState) -> None:
        nonlocal last_active
        if state.active != last_active:
            last_active = state.active
            print(f"  … writing {state.active.value}")
        if state.banner:
            print(state.banner)

    grammar = SectionGrammar(args.grammar) if args.grammar else None
    async with GenerationClient(args.host, user_id=args.user_id) as client:
        try:
            artifact = await client.generate(args.prompt, grammar=grammar, on_change=on_change)
        except AppBuilderError as exc:
            print(f"Generation failed: {exc}", file=sys.stderr)
            return 1

        print(
            f"  html={len(artifact.html)} css={len(artifact.css)} js={len(artifact.js)} chars"
        )
        if args.out:
            write_files(artifact, Path(args.out))

        if args.save:
            if args.user_id:
                project = await client.save_project(args.save, artifact)
                print(f"  Saved project {project.id} to your account")
            else:
                project = await LocalProjectStore(args.store).save(args.save, artifact)
                print(f"  Saved project {project.id} locally ({args.store})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate an app from a prompt")
    parser.add_argument("prompt", help="What to build")
    parser.add_argument("--host", default="http://localhost:5000", help="Service URL")
    parser.add_argument("--grammar", choices=[g.value for g in SectionGrammar], help="Section grammar override")
    parser.add_argument("--out", help="Directory to write index.html/style.css/script.js")
    parser.add_argument("--save", metavar="NAME", help="Save the result as a project")
    parser.add_argument("--user-id", help="Signed-in user id; omit to save locally as a guest")
    parser.add_argument("--store", default=str(DEFAULT_PATH), help="Local project file for guests")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    sys.exit(asyncio.run(main(args)))
