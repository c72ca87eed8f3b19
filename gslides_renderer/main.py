"""Entry-point for rendering a JSON slide model into Google Slides."""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from gslides_renderer.dispatch.slides_client import SlidesClient
from gslides_renderer.generator import SlideGenerator
from gslides_renderer.model.slide_model import SlideDefinition, slides_from_dict
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


def load_slides(path: Path) -> List[SlideDefinition]:
    """Read ``{"slides": [...]}`` JSON into slide definitions."""
    if not path.exists():
        raise FileNotFoundError(f"Slide model not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    slides = slides_from_dict(payload)
    LOGGER.info("Loaded %d slides from %s", len(slides), path.name)
    return slides


def build_generator(
    client: SlidesClient,
    *,
    presentation_id: Optional[str] = None,
    copy_of: Optional[str] = None,
    title: str = "Untitled presentation",
    parent_id: Optional[str] = None,
    settings: Optional[RenderSettings] = None,
    debug_dir: Optional[Path] = None,
) -> SlideGenerator:
    """Open, copy or create the target presentation."""
    options = {"settings": settings, "debug_dir": debug_dir}
    if copy_of:
        return SlideGenerator.copy_presentation(client, title, copy_of, parent_id, **options)
    if presentation_id:
        return SlideGenerator.for_presentation(client, presentation_id, **options)
    return SlideGenerator.new_presentation(client, title, **options)


def generate_from_file(
    client: SlidesClient,
    slides_file: Path,
    *,
    presentation_id: Optional[str] = None,
    copy_of: Optional[str] = None,
    title: Optional[str] = None,
    parent_id: Optional[str] = None,
    erase: bool = False,
    settings: Optional[RenderSettings] = None,
    debug_dir: Optional[Path] = None,
) -> str:
    """Run the slide model -> batch requests -> remote presentation pipeline."""
    slides = load_slides(slides_file)
    generator = build_generator(
        client,
        presentation_id=presentation_id,
        copy_of=copy_of,
        title=title or slides_file.stem,
        parent_id=parent_id,
        settings=settings or RenderSettings.from_env(),
        debug_dir=debug_dir,
    )
    if erase:
        generator.erase()
    result = generator.generate(slides)
    LOGGER.info("View your presentation at: https://docs.google.com/presentation/d/%s", result)
    return result


if __name__ == "__main__":  # pragma: no cover
    import argparse

    from google.oauth2.service_account import Credentials

    from gslides_renderer.dispatch.slides_client import SCOPES
    from gslides_renderer.utils.config import load_upload_key
    from gslides_renderer.utils.logger import set_verbosity

    parser = argparse.ArgumentParser(description="Render a JSON slide model into a Google Slides presentation")
    parser.add_argument("slides_file", help="Path to the slide model JSON")
    parser.add_argument("--credentials", required=True, help="Service account key file")
    parser.add_argument("--append", dest="presentation_id", help="Append to an existing presentation")
    parser.add_argument("--copy", dest="copy_of", help="Copy this presentation and render into the copy")
    parser.add_argument("--title", help="Title of the new presentation")
    parser.add_argument("--parent", help="Drive folder for a copied presentation")
    parser.add_argument("--erase", action="store_true", help="Delete existing slides first")
    parser.add_argument("--use-fileio", action="store_true", help="Upload local images to file.io")
    parser.add_argument("--debug-dir", help="Directory to write request batches and snapshots")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    set_verbosity(args.verbose)
    credentials = Credentials.from_service_account_file(args.credentials, scopes=list(SCOPES))
    run_settings = RenderSettings.from_env()
    if args.use_fileio:
        run_settings = run_settings.with_upload_key(run_settings.upload_key or load_upload_key())
    generate_from_file(
        SlidesClient.from_credentials(credentials),
        Path(args.slides_file),
        presentation_id=args.presentation_id,
        copy_of=args.copy_of,
        title=args.title,
        parent_id=args.parent,
        erase=args.erase,
        settings=run_settings,
        debug_dir=Path(args.debug_dir) if args.debug_dir else None,
    )
