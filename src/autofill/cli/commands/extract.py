"""One-shot extraction from a local file or URL."""

import base64
from pathlib import Path
from typing import Annotated

import typer

from autofill.cli.console import error, raw, success, warning

_EXTENSION_MIME = {
    "png": "image/png",
    "webp": "image/webp",
}


def guess_mime(path: Path) -> str:
    """Guess an image MIME type from the file extension (jpeg by default)."""
    return _EXTENSION_MIME.get(path.suffix.lstrip(".").lower(), "image/jpeg")


def register(app: typer.Typer) -> None:
    """Register the extract command."""

    @app.command()
    def extract(
        image_path: Annotated[
            Path | None,
            typer.Option("--image-path", "-i", help="Local image file"),
        ] = None,
        image_url: Annotated[
            str | None,
            typer.Option("--image-url", "-u", help="Remote image URL"),
        ] = None,
        model: Annotated[
            str | None,
            typer.Option("--model", "-m", help="Override [inference] model"),
        ] = None,
        out: Annotated[
            Path,
            typer.Option("--out", "-o", help="Where to write the result"),
        ] = Path("out/result.json"),
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Extract catalog fields from one product image."""
        import asyncio

        from autofill.config import load_config
        from autofill.errors import ConfigError, StageError
        from autofill.extraction import AutofillPipeline, AutofillRequest, ResultKind
        from autofill.logging import configure_logging

        if image_path and image_url:
            error("Provide only one of --image-path or --image-url")
            raise typer.Exit(1)
        if not image_path and not image_url:
            error("Provide --image-path or --image-url")
            raise typer.Exit(1)

        config = load_config(config_path)
        configure_logging(
            level=config.logging.level or "WARNING",
            redact_secrets=config.logging.redact_secrets,
        )
        if model:
            config.inference.model = model

        if image_path is not None:
            expanded = image_path.expanduser()
            if not expanded.is_file():
                error(f"Image file not found: {expanded}")
                raise typer.Exit(1)
            request = AutofillRequest(
                image_base64=base64.b64encode(expanded.read_bytes()).decode("ascii"),
                image_mime=guess_mime(expanded),
            )
        else:
            request = AutofillRequest(image_url=image_url)

        pipeline = AutofillPipeline(config=config)
        try:
            result = asyncio.run(pipeline.extract(request))
        except ConfigError as e:
            error(f"Configuration error: {e}")
            raise typer.Exit(1) from None
        except StageError as e:
            error(f"{e.stage.value} failed: {e.message}")
            raise typer.Exit(1) from None

        body = result.to_body()
        if not 200 <= result.upstream_status < 300:
            error(f"Inference service error (status {result.upstream_status}):")
            raw(body)
            raise typer.Exit(1)
        if result.kind is ResultKind.ENVELOPE:
            error("No output text found. Full response:")
            raw(body)
            raise typer.Exit(1)
        if result.kind is ResultKind.RAW_TEXT:
            warning("Output is not JSON; writing raw text")
        for note in result.warnings:
            warning(note)

        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(body, encoding="utf-8")
        raw(f"RESULT_JSON: {body}")
        success(f"Wrote {out}")
