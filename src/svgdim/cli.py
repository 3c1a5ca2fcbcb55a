from __future__ import annotations

import dataclasses
import logging
import traceback
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from .canvas import resolve_metrics
from .config import DEFAULT_CONFIG_PATH, canvas_default_from, load_settings, overlay_config_from
from .ingest import ingest
from .palette import PaletteEntry, extract_palette
from .pipeline import AnnotationRequest, AnnotationResult, annotate
from .types import UNITS, OverlayConfig


log = logging.getLogger(__name__)


class Logger:
    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose
        theme = Theme({
            "info": "cyan",
            "step": "bold cyan",
            "warning": "bold yellow",
            "error": "bold red",
        })
        self.console = Console(theme=theme, highlight=False, record=False)
        self.err_console = Console(theme=theme, highlight=False, record=False, stderr=True)

    def _print(self, message: str, style: str | None = None, *, err: bool = False) -> None:
        target = self.err_console if err else self.console
        if style:
            target.print(f"[{style}]{escape(message)}[/{style}]")
        else:
            target.print(escape(message))

    def info(self, message: str) -> None:
        self._print(message, style="info")

    def step(self, message: str) -> None:
        self.console.print(f"[step]▶ {escape(message)}")

    def warn(self, message: str) -> None:
        self._print(message, style="warning")

    def error(self, message: str) -> None:
        self._print(message, style="error", err=True)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")


class _LoggingBridge(logging.Handler):
    def __init__(self, cli_logger: Logger, level: int) -> None:
        super().__init__(level)
        self._cli_logger = cli_logger

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        msg = self.format(record)
        if record.levelno >= logging.ERROR:
            self._cli_logger.error(msg)
        elif record.levelno >= logging.WARNING:
            self._cli_logger.warn(msg)
        elif record.levelno >= logging.INFO:
            self._cli_logger.info(msg)
        else:
            self._cli_logger.debug(msg)


def _install_bridge(logger: Logger, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    package_logger = logging.getLogger("svgdim")
    package_logger.setLevel(log_level)
    package_logger.propagate = False
    for handler in list(package_logger.handlers):
        if isinstance(handler, _LoggingBridge):
            package_logger.removeHandler(handler)
    bridge = _LoggingBridge(logger, log_level)
    bridge.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(bridge)


def _handle_known_exception(logger: Logger, exc: Exception, *, prefix: str | None = None) -> None:
    message = str(exc) if str(exc) else exc.__class__.__name__
    if prefix:
        message = f"{prefix}: {message}"
    logger.error(message)


def _load_settings(config: Optional[Path], opts: Sequence[str]):
    try:
        return load_settings(config, opts)
    except yaml.YAMLError as exc:
        raise ValueError(f"Config could not be read: {exc}") from exc


def _read_source(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"SVG not found: {path}")
    return path.read_text(encoding="utf-8")


def _overlay_config(
    base: OverlayConfig,
    unit: Optional[str],
    lock: Optional[bool],
    transparent: Optional[bool],
    lines: Optional[bool],
    labels: Optional[bool],
    round_values: Optional[bool],
) -> OverlayConfig:
    changes = {
        "unit": unit,
        "lock_aspect_ratio": lock,
        "transparent_background": transparent,
        "show_lines": lines,
        "show_labels": labels,
        "round_values": round_values,
    }
    return dataclasses.replace(base, **{k: v for k, v in changes.items() if v is not None})


def _write_outputs(result: AnnotationResult, svg: Path, outdir: Path) -> Mapping[str, Path]:
    outdir.mkdir(parents=True, exist_ok=True)
    stem = svg.stem
    outputs = {
        "Sanitized": outdir / f"{stem}_sanitized.svg",
        "Overlay": outdir / f"{stem}_overlay.svg",
        "Annotated": outdir / f"{stem}_annotated.svg",
    }
    outputs["Sanitized"].write_text(result.markup or "", encoding="utf-8")
    outputs["Overlay"].write_text(result.overlay or "", encoding="utf-8")
    outputs["Annotated"].write_text(result.composite or "", encoding="utf-8")
    return outputs


def _summarize(logger: Logger, result: AnnotationResult, outputs: Mapping[str, Path]) -> None:
    metrics = result.metrics
    geometry = result.geometry
    if metrics is None or geometry is None:
        raise RuntimeError("Annotation produced no canvas metrics")

    summary_lines = [
        f"canvas={metrics.width:g} x {metrics.height:g} ({metrics.source})"
        f" | origin=({metrics.origin_x:g}, {metrics.origin_y:g})",
        f"width={geometry.width_text or '-'} | height={geometry.height_text or '-'}",
        f"background={result.background} | ink={result.ink}",
    ]
    if result.pruned is not None:
        summary_lines.append(f"pruned background shapes={result.pruned}")
    if result.recolored:
        summary_lines.append(f"recolored shapes={result.recolored}")

    logger.console.rule("Annotation Summary")
    logger.console.print(Panel("\n".join(summary_lines), title="Canvas", expand=False))
    logger.console.print(_palette_table(result.palette))
    logger.console.print("Outputs:")
    for label, path in outputs.items():
        logger.console.print(f"  • {label}: {path}")
    if result.notes:
        logger.console.print("Notes:", style="warning")
        for item in result.notes:
            logger.console.print(f"  • {item}", style="warning")


def _palette_table(entries: Sequence[PaletteEntry]) -> Table:
    table = Table(show_header=True, header_style="bold")
    for header in ("#", "Color", "Source", "Property", "Element"):
        table.add_column(header)
    for index, entry in enumerate(entries, start=1):
        table.add_row(str(index), entry.color.hex(), entry.source_text, entry.prop, entry.element)
    return table


app = typer.Typer(help="SVG canvas metrics and dimension annotation")


_CONFIG_OPTION = typer.Option(
    DEFAULT_CONFIG_PATH,
    "--config",
    exists=True,
    dir_okay=False,
    resolve_path=True,
    show_default=True,
    help="YAML config merged over the built-in defaults",
)
_OPTS_OPTION = typer.Option(
    [],
    "--opts",
    help="Override config values, e.g. --opts overlay.min_margin=12",
    show_default=False,
    metavar="PATH=VALUE",
)


@app.command("annotate")
def annotate_cmd(
    svg: Path = typer.Argument(..., help="Input SVG"),
    width: Optional[str] = typer.Option(None, "--width", help="Requested width, e.g. '120' or '120.5px'"),
    height: Optional[str] = typer.Option(None, "--height", help="Requested height"),
    unit: Optional[str] = typer.Option(None, "--unit", help=f"Label unit ({', '.join(UNITS)})"),
    lock: Optional[bool] = typer.Option(None, "--lock/--no-lock", help="Keep the aspect ratio locked"),
    transparent: Optional[bool] = typer.Option(
        None, "--transparent/--no-transparent", help="No backdrop behind the image"
    ),
    lines: Optional[bool] = typer.Option(None, "--lines/--no-lines", help="Draw dimension lines"),
    labels: Optional[bool] = typer.Option(None, "--labels/--no-labels", help="Prefix values with width/height"),
    round_values: Optional[bool] = typer.Option(None, "--round/--no-round", help="Round values to integers"),
    prune: Optional[bool] = typer.Option(
        None, "--prune/--no-prune", help="Remove rectangles that cover the whole canvas"
    ),
    fill: Optional[str] = typer.Option(None, "--fill", help="Recolor every shape fill to this color"),
    config: Path = _CONFIG_OPTION,
    outdir: Path = typer.Option(Path("out"), "--outdir", resolve_path=True, help="Output directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    opts: List[str] = _OPTS_OPTION,
) -> None:
    """Sanitize an SVG, pick a backdrop and write the dimension overlay."""
    logger = Logger(verbose=verbose)
    _install_bridge(logger, verbose)

    try:
        logger.step("Loading config")
        settings = _load_settings(config, opts)
        overlay_config = _overlay_config(
            overlay_config_from(settings), unit, lock, transparent, lines, labels, round_values
        )

        edited = None
        if width is not None and height is None:
            edited = "width"
        elif height is not None and width is None:
            edited = "height"

        logger.step(f"Annotating {svg.name}")
        request = AnnotationRequest(
            source=_read_source(svg),
            width=width,
            height=height,
            config=overlay_config,
            prune_background=prune,
            fill=fill,
            edited=edited,
        )
        result = annotate(request, settings)
        if not result.ok:
            raise ValueError(result.error)

        outputs = _write_outputs(result, svg, outdir)
        _summarize(logger, result, outputs)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # pragma: no cover - fallback path
        _handle_known_exception(logger, exc, prefix="Unexpected error")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from exc


@app.command("palette")
def palette_cmd(
    svg: Path = typer.Argument(..., help="Input SVG"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """List the distinct paint colors of an SVG in document order."""
    logger = Logger(verbose=verbose)
    _install_bridge(logger, verbose)
    try:
        entries = extract_palette(ingest(_read_source(svg)))
        if not entries:
            logger.warn("No paint colors found")
            return
        logger.console.print(_palette_table(entries))
    except (FileNotFoundError, ValueError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc


@app.command("metrics")
def metrics_cmd(
    svg: Path = typer.Argument(..., help="Input SVG"),
    config: Path = _CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    opts: List[str] = _OPTS_OPTION,
) -> None:
    """Print the resolved canvas size and origin."""
    logger = Logger(verbose=verbose)
    _install_bridge(logger, verbose)
    try:
        settings = _load_settings(config, opts)
        metrics = resolve_metrics(ingest(_read_source(svg)), canvas_default_from(settings))
        logger.console.print(
            f"width={metrics.width:g} height={metrics.height:g} "
            f"origin=({metrics.origin_x:g}, {metrics.origin_y:g}) source={metrics.source}"
        )
        if metrics.defaulted:
            logger.warn("Canvas size fell back to the default")
    except (FileNotFoundError, ValueError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc


if __name__ == "__main__":
    app()
