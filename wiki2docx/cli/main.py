from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import requests
import typer

from wiki2docx.cli.common import build_client, load_settings
from wiki2docx.core.config import Settings
from wiki2docx.core.errors import TitleSourceError
from wiki2docx.infra.logging import init_logging, unified_print
from wiki2docx.services.pipeline import run_pool
from wiki2docx.wiki.titles import collect_titles

app = typer.Typer(help="wiki2docx CLI: fetch Wikipedia articles and save them as DOCX")


def _echo(s: str) -> None:
    typer.echo(s)


def _settings_or_exit(config: Optional[Path], overrides: dict) -> Settings:
    try:
        return load_settings(config, overrides)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


@app.command()
def run(
    input_file: Optional[Path] = typer.Option(
        None, "--input", "-i", dir_okay=False, help="Text file with article titles (one per line)"
    ),
    random_n: Optional[int] = typer.Option(
        None, "--random", help="Number of random articles to fetch (used when --input is not set)"
    ),
    lang: Optional[str] = typer.Option(None, "--lang", help="Wikipedia language prefix (e.g. en, ru, de)"),
    workers: Optional[int] = typer.Option(
        None, "--workers", "--worker", "-w", help="Number of concurrent workers"
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", "--output", "-o", file_okay=False, help="Directory to save DOCX files"
    ),
    rate: Optional[float] = typer.Option(
        None, "--rate", help="Global rate limit in requests per second (0 = no limit)"
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-request timeout in seconds"),
    report_path: Optional[Path] = typer.Option(
        None, "--report", dir_okay=False, help="Write the run report as JSON"
    ),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, dir_okay=False, readable=True),
) -> None:
    """Fetch articles (from a title file or at random) and write one DOCX per article."""
    init_logging()
    settings = _settings_or_exit(
        config,
        {
            "input": str(input_file) if input_file else None,
            "random": random_n,
            "lang": lang,
            "workers": workers,
            "out": str(out) if out else None,
            "rate": rate,
            "timeout": timeout,
        },
    )

    with build_client(settings) as client:
        unified_print(
            f"Collecting article titles (random: {settings.random}, lang: {settings.lang})...",
            "cli",
            "run",
        )
        try:
            titles = collect_titles(client, settings.input, settings.random)
        except TitleSourceError as e:
            typer.secho(f"Failed to collect titles: {e.reason}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        n_workers = max(1, settings.workers)
        unified_print(
            f"Processing {len(titles)} article(s) with {n_workers} worker(s)...", "cli", "run"
        )
        report = run_pool(titles, settings.out, client, workers=settings.workers)

    _echo(f"\nDone. {report.succeeded} succeeded, {report.failed} failed.")
    for f in report.failures:
        _echo(f"  ERROR: {f.title}: {f.reason}")

    if report_path:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(
            json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        _echo(f"Saved run report: {report_path}")


@app.command()
def titles(
    input_file: Optional[Path] = typer.Option(None, "--input", "-i", dir_okay=False),
    random_n: Optional[int] = typer.Option(None, "--random"),
    lang: Optional[str] = typer.Option(None, "--lang"),
    rate: Optional[float] = typer.Option(None, "--rate"),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, dir_okay=False, readable=True),
) -> None:
    """Print the titles a run would process, one per line, without fetching them."""
    init_logging()
    settings = _settings_or_exit(
        config,
        {
            "input": str(input_file) if input_file else None,
            "random": random_n,
            "lang": lang,
            "rate": rate,
        },
    )
    with build_client(settings) as client:
        try:
            found = collect_titles(client, settings.input, settings.random)
        except TitleSourceError as e:
            typer.secho(f"Failed to collect titles: {e.reason}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
    for t in found:
        _echo(t)


@app.command()
def doctor(
    lang: Optional[str] = typer.Option(None, "--lang"),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, dir_okay=False, readable=True),
) -> None:
    """Check that the language's API endpoint answers (one request)."""
    settings = _settings_or_exit(config, {"lang": lang})
    with build_client(settings) as client:
        url = client.config.api_url
        typer.echo(f"API endpoint: {url}")
        try:
            r = client.session.get(
                url,
                params={"action": "query", "meta": "siteinfo", "format": "json"},
                timeout=min(settings.timeout, 10),
            )
            typer.echo(f"API reachable: {r.status_code}")
            ok = r.status_code == 200
        except requests.RequestException as e:
            typer.secho(f"API unreachable: {e}", fg=typer.colors.RED)
            ok = False

    typer.echo(f"Rate limit: {settings.rate:g} req/s | workers: {settings.workers} | out: {settings.out}")
    if ok:
        typer.secho("Health check passed", fg=typer.colors.GREEN)
    else:
        typer.secho("Health check failed; see messages above", fg=typer.colors.RED)


def main() -> None:  # console_scripts entrypoint wrapper
    app()


if __name__ == "__main__":
    main()
