"""AlbumPy CLI - Main commands."""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn, DownloadColumn
from rich.table import Table

app = typer.Typer(
    name="albumpy",
    help="Upload photo albums to Dropbox",
    add_completion=False
)
console = Console()

IMAGE_SUFFIXES = {'.jpg', '.jpeg', '.png', '.heic', '.heif', '.webp', '.gif', '.tif', '.tiff'}


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def album_files(folder: Path) -> List[Path]:
    """Images in ``folder`` in name order (the order they will be numbered in)."""
    return sorted(
        (p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES),
        key=lambda p: p.name.lower()
    )


def build_config(
    token: Optional[str],
    token_endpoint: Optional[str],
    chunk_size_mb: Optional[int]
):
    from albumpy import APIConfig, UploadConfig

    overrides = {}
    if token:
        overrides['access_token'] = token
    if token_endpoint:
        overrides['token_endpoint'] = token_endpoint
    if chunk_size_mb:
        overrides['upload'] = UploadConfig(chunk_size=chunk_size_mb * 1024 * 1024)
    return APIConfig.from_env(**overrides)


async def upload_one(uploader, unit_id: str, paths: List[Path], root: str, on_progress=None, on_status=None):
    """
    Load and upload one album.

    Returns:
        The BatchResult, 'cancelled', or the exception the album failed with
    """
    from albumpy import AlbumPyException, CancelledError

    try:
        files = await uploader.load_files(paths)
        return await uploader.upload_album(
            unit_id, files, root, on_progress=on_progress, on_status=on_status
        )
    except CancelledError:
        return 'cancelled'
    except (AlbumPyException, OSError, ValueError) as e:
        return e


@app.command()
def upload(
    albums: List[Path] = typer.Argument(..., help="Album folders, one album per folder"),
    dest: str = typer.Option("/Albums", "--dest", "-d", help="Dropbox base folder"),
    order: str = typer.Option("order", "--order", "-o", help="Order id used in the folder name"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Chunk size in MB"),
    max_files: Optional[int] = typer.Option(None, "--max-files", help="Maximum photos per album"),
    token: Optional[str] = typer.Option(None, "--token", envvar="ALBUMPY_ACCESS_TOKEN", help="Dropbox access token"),
    token_endpoint: Optional[str] = typer.Option(None, "--token-endpoint", help="Trusted token endpoint URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Upload one or more albums; they are queued and uploaded one at a time."""
    from albumpy import (
        AlbumUploader,
        AlbumPyException,
        build_destination_root,
        setup_logging,
    )
    from albumpy.core.upload import FileValidator

    if verbose:
        logging.basicConfig(level=logging.DEBUG)
        setup_logging(logging.DEBUG)

    validator = FileValidator()
    plan = []
    for index, folder in enumerate(albums, start=1):
        if not folder.is_dir():
            console.print(f"[red]Not a folder: {folder}[/red]")
            raise typer.Exit(1)
        paths = album_files(folder)
        try:
            validator.validate_count(len(paths), max_files)
        except ValueError as e:
            console.print(f"[red]{folder}: {e}[/red]")
            raise typer.Exit(1)
        plan.append((f"album-{index:02d}", folder, paths, build_destination_root(dest, order, index)))

    async def do_upload():
        config = build_config(token, token_endpoint, chunk_size)
        try:
            uploader = AlbumUploader(config)
        except AlbumPyException as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

        async with uploader:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                DownloadColumn(),
                console=console
            ) as progress:
                tasks = {
                    unit_id: progress.add_task(f"{unit_id} waiting", total=None)
                    for unit_id, _, _, _ in plan
                }

                def on_status(unit_id: str, status: str):
                    progress.update(tasks[unit_id], description=f"{unit_id} {status}")

                def on_progress(unit_id: str, p):
                    progress.update(
                        tasks[unit_id],
                        total=p.total_bytes,
                        completed=p.bytes_uploaded,
                        description=f"{unit_id} {p.files_completed}/{p.total_files} files"
                    )

                outcomes = await asyncio.gather(*(
                    upload_one(uploader, unit_id, paths, root, on_progress, on_status)
                    for unit_id, _, paths, root in plan
                ))
        results = {unit_id: outcome for (unit_id, _, _, _), outcome in zip(plan, outcomes)}

        table = Table(title="Albums")
        table.add_column("Album", style="cyan")
        table.add_column("Folder")
        table.add_column("Files", justify="right")
        table.add_column("Result")
        failed = False
        for unit_id, folder, paths, root in plan:
            outcome = results.get(unit_id)
            if outcome == 'cancelled':
                table.add_row(unit_id, root, str(len(paths)), "[yellow]cancelled[/yellow]")
            elif isinstance(outcome, Exception):
                failed = True
                table.add_row(unit_id, root, str(len(paths)), f"[red]{outcome}[/red]")
            else:
                table.add_row(unit_id, root, str(outcome.file_count), f"[green]{outcome.share_url}[/green]")
        console.print(table)
        if failed:
            raise typer.Exit(1)

    try:
        run_async(do_upload())
    except KeyboardInterrupt:
        console.print("[yellow]Upload cancelled[/yellow]")
        raise typer.Exit(130)


@app.command()
def link(
    path: str = typer.Argument(..., help="Dropbox path"),
    token: Optional[str] = typer.Option(None, "--token", envvar="ALBUMPY_ACCESS_TOKEN", help="Dropbox access token"),
    token_endpoint: Optional[str] = typer.Option(None, "--token-endpoint", help="Trusted token endpoint URL"),
):
    """Create (or fetch) a public share link for a folder."""
    from albumpy import AlbumUploader, AlbumPyException

    async def do_link():
        try:
            async with AlbumUploader(build_config(token, token_endpoint, None)) as uploader:
                url = await uploader.share_link(path)
        except AlbumPyException as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        if not url:
            console.print(f"[yellow]No share link available for {path}[/yellow]")
            raise typer.Exit(1)
        console.print(url)

    run_async(do_link())


def main():
    app()


if __name__ == "__main__":
    main()
