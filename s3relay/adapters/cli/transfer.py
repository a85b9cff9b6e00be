"""
Transfer CLI command
"""
import typer
from pathlib import Path
from typing import Optional

from rich.markup import escape

from ...core.logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from ...core.exceptions import RelayError, TransferError, ConfigError
from ...core.constants import DEFAULT_CONFIG_PATH
from ...core.utils import parse_size
from ...domain.transfer import (
    TransferOrchestrator,
    ConsoleProgressSink,
    SilentProgressSink,
    LoggingRetryPolicy,
)
from ...infrastructure.s3.store import Boto3ObjectStore, check_part_size, create_s3_client
from ..config.loader import ConfigLoader

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()


def register_transfer_command(app: typer.Typer) -> None:
    """Register transfer command on the main app"""
    app.command(name="transfer")(transfer_run)


def transfer_run(
    access_key: str = typer.Argument(..., help="Object store access key"),
    secret_key: str = typer.Argument(..., help="Object store secret key"),
    source_url: str = typer.Argument(..., help="HTTP(S) URL to copy from"),
    bucket: str = typer.Argument(..., help="Destination bucket"),
    key: str = typer.Argument(..., help="Destination key"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help=f"TOML configuration file (default: {DEFAULT_CONFIG_PATH} if present)"
    ),
    chunk_size: Optional[str] = typer.Option(
        None, "--chunk-size", help="Part size (e.g., 128M, 1G; default: 128M)"
    ),
    read_size: Optional[str] = typer.Option(
        None, "--read-size", help="Largest single read from the source (default: 1M)"
    ),
    max_tries: Optional[int] = typer.Option(
        None, "--max-tries", help="Attempts per connection and per part (default: 30)"
    ),
    retry_interval: Optional[int] = typer.Option(
        None, "--retry-interval", help="Milliseconds between attempts (default: 10000)"
    ),
    storage_class: Optional[str] = typer.Option(
        None, "--storage-class", help="Storage class of the stored object (default: DEEP_ARCHIVE)"
    ),
    region: Optional[str] = typer.Option(
        None, "--region", help="Object store region (default: us-east-2)"
    ),
    endpoint_url: Optional[str] = typer.Option(
        None, "--endpoint-url", help="Custom S3-compatible endpoint"
    ),
    abort_on_failure: Optional[bool] = typer.Option(
        None, "--abort-on-failure/--keep-on-failure",
        help="Abort the multipart upload when the transfer fails (default: keep it)",
    ),
    quiet: bool = typer.Option(
        False, "-q", "--quiet", help="Do not print progress"
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", "-l", help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Log file path"
    ),
):
    """
    Copy an HTTP(S) resource into an S3 bucket as a multipart upload.

    The resource is streamed part by part; a dropped connection resumes
    where it stopped instead of starting over.

    Examples:
        s3relay AKIA... SECRET https://example.com/big.iso my-bucket backups/big.iso
        s3relay --chunk-size 64M --storage-class standard AKIA... SECRET URL bucket key
    """
    setup_logging(level=log_level, log_file=log_file, secrets=(secret_key,))

    # Parse sizes
    parsed_chunk = None
    if chunk_size:
        parsed_chunk = parse_size(chunk_size)
        if not parsed_chunk:
            stderr_console.print(f"[red]Error:[/red] Invalid chunk size: {escape(chunk_size)}")
            raise typer.Exit(1)

    parsed_read = None
    if read_size:
        parsed_read = parse_size(read_size)
        if not parsed_read:
            stderr_console.print(f"[red]Error:[/red] Invalid read size: {escape(read_size)}")
            raise typer.Exit(1)

    if config_file is None:
        default_config = Path(DEFAULT_CONFIG_PATH).expanduser()
        if default_config.exists():
            config_file = default_config

    loader = ConfigLoader()
    try:
        merged = loader.load(
            toml_path=config_file,
            cli_overrides={
                "transfer": {
                    "chunk_size": parsed_chunk,
                    "read_size": parsed_read,
                    "max_try_count": max_tries,
                    "retry_interval_ms": retry_interval,
                    "storage_class": storage_class,
                    "abort_on_failure": abort_on_failure,
                },
                "store": {
                    "region": region,
                    "endpoint_url": endpoint_url,
                },
            },
        )
        transfer_config, store_config = loader.build(merged)
        check_part_size(transfer_config.chunk_size)
    except ConfigError as e:
        stderr_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    # Create services
    store = Boto3ObjectStore(create_s3_client(access_key, secret_key, store_config))
    orchestrator = TransferOrchestrator(
        store,
        transfer_config,
        progress_sink=SilentProgressSink() if quiet else ConsoleProgressSink(stdout_console),
        download_retry_policy=LoggingRetryPolicy("download"),
        upload_retry_policy=LoggingRetryPolicy("upload"),
    )

    try:
        if not quiet:
            stdout_console.print(
                f"[cyan]Transferring:[/cyan] {escape(source_url)} → s3://{escape(bucket)}/{escape(key)}"
            )
        etag = orchestrator.execute(source_url, bucket, key)
    except KeyboardInterrupt:
        stderr_console.print("[yellow]Interrupted[/yellow]; the multipart upload was left open")
        raise typer.Exit(130)
    except TransferError as e:
        stderr_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except RelayError as e:
        stderr_console.print(f"[red]Object store error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Transfer failed")
        stderr_console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    stdout_console.print(f">>> Succeeded! Stored object ETag: {escape(etag)}", highlight=False)
