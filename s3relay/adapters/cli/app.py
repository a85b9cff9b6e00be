"""
Main CLI application
"""
import typer

from .transfer import register_transfer_command

# Create main app
app = typer.Typer(
    name="s3relay",
    add_completion=False,
    help="Stream HTTP(S) resources into S3 with resumable multipart uploads",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Single command: typer runs it without a subcommand name
register_transfer_command(app)


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
