"""gemrelay CLI — command line interface."""

import sys

import click
from rich.console import Console

from gemrelay import __version__

console = Console()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="gemrelay")
@click.pass_context
def cli(ctx):
    """gemrelay — Discord to Gemini message relay"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    console.print(f"[bold]gemrelay v{__version__}[/bold] — Discord to Gemini message relay\n")
    for name, desc in [
        ("start", "Connect to Discord and relay messages to Gemini"),
        ("version", "Show version"),
    ]:
        console.print(f"    [bold]gemrelay {name:10s}[/bold] {desc}")
    console.print()
    console.print("[dim]Requires GEMINI_API_KEY and DISCORD_BOT_TOKEN (environment or .env).[/dim]")


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def start(debug):
    """Start the relay bot."""
    from gemrelay.main import main as run_main
    console.print("[bold blue]Starting gemrelay...[/bold blue]")
    run_main(debug=debug)


@cli.command()
def version():
    """Show version."""
    console.print(f"gemrelay {__version__}")


def main():
    """CLI entry point."""
    try:
        cli(standalone_mode=False)
    except click.UsageError as e:
        if e.ctx:
            click.echo(e.ctx.command.get_usage(e.ctx), err=True)
        click.echo("Try 'gemrelay --help' for help.\n", err=True)
        click.echo(f"Error: {e.format_message()}", err=True)
        sys.exit(2)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.exceptions.Exit as e:
        sys.exit(e.code)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
