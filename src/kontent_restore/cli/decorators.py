"""
Decorators for CLI commands.

This module provides decorators for error handling and context passing.
"""

import functools
from collections.abc import Callable

import click

from kontent_restore.cli.context import RestoreContext
from kontent_restore.client.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    RestoreError,
    SourceError,
)
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


def pass_context(f: Callable) -> Callable:
    """
    Decorator to pass RestoreContext to command function.

    Usage:
        @click.command()
        @pass_context
        def my_command(ctx: RestoreContext):
            print(ctx.config)
    """

    @click.pass_context
    @functools.wraps(f)
    def wrapper(click_ctx: click.Context, *args, **kwargs):
        restore_ctx: RestoreContext = click_ctx.obj
        return f(restore_ctx, *args, **kwargs)

    return wrapper


def handle_errors(f: Callable) -> Callable:
    """
    Decorator to handle common errors in CLI commands.

    Exit codes:
        0: Success
        1: General error
        2: Configuration error
        3: Authentication error
        4: API or network error
        5: Snapshot or restore precondition error
    """

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)

        except click.exceptions.Exit:
            raise

        except ConfigurationError as e:
            logger.error("configuration_error", error=str(e))
            click.echo(f"Configuration Error: {e}", err=True)
            click.echo(
                "\nPlease check your configuration file and ensure all required fields are set.",
                err=True,
            )
            raise click.exceptions.Exit(2) from e

        except AuthenticationError as e:
            logger.error("authentication_error", error=str(e))
            click.echo(f"Authentication Error: {e}", err=True)
            click.echo("\nPlease verify the Management API key of the target project.", err=True)
            raise click.exceptions.Exit(3) from e

        except APIError as e:
            logger.error("api_error", error=str(e), status_code=e.status_code)
            click.echo(f"API Error: {e}", err=True)
            if e.status_code:
                click.echo(f"\nResponse status: {e.status_code}", err=True)
            raise click.exceptions.Exit(4) from e

        except NetworkError as e:
            logger.error("network_error", error=str(e))
            click.echo(f"Network Error: {e}", err=True)
            raise click.exceptions.Exit(4) from e

        except (SourceError, RestoreError) as e:
            logger.error("restore_error", error_type=type(e).__name__, error=str(e))
            click.echo(f"Restore Error: {e}", err=True)
            click.echo(
                "\nThe snapshot could not be restored. Entities imported so far remain "
                "in the target project.",
                err=True,
            )
            raise click.exceptions.Exit(5) from e

        except Exception as e:
            logger.error("unexpected_error", error=str(e), exc_info=True)
            click.echo(f"Unexpected Error: {e}", err=True)
            click.echo(
                "\nAn unexpected error occurred. Please check the logs for details.",
                err=True,
            )
            raise click.exceptions.Exit(1) from e

    return wrapper
