"""CLI error handling helpers."""

import logging

import click

from ledgerly.domain.errors import (
    DomainError,
    IntegrityViolation,
    NoViableRepaymentOption,
    ValidationError,
)

logger = logging.getLogger(__name__)

EXIT_DOMAIN_ERROR = 1
EXIT_NO_VIABLE_OPTION = 2
EXIT_INTEGRITY_VIOLATION = 3


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    if isinstance(error, ValidationError) and len(error.violations) > 1:
        click.echo("Error: transaction rejected:", err=True)
        for violation in error.violations:
            click.echo(f"  - [{violation.rule}] {violation.message}", err=True)
    elif isinstance(error, ValidationError) and error.violations:
        violation = error.violations[0]
        click.echo(f"Error: [{violation.rule}] {violation.message}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)

    if isinstance(error, NoViableRepaymentOption):
        ctx.exit(EXIT_NO_VIABLE_OPTION)
    ctx.exit(EXIT_DOMAIN_ERROR)


def handle_integrity_violation(ctx: click.Context, error: IntegrityViolation) -> None:
    """Report corrupted ledger data; never retried or downgraded."""
    logger.critical("Integrity violation: %s", error)
    click.echo(f"Integrity violation: {error}", err=True)
    ctx.exit(EXIT_INTEGRITY_VIOLATION)
