"""CLI entry point for the IDX client."""

from __future__ import annotations

from pathlib import Path

import click

from idxclient import __version__
from idxclient.core.config import get_default_config_yaml, load_config
from idxclient.core.errors import IDXError
from idxclient.core.idx import (
    AuthenticationOptions,
    AuthenticationStatus,
    IdentifyRequest,
    IDXClient,
    ResetPasswordResponse,
    ResetPasswordStep,
)
from idxclient.core.logging import configure_logging


def _create_client(ctx: click.Context) -> IDXClient:
    """Build a client from the config options of the command group."""
    try:
        config = load_config(ctx.obj.get("config_path"))
        return IDXClient(config, protocol_logger=ctx.obj.get("protocol_logger"))
    except IDXError as e:
        raise click.ClickException(str(e)) from None


@click.group()
@click.version_option(version=__version__, prog_name="idxclient")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to okta.yaml (default: ~/.okta/okta.yaml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["ERROR", "INFO", "DEBUG", "TRACE"], case_sensitive=False),
    default="ERROR",
    show_default=True,
    help="Protocol log level.",
)
@click.option("--trace", is_flag=True, help="Allow TRACE logging of secrets and tokens.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str, trace: bool) -> None:
    """IDX Client - Okta Identity Engine interaction code flows."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["protocol_logger"] = configure_logging(level=log_level, trace_enabled=trace)


@cli.command("config-template")
def config_template() -> None:
    """Print an example okta.yaml."""
    click.echo(get_default_config_yaml(), nl=False)


@cli.command()
@click.option("--username", "-u", prompt=True, help="Username or email.")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Password.")
@click.pass_context
def login(ctx: click.Context, username: str, password: str) -> None:
    """Authenticate with username and password."""
    with _create_client(ctx) as client:
        try:
            response = client.authenticate(AuthenticationOptions(username=username, password=password))
            if response.status == AuthenticationStatus.PASSWORD_EXPIRED:
                click.echo("Password has expired.")
                new_password = click.prompt("New password", hide_input=True, confirmation_prompt=True)
                response.change_password(new_password)
        except IDXError as e:
            raise click.ClickException(str(e)) from None

    click.echo(f"Status: {response.status}")
    if response.token is not None:
        click.echo(f"Token type: {response.token.token_type}")
        click.echo(f"Expires in: {response.token.expires_in}")
        click.echo(f"Scope: {response.token.scope}")
    elif response.status == AuthenticationStatus.UNHANDLED and response.document is not None:
        click.echo(f"Provider asked for: {', '.join(response.document.option_names) or 'nothing'}")
        for message in response.document.messages:
            click.echo(f"  {message.severity}: {message.message}")
        ctx.exit(1)


def _run_step(response: ResetPasswordResponse, step: ResetPasswordStep) -> None:
    """Prompt for the input a step needs and execute it."""
    if step == ResetPasswordStep.EMAIL_VERIFICATION:
        response.verify_email()
        click.echo("A verification code has been sent by email.")
    elif step == ResetPasswordStep.EMAIL_CONFIRMATION:
        response.confirm_email(click.prompt("Code"))
    elif step == ResetPasswordStep.ANSWER_SECURITY_QUESTION:
        question = response.security_question
        response.answer_security_question(click.prompt(question.question if question else "Answer"))
    elif step == ResetPasswordStep.NEW_PASSWORD:
        response.set_new_password(click.prompt("New password", hide_input=True, confirmation_prompt=True))
    elif step == ResetPasswordStep.SKIP:
        response.skip()
    elif step == ResetPasswordStep.CANCEL:
        response.cancel()


@cli.command("reset-password")
@click.option("--identifier", "-u", prompt=True, help="Username or email of the account.")
@click.pass_context
def reset_password(ctx: click.Context, identifier: str) -> None:
    """Recover an account password interactively."""
    with _create_client(ctx) as client:
        try:
            response = client.init_password_reset(IdentifyRequest(identifier=identifier))
            while not response.is_authenticated:
                steps = [str(s) for s in response.available_steps]
                forward = [s for s in steps if s != ResetPasswordStep.CANCEL]
                choice = click.prompt(
                    "Next step",
                    type=click.Choice(steps, case_sensitive=False),
                    default=forward[0] if forward else steps[0],
                )
                step = ResetPasswordStep(choice.upper())
                _run_step(response, step)
                if step == ResetPasswordStep.CANCEL:
                    click.echo("Password recovery cancelled.")
                    return
        except IDXError as e:
            raise click.ClickException(str(e)) from None

    click.echo("Password has been reset.")
    if response.token is not None:
        click.echo(f"Token type: {response.token.token_type}")
