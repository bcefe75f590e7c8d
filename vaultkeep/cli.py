"""
Command line interface.

Meant to be started by an external scheduler (cron, launchd, Task
Scheduler). Runs must not overlap: the backup and temporary directories
are not locked.
"""

import sys

import click

from vaultkeep import create_executor
from vaultkeep.config import load_config, ConfigError, DEFAULT_CONFIG_FILE
from vaultkeep.utils.master_key import get_master_key_manager


CONFIG_ERROR_EXIT_CODE = 2


def _exit(code, debug=False):
    if debug:
        click.pause(info='Press Enter to exit.')
    sys.exit(code)


@click.group()
@click.version_option(package_name='vaultkeep')
def cli():
    """Encrypted 7-Zip backups with retention."""


@cli.command()
@click.option('--config', 'config_path', default=DEFAULT_CONFIG_FILE, show_default=True,
              type=click.Path(dir_okay=False), help='Path to the configuration file')
@click.option('--debug', is_flag=True, help='Enable debug mode for detailed console output')
def run(config_path, debug):
    """Create a backup archive and prune old ones."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Failed to load configuration: {e}", err=True)
        _exit(CONFIG_ERROR_EXIT_CODE, debug)

    debug = debug or config.debug_mode
    if debug:
        click.echo("Running in debug mode...")

    try:
        executor = create_executor(config, debug)
    except ConfigError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        _exit(CONFIG_ERROR_EXIT_CODE, debug)

    result = executor.execute()

    if not result.succeeded:
        click.echo(f"Backup failed: {result.error}", err=True)
    elif result.warnings:
        click.echo(f"Backup completed with {len(result.warnings)} warning(s)")

    _exit(result.exit_code, debug)


@cli.command('encrypt-password')
@click.password_option('--password', prompt='Archive password', help='Archive password to encrypt')
def encrypt_password(password):
    """
    Print the 'password_encrypted' value for the configuration file.

    The master secret is read from $VAULTKEEP_SECRET_KEY only, so it never
    appears in the process list.
    """
    try:
        manager = get_master_key_manager()
    except RuntimeError as e:
        raise click.UsageError(str(e))
    click.echo(manager.encrypt_password(password))


def main():
    cli()


if __name__ == '__main__':
    main()
