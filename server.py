#!/usr/bin/env python3
"""
Management script for the Affilimart document store.
"""

import os
import sys
import subprocess
import signal
import time
import json
import click

from affilimart import config
from affilimart.store.server import empty_db

PID_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'server.pid')


def _db_path():
    return os.path.abspath(config.STORE_DB_FILE)


@click.group()
def cli():
    """Affilimart store management CLI."""
    pass


@cli.command()
@click.option('--port', default=3000, help='Port to run the server on')
def start(port):
    """Start the document store."""
    # Check if server is already running
    if os.path.exists(PID_FILE):
        with open(PID_FILE, 'r') as f:
            pid = f.read().strip()

        click.echo(f"Server already running with PID {pid}")
        click.echo("If the server is not running, delete the 'server.pid' file and try again")
        return

    db_path = _db_path()
    click.echo(f"Starting document store on port {port}...")
    click.echo(f"Using database: {db_path}")

    try:
        process = subprocess.Popen([
            sys.executable, '-m', 'affilimart.store.server',
            '--db', db_path,
            '--port', str(port),
        ],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE)

        with open(PID_FILE, 'w') as f:
            f.write(str(process.pid))

        click.echo(f"Server running with PID {process.pid}")
        click.echo(f"Server accessible at: http://localhost:{port}")

        # Give the server a moment to start
        time.sleep(1)

        if process.poll() is not None:
            click.echo("Server failed to start!", err=True)
            stdout, stderr = process.communicate()
            click.echo(f"STDOUT: {stdout.decode('utf-8')}")
            click.echo(f"STDERR: {stderr.decode('utf-8')}")
            os.remove(PID_FILE)
            return

        click.echo("Server started successfully!")

    except OSError as e:
        click.echo(f"Error starting server: {str(e)}", err=True)
        if os.path.exists(PID_FILE):
            os.remove(PID_FILE)


@cli.command()
def stop():
    """Stop the document store."""
    if not os.path.exists(PID_FILE):
        click.echo("No running server found")
        return

    with open(PID_FILE, 'r') as f:
        pid = f.read().strip()

    try:
        pid = int(pid)
    except ValueError:
        click.echo(f"Invalid PID in the file: {pid}")
        os.remove(PID_FILE)
        return

    click.echo(f"Stopping server with PID {pid}...")
    try:
        os.kill(pid, signal.SIGTERM)
        time.sleep(1)

        try:
            os.kill(pid, 0)
            click.echo("Server did not terminate gracefully, force killing...")
            os.kill(pid, signal.SIGKILL)
        except OSError:
            # Process is gone
            pass

        click.echo("Server stopped")
    except OSError as e:
        click.echo(f"Error stopping server: {str(e)}")

    os.remove(PID_FILE)


@cli.command()
def status():
    """Check if the document store is running."""
    if not os.path.exists(PID_FILE):
        click.echo("Server is not running")
        return

    with open(PID_FILE, 'r') as f:
        pid = f.read().strip()

    try:
        pid = int(pid)
        try:
            os.kill(pid, 0)
            click.echo(f"Server is running with PID {pid}")
        except OSError:
            click.echo("Server PID file exists but process is not running")
            click.echo("You may want to remove the 'server.pid' file")
    except ValueError:
        click.echo(f"Invalid PID in the file: {pid}")


@cli.command()
def reset():
    """Reset the database to empty collections, keeping a backup."""
    db_path = _db_path()

    if not os.path.exists(db_path):
        click.echo(f"Database file not found: {db_path}")
        return

    try:
        backup_path = f"{db_path}.bak"
        with open(db_path, 'r') as src:
            with open(backup_path, 'w') as dst:
                dst.write(src.read())

        with open(db_path, 'w') as f:
            json.dump(empty_db(), f, indent=2)

        click.echo(f"Database reset. Backup created at {backup_path}")
    except OSError as e:
        click.echo(f"Error resetting database: {str(e)}")


if __name__ == '__main__':
    cli()
