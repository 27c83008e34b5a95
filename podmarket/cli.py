# -*- coding: utf-8 -*-
"""
Operator commands, available as `flask --app podmarket.main <command>`.
"""
import click
from flask import current_app

from podmarket.database.seed import seed_catalog


def register_cli(app):

    @app.cli.command("seed-catalog")
    def seed_catalog_command():
        """Insert the demo categories and podcasts."""
        services = current_app.extensions['podmarket']
        categories, podcasts = seed_catalog(services.store)
        click.echo(f"Created {categories} categories and {podcasts} podcasts")

    @app.cli.command("promote-admin")
    @click.argument("email")
    @click.option("--revoke", is_flag=True, help="Remove admin rights instead.")
    def promote_admin_command(email, revoke):
        """Grant (or revoke) admin rights for the account with EMAIL."""
        services = current_app.extensions['podmarket']
        user = services.store.get_user_by_email(email)
        if user is None:
            raise click.ClickException(f"No user with email {email}")
        services.accounts.set_admin(user.id, not revoke)
        click.echo(f"{email}: admin={'no' if revoke else 'yes'}")
