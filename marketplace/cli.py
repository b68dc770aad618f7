import click
from flask.cli import with_appcontext

from marketplace.models.user import UserRole
from marketplace.schemas.auth import check_password_strength
from marketplace.services.registry import get_services


@click.command('create-admin')
@click.option('--email', required=True, help='Admin email address')
@click.option('--username', required=True, help='Admin username')
@click.password_option(help='Admin password')
@with_appcontext
def create_admin(email, username, password):
    """
    Create an administrator account.

    Public signup only creates ordinary users; this is the only way to mint
    an admin.
    """
    users = get_services().users
    if users.find_by_email(email):
        raise click.ClickException(f"User with email {email} already exists")
    if users.is_username_taken(username):
        raise click.ClickException(f"Username {username} is already taken")
    try:
        check_password_strength(password)
    except ValueError as e:
        raise click.ClickException(str(e))

    user = users.create({
        'email': email,
        'username': username,
        'password': password,
        'role': UserRole.admin.value
    })
    click.echo(f"Created admin {user.username} ({user.email}) with id {user.id}")


def register_commands(app):
    app.cli.add_command(create_admin)
