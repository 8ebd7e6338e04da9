"""CRM accounts CLI tool (crmctl)."""

import typer

app = typer.Typer(name="crmctl", help="CRM accounts CLI")
db_app = typer.Typer(help="Database management commands")
users_app = typer.Typer(help="User account commands")
app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")


@db_app.command("init")
def db_init():
    """Create all tables that do not exist yet."""
    from crm.db.base import Base
    from crm.db.session import engine
    import crm.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
    typer.echo(f"✅ Tables ready on {engine.url.render_as_string(hide_password=True)}")


@db_app.command("seed")
def db_seed():
    """Seed default groups and the owner account."""
    from crm.db.session import SessionLocal
    from crm.db.seeds.seed_groups import seed_groups
    from crm.db.seeds.seed_owner import seed_owner

    db = SessionLocal()
    try:
        seed_groups(db)
        seed_owner(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@users_app.command("invite")
def invite_user(
    email: str = typer.Argument(..., help="Email of the new member"),
    group: str = typer.Option(..., help="Name of the users group to join"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Initial password"),
):
    """Invite a member and print the registration token."""
    from crm.core.exceptions import CRMError
    from crm.db.session import SessionLocal
    from crm.models import UsersGroup
    from crm.services.invitation_service import invitation_service

    db = SessionLocal()
    try:
        found = db.query(UsersGroup).filter(UsersGroup.name == group).first()
        token = invitation_service.invite(db, email, password, found.id if found else -1)
    except CRMError as e:
        typer.echo(f"❌ {e.message}", err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(f"✅ Invited {email}, registration token: {token}")


@users_app.command("set-active")
def set_active(
    user_id: int = typer.Argument(..., help="User ID"),
    active: bool = typer.Option(True, "--active/--inactive", help="Target state"),
):
    """Activate or deactivate a user."""
    from crm.core.exceptions import CRMError
    from crm.db.session import SessionLocal
    from crm.services.auth_service import auth_service

    db = SessionLocal()
    try:
        user = auth_service.set_active(db, user_id, active)
    except CRMError as e:
        typer.echo(f"❌ {e.message}", err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(f"✅ {user.email} is now {'active' if user.is_active else 'inactive'}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("crm.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
