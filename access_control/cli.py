"""Access control CLI tool (accessctl)."""

from typing import Optional

import typer

app = typer.Typer(name="accessctl", help="Access Control Engine CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _api_headers(token: Optional[str]) -> dict:
    return {"Authorization": f"Bearer {token}"} if token else {}


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    import pymysql
    from sqlalchemy.engine import make_url
    from access_control.core.config import settings

    url = make_url(settings.DATABASE_URL)
    conn = pymysql.connect(
        host=url.host or "localhost", port=url.port or 3306,
        user=url.username, password=url.password or "",
    )
    try:
        cursor = conn.cursor()
        cursor.execute(
            f"CREATE DATABASE IF NOT EXISTS `{url.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
        typer.echo(f"✅ Database '{url.database}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("init")
def db_init():
    """Create all tables."""
    from access_control.db.session import init_db

    init_db()
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed roles, permissions, grants and the page access matrix."""
    from access_control.db.session import SessionLocal
    from access_control.db.seeds.seed_roles import seed_roles
    from access_control.db.seeds.seed_permissions import seed_permissions
    from access_control.db.seeds.seed_page_access import seed_page_access

    db = SessionLocal()
    try:
        seed_roles(db)
        seed_permissions(db)
        seed_page_access(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@app.command("token")
def issue_token(
    role_id: int = typer.Argument(..., help="Role id to embed in the token"),
    minutes: int = typer.Option(60, help="Validity in minutes"),
):
    """Print a development bearer token for a role."""
    from datetime import timedelta
    from access_control.core.security import create_access_token

    typer.echo(create_access_token(role_id, expires_delta=timedelta(minutes=minutes)))


@app.command("nav")
def show_navigation(
    token: str = typer.Option(..., envvar="ACCESSCTL_TOKEN", help="Bearer token"),
):
    """Show the navigation menu visible to the token's role."""
    import httpx
    from access_control.core.config import settings

    resp = httpx.get(f"{settings.API_BASE_URL}/navigation", headers=_api_headers(token))
    resp.raise_for_status()
    for group in resp.json():
        typer.echo(f"[{group['category']}]")
        for page in group["pages"]:
            typer.echo(f"  {page['url']:<40} {page['access_level']}")


@app.command("check")
def check_access(
    page_url: Optional[str] = typer.Option(None, help="Page to check"),
    level: str = typer.Option("read", help="Required level on the page"),
    resource: Optional[str] = typer.Option(None, help="Permission resource"),
    action: Optional[str] = typer.Option(None, help="Permission action"),
    token: str = typer.Option(..., envvar="ACCESSCTL_TOKEN", help="Bearer token"),
):
    """Check one page level or one permission for the token's role."""
    import httpx
    from access_control.core.config import settings

    params = {"page_url": page_url, "level": level, "resource": resource, "action": action}
    resp = httpx.get(
        f"{settings.API_BASE_URL}/access/check",
        params={k: v for k, v in params.items() if v is not None},
        headers=_api_headers(token),
    )
    typer.echo(resp.json())
    if resp.status_code != 200 or not resp.json().get("allowed"):
        raise typer.Exit(code=1)


@app.command("create-all")
def create_all(
    token: str = typer.Option(..., envvar="ACCESSCTL_TOKEN", help="Bearer token"),
):
    """Materialize a 'none' rule for every missing (role, page) pair."""
    import httpx
    from access_control.core.config import settings

    resp = httpx.post(
        f"{settings.API_BASE_URL}/page-access-management/create-all",
        headers=_api_headers(token),
    )
    typer.echo(resp.json())


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("access_control.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
