"""CLI for Espresso Gallery - accounts, creator approval, gallery and upload maintenance.

Usage:
    espresso user create-admin EMAIL
    espresso user list [--role creator]
    espresso creator list
    espresso creator approve USER_ID
    espresso creator reject USER_ID --reason "..."
    espresso gallery list [--type featured] [--premium/--no-premium]
    espresso gallery show ITEM_ID
    espresso gallery remove-premium
    espresso uploads check
"""

import asyncio
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="espresso",
    help="CLI for Espresso Gallery",
    add_completion=False,
)
console = Console()

# =============================================================================
# User Commands
# =============================================================================

user_app = typer.Typer(help="Manage user accounts")
app.add_typer(user_app, name="user")


async def _create_admin_async(email: str, password: str, username: str | None) -> int:
    from espresso_gallery.auth.password import hash_password
    from espresso_gallery.db import get_session, repository
    from espresso_gallery.types import Role

    async with get_session() as session:
        if await repository.get_user_by_email(session, email):
            raise ValueError(f"Email already registered: {email}")
        user = await repository.create_user(
            session, email, hash_password(password), role=Role.ADMIN, username=username
        )
        return user.id


async def _list_users_async(role: str | None) -> list[tuple[int, str, str, str, bool, str]]:
    from espresso_gallery.db import get_session, repository
    from espresso_gallery.types import Role

    async with get_session() as session:
        users = await repository.list_users(session, Role(role) if role else None)
        return [
            (
                u.id,
                u.email,
                u.username or "",
                u.role,
                u.is_active,
                u.created_at.strftime("%Y-%m-%d %H:%M"),
            )
            for u in users
        ]


@user_app.command("create-admin")
def user_create_admin(
    email: str = typer.Argument(..., help="Admin email address"),
    username: str | None = typer.Option(None, "--username", "-u", help="Optional username"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Admin password"
    ),
) -> None:
    """Create an admin account."""
    if len(password) < 8:
        console.print("[red]Password must be at least 8 characters[/red]")
        raise typer.Exit(1)

    try:
        user_id = asyncio.run(_create_admin_async(email, password, username))
    except Exception as e:
        console.print(f"[red]Failed to create admin: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]Created admin {email} (id={user_id})[/green]")


@user_app.command("list")
def user_list(
    role: str | None = typer.Option(None, "--role", "-r", help="admin, creator or follower"),
) -> None:
    """List user accounts."""
    if role and role not in ("admin", "creator", "follower"):
        console.print(f"[red]Unknown role: {role}[/red]")
        raise typer.Exit(1)

    try:
        users = asyncio.run(_list_users_async(role))
    except Exception as e:
        console.print(f"[red]Failed to list users: {e}[/red]")
        raise typer.Exit(1) from e

    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title="Users", box=box.ROUNDED)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Email", style="white")
    table.add_column("Username")
    table.add_column("Role", style="magenta")
    table.add_column("Active")
    table.add_column("Created", style="green")
    for user_id, email, username, user_role, active, created in users:
        table.add_row(
            str(user_id),
            email,
            username,
            user_role,
            "[green]yes[/green]" if active else "[red]no[/red]",
            created,
        )
    console.print(table)


# =============================================================================
# Creator Commands
# =============================================================================

creator_app = typer.Typer(help="Review and approve creators")
app.add_typer(creator_app, name="creator")


async def _list_creators_async() -> list[tuple[int, str, str, str, str]]:
    from espresso_gallery.db import get_session, repository

    async with get_session() as session:
        profiles = await repository.list_creator_profiles(session)
        return [
            (
                p.user_id,
                p.user.email if p.user else "?",
                p.alias_name or "",
                p.approval_status,
                p.created_at.strftime("%Y-%m-%d %H:%M"),
            )
            for p in profiles
        ]


async def _set_approval_async(user_id: int, approved: bool, reason: str | None) -> str:
    from espresso_gallery.db import get_session, repository
    from espresso_gallery.types import Role

    async with get_session() as session:
        user = await repository.get_user_by_id(session, user_id)
        if user is None or user.role != Role.CREATOR.value:
            raise ValueError(f"No creator with id {user_id}")
        profile = await repository.set_creator_approval(
            session, user_id, approved=approved, rejection_reason=reason
        )
        return profile.approval_status


@creator_app.command("list")
def creator_list() -> None:
    """List creator profiles and their approval status."""
    try:
        creators = asyncio.run(_list_creators_async())
    except Exception as e:
        console.print(f"[red]Failed to list creators: {e}[/red]")
        raise typer.Exit(1) from e

    if not creators:
        console.print("[yellow]No creators found[/yellow]")
        return

    colors = {"approved": "green", "pending": "yellow", "rejected": "red"}
    table = Table(title="Creators", box=box.ROUNDED)
    table.add_column("User ID", style="cyan", justify="right")
    table.add_column("Email")
    table.add_column("Alias")
    table.add_column("Status")
    table.add_column("Created", style="green")
    for user_id, email, alias, status, created in creators:
        color = colors.get(status, "white")
        table.add_row(str(user_id), email, alias, f"[{color}]{status}[/{color}]", created)
    console.print(table)


@creator_app.command("approve")
def creator_approve(user_id: int = typer.Argument(..., help="Creator's user id")) -> None:
    """Approve a creator so they can post content."""
    try:
        status = asyncio.run(_set_approval_async(user_id, True, None))
    except Exception as e:
        console.print(f"[red]Failed to approve creator: {e}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]Creator {user_id} is now {status}[/green]")


@creator_app.command("reject")
def creator_reject(
    user_id: int = typer.Argument(..., help="Creator's user id"),
    reason: str | None = typer.Option(None, "--reason", help="Shown to the creator"),
) -> None:
    """Reject a creator application."""
    try:
        status = asyncio.run(_set_approval_async(user_id, False, reason))
    except Exception as e:
        console.print(f"[red]Failed to reject creator: {e}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[yellow]Creator {user_id} is now {status}[/yellow]")


# =============================================================================
# Gallery Commands
# =============================================================================

gallery_app = typer.Typer(help="Inspect and maintain gallery items")
app.add_typer(gallery_app, name="gallery")


async def _list_gallery_async(item_type: str, premium: bool | None) -> list[Any]:
    from espresso_gallery.db import get_session
    from espresso_gallery.gallery import store
    from espresso_gallery.types import GalleryType

    async with get_session() as session:
        return await store.list_by_type(session, GalleryType(item_type), premium)


async def _show_item_async(item_id: int) -> Any:
    from espresso_gallery.db import get_session
    from espresso_gallery.gallery import store

    async with get_session() as session:
        return await store.get_item(session, item_id)


async def _remove_premium_async() -> int:
    from espresso_gallery.db import get_session
    from espresso_gallery.gallery import store

    async with get_session() as session:
        return await store.clear_all_premium(session)


@gallery_app.command("list")
def gallery_list(
    item_type: str = typer.Option("gallery", "--type", "-t", help="gallery or featured"),
    premium: bool | None = typer.Option(None, "--premium/--no-premium", help="Filter by premium"),
) -> None:
    """List gallery items, newest first."""
    if item_type not in ("gallery", "featured"):
        console.print(f"[red]Unknown type: {item_type}[/red]")
        raise typer.Exit(1)

    try:
        items = asyncio.run(_list_gallery_async(item_type, premium))
    except Exception as e:
        console.print(f"[red]Failed to list gallery: {e}[/red]")
        raise typer.Exit(1) from e

    if not items:
        console.print("[yellow]No items found[/yellow]")
        return

    table = Table(title=f"{item_type.title()} items", box=box.ROUNDED)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Title")
    table.add_column("Rating")
    table.add_column("Premium")
    table.add_column("Tags")
    table.add_column("URL", style="dim")
    table.add_column("Created", style="green")
    for item in items:
        table.add_row(
            str(item.id),
            item.title,
            item.content_rating.value,
            "[magenta]yes[/magenta]" if item.is_premium else "no",
            ", ".join(item.tags),
            item.url,
            item.created_at[:16],
        )
    console.print(table)


@gallery_app.command("show")
def gallery_show(item_id: int = typer.Argument(..., help="Gallery item id")) -> None:
    """Show one gallery item."""
    try:
        item = asyncio.run(_show_item_async(item_id))
    except Exception as e:
        console.print(f"[red]Failed to load item {item_id}: {e}[/red]")
        raise typer.Exit(1) from e

    table = Table(title=f"Item {item.id}", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in item.to_json().items():
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(field, "" if value is None else str(value))
    console.print(table)


@gallery_app.command("remove-premium")
def gallery_remove_premium(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear the premium flag on every gallery item."""
    if not yes:
        typer.confirm("Remove premium status from ALL gallery items?", abort=True)

    try:
        updated = asyncio.run(_remove_premium_async())
    except Exception as e:
        console.print(f"[red]Failed to remove premium status: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]Removed premium status from {updated} item(s)[/green]")


# =============================================================================
# Upload Commands
# =============================================================================

uploads_app = typer.Typer(help="Check upload directories against the database")
app.add_typer(uploads_app, name="uploads")


async def _check_uploads_async() -> dict[str, Any]:
    from espresso_gallery.db import get_session, repository
    from espresso_gallery.gallery import store
    from espresso_gallery.media import get_artifact_store
    from espresso_gallery.types import GalleryType

    artifacts = get_artifact_store()
    async with get_session() as session:
        items = []
        for item_type in GalleryType:
            items.extend(await store.list_by_type(session, item_type))
        other_urls = await repository.list_media_urls(session)

    # Content and profile images live in the same directories
    referenced: set[str] = {
        name for name in map(artifacts.filename_from_url, other_urls) if name is not None
    }
    missing: list[tuple[int, str, list[str]]] = []
    backend_names = [b.name for b in artifacts.backends]
    for item in items:
        filename = artifacts.filename_from_url(item.url)
        if filename is None:
            continue
        referenced.add(filename)
        present = await artifacts.locate(filename)
        absent = [name for name in backend_names if name not in present]
        if absent:
            missing.append((item.id, filename, absent))

    orphans: dict[str, list[str]] = {}
    for backend in artifacts.backends:
        files = await backend.list_files()
        orphans[backend.name] = [
            f for f in files if f.startswith("processed_") and f not in referenced
        ]

    return {
        "items": len(items),
        "directories": {b.name: str(b.root) for b in artifacts.backends},
        "missing": missing,
        "orphans": orphans,
    }


@uploads_app.command("check")
def uploads_check() -> None:
    """Report gallery items with missing files and processed files no item references."""
    try:
        report = asyncio.run(_check_uploads_async())
    except Exception as e:
        console.print(f"[red]Failed to check uploads: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"Checked {report['items']} gallery item(s)")
    for name, path in report["directories"].items():
        console.print(f"  [cyan]{name}[/cyan]: {path}")

    if report["missing"]:
        table = Table(title="Missing files", box=box.ROUNDED)
        table.add_column("Item", style="cyan", justify="right")
        table.add_column("File")
        table.add_column("Missing from", style="red")
        for item_id, filename, absent in report["missing"]:
            table.add_row(str(item_id), filename, ", ".join(absent))
        console.print(table)
    else:
        console.print("[green]Every item has its file in all directories[/green]")

    for name, files in report["orphans"].items():
        if files:
            console.print(f"[yellow]{len(files)} unreferenced file(s) in {name}:[/yellow]")
            for f in files[:20]:
                console.print(f"  {f}")

    if report["missing"]:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
