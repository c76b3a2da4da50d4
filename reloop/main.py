from contextlib import contextmanager
from datetime import date
from typing import List, Optional

import typer
from rich import print
from rich.table import Table

from reloop.errors import DuplicateDocumentError, ReloopError
from reloop.factory import create_application
from reloop.models.user import User, UserRole
from reloop.pre_requisites import pre_check

app = typer.Typer(help="Turn industrial waste into upcycled product ideas and moderate what gets published.")


@contextmanager
def application():
    """Open the application and print domain errors instead of tracebacks."""
    with create_application() as ctx:
        try:
            yield ctx
        except ReloopError as e:
            print(f"[bold red]{e.message}[/bold red] ({e.status_code})")
            for key, value in e.details.items():
                print(f"  {key}: {value}")
            raise typer.Exit(code=1)


def print_ideas(submission):
    for index, idea in enumerate(submission.productIdeas):
        published = " [green](published)[/green]" if idea.isPublished else ""
        print(f"[bold]{index}. {idea.name}[/bold]{published}")
        print(f"   {idea.description}")
        print(
            f"   CO2 saved: {idea.co2Saved} kg/yr | water saved: {idea.waterSaved} L/yr | "
            f"profit margin: {idea.profitMargin}% | feasibility: {idea.feasibilityScore}%"
        )


@app.command()
def check():
    """Check that the configured integrations are available."""
    with application() as ctx:
        if not pre_check(ctx.database):
            raise typer.Exit(code=1)


@app.command()
def create_user(
    name: str,
    email: str,
    company: str = typer.Option("", help="Company name"),
    location: str = typer.Option("", help="Location"),
    admin: bool = typer.Option(False, help="Create an admin account"),
):
    """Register a user account."""
    with application() as ctx:
        user = User(
            name=name,
            email=email.strip().lower(),
            companyName=company,
            location=location,
            role=UserRole.ADMIN if admin else UserRole.USER,
        )
        try:
            ctx.users.create(user)
        except DuplicateDocumentError:
            print(f"[bold red]A user with email {user.email} already exists[/bold red]")
            raise typer.Exit(code=1)
        print(f"Created user [bold green]{user.id}[/bold green]")


@app.command()
def submit(
    owner: str,
    material: str = typer.Option(..., help="Waste material, e.g. 'Cotton textile waste'"),
    quantity: str = typer.Option(..., help="Amount produced, e.g. '15 tons/month'"),
    industry: str = typer.Option(..., help="Industry producing the waste"),
    properties: Optional[List[str]] = typer.Option(None, "--property", help="Property tag, repeatable"),
    wait: bool = typer.Option(False, help="Poll until the ideas are ready"),
):
    """Submit waste data for idea generation."""
    with application() as ctx:
        result = ctx.pipeline.submit(owner, {
            "material": material,
            "quantity": quantity,
            "industry": industry,
            "properties": properties or [],
        })
        print(f"Submission [bold green]{result['submissionId']}[/bold green] is {result['status']}")
        if wait:
            status = ctx.pipeline.wait_for_completion(result["submissionId"], owner)
            print(f"Status: [bold]{status['status']}[/bold]")
            if status["hasResults"]:
                print_ideas(ctx.pipeline.get_submission(result["submissionId"], owner))
            elif status.get("errorMessage"):
                print(f"[bold red]{status['errorMessage']}[/bold red]")


@app.command()
def status(owner: str, submission_id: str):
    """Show the status of a submission and its ideas."""
    with application() as ctx:
        summary = ctx.pipeline.get_status(submission_id, owner)
        print(f"Status: [bold]{summary['status']}[/bold], ideas: {summary['ideasCount']}")
        if summary.get("errorMessage"):
            print(f"[bold red]{summary['errorMessage']}[/bold red]")
        if summary["hasResults"]:
            print_ideas(ctx.pipeline.get_submission(submission_id, owner))


@app.command()
def reanalyze(owner: str, submission_id: str, wait: bool = typer.Option(False, help="Poll until the ideas are ready")):
    """Generate new ideas for the same waste data, excluding earlier ones."""
    with application() as ctx:
        result = ctx.pipeline.reanalyze(submission_id, owner)
        print(
            f"Submission [bold green]{result['submissionId']}[/bold green] is {result['status']}, "
            f"excluding {result['excludedCount']} previous ideas"
        )
        if wait:
            summary = ctx.pipeline.wait_for_completion(result["submissionId"], owner)
            print(f"Status: [bold]{summary['status']}[/bold]")
            if summary["hasResults"]:
                print_ideas(ctx.pipeline.get_submission(result["submissionId"], owner))


@app.command()
def history(owner: str, page: int = 1, limit: int = 20):
    """List an owner's submissions and impact totals."""
    with application() as ctx:
        result = ctx.pipeline.get_history(owner, page=page, limit=limit)
        table = Table(title=f"Submissions (page {result['page']}/{max(1, result['totalPages'])})")
        for column in ("Id", "Material", "Quantity", "Industry", "Status", "Ideas"):
            table.add_column(column)
        for submission in result["submissions"]:
            table.add_row(
                submission.id, submission.material, submission.quantity, submission.industry,
                submission.status.value, str(len(submission.productIdeas)),
            )
        print(table)
        stats = ctx.pipeline.get_stats(owner)
        print(
            f"Ideas: {stats['totalIdeas']} | CO2 saved: {stats['totalCO2Saved']} kg/yr | "
            f"water saved: {stats['totalWaterSaved']} L/yr | avg profit margin: {stats['avgProfitMargin']}%"
        )


@app.command()
def publish(owner: str, submission_id: str, idea_index: int):
    """Publish one idea as a product awaiting review."""
    with application() as ctx:
        product = ctx.moderation.publish(owner, submission_id, idea_index)
        print(f"Product [bold green]{product.id}[/bold green] submitted for review")


@app.command()
def delete_product(owner: str, product_id: str):
    """Delete a pending or rejected product."""
    with application() as ctx:
        ctx.moderation.delete_product(product_id, owner)
        print(f"Deleted product {product_id}")


@app.command()
def pending():
    """List products waiting for review, oldest first."""
    with application() as ctx:
        table = Table(title="Pending products")
        for column in ("Id", "Name", "Owner", "Material", "Submitted"):
            table.add_column(column)
        for product in ctx.moderation.list_pending_products():
            table.add_row(product.id, product.name, product.ownerId, product.material, product.createdAt.isoformat())
        print(table)


@app.command()
def approve(product_id: str, reviewer: str, notes: Optional[str] = None):
    """Approve a pending product."""
    with application() as ctx:
        result = ctx.moderation.approve(product_id, reviewer, notes)
        print(f"Product {product_id} is [bold green]{result['status']}[/bold green]")
        if result["userVerified"]:
            print("Owner is now verified")


@app.command()
def reject(product_id: str, reviewer: str, reason: str, notes: Optional[str] = None):
    """Reject a pending product."""
    with application() as ctx:
        result = ctx.moderation.reject(product_id, reviewer, reason, notes)
        print(f"Product {product_id} is [bold red]{result['status']}[/bold red]")


@app.command()
def deactivate(
    product_id: str,
    reason: str,
    deactivation_type: str = typer.Option("admin_action", "--type", help="admin_action or policy_violation"),
    actor: Optional[str] = None,
    notes: Optional[str] = None,
):
    """Take an approved product offline."""
    with application() as ctx:
        result = ctx.moderation.deactivate(product_id, reason, deactivation_type, actor, notes)
        print(f"Product {product_id} is [bold yellow]{result['status']}[/bold yellow]")


@app.command()
def reactivate(product_id: str, notes: Optional[str] = None):
    """Put a deactivated product back online."""
    with application() as ctx:
        result = ctx.moderation.reactivate(product_id, notes)
        print(f"Product {product_id} is [bold green]{result['status']}[/bold green]")


@app.command()
def suspend_user(user_id: str, reason: str, actor: Optional[str] = None):
    """Suspend a user and deactivate their approved products."""
    with application() as ctx:
        result = ctx.moderation.suspend_user(user_id, reason, actor)
        print(f"User {user_id} suspended, {result['productsDeactivated']} products deactivated")


@app.command()
def reactivate_user(user_id: str, products: bool = typer.Option(True, help="Restore products hidden by the suspension")):
    """Reactivate a suspended user."""
    with application() as ctx:
        result = ctx.moderation.reactivate_user(user_id, reactivate_products=products)
        print(f"User {user_id} reactivated, {result['productsReactivated']} products restored")


@app.command()
def report(product_id: str, email: str, reason: str, details: Optional[str] = None):
    """Report a published product."""
    with application() as ctx:
        created = ctx.moderation.report_product(product_id, email, reason, details)
        print(f"Report [bold green]{created.id}[/bold green] filed")


@app.command()
def reports(all_reports: bool = typer.Option(False, "--all", help="Include resolved reports")):
    """List reports, pending only by default."""
    with application() as ctx:
        table = Table(title="Reports")
        for column in ("Id", "Product", "Reason", "Reporter", "Status"):
            table.add_column(column)
        for entry in ctx.moderation.list_reports(pending_only=not all_reports):
            table.add_row(entry["id"], entry["productName"], entry["reason"], entry["reporterEmail"], entry["status"])
        print(table)


@app.command()
def resolve_report(report_id: str, action: str, resolver: Optional[str] = None, notes: Optional[str] = None):
    """Resolve a report by dismissing it or deactivating the product."""
    with application() as ctx:
        result = ctx.moderation.resolve_report(report_id, action, resolver, notes)
        print(f"Report {report_id} resolved with {result['action']}")
        if result["productDeactivated"]:
            print("Reported product was deactivated")


@app.command()
def public_products(page: int = 1, limit: int = 20):
    """Show the public catalog and its impact totals."""
    with application() as ctx:
        catalog = ctx.moderation.public_catalog(page=page, limit=limit)
        table = Table(title=f"Public products ({catalog['total']})")
        for column in ("Name", "Material", "Industry", "CO2 saved", "Water saved"):
            table.add_column(column)
        for product in catalog["products"]:
            table.add_row(product.name, product.material, product.industry, str(product.co2Saved), str(product.waterSaved))
        print(table)
        stats = catalog["stats"]
        print(f"Total CO2 saved: {stats['totalCO2Saved']} kg/yr | total water saved: {stats['totalWaterSaved']} L/yr")


@app.command()
def dashboard():
    """Show platform statistics for admins."""
    with application() as ctx:
        stats = ctx.moderation.dashboard_stats()
        for section, values in stats.items():
            print(f"[bold]{section}[/bold]: " + ", ".join(f"{key}={value}" for key, value in values.items()))


@app.command()
def daily_report(day: Optional[str] = typer.Option(None, help="Day as YYYY-MM-DD, defaults to today (UTC)")):
    """Send the daily summary of new reports to the admin."""
    with application() as ctx:
        count = ctx.moderation.send_daily_report_summary(date.fromisoformat(day) if day else None)
        print(f"Daily summary covered {count} reports")


if __name__ == "__main__":
    app()
