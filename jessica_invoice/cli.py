"""Command-line interface for the product catalogue, invoices and dashboard."""

import sys
from pathlib import Path
from typing import Optional

import click

from .models.dashboard import TimeFrame
from .models.invoice import InvoiceStatus
from .models.product import Product, ProductCategory
from .services.company_service import CompanyService
from .services.dashboard_service import DashboardService
from .services.invoice_service import InvoiceService
from .services.product_service import ProductService
from .services.report_service import ReportService
from .storage.data_manager import DataManager
from .utils.config import get_config
from .utils.exceptions import BaseAppException, ValidationError

CATEGORY_CHOICES = click.Choice([category.value for category in ProductCategory])
STATUS_CHOICES = click.Choice([status.value for status in InvoiceStatus])
TIMEFRAME_CHOICES = click.Choice([timeframe.value for timeframe in TimeFrame])


def _fail(message: str):
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(1)


def _format_change(value: Optional[float]) -> str:
    if value is None:
        return click.style("n/a", fg="bright_black")
    color = "green" if value >= 0 else "red"
    return click.style(f"{value:+.1f}%", fg=color)


@click.group()
@click.version_option(version="1.0.0")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the JSON store (defaults to JESSICA_DATA_DIR)"
)
@click.pass_context
def cli(ctx, data_dir: Optional[Path]):
    """
    Jessica Invoice CLI.

    Manage products and invoices and view company dashboard metrics.
    """
    ctx.obj = DataManager(data_dir=data_dir)


# ------------------------------------------------------------------
# Products
# ------------------------------------------------------------------

@cli.command()
@click.option("--search", "-s", default="", help="Text to match in name or description")
@click.option("--category", "-c", type=CATEGORY_CHOICES, default=None, help="Only this category")
@click.option("--all", "show_all", is_flag=True, help="Include inactive products")
@click.pass_obj
def products(data_manager: DataManager, search: str, category: Optional[str], show_all: bool):
    """List products matching the filters."""
    service = ProductService(data_manager)
    matches = service.set_filters(search_text=search, category=category, active_only=not show_all)

    if not matches:
        click.echo(click.style("No products match the current filters.", fg="yellow"))
        return

    click.echo(f"{'Name':<30} {'Category':<14} {'Price':>12} {'Unit':<8} Active")
    click.echo("─" * 74)
    for product in matches:
        click.echo(
            f"{product.name[:30]:<30} {product.category.display_name:<14} "
            f"{product.price:>12.2f} {product.unit:<8} {'yes' if product.is_active else 'no'}"
        )
    click.echo("─" * 74)
    click.echo(f"{len(matches)} product(s)")


@cli.command("product-add")
@click.argument("name")
@click.option("--price", "-p", required=True, help="Unit price")
@click.option("--description", "-d", default="", help="Description")
@click.option("--unit", "-u", default="st", help="Unit label")
@click.option("--category", "-c", type=CATEGORY_CHOICES, default=ProductCategory.SERVICE.value)
@click.option("--vat-rate", default=None, help="VAT percentage (defaults to JESSICA_DEFAULT_VAT_RATE)")
@click.pass_obj
def product_add(data_manager: DataManager, name: str, price: str, description: str,
                unit: str, category: str, vat_rate: Optional[str]):
    """Add a product to the catalogue."""
    try:
        product = Product(
            name=name,
            description=description,
            price=price,
            unit=unit,
            category=category,
            vat_rate=vat_rate if vat_rate is not None else get_config().env.default_vat_rate,
        )
        ProductService(data_manager).save_product(product)
    except ValidationError as e:
        for error in e.errors:
            click.echo(click.style(f"  - {error}", fg="red"), err=True)
        _fail("Product not saved")
    except (ValueError, BaseAppException) as e:
        _fail(str(e))

    click.echo(click.style(f"✓ Added {product.name} ({product.id})", fg="green"))


@cli.command("product-delete")
@click.argument("product_id")
@click.pass_obj
def product_delete(data_manager: DataManager, product_id: str):
    """Delete a product, or deactivate it if invoices use it."""
    try:
        removed = ProductService(data_manager).delete_product(product_id)
    except BaseAppException as e:
        _fail(e.message)

    if removed:
        click.echo(click.style("✓ Product deleted", fg="green"))
    else:
        click.echo(click.style("⚠ Product is used in invoices; marked inactive", fg="yellow"))


@cli.command("export-products")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def export_products(data_manager: DataManager, output: Path):
    """Export active products to a CSV file."""
    content = ProductService(data_manager).export_products_to_csv()
    try:
        output.write_text(content, encoding="utf-8")
    except OSError as e:
        _fail(f"Could not write {output}: {e.strerror or e}")
    click.echo(click.style(f"✓ Exported products to {output}", fg="green"))


@cli.command("import-products")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_products(data_manager: DataManager, source: Path):
    """Import products from a CSV file."""
    try:
        result = ProductService(data_manager).import_products_from_csv(source.read_bytes())
    except BaseAppException as e:
        _fail(e.message)

    click.echo(result.get_summary())
    sys.exit(0 if result.success else 1)


# ------------------------------------------------------------------
# Invoices
# ------------------------------------------------------------------

@cli.command()
@click.option("--search", "-s", default="", help="Client name or invoice number")
@click.option("--status", type=STATUS_CHOICES, default=None, help="Only this status")
@click.pass_obj
def invoices(data_manager: DataManager, search: str, status: Optional[str]):
    """List invoices, newest first."""
    service = InvoiceService(data_manager)
    service.search_text = search
    service.selected_status = InvoiceStatus(status) if status else None
    matches = service.filtered_invoices

    if not matches:
        click.echo(click.style("No invoices match the current filters.", fg="yellow"))
        return

    click.echo(f"{'Number':<14} {'Date':<11} {'Client':<26} {'Status':<10} {'Total':>12}")
    click.echo("─" * 77)
    for invoice in matches:
        click.echo(
            f"{invoice.formatted_number:<14} {invoice.date:%Y-%m-%d} {invoice.client.name[:26]:<26} "
            f"{invoice.status.value:<10} {invoice.total:>12.2f}"
        )
    click.echo("─" * 77)
    click.echo(f"{len(matches)} invoice(s)")


@cli.command("invoice-status")
@click.argument("invoice_id")
@click.argument("status", type=STATUS_CHOICES)
@click.pass_obj
def invoice_status(data_manager: DataManager, invoice_id: str, status: str):
    """Change the status of an invoice."""
    try:
        invoice = InvoiceService(data_manager).update_invoice_status(invoice_id, InvoiceStatus(status))
    except BaseAppException as e:
        _fail(e.message)

    click.echo(click.style(f"✓ {invoice.formatted_number} is now {invoice.status.display_name}", fg="green"))


@cli.command("refresh-overdue")
@click.pass_obj
def refresh_overdue(data_manager: DataManager):
    """Mark sent invoices past their due date as overdue."""
    changed = InvoiceService(data_manager).refresh_overdue()
    click.echo(f"{len(changed)} invoice(s) marked overdue")
    for invoice in changed:
        click.echo(f"  - {invoice.formatted_number} ({invoice.client.name})")


# ------------------------------------------------------------------
# Companies
# ------------------------------------------------------------------

@cli.command()
@click.pass_obj
def companies(data_manager: DataManager):
    """List companies; the primary one is marked with *."""
    service = CompanyService(data_manager)
    if not service.companies:
        click.echo(click.style("No companies set up yet.", fg="yellow"))
        return

    for company in service.companies:
        marker = "*" if company.is_primary else " "
        click.echo(f"{marker} {company.name:<30} {company.organization_number:<14} {company.id}")


@cli.command("company-add")
@click.argument("name")
@click.argument("organization_number")
@click.pass_obj
def company_add(data_manager: DataManager, name: str, organization_number: str):
    """Add a company. The first company added becomes primary."""
    try:
        company = CompanyService(data_manager).create_new_company(name, organization_number)
    except ValidationError as e:
        for error in e.errors:
            click.echo(click.style(f"  - {error}", fg="red"), err=True)
        _fail("Company not saved")
    except BaseAppException as e:
        _fail(e.message)

    click.echo(click.style(f"✓ Added {company.name} ({company.id})", fg="green"))


@cli.command("company-primary")
@click.argument("company_id")
@click.pass_obj
def company_primary(data_manager: DataManager, company_id: str):
    """Make a company the primary one."""
    try:
        company = CompanyService(data_manager).set_primary_company(company_id)
    except BaseAppException as e:
        _fail(e.message)
    click.echo(click.style(f"✓ {company.name} is now the primary company", fg="green"))


@cli.command("company-delete")
@click.argument("company_id")
@click.pass_obj
def company_delete(data_manager: DataManager, company_id: str):
    """Delete a company. The last company cannot be removed."""
    try:
        CompanyService(data_manager).delete_company(company_id)
    except BaseAppException as e:
        _fail(e.message)
    click.echo(click.style("✓ Company deleted", fg="green"))


# ------------------------------------------------------------------
# Dashboard & reports
# ------------------------------------------------------------------

@cli.command()
@click.option("--timeframe", "-t", type=TIMEFRAME_CHOICES, default=None, help="Reporting window")
@click.option("--company-id", default=None, help="Only this company's records")
@click.pass_obj
def dashboard(data_manager: DataManager, timeframe: Optional[str], company_id: Optional[str]):
    """Show dashboard metrics for the current period."""
    service = DashboardService(data_manager, timeframe=timeframe, company_id=company_id)
    data = service.refresh()

    if service.error_message:
        _fail(service.error_message)

    click.echo(f"Dashboard: {data.timeframe.display_name}")
    click.echo("═" * 60)
    click.echo(f"Total revenue:    {data.total_revenue:>14.2f}  {_format_change(data.revenue_change)}")
    click.echo(f"Active invoices:  {data.active_invoices:>14}  {_format_change(data.invoice_change)}")
    click.echo(f"Outstanding:      {data.outstanding_amount:>14.2f}  {_format_change(data.outstanding_change)}")
    click.echo(f"Overdue:          {data.overdue_amount:>14.2f}  {_format_change(data.overdue_change)}")

    if data.insights:
        click.echo()
        click.echo(click.style("Insights:", bold=True))
        for insight in data.insights:
            click.echo(f"  • {insight.title}: {insight.description}")

    if data.recent_activities:
        click.echo()
        click.echo(click.style("Recent activity:", bold=True))
        for activity in data.recent_activities[:5]:
            click.echo(f"  {activity.timestamp:%Y-%m-%d}  {activity.title}  {activity.subtitle}")


@cli.command()
@click.option("--timeframe", "-t", type=TIMEFRAME_CHOICES, default=None, help="Reporting window")
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json")
@click.pass_obj
def report(data_manager: DataManager, timeframe: Optional[str], fmt: str):
    """Export the dashboard to the reports directory."""
    data = DashboardService(data_manager, timeframe=timeframe).refresh()
    reports_dir = data_manager.data_dir / get_config().storage.reports_dir
    path = ReportService(reports_dir).export(data, fmt)

    if path is None:
        click.echo(click.style("⚠ Report export failed; see logs/error.log", fg="yellow"))
        return
    click.echo(click.style(f"✓ Report written to {path}", fg="green"))


# ------------------------------------------------------------------
# Maintenance
# ------------------------------------------------------------------

@cli.command()
@click.pass_obj
def backup(data_manager: DataManager):
    """Write a full backup of products, invoices and company data."""
    try:
        path = data_manager.create_backup()
    except BaseAppException as e:
        _fail(e.message)
    click.echo(click.style(f"✓ Backup written to {path}", fg="green"))


@cli.command()
def config_info():
    """Display current configuration settings."""
    try:
        config = get_config()

        click.echo("Configuration Settings:")
        click.echo("=" * 60)
        click.echo()

        click.echo("Environment:")
        click.echo(f"  Environment:     {config.env.environment}")
        click.echo(f"  Log level:       {config.logging.level}")
        click.echo(f"  Data directory:  {config.data_dir}")
        click.echo()

        click.echo("Invoices:")
        click.echo(f"  Currency:        {config.env.default_currency}")
        click.echo(f"  VAT rate:        {config.env.default_vat_rate}%")
        click.echo(f"  Reminder days:   {config.env.reminder_days_before}")
        click.echo()

        click.echo("API:")
        click.echo(f"  Port:            {config.env.port}")
        click.echo(f"  Key required:    {config.api.require_api_key}")
        click.echo(f"  API key:         {'*' * len(config.env.api_key) if config.env.api_key else '(not set)'}")
        click.echo()

    except Exception as e:
        _fail(f"Error loading config: {str(e)}")


if __name__ == "__main__":
    cli()
