"""FastAPI server exposing the catalogue, invoices and dashboard as JSON.

The server is a read-only projection of the JSON store except for a few
maintenance endpoints, which require the ``X-API-Key`` header when key
validation is enabled. The periodic invoice jobs run inside this process.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from .middleware.api_key_validator import APIKeyValidator
from .models.dashboard import TimeFrame
from .models.invoice import InvoiceStatus
from .models.product import ProductCategory
from .scheduler import create_background_scheduler
from .services.company_service import CompanyService
from .services.dashboard_service import DashboardService
from .services.invoice_service import InvoiceService
from .services.product_service import ProductService
from .services.report_service import ReportService
from .storage.data_manager import DataManager
from .utils.config import get_config
from .utils.exceptions import (
    AuthenticationError,
    BaseAppException,
    CompanyError,
    NotFoundError,
    ValidationError,
)
from .utils.logger import get_api_logger

config = get_config()
logger = get_api_logger()
api_key_validator = APIKeyValidator()


# ------------------------------------------------------------------
# Lifespan
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup / shutdown of the application."""
    logger.info("=" * 60)
    logger.info("Jessica Invoice API Starting")
    logger.info("=" * 60)
    logger.info(f"Environment:          {config.env.environment}")
    logger.info(f"Port:                 {config.env.port}")
    logger.info(f"Data directory:       {config.data_dir}")
    logger.info(f"API key required:     {config.api.require_api_key}")
    logger.info("=" * 60)

    scheduler = None
    if config.api.embed_scheduler:
        scheduler = create_background_scheduler()
        scheduler.start()
        logger.info("Invoice scheduler started")

    yield

    if scheduler is not None:
        logger.info("Shutting down invoice scheduler...")
        scheduler.shutdown(wait=True)
    logger.info("API server shut down.")


app = FastAPI(
    title="Jessica Invoice API",
    description="Products, invoices and dashboard metrics",
    version="1.0.0",
    lifespan=lifespan,
)


# ------------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------------

def get_data_manager() -> DataManager:
    """One store handle per request."""
    return DataManager()


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    api_key_validator.validate(x_api_key)


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------

@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Jessica Invoice API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "environment": config.env.environment
    }


@app.get("/products")
def list_products(
    search: Optional[str] = None,
    category: Optional[ProductCategory] = None,
    active_only: bool = True,
    data_manager: DataManager = Depends(get_data_manager),
):
    """Filtered products in stored order."""
    service = ProductService(data_manager)
    products = service.set_filters(search_text=search or "", category=category, active_only=active_only)
    return {
        "count": len(products),
        "products": [product.to_dict() for product in products],
    }


@app.get("/products/stats")
def product_statistics(data_manager: DataManager = Depends(get_data_manager)):
    return ProductService(data_manager).get_statistics()


@app.get("/products/{product_id}")
def get_product(product_id: str, data_manager: DataManager = Depends(get_data_manager)):
    return ProductService(data_manager).get_product(product_id).to_dict()


@app.get("/invoices")
def list_invoices(
    search: Optional[str] = None,
    status: Optional[InvoiceStatus] = None,
    data_manager: DataManager = Depends(get_data_manager),
):
    """Filtered invoices, newest first."""
    service = InvoiceService(data_manager)
    service.search_text = search or ""
    service.selected_status = status
    invoices = service.filtered_invoices
    return {
        "count": len(invoices),
        "invoices": [invoice.to_dict() for invoice in invoices],
    }


@app.post("/invoices/refresh-overdue", dependencies=[Depends(require_api_key)])
def refresh_overdue(data_manager: DataManager = Depends(get_data_manager)):
    changed = InvoiceService(data_manager).refresh_overdue()
    return {
        "status": "ok",
        "updated": [invoice.number for invoice in changed],
    }


@app.get("/companies")
def list_companies(data_manager: DataManager = Depends(get_data_manager)):
    """Companies, primary first."""
    companies = CompanyService(data_manager).companies
    return {
        "count": len(companies),
        "companies": [company.to_dict() for company in companies],
    }


@app.post("/companies/{company_id}/primary", dependencies=[Depends(require_api_key)])
def set_primary_company(company_id: str, data_manager: DataManager = Depends(get_data_manager)):
    return CompanyService(data_manager).set_primary_company(company_id).to_dict()


@app.delete("/companies/{company_id}", dependencies=[Depends(require_api_key)])
def delete_company(company_id: str, data_manager: DataManager = Depends(get_data_manager)):
    """Remove a company; 409 when it is the last one."""
    CompanyService(data_manager).delete_company(company_id)
    return {"status": "deleted", "id": company_id}


@app.get("/dashboard")
def get_dashboard(
    timeframe: TimeFrame = TimeFrame.MONTH,
    company_id: Optional[str] = None,
    data_manager: DataManager = Depends(get_data_manager),
):
    service = DashboardService(data_manager, timeframe=timeframe, company_id=company_id)
    return service.refresh().to_dict()


@app.post("/dashboard/refresh", dependencies=[Depends(require_api_key)])
def refresh_dashboard(
    timeframe: TimeFrame = TimeFrame.MONTH,
    company_id: Optional[str] = None,
    data_manager: DataManager = Depends(get_data_manager),
):
    """Manual refresh; honours the configured artificial delay."""
    service = DashboardService(data_manager, timeframe=timeframe, company_id=company_id)
    return service.refresh(manual=True).to_dict()


@app.post("/reports/export", dependencies=[Depends(require_api_key)])
def export_report(
    timeframe: TimeFrame = TimeFrame.MONTH,
    format: str = "json",
    data_manager: DataManager = Depends(get_data_manager),
):
    """Write a dashboard report; failures are reported, not raised."""
    data = DashboardService(data_manager, timeframe=timeframe).refresh()
    reports_dir = data_manager.data_dir / config.storage.reports_dir
    path = ReportService(reports_dir).export(data, format)
    if path is None:
        return {"status": "failed", "path": None}
    return {"status": "exported", "path": str(path)}


# ------------------------------------------------------------------
# Exception handlers
# ------------------------------------------------------------------

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Custom HTTP exception handler."""
    logger.warning(f"HTTP {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    """Map domain errors to HTTP status codes."""
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, ValidationError):
        status_code = 422
    elif isinstance(exc, AuthenticationError):
        status_code = 401
    elif isinstance(exc, CompanyError):
        status_code = 409
    else:
        status_code = 500

    logger.warning(f"HTTP {status_code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.message,
            "status_code": status_code
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unexpected errors."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if not config.is_production else "An error occurred"
        }
    )


def main():
    import uvicorn

    uvicorn.run(
        "jessica_invoice.api_server:app",
        host="0.0.0.0",
        port=config.env.port,
        reload=not config.is_production
    )


if __name__ == "__main__":
    main()
