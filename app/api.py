"""
FastAPI routes for the banking dashboard.
JSON endpoints under /api, server-rendered pages everywhere else.
"""
from datetime import date, datetime
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from core.auth import AuthenticatedUser, SessionVerifier, get_verifier
from core.config import get_settings
from core.exceptions import (
    AuthenticationError,
    BankDashboardException,
    ValidationError,
)
from core.exporters import create_export_filename, export_to_csv, export_to_excel
from core.logger import setup_logger
from core.normalize import (
    format_money,
    format_receipt_datetime,
    format_short_date,
    truncate_id,
)
from core.schema import (
    BalanceResponse,
    ErrorResponse,
    ReceiptFilter,
    ReceiptLookupRequest,
    ReceiptResponse,
    ReceiptsResponse,
    ReceiptStats,
    Transaction,
)
from services.account_service import AccountService
from services.receipt_service import ReceiptService

logger = setup_logger(__name__)
settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Account balances, transaction history and printable receipts",
    version="1.0.0"
)

# Setup templates
templates_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))
templates.env.filters["money"] = format_money
templates.env.filters["short_date"] = partial(format_short_date, tz=settings.tz)
templates.env.filters["long_datetime"] = partial(format_receipt_datetime, tz=settings.tz)
templates.env.filters["tail"] = truncate_id
templates.env.globals["bank_name"] = settings.bank_name

INTERNAL_ERROR = "Internal Server Error"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_receipt_service() -> ReceiptService:
    return ReceiptService()


def get_account_service() -> AccountService:
    return AccountService()


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    verifier: SessionVerifier = Depends(get_verifier),
) -> AuthenticatedUser:
    """Resolve the signed-in user from the bearer header or session cookie."""
    session_cookie = request.cookies.get(verifier.settings.auth_session_cookie)
    return verifier.authenticate(authorization, session_cookie)


def _is_api_request(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def _error_response(request: Request, status_code: int, message: str) -> Response:
    if _is_api_request(request):
        return JSONResponse(status_code=status_code, content={"error": message})

    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


@app.exception_handler(BankDashboardException)
async def handle_dashboard_exception(request: Request, exc: BankDashboardException):
    """Map domain errors to JSON for the API and to pages for the browser."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.details}")
        message = INTERNAL_ERROR
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        message = exc.message

    if isinstance(exc, AuthenticationError) and not _is_api_request(request):
        target = f"{settings.sign_in_url}?redirect_url={quote(str(request.url), safe='')}"
        return RedirectResponse(url=target, status_code=303)

    return _error_response(request, exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    """Malformed query parameters or request bodies are a 400."""
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:]) or "request"
        problems.append(f"{field}: {error.get('msg')}")
    message = f"Invalid request: {'; '.join(problems)}"
    logger.info(f"{request.method} {request.url.path} -> 400: {message}")
    return _error_response(request, 400, message)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return _error_response(request, 500, INTERNAL_ERROR)


def _internal_error(action: str, error: Exception) -> BankDashboardException:
    logger.error(f"Error {action}: {error}", exc_info=True)
    return BankDashboardException(INTERNAL_ERROR, details={"action": action, "error": str(error)})


def _parse_filter(q: Optional[str], type_: Optional[str], on_date: Optional[str]) -> ReceiptFilter:
    """
    Build filter criteria from raw query parameters.
    Empty form fields mean "no filter".

    Raises:
        ValidationError: If type or date is malformed
    """
    kind = (type_ or "all").lower()
    if kind not in ("all", "credit", "debit"):
        raise ValidationError(f"Invalid type filter: {type_}")

    parsed_date: Optional[date] = None
    if on_date:
        try:
            parsed_date = datetime.strptime(on_date, "%Y-%m-%d").date()
        except ValueError:
            raise ValidationError(f"Invalid date: {on_date}")

    return ReceiptFilter(search=(q or "").strip() or None, type=kind, on_date=parsed_date)


def _load_receipts(
    service: ReceiptService,
    page: int,
    limit: Optional[int],
    criteria: ReceiptFilter,
) -> Tuple[ReceiptsResponse, List[Transaction], ReceiptStats]:
    result = service.list_receipts(page=page, limit=limit)
    filtered = service.filter_receipts(result.transactions, criteria)
    stats = service.calculate_stats(result.transactions)
    return result, filtered, stats


def _filter_query(criteria: ReceiptFilter, limit: Optional[int]) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if criteria.search:
        params["q"] = criteria.search
    if criteria.type != "all":
        params["type"] = criteria.type
    if criteria.on_date:
        params["date"] = criteria.on_date.isoformat()
    if limit:
        params["limit"] = limit
    return params


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "bank_dashboard",
        "version": "1.0.0"
    }


@app.get("/favicon.ico")
async def favicon():
    """Return empty response for favicon to avoid 404 errors."""
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------

@app.get("/api/receipts", response_model=ReceiptsResponse, responses=ERROR_RESPONSES)
def list_receipts(
    page: int = 1,
    limit: Optional[int] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """
    List transactions across all customers, newest first.

    Args:
        page: 1-based page number
        limit: Page size

    Returns:
        Transactions with owner names and pagination info
    """
    try:
        return service.list_receipts(page=page, limit=limit)
    except BankDashboardException:
        raise
    except Exception as e:
        raise _internal_error("fetching all transactions", e)


@app.post("/api/receipts", response_model=ReceiptResponse, responses=ERROR_RESPONSES)
def lookup_receipt(
    payload: ReceiptLookupRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """Fetch a single transaction by the id in the request body."""
    try:
        return ReceiptResponse(transaction=service.get_receipt(payload.transaction_id))
    except BankDashboardException:
        raise
    except Exception as e:
        raise _internal_error("fetching transaction", e)


@app.get("/api/receipts/{transaction_id}", response_model=ReceiptResponse, responses=ERROR_RESPONSES)
def get_receipt(
    transaction_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """Fetch a single transaction by path id."""
    try:
        return ReceiptResponse(transaction=service.get_receipt(transaction_id))
    except BankDashboardException:
        raise
    except Exception as e:
        raise _internal_error("fetching transaction", e)


@app.get("/api/requestBalance", response_model=BalanceResponse, responses=ERROR_RESPONSES)
def request_balance(
    user: AuthenticatedUser = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Balance of the signed-in user, always as a string."""
    try:
        return service.get_balance(user.user_id)
    except BankDashboardException:
        raise
    except Exception as e:
        raise _internal_error("requesting balance", e)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@app.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Greeting and balance card."""
    name = service.get_display_name(user.user_id, user.claims)
    balance = service.get_balance(user.user_id)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"full_name": name, "balance": balance.amount},
    )


@app.get("/receipts", response_class=HTMLResponse)
def receipts_page(
    request: Request,
    page: int = 1,
    limit: Optional[int] = None,
    q: Optional[str] = None,
    type: Optional[str] = None,
    date: Optional[str] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """Receipts table with stats, filters and export links."""
    criteria = _parse_filter(q, type, date)
    result, filtered, stats = _load_receipts(service, page, limit, criteria)
    params = _filter_query(criteria, limit)

    pagination = result.pagination
    prev_query = urlencode({**params, "page": page - 1}) if page > 1 else None
    next_query = urlencode({**params, "page": page + 1}) if pagination.has_more else None

    return templates.TemplateResponse(
        request,
        "receipts.html",
        {
            "transactions": filtered,
            "fetched_count": len(result.transactions),
            "stats": stats,
            "criteria": criteria,
            "pagination": pagination,
            "prev_query": prev_query,
            "next_query": next_query,
            "export_query": urlencode({**params, "page": page}),
        },
    )


def _export(
    service: ReceiptService,
    page: int,
    limit: Optional[int],
    q: Optional[str],
    type_: Optional[str],
    on_date: Optional[str],
) -> List[Transaction]:
    criteria = _parse_filter(q, type_, on_date)
    _, filtered, _ = _load_receipts(service, page, limit, criteria)
    return filtered


@app.get("/receipts/export.csv")
def export_receipts_csv(
    page: int = 1,
    limit: Optional[int] = None,
    q: Optional[str] = None,
    type: Optional[str] = None,
    date: Optional[str] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """Download the filtered page as CSV."""
    transactions = _export(service, page, limit, q, type, date)
    content = export_to_csv(transactions, settings.tz)
    filename = create_export_filename("csv")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/receipts/export.xlsx")
def export_receipts_excel(
    page: int = 1,
    limit: Optional[int] = None,
    q: Optional[str] = None,
    type: Optional[str] = None,
    date: Optional[str] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """Download the filtered page as an Excel workbook."""
    transactions = _export(service, page, limit, q, type, date)
    content = export_to_excel(transactions, settings.tz)
    filename = create_export_filename("xlsx")
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/receipts/{transaction_id}", response_class=HTMLResponse)
def receipt_page(
    request: Request,
    transaction_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReceiptService = Depends(get_receipt_service),
):
    """Printable receipt for one transaction."""
    transaction = service.get_receipt(transaction_id)
    return templates.TemplateResponse(request, "receipt.html", {"transaction": transaction})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
