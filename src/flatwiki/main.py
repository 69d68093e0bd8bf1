"""FlatWiki FastAPI application."""

import logging
import re
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError
from starlette.exceptions import HTTPException as StarletteHTTPException

from flatwiki.config import Settings
from flatwiki.config import settings as default_settings
from flatwiki.core.errors import PageNotFoundError, StorageError
from flatwiki.core.models import Page
from flatwiki.core.storage import TITLE_PATTERN, FileStorage, Storage

logger = logging.getLogger(__name__)

templates_path = Path(__file__).parent / "templates"

REQUIRED_TEMPLATES = ("view.html", "edit.html")

# Mutating routes answer any method other than POST with 400
MUTATING_PATH = re.compile(r"/(save|delete)/(.*)")

router = APIRouter(redirect_slashes=False)


# ========== Dependencies ==========


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


def valid_title(title: str) -> str:
    """Reject titles that are not a run of ASCII letters and digits."""
    if not TITLE_PATTERN.fullmatch(title):
        raise HTTPException(status_code=404, detail="Not Found")
    return title


def get_context(request: Request, **kwargs) -> dict:
    """Create base context for templates."""
    settings = get_settings(request)
    return {
        "app_title": settings.app_title,
        "front_page": settings.front_page,
        **kwargs,
    }


def render(request: Request, name: str, page: Page) -> HTMLResponse:
    """Render a page template. Template errors surface as 500 responses."""
    templates = get_templates(request)
    return templates.TemplateResponse(request, name, get_context(request, page=page))


# ========== Routes ==========


@router.get("/")
async def index(settings: Settings = Depends(get_settings)):
    """Send the web root to the front page."""
    return RedirectResponse(url=f"/view/{settings.front_page}", status_code=307)


@router.get("/view/{title}", response_class=HTMLResponse)
async def view_page(
    request: Request,
    title: str = Depends(valid_title),
    from_save: str | None = None,
    from_delete: str | None = None,
    storage: Storage = Depends(get_storage),
):
    """View a wiki page."""
    page = await storage.get_page(title)

    if page is None:
        # Page doesn't exist - redirect to edit to create it
        return RedirectResponse(url=f"/edit/{title}", status_code=302)

    # One-time banners after a save or delete redirect
    page.from_save = from_save == "true"
    page.from_delete = from_delete == "true"

    return render(request, "view.html", page)


@router.get("/edit/{title}", response_class=HTMLResponse)
async def edit_page(
    request: Request,
    title: str = Depends(valid_title),
    storage: Storage = Depends(get_storage),
):
    """Edit page form."""
    page = await storage.get_page(title)

    if page is None:
        # New page
        page = Page(title=title)

    return render(request, "edit.html", page)


@router.post("/save/{title}")
async def save_page(
    request: Request,
    title: str = Depends(valid_title),
    storage: Storage = Depends(get_storage),
):
    """Save page content submitted from the edit form."""
    form = await request.form()
    body = form.get("body", "")
    if not isinstance(body, str):
        raise HTTPException(status_code=400, detail="Body must be a text field")

    await storage.save_page(Page(title=title, body=body.encode("utf-8")))
    logger.info("Page %s saved", title)
    return RedirectResponse(url=f"/view/{title}?from_save=true", status_code=302)


@router.post("/delete/{title}")
async def delete_page(
    title: str = Depends(valid_title),
    settings: Settings = Depends(get_settings),
    storage: Storage = Depends(get_storage),
):
    """Delete a page."""
    if not await storage.page_exists(title):
        raise HTTPException(status_code=404, detail="Page not found")

    await storage.delete_page(title)
    logger.info("Page %s deleted", title)
    return RedirectResponse(
        url=f"/view/{settings.front_page}?from_delete=true", status_code=302
    )


# ========== Error handlers ==========


async def page_not_found_handler(request: Request, exc: PageNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Page not found"})


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure for page %s: %s", exc.title, exc.message)
    return JSONResponse(status_code=500, content={"detail": exc.message})


async def template_error_handler(request: Request, exc: TemplateError):
    logger.error("Template rendering failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    """Answer non-POST requests to save and delete with 400.

    A malformed title is still a 404, as it is for POST.
    """
    m = MUTATING_PATH.fullmatch(request.url.path)
    if m is None:
        return await http_exception_handler(request, exc)
    if not TITLE_PATTERN.fullmatch(m.group(2)):
        return JSONResponse(status_code=404, content={"detail": "Not Found"})
    return JSONResponse(status_code=400, content={"detail": "Bad method type"})


# ========== Application factory ==========


def load_templates(settings: Settings) -> Jinja2Templates:
    """Load the page templates, failing if any required one is unusable."""
    directory = settings.templates_dir or templates_path
    templates = Jinja2Templates(directory=str(directory))
    check_templates(templates)
    logger.info("Templates loaded from %s", directory)
    return templates


def check_templates(templates: Jinja2Templates) -> None:
    """Parse every required template up front."""
    for name in REQUIRED_TEMPLATES:
        try:
            templates.get_template(name)
        except TemplateError:
            logger.error("Required template %s could not be loaded", name)
            raise


def create_app(
    settings: Settings | None = None,
    *,
    storage: Storage | None = None,
    templates: Jinja2Templates | None = None,
) -> FastAPI:
    """Create the wiki application.

    Args:
        settings: Application settings. Defaults to the environment settings.
        storage: Page store. Defaults to a FileStorage on settings.data_dir.
        templates: Template set providing view.html and edit.html.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or default_settings

    if templates is None:
        templates = load_templates(settings)
    else:
        check_templates(templates)

    if storage is None:
        storage = FileStorage(settings.data_dir)
        logger.info("Serving pages from %s", settings.data_dir.resolve())

    app = FastAPI(
        title=settings.app_title,
        debug=settings.debug,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.templates = templates

    app.include_router(router)
    app.add_exception_handler(PageNotFoundError, page_not_found_handler)
    app.add_exception_handler(405, method_not_allowed_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(TemplateError, template_error_handler)
    return app
