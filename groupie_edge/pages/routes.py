"""
Static asset and page routes.

The page table below is the whole front-end routing: a handful of fixed paths
mapped to HTML files, /static/* served from the resolver's base
directories with a one-year cache lifetime, and the index page for any
other GET path. This router has to be included after every other router.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import FileResponse, RedirectResponse

from .resolver import FileResolver, content_type_for

pages_router = APIRouter(tags=["pages"])

STATIC_CACHE_CONTROL = "public, max-age=31536000"

# Front-end entry points, all served the index page.
INDEX_PATHS = ("/", "/search", "/filters")

# path -> template file
PAGE_TEMPLATES = {
    "/search.html": "search.html",
    "/login": "login.html",
    "/login.html": "login.html",
    "/geoloc.html": "geoloc.html",
}


def get_file_resolver(request: Request) -> FileResolver:
    return request.app.state.file_resolver


@pages_router.get("/static/{asset_path:path}", include_in_schema=False)
async def static_asset(asset_path: str, request: Request):
    path = get_file_resolver(request).static(asset_path)
    return FileResponse(
        path,
        media_type=content_type_for(path),
        headers={"Cache-Control": STATIC_CACHE_CONTROL},
    )


@pages_router.get("/geoloc", include_in_schema=False)
async def geoloc_redirect():
    return RedirectResponse(url="/geoloc.html", status_code=status.HTTP_301_MOVED_PERMANENTLY)


def _index_page(request: Request):
    return FileResponse(get_file_resolver(request).index())


def _template_page(name: str):
    def serve(request: Request):
        return FileResponse(get_file_resolver(request).template(name))

    serve.__name__ = f"page_{name.replace('.', '_')}"
    return serve


for _path in INDEX_PATHS:
    pages_router.add_api_route(_path, _index_page, methods=["GET"], include_in_schema=False)

for _path, _template in PAGE_TEMPLATES.items():
    pages_router.add_api_route(_path, _template_page(_template), methods=["GET"], include_in_schema=False)


# Registered last: every other GET path is a front-end entry point.
@pages_router.get("/{page_path:path}", include_in_schema=False)
async def fallback_page(page_path: str, request: Request):
    return _index_page(request)
