"""Static marketing/app pages, some gated by plan tier."""

import re
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse

from codegolden.api.deps import get_access_gate
from codegolden.core.auth import get_current_identity
from codegolden.core.errors import NotFoundError, UpgradeRequiredError
from codegolden.features.access.gate import FEATURE_TIERS, AccessGate

router = APIRouter(tags=["pages"])

# page name (without .html) -> minimum tier
GATED_PAGES = {
    "advanced": FEATURE_TIERS["advanced"],
    "ultra": FEATURE_TIERS["ultra"],
    "marketplace": FEATURE_TIERS["marketplace"],
}

_PAGE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def _page_file(request: Request, page: str) -> Path:
    if not _PAGE_NAME.match(page):
        raise NotFoundError("Page not found")
    path = Path(request.app.state.settings.STATIC_DIR) / f"{page}.html"
    if not path.is_file():
        raise NotFoundError("Page not found")
    return path


@router.get("/", include_in_schema=False)
def index(request: Request):
    return FileResponse(_page_file(request, "login"))


@router.get("/{page}.html", include_in_schema=False)
def page(page: str, request: Request, gate: AccessGate = Depends(get_access_gate)):
    required = GATED_PAGES.get(page)
    if required is not None:
        identity = get_current_identity(request)
        decision = gate.check_access(identity.identity, required)
        if not decision.allowed:
            raise UpgradeRequiredError(
                f"Upgrade required: this page needs the {required.value} plan",
                details={
                    "required_tier": required.value,
                    "current_tier": decision.effective_tier.value,
                    "upgrade_url": "/api/upgrade",
                },
            )
    return FileResponse(_page_file(request, page))


# Registered last: anything not matched above is looked up under STATIC_DIR
@router.get("/{asset_path:path}", include_in_schema=False)
def asset(asset_path: str, request: Request):
    """Stylesheets, scripts and images referenced by the pages; .html only through page()."""
    parts = Path(asset_path).parts
    if not parts or asset_path.lower().endswith(".html") or any(part.startswith(".") for part in parts):
        raise NotFoundError("Not found")
    root = Path(request.app.state.settings.STATIC_DIR).resolve()
    path = (root / asset_path).resolve()
    if root not in path.parents or not path.is_file():
        raise NotFoundError("Not found")
    return FileResponse(path)
