"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from storefront.application.storefront import Storefront, TabSession
from storefront.domain.exceptions import TabNotFoundError


def get_storefront(request: Request) -> Storefront:
    """Get the storefront owned by the application."""
    return request.app.state.storefront


def get_tab(
    tab_id: str,
    request: Request,
    storefront: Annotated[Storefront, Depends(get_storefront)],
) -> TabSession:
    """Resolve the tab named in the path.

    The tab id is recorded on the request state for the access log.

    Raises:
        HTTPException: 404 if the tab is not open.
    """
    request.state.tab_id = tab_id
    try:
        return storefront.get_tab(tab_id)
    except TabNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error_code": "TAB_NOT_FOUND",
                "message": e.message,
                "details": e.details,
            },
        ) from e
