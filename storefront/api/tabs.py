"""Tab endpoints.

A tab is one browser context: it owns a cart synchronized with every
other tab and a one-shot session identity.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse

from storefront.api.dependencies import get_storefront, get_tab
from storefront.api.schemas import (
    CartItemRequest,
    CartResponse,
    ErrorResponse,
    RenderResponse,
    SignInRequest,
    TabResponse,
)
from storefront.application.storefront import Storefront, TabSession
from storefront.domain.cart import cart_to_dict
from storefront.domain.exceptions import InvalidQuantityError
from storefront.routing.guard import LayoutKind

router = APIRouter(prefix="/tabs", tags=["Tabs"])

TAB_RESPONSES = {404: {"model": ErrorResponse}}


def _cart_response(tab: TabSession) -> CartResponse:
    return CartResponse(
        tab_id=tab.id,
        items=cart_to_dict(tab.cart.items),
        count=tab.cart.item_count,
    )


# ============================================================================
# Lifecycle
# ============================================================================


@router.post("", response_model=TabResponse, status_code=status.HTTP_201_CREATED)
async def open_tab(
    request: Request,
    storefront: Annotated[Storefront, Depends(get_storefront)],
) -> TabResponse:
    """Open a tab.

    The request cookies are forwarded to the session check, which runs in
    the background; the tab starts in the ``pending`` auth state.

    Returns:
        The new tab.
    """
    tab = storefront.open_tab(dict(request.cookies))
    return TabResponse(**tab.to_dict())


@router.get("/{tab_id}", response_model=TabResponse, responses=TAB_RESPONSES)
async def get_tab_state(tab: Annotated[TabSession, Depends(get_tab)]) -> TabResponse:
    """Get a tab's auth state and cart."""
    return TabResponse(**tab.to_dict())


@router.delete("/{tab_id}", status_code=status.HTTP_204_NO_CONTENT, responses=TAB_RESPONSES)
async def close_tab(
    tab: Annotated[TabSession, Depends(get_tab)],
    storefront: Annotated[Storefront, Depends(get_storefront)],
) -> Response:
    """Close a tab and stop its background work."""
    await storefront.close_tab(tab.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Render
# ============================================================================


@router.get(
    "/{tab_id}/render",
    response_model=RenderResponse,
    responses={404: {"model": RenderResponse}},
)
async def render(
    tab: Annotated[TabSession, Depends(get_tab)],
    path: Annotated[str, Query(description="Location pathname, matched exactly")],
) -> JSONResponse:
    """Decide what the tab renders for a location.

    Unknown paths return the not-found view with status 404.
    """
    result = tab.render(path)
    status_code = 404 if result.layout is LayoutKind.NOT_FOUND else 200
    body = RenderResponse(**result.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ============================================================================
# Cart
# ============================================================================


@router.get("/{tab_id}/cart", response_model=CartResponse, responses=TAB_RESPONSES)
async def get_cart(tab: Annotated[TabSession, Depends(get_tab)]) -> CartResponse:
    """Get a tab's cart."""
    return _cart_response(tab)


@router.put(
    "/{tab_id}/cart/items/{product_id}",
    response_model=CartResponse,
    responses={**TAB_RESPONSES, 422: {"model": ErrorResponse}},
)
async def set_cart_item(
    product_id: str,
    body: CartItemRequest,
    tab: Annotated[TabSession, Depends(get_tab)],
) -> CartResponse:
    """Set the quantity of a cart line (0 removes it)."""
    try:
        tab.cart.set_quantity(product_id, body.quantity, body.attributes)
    except InvalidQuantityError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error_code": "INVALID_QUANTITY",
                "message": e.message,
                "details": e.details,
            },
        ) from e
    return _cart_response(tab)


@router.delete(
    "/{tab_id}/cart/items/{product_id}",
    response_model=CartResponse,
    responses=TAB_RESPONSES,
)
async def remove_cart_item(
    product_id: str,
    tab: Annotated[TabSession, Depends(get_tab)],
) -> CartResponse:
    """Remove a cart line."""
    tab.cart.remove_item(product_id)
    return _cart_response(tab)


@router.delete("/{tab_id}/cart", response_model=CartResponse, responses=TAB_RESPONSES)
async def clear_cart(tab: Annotated[TabSession, Depends(get_tab)]) -> CartResponse:
    """Empty the cart."""
    tab.cart.clear()
    return _cart_response(tab)


# ============================================================================
# Session
# ============================================================================


@router.post("/{tab_id}/login", response_model=TabResponse, responses=TAB_RESPONSES)
async def sign_in(
    body: SignInRequest,
    tab: Annotated[TabSession, Depends(get_tab)],
) -> TabResponse:
    """Mark the tab signed in after the login page succeeded."""
    tab.auth.sign_in(body.user)
    return TabResponse(**tab.to_dict())


@router.post("/{tab_id}/logout", response_model=TabResponse, responses=TAB_RESPONSES)
async def sign_out(tab: Annotated[TabSession, Depends(get_tab)]) -> TabResponse:
    """End the tab's session."""
    await tab.auth.sign_out()
    return TabResponse(**tab.to_dict())
