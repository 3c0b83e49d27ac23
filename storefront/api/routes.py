"""Path table endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_storefront
from storefront.api.schemas import RouteSchema, RouteTableResponse
from storefront.application.storefront import Storefront

router = APIRouter(tags=["Routes"])


@router.get("/routes", response_model=RouteTableResponse)
async def list_routes(
    storefront: Annotated[Storefront, Depends(get_storefront)],
) -> RouteTableResponse:
    """List the current path table in emission order.

    Returns:
        Readiness, routes and the descriptors dropped as collisions.
    """
    table = storefront.path_table
    return RouteTableResponse(
        ready=storefront.ready,
        routes=[RouteSchema(**descriptor.to_dict()) for descriptor in table],
        collisions=[RouteSchema(**descriptor.to_dict()) for descriptor in table.collisions],
    )
